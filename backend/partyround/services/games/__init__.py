"""Game domain services: presence, rounds, scoring and timers.

This package holds the game core. It never touches the network; HTTP routes
and socket handlers call into it through ``GameContext`` and relay the
snapshots it produces.
"""
from .context import GameContext
from .presence import PresenceRegistry
from .rounds import RoundStateMachine
from .scheduler import BackgroundScheduler, ManualScheduler, TimerHandle

__all__ = [
    'GameContext',
    'PresenceRegistry',
    'RoundStateMachine',
    'BackgroundScheduler',
    'ManualScheduler',
    'TimerHandle',
]
