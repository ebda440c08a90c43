"""Presence registry: who is connected and under which animal name.

A participant keeps their name for a grace period after disconnecting so a
brief network drop (or a page refresh) does not reshuffle identities.
"""
import logging
import random
import uuid
from typing import Dict, Iterable, List, Optional, Union

from partyround.models import ANIMAL_NAMES, Participant, Rejection
from .scheduler import TimerHandle


logger = logging.getLogger(__name__)

DISCONNECT_GRACE_SEC = 60


class PresenceRegistry:
    def __init__(self, scheduler, grace_sec: float = DISCONNECT_GRACE_SEC,
                 names: Iterable[str] = ANIMAL_NAMES, rng: Optional[random.Random] = None):
        self._scheduler = scheduler
        self._grace_sec = grace_sec
        self._rng = rng or random.Random()
        self._active: Dict[str, Participant] = {}        # connection id -> participant
        self._by_persistent: Dict[str, Participant] = {}  # persistent id -> participant
        self._unused_names = set(names)
        self._release_timers: Dict[str, TimerHandle] = {}
        self.capacity = len(self._unused_names)

    def register(self, connection_id: str, persistent_id: Optional[str] = None) -> Union[Participant, Rejection]:
        """Attach a connection to a participant, creating one if needed.

        Returns the participant, or a Rejection:
        - DUPLICATE_ACTIVE when the persistent id is already connected elsewhere
        - FULL when every name in the pool is taken
        """
        now = self._scheduler.now()
        existing = self._by_persistent.get(persistent_id) if persistent_id else None

        if existing is not None:
            if existing.active:
                logger.info(f"[register-duplicate] uuid={persistent_id} conn={connection_id}")
                return Rejection.DUPLICATE_ACTIVE
            timer = self._release_timers.pop(persistent_id, None)
            if timer is not None:
                timer.cancel()
            existing.connection_id = connection_id
            existing.last_seen_at = now
            existing.active = True
            self._active[connection_id] = existing
            logger.info(f"[reconnect] {existing.display_name} uuid={persistent_id} conn={connection_id}")
            return existing

        if not self._unused_names:
            logger.info(f"[register-full] conn={connection_id} capacity={self.capacity}")
            return Rejection.FULL

        name = self._rng.choice(sorted(self._unused_names))
        self._unused_names.discard(name)
        participant = Participant(
            connection_id=connection_id,
            persistent_id=persistent_id or str(uuid.uuid4()),
            display_name=name,
            joined_at=now,
            last_seen_at=now,
        )
        self._active[connection_id] = participant
        self._by_persistent[participant.persistent_id] = participant
        logger.info(f"[join] {name} uuid={participant.persistent_id} conn={connection_id}")
        return participant

    def deactivate(self, connection_id: str) -> Optional[Participant]:
        """Drop the connection and schedule the name's release."""
        participant = self._active.pop(connection_id, None)
        if participant is None:
            return None
        participant.active = False
        participant.last_seen_at = self._scheduler.now()
        pid = participant.persistent_id
        self._release_timers[pid] = self._scheduler.call_later(
            self._grace_sec, lambda: self._release(pid), label=f"release uuid={pid}"
        )
        logger.info(f"[disconnect] {participant.display_name} uuid={pid}, release in {self._grace_sec}s")
        return participant

    def _release(self, persistent_id: str) -> None:
        self._release_timers.pop(persistent_id, None)
        participant = self._by_persistent.get(persistent_id)
        if participant is None or participant.active:
            return
        del self._by_persistent[persistent_id]
        self._unused_names.add(participant.display_name)
        logger.info(f"[release] {participant.display_name} uuid={persistent_id}")

    def lookup_by_connection(self, connection_id: str) -> Optional[Participant]:
        return self._active.get(connection_id)

    def lookup_by_persistent_id(self, persistent_id: str) -> Optional[Participant]:
        return self._by_persistent.get(persistent_id)

    def active_count(self) -> int:
        return len(self._active)

    def active_participants(self) -> List[Participant]:
        return list(self._active.values())

    def active_snapshot(self) -> dict:
        return {
            'player_count': self.active_count(),
            'players': [p.to_dict() for p in self._active.values()],
        }

    def unused_name_count(self) -> int:
        return len(self._unused_names)
