from typing import Callable, Optional, Union

from partyround.models import Answer, GamePhase, Participant, Rejection
from .presence import PresenceRegistry
from .rounds import RoundStateMachine


class GameContext:
    """One game: a presence registry, a round machine and the lock guarding both.

    Every public method takes the scheduler's lock, so socket handlers and
    countdown callbacks never interleave.
    """

    def __init__(self, scheduler, config=None, on_change: Optional[Callable[[GamePhase], None]] = None, rng=None):
        config = config or {}
        self.scheduler = scheduler
        self.lock = scheduler.lock
        self.registry = PresenceRegistry(
            scheduler,
            grace_sec=config.get('DISCONNECT_GRACE_SEC', 60),
            rng=rng,
        )
        self.machine = RoundStateMachine(
            self.registry,
            scheduler,
            on_change=on_change,
            voting_ticks=config.get('VOTING_DURATION_SEC', 10),
            answer_ticks=config.get('ANSWER_DURATION_SEC', 10),
            results_ticks=config.get('RESULTS_DURATION_SEC', 10),
            tick_sec=config.get('TICK_SEC', 1),
        )

    def set_listener(self, on_change: Callable[[GamePhase], None]) -> None:
        self.machine.on_change = on_change

    def connect(self, connection_id: str, persistent_id: Optional[str] = None) -> Union[Participant, Rejection]:
        with self.lock:
            previous = self.registry.lookup_by_persistent_id(persistent_id) if persistent_id else None
            old_connection_id = previous.connection_id if previous is not None else None
            result = self.registry.register(connection_id, persistent_id)
            if isinstance(result, Participant) and old_connection_id:
                self.machine.rebind_connection(old_connection_id, connection_id)
            return result

    def disconnect(self, connection_id: str) -> Optional[Participant]:
        with self.lock:
            return self.registry.deactivate(connection_id)

    def propose(self, connection_id: str, proposer_name: Optional[str] = None) -> Optional[Rejection]:
        with self.lock:
            participant = self._require_participant(connection_id)
            return self.machine.propose(
                connection_id,
                participant.persistent_id,
                proposer_name or participant.display_name,
            )

    def vote(self, connection_id: str, approve: bool) -> Optional[Rejection]:
        with self.lock:
            self._require_participant(connection_id)
            return self.machine.cast_vote(connection_id, approve)

    def answer(self, connection_id: str, answer: Answer) -> Optional[Rejection]:
        with self.lock:
            participant = self._require_participant(connection_id)
            return self.machine.submit_answer(participant.persistent_id, answer)

    def participant(self, connection_id: str) -> Optional[Participant]:
        with self.lock:
            return self.registry.lookup_by_connection(connection_id)

    def roster(self) -> dict:
        with self.lock:
            return self.registry.active_snapshot()

    def state(self) -> dict:
        with self.lock:
            return self.machine.state_snapshot()

    def sync_for(self, connection_id: str) -> Optional[dict]:
        with self.lock:
            participant = self.registry.lookup_by_connection(connection_id)
            if participant is None:
                return None
            return self.machine.personalized_snapshot(participant)

    def _require_participant(self, connection_id: str) -> Participant:
        participant = self.registry.lookup_by_connection(connection_id)
        assert participant is not None, f"command from unregistered connection {connection_id}"
        return participant
