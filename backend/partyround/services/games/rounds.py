"""Round state machine: idle -> voting -> answering -> results -> idle.

One machine owns the single game phase and at most one live countdown.
Commands return ``None`` when accepted or a ``Rejection`` when refused; a
refused command leaves every piece of state untouched. Callers serialize all
commands and timer callbacks (see ``GameContext``).
"""
import logging
import math
from typing import Callable, Optional

from partyround.models import Answer, GamePhase, Participant, Rejection, Round
from .scoring import score_round


logger = logging.getLogger(__name__)

VOTING_DURATION_SEC = 10
ANSWER_DURATION_SEC = 10
RESULTS_DURATION_SEC = 10
TICK_SEC = 1


def approvals_needed(quorum_base: int) -> int:
    return math.ceil(quorum_base / 2)


class RoundStateMachine:
    def __init__(self, registry, scheduler, on_change: Optional[Callable[[GamePhase], None]] = None,
                 voting_ticks: int = VOTING_DURATION_SEC, answer_ticks: int = ANSWER_DURATION_SEC,
                 results_ticks: int = RESULTS_DURATION_SEC, tick_sec: float = TICK_SEC):
        self._registry = registry
        self._scheduler = scheduler
        self.on_change = on_change
        self._durations = {
            GamePhase.VOTING: voting_ticks,
            GamePhase.ANSWERING: answer_ticks,
            GamePhase.RESULTS: results_ticks,
        }
        self._tick_sec = tick_sec
        self.phase = GamePhase.IDLE
        self.round: Optional[Round] = None
        self.countdown = 0
        self._timer = None

    # ---- commands ----

    def propose(self, connection_id: str, persistent_id: str, display_name: str) -> Optional[Rejection]:
        if self.phase != GamePhase.IDLE:
            logger.info(f"[propose-rejected] by {display_name}: phase={self.phase.value}")
            return Rejection.NOT_IDLE
        assert self.round is None, "idle machine still holds a round"

        self.round = Round(
            proposer_display_name=display_name,
            proposer_connection_id=connection_id,
            proposer_persistent_id=persistent_id,
            quorum_base=self._registry.active_count(),
            proposed_at=self._scheduler.now(),
        )
        logger.info(f"[propose] by {display_name}, quorum_base={self.round.quorum_base}")
        self._enter(GamePhase.VOTING)
        return None

    def cast_vote(self, connection_id: str, approve: bool) -> Optional[Rejection]:
        if self.phase != GamePhase.VOTING:
            return Rejection.WRONG_PHASE
        round_ = self._require_round()

        round_.all_voters.add(connection_id)
        round_.vote_choice[connection_id] = approve
        if approve:
            round_.approvals.add(connection_id)
        else:
            round_.approvals.discard(connection_id)

        needed = approvals_needed(round_.quorum_base)
        logger.info(f"[vote] conn={connection_id} approve={approve} {len(round_.approvals)}/{needed}")
        self._publish()

        if len(round_.approvals) >= needed:
            self._enter(GamePhase.ANSWERING)
        return None

    def submit_answer(self, persistent_id: str, answer: Answer) -> Optional[Rejection]:
        if self.phase != GamePhase.ANSWERING:
            return Rejection.WRONG_PHASE
        round_ = self._require_round()
        if round_.is_proposer(persistent_id):
            return Rejection.IS_PROPOSER
        if persistent_id in round_.answers:
            return Rejection.ALREADY_ANSWERED

        round_.answers[persistent_id] = Answer(answer)
        logger.info(f"[answer] uuid={persistent_id} answer={round_.answers[persistent_id].value} total={len(round_.answers)}")
        self._publish()
        return None

    def rebind_connection(self, old_connection_id: str, new_connection_id: str) -> None:
        """Carry a reconnecting participant's vote over to their new connection."""
        round_ = self.round
        if round_ is None or old_connection_id == new_connection_id:
            return
        if round_.proposer_connection_id == old_connection_id:
            round_.proposer_connection_id = new_connection_id
        if old_connection_id in round_.vote_choice:
            round_.vote_choice[new_connection_id] = round_.vote_choice.pop(old_connection_id)
        if old_connection_id in round_.all_voters:
            round_.all_voters.discard(old_connection_id)
            round_.all_voters.add(new_connection_id)
        if old_connection_id in round_.approvals:
            round_.approvals.discard(old_connection_id)
            round_.approvals.add(new_connection_id)

    # ---- snapshots ----

    def state_snapshot(self) -> dict:
        if self.phase == GamePhase.IDLE:
            return {'phase': self.phase.value}
        round_ = self._require_round()

        if self.phase == GamePhase.VOTING:
            data = {
                'proposer_name': round_.proposer_display_name,
                'vote_count': len(round_.approvals),
                'voter_count': len(round_.all_voters),
                'quorum_base': round_.quorum_base,
                'approvals_needed': approvals_needed(round_.quorum_base),
                'countdown': self.countdown,
            }
        elif self.phase == GamePhase.ANSWERING:
            data = {
                'proposer_name': round_.proposer_display_name,
                'answer_count': len(round_.answers),
                'total_players': round_.eligible_answerers,
                'countdown': self.countdown,
            }
        else:
            assert round_.outcome is not None, "results phase without an outcome"
            data = round_.outcome.to_dict()
            data['countdown'] = self.countdown
        return {'phase': self.phase.value, 'data': data}

    def personalized_snapshot(self, participant: Participant) -> dict:
        snapshot = self.state_snapshot()
        if self.phase == GamePhase.VOTING:
            round_ = self.round
            snapshot['data']['has_voted'] = participant.connection_id in round_.all_voters
            snapshot['data']['user_vote'] = round_.vote_choice.get(participant.connection_id)
        elif self.phase == GamePhase.ANSWERING:
            round_ = self.round
            answer = round_.answers.get(participant.persistent_id)
            snapshot['data']['is_proposer'] = round_.is_proposer(participant.persistent_id)
            snapshot['data']['has_answered'] = answer is not None
            snapshot['data']['answer'] = answer.value if answer is not None else None
        return snapshot

    # ---- phase transitions ----

    def _enter(self, phase: GamePhase) -> None:
        self._cancel_countdown()
        round_ = self.round
        now = self._scheduler.now()

        if phase == GamePhase.IDLE:
            self.round = None
            self.countdown = 0
        elif phase == GamePhase.ANSWERING:
            round_.started_at = now
        elif phase == GamePhase.RESULTS:
            round_.ended_at = now
            round_.outcome = score_round(round_)
            logger.info(
                f"[results] {round_.outcome.result.value} "
                f"(partial={round_.outcome.partial_count}, unknown={round_.outcome.unknown_count})"
            )

        self.phase = phase
        logger.info(f"[phase] -> {phase.value}")
        if phase != GamePhase.IDLE:
            self._start_countdown(self._durations[phase])
        self._publish()

    def _on_expired(self) -> None:
        if self.phase == GamePhase.VOTING:
            round_ = self._require_round()
            logger.info(
                f"[vote-timeout] {len(round_.approvals)}/{approvals_needed(round_.quorum_base)} approvals, discarding round"
            )
            self._enter(GamePhase.IDLE)
        elif self.phase == GamePhase.ANSWERING:
            self._enter(GamePhase.RESULTS)
        elif self.phase == GamePhase.RESULTS:
            self._enter(GamePhase.IDLE)

    # ---- countdown ----

    def _start_countdown(self, ticks: int) -> None:
        assert self._timer is None, "a countdown is already running"
        self.countdown = ticks
        self._schedule_tick()

    def _schedule_tick(self) -> None:
        self._timer = self._scheduler.call_later(
            self._tick_sec, self._tick, label=f"{self.phase.value} countdown={self.countdown}"
        )

    def _tick(self) -> None:
        self._timer = None
        self.countdown -= 1
        if self.countdown <= 0:
            self._on_expired()
        else:
            self._schedule_tick()
            self._publish()

    def _cancel_countdown(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _require_round(self) -> Round:
        assert self.round is not None, f"phase {self.phase.value} without a round"
        return self.round

    def _publish(self) -> None:
        if self.on_change is not None:
            self.on_change(self.phase)
