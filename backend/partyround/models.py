from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Set


class GamePhase(str, Enum):
    IDLE = 'idle'
    VOTING = 'voting'
    ANSWERING = 'answering'
    RESULTS = 'results'


class Answer(str, Enum):
    UNKNOWN = 'unknown'  # default for anyone who stays silent
    PARTIAL = 'partial'


class Rejection(str, Enum):
    """Reason a command was refused. Rejections never change state."""
    NOT_IDLE = 'not_idle'
    WRONG_PHASE = 'wrong_phase'
    FULL = 'full'
    DUPLICATE_ACTIVE = 'duplicate_active'
    IS_PROPOSER = 'is_proposer'
    ALREADY_ANSWERED = 'already_answered'


# 30 animal names; the pool size caps concurrent players
ANIMAL_NAMES = (
    'Tiger', 'Lion', 'Elephant', 'Bear', 'Deer',
    'Horse', 'Cow', 'Buffalo', 'Chicken', 'Duck',
    'Dog', 'Cat', 'Rabbit', 'Mouse', 'Monkey',
    'Pig', 'Goat', 'Sheep', 'Squirrel', 'Weasel',
    'Fox', 'Sparrow', 'Eagle', 'Seagull', 'Owl',
    'Butterfly', 'Bee', 'Ant', 'Snake', 'Turtle',
)


@dataclass
class Participant:
    connection_id: str
    persistent_id: str
    display_name: str
    joined_at: float
    last_seen_at: float
    active: bool = True

    def to_dict(self):
        return {
            'uuid': self.persistent_id,
            'display_name': self.display_name,
        }


@dataclass(frozen=True)
class RoundOutcome:
    result: Answer
    partial_count: int
    unknown_count: int

    def to_dict(self):
        return {
            'result': self.result.value,
            'counts': {
                Answer.PARTIAL.value: self.partial_count,
                Answer.UNKNOWN.value: self.unknown_count,
            },
        }


@dataclass
class Round:
    proposer_display_name: str
    proposer_connection_id: str
    proposer_persistent_id: str
    quorum_base: int
    proposed_at: float
    approvals: Set[str] = field(default_factory=set)
    all_voters: Set[str] = field(default_factory=set)
    vote_choice: Dict[str, bool] = field(default_factory=dict)
    answers: Dict[str, Answer] = field(default_factory=dict)
    started_at: Optional[float] = None
    ended_at: Optional[float] = None
    outcome: Optional[RoundOutcome] = None

    @property
    def eligible_answerers(self) -> int:
        # The proposer never answers their own round
        return self.quorum_base - 1

    def is_proposer(self, persistent_id: str) -> bool:
        return persistent_id == self.proposer_persistent_id
