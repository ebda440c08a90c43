from partyround.models import Answer, Round, RoundOutcome


def score_round(round_: Round) -> RoundOutcome:
    """Tally the answers of a finished answering phase.

    Anyone eligible who did not answer counts as "unknown", so silence never
    counts as a positive signal. A single "partial" answer flips the round.
    """
    answers = list(round_.answers.values())
    partial_count = sum(1 for a in answers if a == Answer.PARTIAL)
    explicit_unknown = sum(1 for a in answers if a == Answer.UNKNOWN)
    unanswered = max(0, round_.eligible_answerers - len(answers))
    result = Answer.PARTIAL if partial_count >= 1 else Answer.UNKNOWN
    return RoundOutcome(
        result=result,
        partial_count=partial_count,
        unknown_count=explicit_unknown + unanswered,
    )
