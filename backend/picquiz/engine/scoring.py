"""
Score derivation for exam sessions.

Scores are always recomputed from the authoritative answer list, so
repeated or out-of-order submissions to the same index can never drift.
"""
from typing import Iterable, Sequence

from picquiz.engine.types import (
    POINTS_PER_CORRECT,
    ExamAnswer,
    ExamQuestion,
    ExamSession,
)


def score(answers: Iterable[ExamAnswer]) -> int:
    return POINTS_PER_CORRECT * sum(1 for a in answers if a.is_correct)


def max_score(questions: Sequence[ExamQuestion]) -> int:
    return POINTS_PER_CORRECT * len(questions)


def percentage(session: ExamSession) -> float:
    """Score as a percentage of the maximum, 0.0 for an empty session."""
    if session.max_score <= 0:
        return 0.0
    return round(100.0 * session.score / session.max_score, 1)


def apply(session: ExamSession) -> None:
    """Refresh ``score``/``max_score`` on the session in place."""
    session.score = score(session.answers)
    session.max_score = max_score(session.questions)
