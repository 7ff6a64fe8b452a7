"""
Per-question answer statistics and derived difficulty.

A question is classified once it has at least ``min_attempts`` answers:
``easy`` when its success rate is at or above ``easy_rate``, ``hard`` when
below ``hard_rate``, ``medium`` otherwise. Unclassified questions are left
out of every difficulty list.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from picquiz.core.datetime_utils import utc_now
from picquiz.engine.types import Difficulty
from picquiz.models.models import QuestionStat
from picquiz.stores.base import DifficultyStore
from picquiz.stores.sql import db_operation

logger = logging.getLogger(__name__)


def classify(
    times_answered: int,
    times_correct: int,
    *,
    min_attempts: int = 5,
    easy_rate: float = 0.7,
    hard_rate: float = 0.4,
) -> Optional[Difficulty]:
    if times_answered < min_attempts or times_answered <= 0:
        return None
    rate = times_correct / times_answered
    if rate >= easy_rate:
        return Difficulty.EASY
    if rate < hard_rate:
        return Difficulty.HARD
    return Difficulty.MEDIUM


class SqlQuestionStatsStore(DifficultyStore):
    """Statistics in the ``question_stats`` table."""

    NAME = "SqlQuestionStatsStore"

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        min_attempts: int = 5,
        easy_rate: float = 0.7,
        hard_rate: float = 0.4,
    ):
        self.session_factory = session_factory
        self.min_attempts = min_attempts
        self.easy_rate = easy_rate
        self.hard_rate = hard_rate

    def _classify(self, stat: QuestionStat) -> Optional[Difficulty]:
        return classify(
            stat.times_answered,
            stat.times_correct,
            min_attempts=self.min_attempts,
            easy_rate=self.easy_rate,
            hard_rate=self.hard_rate,
        )

    def record_answer(self, question: str, is_correct: bool) -> None:
        if not question:
            return
        with db_operation(self.session_factory, self.NAME, "record_answer") as db:
            stat = db.get(QuestionStat, question)
            if stat is None:
                stat = QuestionStat(question=question, times_answered=0, times_correct=0)
                db.add(stat)
            stat.times_answered += 1
            if is_correct:
                stat.times_correct += 1
            stat.updated_at = utc_now()

    def questions_for_difficulty(self, tag: str) -> Optional[List[str]]:
        try:
            difficulty = Difficulty(tag.strip().lower())
        except ValueError:
            return None
        with db_operation(
            self.session_factory, self.NAME, "questions_for_difficulty"
        ) as db:
            stats = (
                db.query(QuestionStat)
                .filter(QuestionStat.times_answered >= self.min_attempts)
                .order_by(QuestionStat.question)
                .all()
            )
            return [s.question for s in stats if self._classify(s) is difficulty]

    def summary(self) -> Dict[str, int]:
        counts = {d.value: 0 for d in Difficulty}
        counts["unclassified"] = 0
        with db_operation(self.session_factory, self.NAME, "summary") as db:
            for stat in db.query(QuestionStat).all():
                difficulty = self._classify(stat)
                key = difficulty.value if difficulty else "unclassified"
                counts[key] += 1
        return counts
