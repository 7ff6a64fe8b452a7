"""
Question explanation store.
"""
import logging
from typing import Dict, Optional, Sequence

from sqlalchemy.orm import sessionmaker

from picquiz.core.expiring import ExpiringValue
from picquiz.models.models import QuestionExplanation
from picquiz.stores.base import ExplanationStore
from picquiz.stores.sql import db_operation

logger = logging.getLogger(__name__)


class SqlExplanationStore(ExplanationStore):
    """
    Explanations in the ``question_explanations`` table.

    The full mapping is cached for ``cache_seconds``; writes invalidate it.
    """

    NAME = "SqlExplanationStore"

    def __init__(self, session_factory: sessionmaker, cache_seconds: int = 1800):
        self.session_factory = session_factory
        self._all: ExpiringValue[Dict[str, str]] = ExpiringValue(cache_seconds)

    def _load_all(self) -> Dict[str, str]:
        with db_operation(self.session_factory, self.NAME, "get_all") as db:
            rows = db.query(QuestionExplanation).all()
            return {row.question_file: row.explanation for row in rows}

    def get_all(self) -> Dict[str, str]:
        return dict(self._all.get_or_load(self._load_all))

    def get(self, question: str) -> Optional[str]:
        if not question:
            return None
        return self.get_all().get(question)

    def get_many(self, questions: Sequence[str]) -> Dict[str, str]:
        explanations = self.get_all()
        return {q: explanations[q] for q in questions if q in explanations}

    def save(self, question: str, explanation: str) -> None:
        with db_operation(self.session_factory, self.NAME, "save") as db:
            row = db.get(QuestionExplanation, question)
            if row is None:
                db.add(QuestionExplanation(question_file=question, explanation=explanation))
            else:
                row.explanation = explanation
        self._all.invalidate()
        logger.info(f"Saved explanation for {question}")

    def delete(self, question: str) -> bool:
        with db_operation(self.session_factory, self.NAME, "delete") as db:
            row = db.get(QuestionExplanation, question)
            if row is None:
                return False
            db.delete(row)
        self._all.invalidate()
        logger.info(f"Deleted explanation for {question}")
        return True
