"""
SQL-backed exam session store.
"""
import logging
import secrets
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from picquiz.core.datetime_utils import ensure_timezone_aware
from picquiz.engine.types import (
    ExamAnswer,
    ExamQuestion,
    ExamSession,
    SessionStatus,
)
from picquiz.models.models import ExamSessionRecord
from picquiz.stores.base import SessionStore
from picquiz.stores.sql import db_operation

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def new_session_token() -> str:
    """Opaque, unguessable session token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def record_to_session(record: ExamSessionRecord) -> ExamSession:
    return ExamSession(
        token=record.token,
        username=record.username,
        started_at=ensure_timezone_aware(record.started_at),
        questions=tuple(ExamQuestion.from_dict(q) for q in record.questions or []),
        answers=[ExamAnswer.from_dict(a) for a in record.answers or []],
        current_index=record.current_index,
        status=SessionStatus(record.status),
        score=record.score,
        max_score=record.max_score,
        completed_at=(
            ensure_timezone_aware(record.completed_at) if record.completed_at else None
        ),
    )


class SqlSessionStore(SessionStore):
    """
    Exam sessions in the ``exam_sessions`` table.

    The partial unique index on ``username WHERE status = 'active'`` makes
    the database reject a second active session even when two requests pass
    the application-level check at the same time.
    """

    NAME = "SqlSessionStore"

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def create(
        self,
        username: str,
        questions: Sequence[ExamQuestion],
        *,
        started_at: datetime,
        max_score: int,
    ) -> Optional[ExamSession]:
        record = ExamSessionRecord(
            token=new_session_token(),
            username=username,
            started_at=started_at,
            questions=[q.to_dict() for q in questions],
            answers=[],
            current_index=0,
            status=SessionStatus.ACTIVE.value,
            score=0,
            max_score=max_score,
        )
        with db_operation(self.session_factory, self.NAME, "create") as db:
            db.add(record)
            try:
                db.flush()
            except IntegrityError:
                db.rollback()
                logger.warning(
                    f"Active session constraint rejected new session for {username}"
                )
                return None
            return record_to_session(record)

    def get(self, token: str) -> Optional[ExamSession]:
        with db_operation(self.session_factory, self.NAME, "get") as db:
            record = db.get(ExamSessionRecord, token)
            return record_to_session(record) if record is not None else None

    def get_active(self, username: str) -> Optional[ExamSession]:
        with db_operation(self.session_factory, self.NAME, "get_active") as db:
            record = (
                db.query(ExamSessionRecord)
                .filter(
                    ExamSessionRecord.username == username,
                    ExamSessionRecord.status == SessionStatus.ACTIVE.value,
                )
                .first()
            )
            return record_to_session(record) if record is not None else None

    def list_for_user(self, username: str, limit: int) -> List[ExamSession]:
        with db_operation(self.session_factory, self.NAME, "list_for_user") as db:
            records = (
                db.query(ExamSessionRecord)
                .filter(ExamSessionRecord.username == username)
                .order_by(ExamSessionRecord.started_at.desc())
                .limit(limit)
                .all()
            )
            return [record_to_session(r) for r in records]

    def update(self, session: ExamSession) -> None:
        with db_operation(self.session_factory, self.NAME, "update") as db:
            record = db.get(ExamSessionRecord, session.token)
            if record is None:
                logger.warning(f"Update for unknown exam session {session.token} ignored")
                return
            record.answers = [a.to_dict() for a in session.answers]
            record.current_index = session.current_index
            record.status = session.status.value
            record.score = session.score
            record.max_score = session.max_score
            record.completed_at = session.completed_at

    def set_status(self, token: str, status: SessionStatus) -> None:
        with db_operation(self.session_factory, self.NAME, "set_status") as db:
            record = db.get(ExamSessionRecord, token)
            if record is None:
                logger.warning(f"Status change for unknown exam session {token} ignored")
                return
            record.status = status.value
