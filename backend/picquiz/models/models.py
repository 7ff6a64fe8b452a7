"""
Database models for exam sessions, question statistics and explanations.
"""
from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    JSON,
    String,
    Text,
    text,
)

from picquiz.core.datetime_utils import utc_now

from .base import Base


class ExamSessionRecord(Base):
    """One exam attempt, addressed by an opaque token."""

    __tablename__ = "exam_sessions"

    token = Column(String(64), primary_key=True)
    username = Column(String(64), nullable=False, index=True)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    # [{"question": name, "answers": [[key, name], ...]}, ...], fixed at creation
    questions = Column(JSON, nullable=False)
    # [{"selected_key": ..., "is_correct": ..., "answered_at": ...}, ...]
    answers = Column(JSON, nullable=False, default=list)
    current_index = Column(Integer, nullable=False, default=0)
    # active | completed | expired
    status = Column(String(16), nullable=False, default="active", index=True)
    score = Column(Integer, nullable=False, default=0)
    max_score = Column(Integer, nullable=False, default=0)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_exam_sessions_username_started", "username", "started_at"),
        # Database-level guard: at most one active session per user.
        Index(
            "uq_exam_sessions_one_active_per_user",
            "username",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )


class QuestionStat(Base):
    """Answer counts for one question image, across exams and practice."""

    __tablename__ = "question_stats"

    question = Column(String(255), primary_key=True)
    times_answered = Column(Integer, nullable=False, default=0)
    times_correct = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


class QuestionExplanation(Base):
    """Maintainer-written explanation shown when reviewing a question."""

    __tablename__ = "question_explanations"

    question_file = Column(String(255), primary_key=True)
    explanation = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )
