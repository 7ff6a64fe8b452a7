"""
Exam session state machine.

States are ``active -> completed`` and ``active -> expired``; both are
terminal. Expiry is a derived predicate evaluated lazily whenever a session
is touched; there is no background sweep, so a session can sit "active" in
storage past its deadline until the next read or write. That staleness is
logged when it is resolved.

The question list (with its shuffled answer maps) is produced once at
creation and never regenerated, so resuming always replays the same set in
the same order.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from picquiz.core.datetime_utils import ensure_timezone_aware, utc_now
from picquiz.core.graceful_failure import graceful_failure
from picquiz.engine import scoring
from picquiz.engine.errors import (
    ActiveSessionExistsError,
    InvalidInputError,
    SessionAccessDeniedError,
    SessionExpiredError,
    SessionNotActiveError,
    SessionNotFoundError,
)
from picquiz.engine.types import (
    CORRECT_KEY,
    ExamAnswer,
    ExamQuestion,
    ExamSession,
    SessionStatus,
)
from picquiz.stores.base import DifficultyStore, SessionStore

logger = logging.getLogger(__name__)


class ExamSessionMachine:
    """
    Drives exam sessions through their lifecycle.

    Every public method accepts an optional ``now`` so that clock-dependent
    behavior can be exercised without sleeping.
    """

    def __init__(
        self,
        store: SessionStore,
        duration: timedelta,
        stats_store: Optional[DifficultyStore] = None,
    ):
        self.store = store
        self.duration = duration
        self.stats_store = stats_store

    # ------------------------------------------------------------------
    # Time
    # ------------------------------------------------------------------

    def deadline(self, session: ExamSession) -> datetime:
        return ensure_timezone_aware(session.started_at) + self.duration

    def is_expired(self, session: ExamSession, now: Optional[datetime] = None) -> bool:
        """True once ``now`` reaches ``started_at + duration``."""
        return (now or utc_now()) >= self.deadline(session)

    def remaining(self, session: ExamSession, now: Optional[datetime] = None) -> timedelta:
        """Time left before the deadline; zero for terminal sessions."""
        if not session.is_active:
            return timedelta(0)
        left = self.deadline(session) - (now or utc_now())
        return max(left, timedelta(0))

    def _expire(self, session: ExamSession, now: datetime) -> ExamSession:
        """Move a timed-out active session to ``expired`` and persist it."""
        overdue = now - self.deadline(session)
        logger.info(
            f"Expiring exam session {session.token} for {session.username}: "
            f"left active {overdue.total_seconds():.0f}s past its deadline"
        )
        session.status = SessionStatus.EXPIRED
        self.store.set_status(session.token, SessionStatus.EXPIRED)
        return session

    def refresh(self, session: ExamSession, now: Optional[datetime] = None) -> ExamSession:
        """
        Apply the lazily evaluated transitions to an active session.

        - past the deadline: ``expired``
        - every question answered but never closed: ``completed``
        """
        now = now or utc_now()
        if not session.is_active:
            return session
        if self.is_expired(session, now):
            return self._expire(session, now)
        if session.current_index >= session.question_count:
            self._complete(session, now)
            self.store.update(session)
        return session

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(
        self,
        username: str,
        questions: Sequence[ExamQuestion],
        now: Optional[datetime] = None,
    ) -> ExamSession:
        """
        Start a new exam for ``username``.

        Raises:
            InvalidInputError: no questions were supplied
            ActiveSessionExistsError: the user already has an active session
                that is still within its time limit (``token`` is set), or a
                concurrent request created one first (``token`` is None)
        """
        now = now or utc_now()
        if not questions:
            raise InvalidInputError("Cannot start an exam without questions")

        existing = self.store.get_active(username)
        if existing is not None:
            self.refresh(existing, now)
            if existing.is_active:
                raise ActiveSessionExistsError(existing.token)

        session = self.store.create(
            username,
            list(questions),
            started_at=now,
            max_score=scoring.max_score(questions),
        )
        if session is None:
            logger.warning(
                f"Race condition detected: concurrent exam creation for {username}"
            )
            raise ActiveSessionExistsError(None)

        logger.info(
            f"Created exam session {session.token} for {username} "
            f"with {session.question_count} questions"
        )
        return session

    def resume(
        self, token: str, username: str, now: Optional[datetime] = None
    ) -> ExamSession:
        """
        Load a session owned by ``username`` and bring its status up to date.

        Raises:
            SessionNotFoundError: unknown token
            SessionAccessDeniedError: the session belongs to someone else
        """
        if not token:
            raise SessionNotFoundError(token)
        session = self.store.get(token)
        if session is None:
            raise SessionNotFoundError(token)
        if session.username != username:
            logger.warning(
                f"User {username} attempted to access exam session {token} "
                "owned by another user"
            )
            raise SessionAccessDeniedError(token)
        return self.refresh(session, now)

    def active_for(
        self, username: str, now: Optional[datetime] = None
    ) -> Optional[ExamSession]:
        """The user's active session, or None once it has been found stale."""
        session = self.store.get_active(username)
        if session is None:
            return None
        self.refresh(session, now)
        return session if session.is_active else None

    def history(
        self, username: str, limit: int, now: Optional[datetime] = None
    ) -> List[ExamSession]:
        """The user's sessions, newest first, with stale active ones expired."""
        now = now or utc_now()
        return [self.refresh(s, now) for s in self.store.list_for_user(username, limit)]

    def submit_answer(
        self,
        session: ExamSession,
        index: int,
        selected_key: str,
        now: Optional[datetime] = None,
    ) -> ExamAnswer:
        """
        Record an answer for question ``index``.

        The index is clamped into the question list and earlier unanswered
        slots are padded. Resubmitting an index overwrites its answer, and the
        score is recomputed from scratch, so repeats never double count.

        Raises:
            SessionNotActiveError: the session is completed or expired
            SessionExpiredError: the time limit passed; the session is now expired
            InvalidInputError: ``selected_key`` is not an option of the question
        """
        now = now or utc_now()
        if not session.is_active:
            raise SessionNotActiveError(session.token, session.status.value)
        if self.is_expired(session, now):
            self._expire(session, now)
            raise SessionExpiredError(session.token)

        total = session.question_count
        index = min(max(index, 0), total - 1)
        question = session.questions[index]
        if selected_key not in question.answer_keys:
            raise InvalidInputError(
                f"Answer key {selected_key!r} is not an option for question {index}"
            )

        answer = ExamAnswer(
            selected_key=selected_key,
            is_correct=selected_key == CORRECT_KEY,
            answered_at=now,
        )
        while len(session.answers) <= index:
            session.answers.append(ExamAnswer())
        session.answers[index] = answer

        session.current_index = min(index + 1, total)
        scoring.apply(session)
        if session.current_index == total:
            self._complete(session, now)

        self.store.update(session)
        self._record_stats(question, answer.is_correct)
        return answer

    def end_early(self, session: ExamSession, now: Optional[datetime] = None) -> ExamSession:
        """
        Close an active session regardless of progress.

        Raises:
            SessionNotActiveError: the session is already terminal
            SessionExpiredError: the time limit passed before the request
        """
        now = now or utc_now()
        if not session.is_active:
            raise SessionNotActiveError(session.token, session.status.value)
        if self.is_expired(session, now):
            self._expire(session, now)
            raise SessionExpiredError(session.token)

        self._complete(session, now)
        self.store.update(session)
        logger.info(
            f"Exam session {session.token} ended early at question "
            f"{session.current_index}/{session.question_count}"
        )
        return session

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _complete(self, session: ExamSession, now: datetime) -> None:
        scoring.apply(session)
        session.status = SessionStatus.COMPLETED
        session.completed_at = now

    def _record_stats(self, question: ExamQuestion, is_correct: bool) -> None:
        if self.stats_store is None:
            return
        with graceful_failure(
            "record question stats",
            logger,
            context={"question": question.question},
        ):
            self.stats_store.record_answer(question.question, is_correct)
