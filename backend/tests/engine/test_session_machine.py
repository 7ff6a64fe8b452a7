"""
Tests for the exam session state machine.

Clock-dependent behavior is exercised by passing explicit ``now`` values.
"""
import random
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from picquiz.engine.errors import (
    ActiveSessionExistsError,
    InvalidInputError,
    SessionAccessDeniedError,
    SessionExpiredError,
    SessionNotActiveError,
    SessionNotFoundError,
)
from picquiz.engine.image_pool import ImagePoolReader
from picquiz.engine.sampler import build_exam_questions
from picquiz.engine.session_machine import ExamSessionMachine
from picquiz.engine.types import ExamQuestion, SessionStatus
from picquiz.stores.sessions import SqlSessionStore

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
DURATION = timedelta(hours=2)


def _questions(pool_size=10):
    pool = [f"img{i:03d}.png" for i in range(pool_size)]
    groups = ImagePoolReader(pool).group_all()
    return build_exam_questions(groups, 17, random.Random(7))


def _wrong_key(question: ExamQuestion) -> str:
    return next(k for k in question.answer_keys if k != "correct")


@pytest.fixture
def store(session_factory):
    return SqlSessionStore(session_factory)


@pytest.fixture
def machine(store):
    return ExamSessionMachine(store, DURATION)


class TestCreate:
    def test_creates_active_session(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        assert session.status is SessionStatus.ACTIVE
        assert session.current_index == 0
        assert session.max_score == 12
        assert session.started_at == T0

    def test_rejects_empty_question_list(self, machine):
        with pytest.raises(InvalidInputError):
            machine.create("player1", [], now=T0)

    def test_second_active_session_is_rejected_with_token(self, machine):
        first = machine.create("player1", _questions(), now=T0)
        with pytest.raises(ActiveSessionExistsError) as exc_info:
            machine.create("player1", _questions(), now=T0 + timedelta(minutes=1))
        assert exc_info.value.token == first.token

    def test_other_users_are_independent(self, machine):
        machine.create("player1", _questions(), now=T0)
        other = machine.create("player2", _questions(), now=T0)
        assert other.is_active

    def test_stale_active_session_is_expired_before_creating(self, machine, store):
        first = machine.create("player1", _questions(), now=T0)
        second = machine.create("player1", _questions(), now=T0 + DURATION)
        assert second.token != first.token
        assert store.get(first.token).status is SessionStatus.EXPIRED

    def test_race_detected_by_database(self, store):
        """The store returns None when the unique index rejects a session."""
        racing_store = MagicMock(wraps=store)
        racing_store.get_active.return_value = None
        machine = ExamSessionMachine(racing_store, DURATION)

        machine.create("player1", _questions(), now=T0)
        with pytest.raises(ActiveSessionExistsError) as exc_info:
            machine.create("player1", _questions(), now=T0)
        assert exc_info.value.token is None


class TestExpiry:
    def test_one_second_before_deadline_is_active(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        now = T0 + DURATION - timedelta(seconds=1)
        assert not machine.is_expired(session, now)
        assert machine.remaining(session, now) == timedelta(seconds=1)

    def test_deadline_itself_is_expired(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        assert machine.is_expired(session, T0 + DURATION)

    def test_answer_after_deadline_expires_session(self, machine, store):
        session = machine.create("player1", _questions(), now=T0)
        late = T0 + DURATION + timedelta(seconds=1)
        with pytest.raises(SessionExpiredError):
            machine.submit_answer(session, 0, "correct", now=late)
        assert session.status is SessionStatus.EXPIRED
        assert store.get(session.token).status is SessionStatus.EXPIRED

    def test_answer_just_before_deadline_is_accepted(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        just_in_time = T0 + DURATION - timedelta(seconds=1)
        answer = machine.submit_answer(session, 0, "correct", now=just_in_time)
        assert answer.is_correct

    def test_resume_applies_lazy_expiry(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        resumed = machine.resume(
            session.token, "player1", now=T0 + DURATION + timedelta(hours=5)
        )
        assert resumed.status is SessionStatus.EXPIRED
        assert machine.remaining(resumed) == timedelta(0)

    def test_active_for_drops_stale_session(self, machine):
        machine.create("player1", _questions(), now=T0)
        assert machine.active_for("player1", now=T0 + DURATION) is None


class TestResume:
    def test_unknown_token(self, machine):
        with pytest.raises(SessionNotFoundError):
            machine.resume("nope", "player1", now=T0)

    def test_empty_token(self, machine):
        with pytest.raises(SessionNotFoundError):
            machine.resume("", "player1", now=T0)

    def test_other_users_session_is_denied(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        with pytest.raises(SessionAccessDeniedError) as exc_info:
            machine.resume(session.token, "intruder", now=T0)
        assert "player1" not in str(exc_info.value)

    def test_resume_replays_same_questions(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        resumed = machine.resume(session.token, "player1", now=T0 + timedelta(minutes=3))
        assert resumed.questions == session.questions


class TestSubmitAnswer:
    def test_advances_index_and_scores(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        machine.submit_answer(session, 0, "correct", now=T0)
        assert session.current_index == 1
        assert session.score == 6

    def test_resubmitting_does_not_double_count(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        machine.submit_answer(session, 0, "correct", now=T0)
        session.current_index = 0
        machine.submit_answer(session, 0, "correct", now=T0)
        assert session.score == 6
        assert session.answered_count == 1

    def test_resubmitting_overwrites_previous_answer(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        machine.submit_answer(session, 0, "correct", now=T0)
        machine.submit_answer(session, 0, _wrong_key(session.questions[0]), now=T0)
        assert session.score == 0
        assert not session.answers[0].is_correct

    def test_index_beyond_list_is_clamped(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        machine.submit_answer(session, 99, "correct", now=T0)
        assert len(session.answers) == 2
        assert session.answers[0].is_empty
        assert session.answers[1].is_correct

    def test_negative_index_is_clamped(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        machine.submit_answer(session, -4, "correct", now=T0)
        assert session.answers[0].is_correct

    def test_unknown_key_is_rejected(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        with pytest.raises(InvalidInputError):
            machine.submit_answer(session, 0, "z", now=T0)
        assert session.answers == []

    def test_completed_session_rejects_answers(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        machine.end_early(session, now=T0)
        with pytest.raises(SessionNotActiveError) as exc_info:
            machine.submit_answer(session, 0, "correct", now=T0)
        assert exc_info.value.status == "completed"

    def test_records_question_stats(self, store):
        stats = MagicMock()
        machine = ExamSessionMachine(store, DURATION, stats_store=stats)
        session = machine.create("player1", _questions(), now=T0)
        machine.submit_answer(session, 0, "correct", now=T0)
        stats.record_answer.assert_called_once_with(session.questions[0].question, True)

    def test_stats_failure_does_not_fail_answer(self, store):
        stats = MagicMock()
        stats.record_answer.side_effect = RuntimeError("stats down")
        machine = ExamSessionMachine(store, DURATION, stats_store=stats)
        session = machine.create("player1", _questions(), now=T0)
        answer = machine.submit_answer(session, 0, "correct", now=T0)
        assert answer.is_correct


class TestCompletion:
    def test_full_exam_end_to_end(self, machine, store):
        """Pool of 10 gives two questions; answering both correctly scores 12."""
        session = machine.create("player1", _questions(10), now=T0)
        assert session.question_count == 2
        assert session.max_score == 12

        machine.submit_answer(session, 0, "correct", now=T0 + timedelta(seconds=10))
        machine.submit_answer(session, 1, "correct", now=T0 + timedelta(seconds=20))

        stored = store.get(session.token)
        assert stored.status is SessionStatus.COMPLETED
        assert stored.score == 12
        assert stored.completed_at == T0 + timedelta(seconds=20)

    def test_end_early_keeps_partial_score(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        machine.submit_answer(session, 0, "correct", now=T0)
        machine.end_early(session, now=T0 + timedelta(minutes=1))
        assert session.status is SessionStatus.COMPLETED
        assert session.score == 6
        assert session.max_score == 12

    def test_end_early_after_deadline_expires(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        with pytest.raises(SessionExpiredError):
            machine.end_early(session, now=T0 + DURATION)
        assert session.status is SessionStatus.EXPIRED

    def test_end_twice_is_rejected(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        machine.end_early(session, now=T0)
        with pytest.raises(SessionNotActiveError):
            machine.end_early(session, now=T0)

    def test_new_exam_allowed_after_completion(self, machine):
        session = machine.create("player1", _questions(), now=T0)
        machine.end_early(session, now=T0)
        assert machine.create("player1", _questions(), now=T0).is_active


class TestHistory:
    def test_newest_first_with_lazy_expiry(self, machine):
        first = machine.create("player1", _questions(), now=T0)
        machine.end_early(first, now=T0)
        second = machine.create("player1", _questions(), now=T0 + timedelta(minutes=5))

        later = T0 + timedelta(minutes=5) + DURATION
        history = machine.history("player1", limit=10, now=later)
        assert [s.token for s in history] == [second.token, first.token]
        assert history[0].status is SessionStatus.EXPIRED
        assert history[1].status is SessionStatus.COMPLETED

    def test_limit(self, machine):
        for minute in range(3):
            session = machine.create("player1", _questions(), now=T0 + timedelta(minutes=minute))
            machine.end_early(session, now=T0 + timedelta(minutes=minute))
        assert len(machine.history("player1", limit=2, now=T0)) == 2
