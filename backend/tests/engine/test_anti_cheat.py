"""
Tests for rapid-answer detection in the practice loop.
"""
from datetime import datetime, timedelta, timezone

import pytest

from picquiz.engine.anti_cheat import (
    AntiCheatMonitor,
    PracticeCounterStore,
    PracticeLoopGuard,
    PracticeVerdict,
    advance_window,
    is_rapid,
)
from picquiz.engine.errors import AccountBannedError, AccountNotFoundError
from picquiz.engine.types import Account, PracticeCounterState

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
WINDOW = timedelta(seconds=200)


@pytest.fixture
def player(account_store):
    account = Account(username="player1", password_hash="x", correct_answers=40, total_answered=50)
    account_store.create(account)
    return account


@pytest.fixture
def guard(account_store):
    return PracticeLoopGuard(
        account_store,
        PracticeCounterStore(3600),
        AntiCheatMonitor(account_store, flags_before_ban=3),
        window_seconds=200,
        max_answers=10,
        max_correct=8,
    )


def _answer_burst(guard, count, is_correct, start, step=timedelta(seconds=1)):
    results = []
    for i in range(count):
        results.append(guard.record_answer("player1", "login-1", is_correct, now=start + i * step))
    return results


class TestAdvanceWindow:
    def test_inside_window_accumulates(self):
        state = PracticeCounterState(session_start=T0)
        advance_window(state, True, T0 + timedelta(seconds=10), WINDOW)
        advance_window(state, False, T0 + WINDOW, WINDOW)
        assert (state.rapid_total, state.rapid_correct) == (2, 1)
        assert state.session_start == T0

    def test_after_window_restarts_counting_this_answer(self):
        state = PracticeCounterState(session_start=T0, rapid_total=9, rapid_correct=7)
        later = T0 + WINDOW + timedelta(seconds=1)
        advance_window(state, True, later, WINDOW)
        assert (state.rapid_total, state.rapid_correct) == (1, 1)
        assert state.session_start == later

    def test_restart_with_wrong_answer(self):
        state = PracticeCounterState(session_start=T0, rapid_total=5, rapid_correct=5)
        advance_window(state, False, T0 + timedelta(hours=1), WINDOW)
        assert (state.rapid_total, state.rapid_correct) == (1, 0)

    def test_cheater_count_survives_restart(self):
        state = PracticeCounterState(session_start=T0, cheater_count=2)
        advance_window(state, True, T0 + timedelta(hours=1), WINDOW)
        assert state.cheater_count == 2

    def test_is_rapid_thresholds(self):
        assert is_rapid(PracticeCounterState(T0, rapid_total=10), 10, 8)
        assert is_rapid(PracticeCounterState(T0, rapid_total=8, rapid_correct=8), 10, 8)
        assert not is_rapid(PracticeCounterState(T0, rapid_total=9, rapid_correct=7), 10, 8)


class TestPracticeLoopGuard:
    def test_normal_answer_updates_account(self, guard, player, account_store):
        result = guard.record_answer("player1", "login-1", True, now=T0)
        assert result.verdict is PracticeVerdict.ACCEPTED
        stored = account_store.get("player1")
        assert (stored.correct_answers, stored.total_answered) == (41, 51)

    def test_ten_wrong_answers_in_window_flags(self, guard, player, account_store):
        results = _answer_burst(guard, 10, False, T0)
        assert [r.verdict for r in results[:9]] == [PracticeVerdict.ACCEPTED] * 9
        assert results[9].verdict is PracticeVerdict.FLAGGED

        stored = account_store.get("player1")
        assert stored.is_cheater
        assert (stored.correct_answers, stored.total_answered) == (0, 0)
        assert not stored.is_banned

    def test_eight_correct_answers_in_window_flags(self, guard, player):
        results = _answer_burst(guard, 8, True, T0)
        assert results[-1].verdict is PracticeVerdict.FLAGGED

    def test_slow_answers_are_never_flagged(self, guard, player):
        results = _answer_burst(guard, 30, True, T0, step=timedelta(seconds=201))
        assert all(r.verdict is PracticeVerdict.ACCEPTED for r in results)

    def test_flag_clears_window_counters(self, guard, player):
        results = _answer_burst(guard, 10, False, T0)
        counters = results[-1].counters
        assert (counters.rapid_total, counters.rapid_correct) == (0, 0)
        assert counters.cheater_count == 1

    def test_third_flag_bans(self, guard, player, account_store):
        verdicts = [r.verdict for r in _answer_burst(guard, 30, False, T0)]
        assert verdicts.count(PracticeVerdict.FLAGGED) == 2
        assert verdicts[-1] is PracticeVerdict.BANNED
        assert account_store.get("player1").is_banned

    def test_ban_discards_login_counters(self, guard, player):
        results = _answer_burst(guard, 30, False, T0)
        assert results[-1].counters is None
        assert guard.counters.get("login-1") is None

    def test_banned_account_cannot_answer(self, guard, player):
        _answer_burst(guard, 30, False, T0)
        with pytest.raises(AccountBannedError):
            guard.record_answer("player1", "login-2", True, now=T0)

    def test_escalation_is_per_login(self, guard, player, account_store):
        """Two flags in one login and one in another do not ban."""
        _answer_burst(guard, 20, False, T0)
        for i in range(10):
            guard.record_answer("player1", "login-2", False, now=T0 + timedelta(seconds=i))
        assert not account_store.get("player1").is_banned

    def test_unknown_account(self, guard):
        with pytest.raises(AccountNotFoundError):
            guard.record_answer("ghost", "login-1", True, now=T0)


class TestResetStats:
    def test_reset_zeroes_counters_and_clears_flag(self, guard, player, account_store):
        _answer_burst(guard, 10, False, T0)
        guard.record_answer("player1", "login-1", True, now=T0 + timedelta(hours=1))

        account = guard.reset_stats("player1")
        assert (account.correct_answers, account.total_answered) == (0, 0)
        assert not account.is_cheater
        assert account_store.get("player1") == account


class TestCounterLifetime:
    class Clock:
        def __init__(self, now):
            self.now = now

        def __call__(self):
            return self.now

    def _guard(self, account_store, clock, ttl_seconds):
        return PracticeLoopGuard(
            account_store,
            PracticeCounterStore(ttl_seconds, clock=clock),
            AntiCheatMonitor(account_store, flags_before_ban=3),
            window_seconds=200,
            max_answers=10,
            max_correct=8,
        )

    def _burst(self, guard, clock, count):
        verdicts = []
        for _ in range(count):
            verdicts.append(guard.record_answer("player1", "login-1", False, now=clock.now).verdict)
            clock.now += timedelta(seconds=1)
        return verdicts

    def test_flags_survive_a_long_idle_stretch_within_the_login(self, account_store, player):
        clock = self.Clock(T0)
        guard = self._guard(account_store, clock, ttl_seconds=12 * 3600)

        assert self._burst(guard, clock, 20).count(PracticeVerdict.FLAGGED) == 2
        clock.now += timedelta(hours=2)

        assert self._burst(guard, clock, 10)[-1] is PracticeVerdict.BANNED
        assert account_store.get("player1").is_banned

    def test_counters_are_dropped_once_the_login_has_expired(self, account_store, player):
        clock = self.Clock(T0)
        guard = self._guard(account_store, clock, ttl_seconds=3600)

        self._burst(guard, clock, 20)
        clock.now += timedelta(hours=2)

        assert guard.counters.get("login-1") is None
        assert len(guard.counters) == 0
