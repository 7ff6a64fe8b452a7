"""
Rapid-answer detection for the untimed practice loop.

Each login keeps a rolling window anchored at ``session_start``.
Answers inside the window accumulate; the first answer after the window has
elapsed restarts it. When too many answers (or too many correct answers)
land in one window the account is flagged: its progress counters are zeroed
and ``is_cheater`` is set. Repeated flags within one login
escalate to a ban.

The window length and the two thresholds are heuristic tuning points that
approximate the fastest plausible human pace for this quiz; they live in
settings, not here.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from picquiz.core.datetime_utils import ensure_timezone_aware, utc_now
from picquiz.core.expiring import Clock, ExpiringCache
from picquiz.engine.errors import AccountBannedError, AccountNotFoundError
from picquiz.engine.types import Account, PracticeCounterState
from picquiz.stores.base import AccountStore

logger = logging.getLogger(__name__)


class PracticeVerdict(str, Enum):
    ACCEPTED = "accepted"
    FLAGGED = "flagged"
    BANNED = "banned"


@dataclass
class PracticeResult:
    verdict: PracticeVerdict
    account: Account
    is_correct: bool
    counters: Optional[PracticeCounterState]


def advance_window(
    state: PracticeCounterState,
    is_correct: bool,
    now: datetime,
    window: timedelta,
) -> PracticeCounterState:
    """
    Count one answer in the rolling window, restarting it when it has elapsed.

    Mutates and returns ``state``.
    """
    elapsed = now - ensure_timezone_aware(state.session_start)
    if elapsed <= window:
        state.rapid_total += 1
        if is_correct:
            state.rapid_correct += 1
    else:
        state.session_start = now
        state.rapid_total = 1
        state.rapid_correct = 1 if is_correct else 0
    return state


def is_rapid(state: PracticeCounterState, max_total: int, max_correct: int) -> bool:
    return state.rapid_total >= max_total or state.rapid_correct >= max_correct


class AntiCheatMonitor:
    """The escalation ladder: flag (reset stats), then ban."""

    def __init__(self, account_store: AccountStore, flags_before_ban: int):
        self.account_store = account_store
        self.flags_before_ban = flags_before_ban

    def flag(self, account: Account, reason: str = "") -> None:
        account.reset_counters()
        account.is_cheater = True
        self.account_store.update(account)
        logger.warning(
            f"Cheating detected for {account.username}"
            + (f": {reason}" if reason else ""),
            extra={"username": account.username, "anti_cheat": "flagged"},
        )

    def ban(self, account: Account) -> None:
        account.is_banned = True
        self.account_store.update(account)
        logger.warning(
            f"Account {account.username} banned after repeated cheat flags",
            extra={"username": account.username, "anti_cheat": "banned"},
        )

    def escalate(
        self, account: Account, state: PracticeCounterState, reason: str = ""
    ) -> PracticeVerdict:
        """
        Flag the account and advance the login's escalation count.

        Returns BANNED once the count reaches ``flags_before_ban``; otherwise
        clears the window counters (the anchor is left alone) and returns
        FLAGGED.
        """
        self.flag(account, reason)
        state.cheater_count += 1
        if state.cheater_count >= self.flags_before_ban:
            self.ban(account)
            return PracticeVerdict.BANNED
        state.rapid_total = 0
        state.rapid_correct = 0
        return PracticeVerdict.FLAGGED


class PracticeCounterStore:
    """
    In-process practice counters keyed by login id (the access token's jti).

    Entries live as long as the login token they belong to, so a player
    keeps ``cheater_count`` for the whole login however often the browser
    drops its cookies. Logout discards them explicitly.
    """

    def __init__(self, ttl_seconds: float, clock: Clock = utc_now):
        self._cache: ExpiringCache[str, PracticeCounterState] = ExpiringCache(
            ttl_seconds, clock=clock
        )

    @property
    def ttl(self) -> timedelta:
        return self._cache.default_ttl

    def get(self, login_id: str) -> Optional[PracticeCounterState]:
        return self._cache.get(login_id)

    def get_or_create(self, login_id: str, now: datetime) -> PracticeCounterState:
        state = self._cache.get(login_id)
        if state is None:
            state = PracticeCounterState(session_start=now)
            self._cache.set(login_id, state)
        return state

    def save(self, login_id: str, state: PracticeCounterState) -> None:
        self._cache.set(login_id, state)

    def discard(self, login_id: str) -> None:
        self._cache.delete(login_id)

    def __len__(self) -> int:
        return len(self._cache)


class PracticeLoopGuard:
    """Applies a practice answer to the account and runs the rapid-answer check."""

    def __init__(
        self,
        account_store: AccountStore,
        counters: PracticeCounterStore,
        monitor: AntiCheatMonitor,
        *,
        window_seconds: int,
        max_answers: int,
        max_correct: int,
    ):
        self.account_store = account_store
        self.counters = counters
        self.monitor = monitor
        self.window = timedelta(seconds=window_seconds)
        self.max_answers = max_answers
        self.max_correct = max_correct

    def load_account(self, username: str) -> Account:
        """
        Raises:
            AccountNotFoundError: the account no longer exists
            AccountBannedError: the account is banned
        """
        account = self.account_store.get(username)
        if account is None:
            raise AccountNotFoundError(username)
        if account.is_banned:
            raise AccountBannedError(username)
        return account

    def record_answer(
        self,
        username: str,
        login_id: str,
        is_correct: bool,
        now: Optional[datetime] = None,
    ) -> PracticeResult:
        now = now or utc_now()
        account = self.load_account(username)
        account.record_answer(is_correct)
        self.account_store.update(account)

        state = self.counters.get_or_create(login_id, now)
        advance_window(state, is_correct, now, self.window)

        verdict = PracticeVerdict.ACCEPTED
        if is_rapid(state, self.max_answers, self.max_correct):
            reason = (
                f"{state.rapid_total} answers, {state.rapid_correct} correct "
                f"within {int(self.window.total_seconds())}s"
            )
            verdict = self.monitor.escalate(account, state, reason)

        if verdict is PracticeVerdict.BANNED:
            self.counters.discard(login_id)
            return PracticeResult(verdict, account, is_correct, None)

        self.counters.save(login_id, state)
        return PracticeResult(verdict, account, is_correct, state)

    def reset_stats(self, username: str) -> Account:
        """Player-initiated reset: zero both counters and clear the cheat flag."""
        account = self.load_account(username)
        account.reset_counters()
        account.is_cheater = False
        self.account_store.update(account)
        return account
