"""
Last-seen tracking and online-user counts.
"""
import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from picquiz.core.datetime_utils import ensure_timezone_aware, utc_now
from picquiz.core.expiring import ExpiringValue
from picquiz.core.graceful_failure import graceful_failure
from picquiz.engine.types import Account
from picquiz.stores.base import AccountStore

logger = logging.getLogger(__name__)


class PresenceTracker:
    """
    Keeps ``Account.last_seen`` fresh without writing on every request.

    An account counts as online when it was seen within ``online_window``.
    """

    def __init__(
        self,
        account_store: AccountStore,
        *,
        online_window_minutes: int = 5,
        throttle_seconds: int = 30,
        count_cache_seconds: int = 30,
    ):
        self.account_store = account_store
        self.online_window = timedelta(minutes=online_window_minutes)
        self.throttle = timedelta(seconds=throttle_seconds)
        self._online_count: ExpiringValue[int] = ExpiringValue(count_cache_seconds)

    def is_online(self, account: Account, now: Optional[datetime] = None) -> bool:
        if account.last_seen is None:
            return False
        now = now or utc_now()
        return ensure_timezone_aware(account.last_seen) > now - self.online_window

    def touch(self, account: Account, now: Optional[datetime] = None) -> bool:
        """
        Stamp ``last_seen`` if the previous stamp is older than the throttle.

        Best effort: a failed write is logged and the request continues.
        Returns True when a write was attempted.
        """
        now = now or utc_now()
        if account.last_seen is not None:
            if now - ensure_timezone_aware(account.last_seen) < self.throttle:
                return False
        account.last_seen = now
        with graceful_failure(
            "touch last seen", logger, context={"username": account.username}
        ):
            self.account_store.update(account)
        return True

    def count_online(
        self, accounts: Iterable[Account], now: Optional[datetime] = None
    ) -> int:
        now = now or utc_now()
        return sum(1 for a in accounts if self.is_online(a, now))

    def online_count(self) -> int:
        """Online users across all accounts, cached briefly."""
        return self._online_count.get_or_load(
            lambda: self.count_online(self.account_store.list())
        )
