"""
Time-bounded cached values.

One small wrapper replaces the per-collaborator expiry bookkeeping (image
listings, signed URLs, explanations, online counts). Both types are
thread-safe. Expired entries are dropped on access, and the keyed cache
also sweeps its whole table periodically.
"""
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from picquiz.core.datetime_utils import utc_now

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

Clock = Callable[[], datetime]


class ExpiringValue(Generic[T]):
    """A single value that is considered absent once its TTL has passed."""

    def __init__(self, ttl_seconds: float, clock: Clock = utc_now):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._value: Optional[T] = None
        self._expires_at: Optional[datetime] = None

    def get(self) -> Optional[T]:
        with self._lock:
            if self._expires_at is None or self._clock() >= self._expires_at:
                self._value = None
                self._expires_at = None
                return None
            return self._value

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value
            self._expires_at = self._clock() + self.ttl

    def invalidate(self) -> None:
        with self._lock:
            self._value = None
            self._expires_at = None

    def get_or_load(self, loader: Callable[[], T]) -> T:
        """
        Return the cached value, calling ``loader`` when it is missing or stale.

        The loader runs outside the lock; concurrent misses may both load,
        and the last writer wins. Exceptions from the loader propagate and
        leave the cache empty.
        """
        cached = self.get()
        if cached is not None:
            return cached
        value = loader()
        self.set(value)
        return value


class ExpiringCache(Generic[K, T]):
    """
    Keyed cache where every entry carries its own expiry.

    ``set`` accepts a per-entry TTL so collaborators such as the signed URL
    cache can expire entries ahead of the resource they describe.

    Besides the per-key check on ``get``, the whole table is swept for
    expired entries at most once per ``cleanup_interval_seconds`` (default:
    the default TTL), so keys that are never read again do not accumulate.
    """

    def __init__(
        self,
        default_ttl_seconds: float,
        clock: Clock = utc_now,
        cleanup_interval_seconds: Optional[float] = None,
    ):
        self.default_ttl = timedelta(seconds=default_ttl_seconds)
        self.cleanup_interval = timedelta(
            seconds=(
                cleanup_interval_seconds
                if cleanup_interval_seconds is not None
                else default_ttl_seconds
            )
        )
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[K, Tuple[T, datetime]] = {}
        self._last_cleanup = clock()

    def get(self, key: K) -> Optional[T]:
        with self._lock:
            now = self._clock()
            self._maybe_cleanup(now)
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if now >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: K, value: T, ttl_seconds: Optional[float] = None) -> None:
        ttl = (
            timedelta(seconds=ttl_seconds)
            if ttl_seconds is not None
            else self.default_ttl
        )
        with self._lock:
            now = self._clock()
            self._maybe_cleanup(now)
            self._entries[key] = (value, now + ttl)

    def delete(self, key: K) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._maybe_cleanup(self._clock())
            return len(self._entries)

    def _maybe_cleanup(self, now: datetime) -> None:
        """Drop every expired entry if the cleanup interval has passed."""
        if now - self._last_cleanup < self.cleanup_interval:
            return
        self._last_cleanup = now
        expired = [
            key for key, (_, expires_at) in self._entries.items() if now >= expires_at
        ]
        for key in expired:
            del self._entries[key]
