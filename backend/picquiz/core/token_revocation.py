"""
Revoked access tokens.

Logout and an anti-cheat ban revoke the caller's token by its JWT id so
the same bearer token cannot keep the login (and its practice counters)
alive. Entries live until the token would have expired anyway.
"""
import logging
from datetime import datetime

from picquiz.core.datetime_utils import utc_now
from picquiz.core.expiring import Clock, ExpiringCache

logger = logging.getLogger(__name__)

# Sweep interval (seconds) for expired revocations
CLEANUP_INTERVAL = 60


class RevokedTokens:
    """In-process set of revoked token ids with per-token expiry."""

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock
        self._revoked: ExpiringCache[str, datetime] = ExpiringCache(
            CLEANUP_INTERVAL, clock=clock, cleanup_interval_seconds=CLEANUP_INTERVAL
        )

    def revoke(self, jti: str, expires_at: datetime) -> None:
        """
        Revoke a token until its own expiry.

        Args:
            jti: JWT ID of the token
            expires_at: Token expiration timestamp
        """
        now = self._clock()
        if expires_at <= now:
            logger.debug(f"Token {jti[:8]}... already expired, not revoking")
            return
        ttl_seconds = (expires_at - now).total_seconds()
        self._revoked.set(jti, now, ttl_seconds=ttl_seconds)
        logger.info(f"Token {jti[:8]}... revoked (TTL: {int(ttl_seconds)}s)")

    def is_revoked(self, jti: str) -> bool:
        return self._revoked.get(jti) is not None

    def __len__(self) -> int:
        return len(self._revoked)
