"""
Security utilities for password hashing and JWT token management.
"""
from datetime import timedelta
import hashlib
import hmac
import uuid

from typing import Optional, Dict, Any, Iterable
import bcrypt
from jose import JWTError, jwt

from picquiz.core.config import settings
from picquiz.core.datetime_utils import utc_now


def hash_password(password: str) -> str:
    """
    Hash a plain text password using bcrypt.

    Args:
        password: Plain text password to hash

    Returns:
        Hashed password string
    """
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain text password against a bcrypt hash.

    Returns False for malformed hashes instead of raising, so that records
    written by an older deployment simply fail to authenticate.
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        return False


def create_access_token(
    username: str, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token whose subject is the username.

    Args:
        username: Account identity to encode as ``sub``
        expires_delta: Optional custom expiration time delta

    Returns:
        Encoded JWT token string
    """
    now = utc_now()
    expire = now + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode: Dict[str, Any] = {
        "sub": username,
        "exp": expire,
        "iat": now,
        "type": "access",
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(
        to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT token.

    Returns:
        Decoded token payload if valid, None if invalid
    """
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        return payload
    except JWTError:
        return None


def verify_token_type(payload: Dict[str, Any], expected_type: str) -> bool:
    """Verify that a token payload has the expected type."""
    return payload.get("type") == expected_type


def answer_slot_id(scope: str, key: str) -> str:
    """
    Opaque id of one answer option as shown to the client.

    The id is an HMAC of the option key under ``scope`` (one exam question or
    one practice question), so clients never see which option is the
    correct one and ids from one question do not work for another.
    """
    digest = hmac.new(
        settings.SECRET_KEY.encode("utf-8"),
        f"{scope}:{key}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return digest[:16]


def resolve_answer_slot(scope: str, slot: str, keys: Iterable[str]) -> Optional[str]:
    """Map a slot id back to its option key, or None if it matches none."""
    for key in keys:
        if hmac.compare_digest(answer_slot_id(scope, key), slot):
            return key
    return None
