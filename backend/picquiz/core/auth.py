"""
FastAPI authentication dependencies.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from picquiz.api.deps import get_quiz
from picquiz.engine.types import Account
from picquiz.services.context import QuizContext

from .error_responses import ErrorMessages, raise_forbidden, raise_unauthorized
from .security import decode_token, verify_token_type

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer()
# HTTP Bearer token scheme that doesn't fail on missing auth
security_optional = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentLogin:
    """The authenticated account plus the id and expiry of its access token."""

    account: Account
    token_id: str
    expires_at: datetime


def _decode_access_payload(token: str) -> Dict[str, Any]:
    """
    Decode and validate an access token.

    Raises:
        HTTPException: 401 if the token is invalid, of the wrong type or
            missing its subject or id
    """
    payload = decode_token(token)
    if payload is None:
        raise_unauthorized(ErrorMessages.INVALID_TOKEN)

    if not verify_token_type(payload, "access"):
        raise_unauthorized(ErrorMessages.INVALID_TOKEN)

    if not payload.get("sub") or not payload.get("jti") or "exp" not in payload:
        raise_unauthorized(ErrorMessages.INVALID_TOKEN_PAYLOAD)

    return payload


def get_current_login(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    quiz: QuizContext = Depends(get_quiz),
) -> CurrentLogin:
    """
    Authenticate the request and refresh the account's last-seen stamp.

    Banned accounts are rejected on every request, which is what logs a
    player out once the anti-cheat ladder bans them. Tokens revoked by
    logout (or by the ban itself) are rejected too.

    Raises:
        HTTPException: 401 if the token is invalid or revoked or the account
            is gone, 403 if the account is banned
    """
    payload = _decode_access_payload(credentials.credentials)
    username = payload["sub"]
    account = quiz.accounts.get(username)
    if account is None:
        raise_unauthorized(ErrorMessages.USER_NOT_FOUND_AUTH)
    if account.is_banned:
        logger.info(f"Rejected request from banned account {username}")
        raise_forbidden(ErrorMessages.ACCOUNT_BANNED)

    token_id = payload["jti"]
    if quiz.revoked_tokens.is_revoked(token_id):
        raise_unauthorized(ErrorMessages.TOKEN_REVOKED)

    quiz.presence.touch(account)
    return CurrentLogin(
        account=account,
        token_id=token_id,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


def get_current_account(login: CurrentLogin = Depends(get_current_login)) -> Account:
    """The authenticated account; see get_current_login."""
    return login.account


def get_current_username_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional),
) -> Optional[str]:
    """
    The token's username if a valid token is provided, else None.

    Does not touch the account store; used by public endpoints that only
    personalize their output.
    """
    if credentials is None:
        return None
    payload = decode_token(credentials.credentials)
    if payload is None or not verify_token_type(payload, "access"):
        return None
    return payload.get("sub")


def end_login(quiz: QuizContext, login: CurrentLogin) -> None:
    """
    Revoke the login's token and drop the practice state kept for it.

    Used by logout and when the anti-cheat ladder bans the account.
    """
    quiz.revoked_tokens.revoke(login.token_id, login.expires_at)
    quiz.practice_counters.discard(login.token_id)
    quiz.pending_questions.delete(login.token_id)
