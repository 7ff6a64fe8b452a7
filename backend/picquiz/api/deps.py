"""
Shared FastAPI dependencies: collaborator access and admin token
verification.
"""
import logging
import secrets

from fastapi import Header, Request

from picquiz.core.config import settings
from picquiz.core.error_responses import (
    ErrorMessages,
    raise_not_configured,
    raise_unauthorized,
)
from picquiz.services.context import QuizContext

logger = logging.getLogger(__name__)


def get_quiz(request: Request) -> QuizContext:
    """The QuizContext built at startup."""
    return request.app.state.quiz


def _verify_secret_header(
    header_value: str,
    expected_secret: str | None,
    not_configured_detail: str,
    invalid_detail: str,
) -> bool:
    """
    Verify a secret header value against an expected secret.

    Uses constant-time comparison to prevent timing attacks.

    Raises:
        HTTPException: 500 if secret not configured, 401 if invalid
    """
    if not expected_secret:
        raise_not_configured(not_configured_detail)

    if not secrets.compare_digest(header_value, expected_secret):
        raise_unauthorized(invalid_detail, include_www_authenticate=False)

    return True


def verify_admin_token(x_admin_token: str = Header(...)) -> bool:
    """Verify the X-Admin-Token header."""
    return _verify_secret_header(
        header_value=x_admin_token,
        expected_secret=settings.ADMIN_TOKEN,
        not_configured_detail=ErrorMessages.ADMIN_TOKEN_NOT_CONFIGURED,
        invalid_detail=ErrorMessages.ADMIN_TOKEN_INVALID,
    )
