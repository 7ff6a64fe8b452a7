"""
Standardized error response messages and builders.

This module provides consistent error messages and HTTPException builders
for the entire API. Using these utilities ensures:

1. Consistent message format across all endpoints
2. User-facing error messages without leaking implementation details
3. Clear separation of user-facing messages from log messages

Error Message Format Guidelines:
- Use sentence case (capitalize first letter only)
- End with a period for complete sentences
- Include the session token when it lets the client resume: "(token: abc)"
- Use "Please try again later." for transient server errors

Usage:
    from picquiz.core.error_responses import ErrorMessages, raise_not_found

    if session is None:
        raise_not_found(ErrorMessages.EXAM_SESSION_NOT_FOUND)

    raise_bad_request(ErrorMessages.active_session_exists(token="abc"))
"""

from typing import NoReturn

from fastapi import HTTPException, status


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Authentication Errors (401)
    # ==========================================================================
    INVALID_CREDENTIALS = "Invalid username or password."
    INVALID_TOKEN = "Invalid authentication token."
    INVALID_TOKEN_PAYLOAD = "Invalid token payload."
    USER_NOT_FOUND_AUTH = "User not found."
    TOKEN_REVOKED = "Token has been revoked. Please log in again."

    # ==========================================================================
    # Authorization Errors (403)
    # ==========================================================================
    SESSION_ACCESS_DENIED = "Not authorized to access this exam session."
    ACCOUNT_BANNED = "This account has been banned."
    ADMIN_TOKEN_INVALID = "Invalid admin token."

    # ==========================================================================
    # Not Found Errors (404)
    # ==========================================================================
    EXAM_SESSION_NOT_FOUND = "Exam session not found."
    USER_NOT_FOUND = "User not found."
    NO_QUESTIONS_AVAILABLE = (
        "No questions available. The image pool may be empty or misconfigured."
    )
    ANSWER_NOT_FOUND = "No answer recorded for this question."
    EXPLANATION_NOT_FOUND = "Explanation not found."
    NO_PRACTICE_QUESTION = (
        "No practice question is pending. Request a new question first."
    )

    # ==========================================================================
    # Conflict Errors (409)
    # ==========================================================================
    USERNAME_ALREADY_REGISTERED = "Username already registered."
    # Used for database-level race detection, where the winning session's
    # token is not known to the losing request.
    SESSION_ALREADY_IN_PROGRESS = (
        "An exam session is already in progress. "
        "Please finish or resume the existing session before starting a new one."
    )

    # ==========================================================================
    # Bad Request Errors (400)
    # ==========================================================================
    SESSION_EXPIRED = "The exam time limit has passed. The session has expired."
    INVALID_ANSWER_SLOT = "Selected answer is not one of the options shown."
    INVALID_DIFFICULTY = "Difficulty must be one of: easy, medium, hard."
    REPORT_MESSAGE_REQUIRED = "Report message cannot be empty."

    # ==========================================================================
    # Service Unavailable (503)
    # ==========================================================================
    STORE_UNAVAILABLE = (
        "A storage backend is temporarily unavailable. Please try again later."
    )

    # ==========================================================================
    # Server / Configuration Errors (500)
    # ==========================================================================
    ADMIN_TOKEN_NOT_CONFIGURED = "Admin token not configured on server."

    # ==========================================================================
    # Template Methods for Dynamic Messages
    # ==========================================================================
    @staticmethod
    def active_session_exists(token: str) -> str:
        """Message for when the user has an active session blocking a new one.

        Used for app-level detection (returns 400). Includes the token so
        clients can offer "Resume exam". For the database-level race, use
        SESSION_ALREADY_IN_PROGRESS.
        """
        return (
            f"User already has an active exam session (token: {token}). "
            "Please finish or resume the existing session before starting a new one."
        )

    @staticmethod
    def session_already_finished(status: str) -> str:
        """Message for when trying to modify a non-active session."""
        return (
            f"Exam session is already {status}. "
            "Only active exam sessions can be modified."
        )

    @staticmethod
    def invalid_credentials_format(min_length: int) -> str:
        """Message for usernames/passwords that break the charset rule."""
        return (
            f"Username and password must be at least {min_length} characters "
            "and contain only English letters, Hebrew letters or digits."
        )

    @staticmethod
    def question_index_out_of_range(index: int, total: int) -> str:
        """Message for review requests outside the question list."""
        return f"Question index {index} is out of range (0-{total - 1})."


# ==============================================================================
# HTTPException Builder Functions
# ==============================================================================


def raise_bad_request(detail: str) -> NoReturn:
    """Raise a 400 Bad Request exception."""
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )


def raise_unauthorized(
    detail: str,
    include_www_authenticate: bool = True,
) -> NoReturn:
    """Raise a 401 Unauthorized exception.

    Args:
        detail: User-facing error message
        include_www_authenticate: Whether to include WWW-Authenticate header
    """
    headers = {"WWW-Authenticate": "Bearer"} if include_www_authenticate else None
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers=headers,
    )


def raise_forbidden(detail: str) -> NoReturn:
    """Raise a 403 Forbidden exception."""
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=detail,
    )


def raise_not_found(detail: str) -> NoReturn:
    """Raise a 404 Not Found exception."""
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )


def raise_conflict(detail: str) -> NoReturn:
    """Raise a 409 Conflict exception."""
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    )


def raise_not_configured(detail: str) -> NoReturn:
    """Raise a 500 error for missing server configuration."""
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    )
