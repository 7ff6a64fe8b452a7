"""
Domain exceptions raised by the quiz engine.

Stores return ``None`` for "not found" and raise StoreUnavailableError for
backend failures; the engine raises the QuizEngineError family for
state-machine and authorization violations. The API layer maps each class
to an HTTP status.
"""
from typing import Optional


class QuizEngineError(Exception):
    """Base class for engine errors."""


class InvalidInputError(QuizEngineError):
    """Request data that cannot be applied (unknown answer key, empty pool)."""


class SessionNotFoundError(QuizEngineError):
    """No exam session exists for the given token."""

    def __init__(self, token: str):
        self.token = token
        super().__init__("Exam session not found")


class SessionAccessDeniedError(QuizEngineError):
    """The session belongs to someone else. The real owner is never exposed."""

    def __init__(self, token: str):
        self.token = token
        super().__init__("Not authorized to access this exam session")


class ActiveSessionExistsError(QuizEngineError):
    """
    The user already has an active session.

    ``token`` is the existing session's token when it is known (app-level
    check). It is None when the conflict was detected by the database
    constraint during a concurrent creation.
    """

    def __init__(self, token: Optional[str]):
        self.token = token
        super().__init__("User already has an active exam session")


class SessionNotActiveError(QuizEngineError):
    """Attempt to modify a session in a terminal state."""

    def __init__(self, token: str, status: str):
        self.token = token
        self.status = status
        super().__init__(f"Exam session is already {status}")


class SessionExpiredError(SessionNotActiveError):
    """The exam time limit passed; the session has just been marked expired."""

    def __init__(self, token: str):
        super().__init__(token, "expired")


class AccountNotFoundError(QuizEngineError):
    def __init__(self, username: str):
        self.username = username
        super().__init__("Account not found")


class AccountBannedError(QuizEngineError):
    def __init__(self, username: str):
        self.username = username
        super().__init__("Account is banned")
