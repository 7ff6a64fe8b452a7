"""
Abstract collaborator contracts consumed by the quiz engine.

Every implementation follows the same conventions:

- "Not found" is a ``None`` return, never an exception.
- A backend failure (connection error, timeout, unexpected response) raises
  StoreUnavailableError. Callers report it for that single operation; stores
  never retry in a loop and never fabricate a successful result.
- Every call is bounded by the timeout the store was constructed with.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from picquiz.engine.types import Account, ExamQuestion, ExamSession, SessionStatus


class StoreUnavailableError(Exception):
    """A backing store failed or timed out for one operation."""

    def __init__(self, store: str, operation: str, cause: Optional[BaseException] = None):
        self.store = store
        self.operation = operation
        self.cause = cause
        message = f"{store} unavailable during {operation}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class AccountStore(ABC):
    """Persistent player accounts."""

    @abstractmethod
    def get(self, username: str) -> Optional[Account]:
        """
        Fetch one account by exact (case-sensitive) username.

        Returns:
            The account, or None if no such user exists
        """
        pass

    @abstractmethod
    def create(self, account: Account) -> bool:
        """
        Insert a new account.

        Returns:
            True if created, False if the username is already taken
        """
        pass

    @abstractmethod
    def update(self, account: Account) -> None:
        """Overwrite counters, flags and last_seen for an existing account."""
        pass

    @abstractmethod
    def delete(self, username: str) -> bool:
        """Hard-delete an account. Returns False if it did not exist."""
        pass

    @abstractmethod
    def list(self) -> List[Account]:
        """All accounts, in no particular order."""
        pass


class SessionStore(ABC):
    """Durable exam sessions addressed by opaque token."""

    @abstractmethod
    def create(
        self,
        username: str,
        questions: Sequence[ExamQuestion],
        *,
        started_at: datetime,
        max_score: int,
    ) -> Optional[ExamSession]:
        """
        Persist a new active session with a freshly generated token.

        Returns:
            The new session, or None if an active session already exists for
            ``username`` (the single-active guard held at the storage level)
        """
        pass

    @abstractmethod
    def get(self, token: str) -> Optional[ExamSession]:
        pass

    @abstractmethod
    def get_active(self, username: str) -> Optional[ExamSession]:
        """The user's active session, regardless of whether its time is up."""
        pass

    @abstractmethod
    def list_for_user(self, username: str, limit: int) -> List[ExamSession]:
        """The user's sessions, newest first."""
        pass

    @abstractmethod
    def update(self, session: ExamSession) -> None:
        """Persist answers, index, score, status and completion time."""
        pass

    @abstractmethod
    def set_status(self, token: str, status: SessionStatus) -> None:
        pass


class ImageStore(ABC):
    """Object storage holding the question images."""

    @abstractmethod
    def list(self, prefix: str = "") -> List[str]:
        """Image object names under ``prefix``, sorted by name."""
        pass

    @abstractmethod
    def signed_url(self, name: str, ttl_seconds: Optional[int] = None) -> Optional[str]:
        """A time-limited URL for one object, or None if it does not exist."""
        pass

    def signed_urls(self, names: Sequence[str]) -> Dict[str, str]:
        """
        Signed URLs for several objects. Objects that cannot be signed are
        omitted from the result.
        """
        urls: Dict[str, str] = {}
        for name in names:
            url = self.signed_url(name)
            if url:
                urls[name] = url
        return urls


class DifficultyStore(ABC):
    """Per-question answer statistics and the difficulty derived from them."""

    @abstractmethod
    def questions_for_difficulty(self, tag: str) -> Optional[List[str]]:
        """
        Question object names classified under ``tag``.

        Returns:
            The names, or None when the tag is unknown
        """
        pass

    @abstractmethod
    def record_answer(self, question: str, is_correct: bool) -> None:
        pass

    @abstractmethod
    def summary(self) -> Dict[str, int]:
        """Number of classified questions per difficulty tag."""
        pass


class ExplanationStore(ABC):
    """Free-text explanations attached to question images."""

    @abstractmethod
    def get(self, question: str) -> Optional[str]:
        pass

    @abstractmethod
    def get_many(self, questions: Sequence[str]) -> Dict[str, str]:
        pass

    @abstractmethod
    def get_all(self) -> Dict[str, str]:
        pass

    @abstractmethod
    def save(self, question: str, explanation: str) -> None:
        pass

    @abstractmethod
    def delete(self, question: str) -> bool:
        pass
