"""
Collaborator stores: accounts, exam sessions, images, statistics and
explanations.
"""
from .base import (
    AccountStore,
    DifficultyStore,
    ExplanationStore,
    ImageStore,
    SessionStore,
    StoreUnavailableError,
)

__all__ = [
    "AccountStore",
    "DifficultyStore",
    "ExplanationStore",
    "ImageStore",
    "SessionStore",
    "StoreUnavailableError",
]
