"""
Admin endpoints, protected by the X-Admin-Token header.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from picquiz.api.deps import get_quiz, verify_admin_token
from picquiz.core.datetime_utils import utc_now
from picquiz.core.error_responses import ErrorMessages, raise_not_found
from picquiz.engine.image_pool import ImagePoolReader
from picquiz.engine.types import Account
from picquiz.schemas.admin import (
    AdminOverviewResponse,
    AdminUserView,
    DifficultyOverviewResponse,
    ExplanationsResponse,
    ExplanationUpsert,
    MessageResponse,
    StorageListingResponse,
)
from picquiz.services.context import QuizContext

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_admin_token)])

TOP_USERS_COUNT = 5


def average_success_rate(accounts: List[Account]) -> float:
    """
    Mean success percentage over accounts with at least one correct answer.

    Returns 0.0 when no account qualifies.
    """
    rates = [
        a.correct_answers / a.total_answered
        for a in accounts
        if a.total_answered > 0 and a.correct_answers > 0
    ]
    if not rates:
        return 0.0
    return round(100.0 * sum(rates) / len(rates), 1)


@router.get("/users", response_model=AdminOverviewResponse)
def get_user_overview(quiz: QuizContext = Depends(get_quiz)):
    """All accounts with cheat, ban and online breakdowns."""
    now = utc_now()
    accounts = sorted(quiz.accounts.list(), key=lambda a: a.username)
    views = {
        a.username: AdminUserView(
            username=a.username,
            correct_answers=a.correct_answers,
            total_answered=a.total_answered,
            is_cheater=a.is_cheater,
            is_banned=a.is_banned,
            last_seen=a.last_seen,
            is_online=quiz.presence.is_online(a, now),
        )
        for a in accounts
    }
    top = sorted(accounts, key=lambda a: (-a.correct_answers, a.username))

    return AdminOverviewResponse(
        total_users=len(accounts),
        users=list(views.values()),
        cheaters=[a.username for a in accounts if a.is_cheater],
        banned=[a.username for a in accounts if a.is_banned],
        online=[name for name, view in views.items() if view.is_online],
        top_users=[views[a.username] for a in top[:TOP_USERS_COUNT]],
        average_success_rate=average_success_rate(accounts),
    )


@router.delete("/users/{username}", response_model=MessageResponse)
def delete_user(username: str, quiz: QuizContext = Depends(get_quiz)):
    """
    Delete one account.

    Raises:
        HTTPException: 404 if the account does not exist
    """
    if not quiz.accounts.delete(username):
        raise_not_found(ErrorMessages.USER_NOT_FOUND)
    logger.warning(f"Account {username} deleted by admin")
    return MessageResponse(message=f"Deleted {username}")


@router.get("/difficulty", response_model=DifficultyOverviewResponse)
def get_difficulty_overview(quiz: QuizContext = Depends(get_quiz)):
    """Number of questions per difficulty tag."""
    return DifficultyOverviewResponse(counts=quiz.difficulty.summary())


@router.get("/explanations", response_model=ExplanationsResponse)
def list_explanations(quiz: QuizContext = Depends(get_quiz)):
    return ExplanationsResponse(explanations=quiz.explanations.get_all())


@router.put("/explanations/{question}", response_model=MessageResponse)
def upsert_explanation(
    question: str,
    body: ExplanationUpsert,
    quiz: QuizContext = Depends(get_quiz),
):
    """Create or replace the explanation shown when reviewing ``question``."""
    quiz.explanations.save(question, body.explanation.strip())
    return MessageResponse(message=f"Saved explanation for {question}")


@router.delete("/explanations/{question}", response_model=MessageResponse)
def delete_explanation(question: str, quiz: QuizContext = Depends(get_quiz)):
    if not quiz.explanations.delete(question):
        raise_not_found(ErrorMessages.EXPLANATION_NOT_FOUND)
    return MessageResponse(message=f"Deleted explanation for {question}")


@router.get("/storage", response_model=StorageListingResponse)
def get_storage_listing(
    prefix: Optional[str] = Query(None, max_length=255),
    quiz: QuizContext = Depends(get_quiz),
):
    """Image objects in the pool and how many question groups they form."""
    names = quiz.images.list(prefix or "")
    return StorageListingResponse(
        object_count=len(names),
        group_count=len(ImagePoolReader(names).group_all()),
        objects=names,
    )
