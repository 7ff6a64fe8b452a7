"""
Public leaderboard endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from picquiz.api.deps import get_quiz
from picquiz.core.auth import get_current_username_optional
from picquiz.core.config import settings
from picquiz.core.datetime_utils import utc_now
from picquiz.schemas.leaderboard import (
    LeaderboardEntry,
    LeaderboardResponse,
    OnlineCountResponse,
)
from picquiz.services.context import QuizContext

router = APIRouter()


@router.get("", response_model=LeaderboardResponse)
def get_leaderboard(
    limit: int = Query(settings.LEADERBOARD_SIZE, ge=1, le=500),
    current_username: Optional[str] = Depends(get_current_username_optional),
    quiz: QuizContext = Depends(get_quiz),
):
    """
    Top accounts by correct answers.

    Banned accounts are left out. Ties are broken by fewer total answers,
    then by username.
    """
    now = utc_now()
    accounts = [a for a in quiz.accounts.list() if not a.is_banned]
    accounts.sort(key=lambda a: (-a.correct_answers, a.total_answered, a.username))

    entries = []
    for rank, account in enumerate(accounts[:limit], start=1):
        rate = account.success_rate
        entries.append(
            LeaderboardEntry(
                rank=rank,
                username=account.username,
                correct_answers=account.correct_answers,
                total_answered=account.total_answered,
                success_rate=round(rate * 100, 1) if rate is not None else None,
                is_online=quiz.presence.is_online(account, now),
                is_current_user=account.username == current_username,
            )
        )

    return LeaderboardResponse(
        entries=entries, current_username=current_username, timestamp=now
    )


@router.get("/online-count", response_model=OnlineCountResponse)
def get_online_count(quiz: QuizContext = Depends(get_quiz)):
    """Number of accounts seen in the last few minutes."""
    return OnlineCountResponse(online=quiz.presence.online_count())
