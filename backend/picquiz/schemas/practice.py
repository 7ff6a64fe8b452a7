"""
Pydantic schemas for the untimed practice loop.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from picquiz.schemas.exam import AnswerOption


class PracticeQuestionResponse(BaseModel):
    question: str = Field(..., description="Question object name")
    question_url: Optional[str] = None
    options: List[AnswerOption]
    correct_answers: int
    total_answered: int
    online_count: int


class PracticeAnswerRequest(BaseModel):
    """Answer to the question most recently served to this login."""

    slot: str = Field(..., min_length=1, max_length=64)


class PracticeAnswerResponse(BaseModel):
    """
    Outcome of a practice answer.

    ``verdict`` is "accepted", "flagged" (caught answering too fast, show the
    interstitial) or "banned" (the login has been ended and its token
    revoked).
    """

    verdict: str
    is_correct: bool
    correct_url: Optional[str] = None
    correct_answers: int
    total_answered: int
    is_cheater: bool
    logged_out: bool = False


class PracticeStatsResponse(BaseModel):
    correct_answers: int
    total_answered: int
    is_cheater: bool


class ErrorReportRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    question: Optional[str] = Field(None, max_length=255)


class ErrorReportResponse(BaseModel):
    sent: bool
