"""
Pydantic schemas for exam endpoints.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class AnswerOption(BaseModel):
    """One answer option as displayed to the player."""

    slot: str = Field(..., description="Opaque id submitted back when answering")
    url: Optional[str] = Field(None, description="Image URL, None if unavailable")


class QuestionView(BaseModel):
    index: int = Field(..., description="Zero-based question index")
    question_url: Optional[str] = None
    options: List[AnswerOption]


class ExamSessionResponse(BaseModel):
    """State of one exam session, with the next question when active."""

    token: str
    status: str
    started_at: datetime
    deadline: datetime
    remaining_seconds: int
    current_index: int
    question_count: int
    answered_count: int
    score: int
    max_score: int
    completed_at: Optional[datetime] = None
    current_question: Optional[QuestionView] = None


class ExamSummary(BaseModel):
    """Compact session entry for the player's exam history."""

    token: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    question_count: int
    answered_count: int
    score: int
    max_score: int
    percentage: float


class ExamHistoryResponse(BaseModel):
    sessions: List[ExamSummary]
    total_count: int


class SubmitAnswerRequest(BaseModel):
    index: int = Field(..., description="Question index being answered")
    slot: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Slot id of the chosen option, as served with the question",
    )


class ReviewResponse(BaseModel):
    """
    One question of a session with the player's answer.

    ``is_correct``, ``correct_slot``, ``correct_url`` and ``explanation`` are
    only filled in once the session is no longer active.
    """

    token: str
    index: int
    status: str
    question_url: Optional[str] = None
    options: List[AnswerOption]
    selected_slot: Optional[str] = None
    is_correct: Optional[bool] = None
    correct_slot: Optional[str] = None
    correct_url: Optional[str] = None
    explanation: Optional[str] = None
