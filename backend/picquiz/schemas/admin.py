"""
Pydantic schemas for admin endpoints.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class AdminUserView(BaseModel):
    username: str
    correct_answers: int
    total_answered: int
    is_cheater: bool
    is_banned: bool
    last_seen: Optional[datetime] = None
    is_online: bool


class AdminOverviewResponse(BaseModel):
    total_users: int
    users: List[AdminUserView]
    cheaters: List[str]
    banned: List[str]
    online: List[str]
    top_users: List[AdminUserView]
    average_success_rate: float = Field(
        ...,
        description="Mean success percentage over users with at least one correct answer",
    )


class DifficultyOverviewResponse(BaseModel):
    counts: Dict[str, int]


class ExplanationUpsert(BaseModel):
    explanation: str = Field(..., min_length=1, max_length=5000)


class ExplanationsResponse(BaseModel):
    explanations: Dict[str, str]


class StorageListingResponse(BaseModel):
    object_count: int
    group_count: int
    objects: List[str]


class MessageResponse(BaseModel):
    message: str
