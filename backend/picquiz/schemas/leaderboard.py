"""
Pydantic schemas for leaderboard endpoints.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    rank: int
    username: str
    correct_answers: int
    total_answered: int
    success_rate: Optional[float] = None
    is_online: bool
    is_current_user: bool


class LeaderboardResponse(BaseModel):
    entries: List[LeaderboardEntry]
    current_username: Optional[str] = None
    timestamp: datetime


class OnlineCountResponse(BaseModel):
    online: int
