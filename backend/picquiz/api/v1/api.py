"""
API v1 router combining all v1 endpoints.
"""
from fastapi import APIRouter

from picquiz.api.v1 import admin, auth, exam, health, leaderboard, practice

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(exam.router, prefix="/exam", tags=["exam"])
api_router.include_router(practice.router, prefix="/practice", tags=["practice"])
api_router.include_router(
    leaderboard.router, prefix="/leaderboard", tags=["leaderboard"]
)
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
