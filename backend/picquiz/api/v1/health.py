"""
Liveness and readiness of the quiz: database reachability and the size of
the image pool the questions are drawn from.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from picquiz.api.deps import get_quiz
from picquiz.core import settings
from picquiz.core.datetime_utils import utc_now
from picquiz.services.context import QuizContext
from picquiz.stores.base import StoreUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter()


def check_database(quiz: QuizContext) -> Dict[str, Any]:
    try:
        with quiz.session_factory() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Health check: database unreachable: {e}")
        return {"ok": False}
    return {"ok": True}


def check_image_pool(quiz: QuizContext) -> Dict[str, Any]:
    """Object and question-group counts; a pool with no groups is not ok."""
    try:
        reader = quiz.question_pool.reader()
        groups = quiz.question_pool.groups()
    except StoreUnavailableError as e:
        logger.warning(f"Health check: image pool unavailable: {e}")
        return {"ok": False, "images": None, "question_groups": None}
    return {"ok": bool(groups), "images": len(reader), "question_groups": len(groups)}


@router.get("/health")
def health_check(quiz: QuizContext = Depends(get_quiz)):
    """
    "healthy" when the database answers and the image pool yields at least
    one question group, "degraded" otherwise. Always 200, so the payload
    stays readable while a backend is down.
    """
    checks = {
        "database": check_database(quiz),
        "image_pool": check_image_pool(quiz),
    }
    healthy = all(check["ok"] for check in checks.values())
    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": utc_now().isoformat(),
        "version": settings.APP_VERSION,
        "backends": "remote" if settings.use_remote_backends else "local",
        "checks": checks,
    }


@router.get("/ping")
async def ping():
    return {"message": "pong"}
