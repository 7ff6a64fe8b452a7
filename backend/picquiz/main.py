"""
Main FastAPI application.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from picquiz.api.v1.api import api_router
from picquiz.core.config import settings
from picquiz.core.error_responses import ErrorMessages
from picquiz.core.logging_config import setup_logging
from picquiz.engine.errors import (
    AccountBannedError,
    AccountNotFoundError,
    QuizEngineError,
)
from picquiz.middleware import RequestLoggingMiddleware
from picquiz.models import Base, SessionLocal, engine
from picquiz.services.context import QuizContext, build_context
from picquiz.stores.base import StoreUnavailableError
from picquiz.stores.images import LOCAL_URL_PREFIX

# Initialize logging configuration at startup
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan event handler.

    - On startup: creates missing tables and wires the stores, unless a
      context was supplied to create_application
    - On shutdown: closes the remote store client
    """
    if getattr(app.state, "quiz", None) is None:
        Base.metadata.create_all(bind=engine)
        app.state.quiz = build_context(settings, SessionLocal)
        logger.info(
            "Quiz context initialized with "
            f"{'remote' if settings.use_remote_backends else 'local'} backends"
        )

    yield

    quiz: Optional[QuizContext] = getattr(app.state, "quiz", None)
    if quiz is not None:
        quiz.close()
    logger.info("Application shutting down")


# OpenAPI tags metadata
tags_metadata = [
    {
        "name": "health",
        "description": "Health check endpoints for monitoring application status",
    },
    {
        "name": "auth",
        "description": "Registration, login and logout",
    },
    {
        "name": "exam",
        "description": "Timed exams: start, resume, answer, end early and review",
    },
    {
        "name": "practice",
        "description": "Untimed practice loop with rapid-answer detection",
    },
    {
        "name": "leaderboard",
        "description": "Top players and online user count",
    },
    {
        "name": "admin",
        "description": "Account, difficulty, explanation and storage management",
    },
]


def create_application(context: Optional[QuizContext] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        context: Prebuilt collaborators. When omitted they are built from
            settings during startup.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
        description=(
            "**Picture Quiz API** - timed image-recognition exams and an "
            "untimed practice loop.\n\n"
            "## Authentication\n\n"
            "Most endpoints require a JWT Bearer token. Obtain one via the "
            "`/v1/auth/login` endpoint."
        ),
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        openapi_tags=tags_metadata,
    )
    app.state.quiz = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Admin-Token"],
    )

    # Added last so it wraps every other middleware
    app.add_middleware(RequestLoggingMiddleware)

    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    images_dir = Path(settings.LOCAL_IMAGES_DIR)
    if not settings.use_remote_backends and images_dir.is_dir():
        app.mount(
            LOCAL_URL_PREFIX,
            StaticFiles(directory=str(images_dir)),
            name="quiz_images",
        )
        logger.info(f"Serving local images from {images_dir} at {LOCAL_URL_PREFIX}")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """
        Handle request validation errors.

        Submitted values are not echoed back; they may contain passwords.
        """
        errors = [
            {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
            for error in exc.errors()
        ]
        logger.info(
            f"Validation failed for {request.method} {request.url.path}: "
            f"{len(errors)} error(s)"
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": errors},
        )

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        """A backend failed for this one operation; the client may retry."""
        logger.error(
            f"{exc.store}.{exc.operation} unavailable during "
            f"{request.method} {request.url.path}: {exc.cause}"
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": ErrorMessages.STORE_UNAVAILABLE},
        )

    @app.exception_handler(QuizEngineError)
    async def engine_error_handler(request: Request, exc: QuizEngineError):
        """
        Engine errors not translated by an endpoint.

        Account errors can surface when an account is deleted or banned
        between authentication and the operation.
        """
        if isinstance(exc, AccountBannedError):
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"detail": ErrorMessages.ACCOUNT_BANNED},
            )
        if isinstance(exc, AccountNotFoundError):
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"detail": ErrorMessages.USER_NOT_FOUND},
            )
        logger.warning(f"Unhandled engine error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """
        Handle unexpected exceptions.

        Generates a unique error_id (UUID) for each exception so a specific
        failure can be found in the logs. The error_id is included in the
        response body and logged with the full exception.
        """
        error_id = str(uuid.uuid4())

        logger.exception(
            f"Unhandled exception [error_id={error_id}]: {exc}",
            extra={"error_id": error_id},
        )

        # Return error response with tracking ID (don't leak internal details)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "error_id": error_id,
            },
        )

    @app.get("/")
    async def root():
        """
        Root endpoint.
        """
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": settings.APP_VERSION,
            "docs": f"{settings.API_V1_PREFIX}/docs",
        }

    return app


app = create_application()
