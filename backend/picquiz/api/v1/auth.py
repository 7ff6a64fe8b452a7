"""
Authentication endpoints for registration, login and logout.
"""
import logging

from fastapi import APIRouter, Depends, status

from picquiz.api.deps import get_quiz
from picquiz.core.auth import CurrentLogin, end_login, get_current_login
from picquiz.core.error_responses import (
    ErrorMessages,
    raise_conflict,
    raise_forbidden,
    raise_unauthorized,
)
from picquiz.core.security import create_access_token, hash_password, verify_password
from picquiz.engine.types import Account
from picquiz.schemas.auth import LogoutResponse, Token, UserLogin, UserRegister
from picquiz.services.context import QuizContext

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register_user(user_data: UserRegister, quiz: QuizContext = Depends(get_quiz)):
    """
    Register a new account and log it in.

    Raises:
        HTTPException: 409 if the username is taken
    """
    account = Account(
        username=user_data.username,
        password_hash=hash_password(user_data.password),
    )
    if not quiz.accounts.create(account):
        raise_conflict(ErrorMessages.USERNAME_ALREADY_REGISTERED)

    logger.info(f"Registered new account {account.username}")
    quiz.presence.touch(account)
    return {
        "access_token": create_access_token(account.username),
        "token_type": "bearer",
        "username": account.username,
    }


@router.post("/login", response_model=Token)
def login_user(credentials: UserLogin, quiz: QuizContext = Depends(get_quiz)):
    """
    Authenticate and return an access token.

    Raises:
        HTTPException: 401 if credentials are invalid, 403 if the account
            is banned
    """
    account = quiz.accounts.get(credentials.username)
    if account is None or not verify_password(
        credentials.password, account.password_hash
    ):
        raise_unauthorized(ErrorMessages.INVALID_CREDENTIALS)

    if account.is_banned:
        logger.info(f"Login refused for banned account {account.username}")
        raise_forbidden(ErrorMessages.ACCOUNT_BANNED)

    quiz.presence.touch(account)
    return {
        "access_token": create_access_token(account.username),
        "token_type": "bearer",
        "username": account.username,
    }


@router.post("/logout", response_model=LogoutResponse)
def logout_user(
    login: CurrentLogin = Depends(get_current_login),
    quiz: QuizContext = Depends(get_quiz),
):
    """
    End the login.

    The access token is revoked, so the same token cannot be replayed to
    carry on, and the practice counters kept for this login are discarded.
    """
    end_login(quiz, login)
    logger.info(f"Logged out {login.account.username}")
    return {"message": "Logged out"}
