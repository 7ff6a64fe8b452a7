"""
Untimed practice loop: serve a random question, record the answer under
rapid-answer surveillance, reset own statistics and report broken questions.

The pending question and the rapid-answer counters are kept server-side per
login (the access token's id), not in anything the client holds.
"""
import logging
import secrets

from fastapi import APIRouter, Depends

from picquiz.api.deps import get_quiz
from picquiz.api.v1.exam import build_question_view
from picquiz.core.auth import (
    CurrentLogin,
    end_login,
    get_current_account,
    get_current_login,
)
from picquiz.core.error_responses import (
    ErrorMessages,
    raise_bad_request,
    raise_not_found,
)
from picquiz.core.graceful_failure import graceful_failure
from picquiz.core.security import resolve_answer_slot
from picquiz.engine.anti_cheat import PracticeVerdict
from picquiz.engine.sampler import pick_practice_question
from picquiz.engine.types import CORRECT_KEY, Account
from picquiz.schemas.practice import (
    ErrorReportRequest,
    ErrorReportResponse,
    PracticeAnswerRequest,
    PracticeAnswerResponse,
    PracticeQuestionResponse,
    PracticeStatsResponse,
)
from picquiz.services.context import QuizContext

logger = logging.getLogger(__name__)

router = APIRouter()


def practice_scope(login_id: str, nonce: str) -> str:
    """Slot id scope of one served practice question."""
    return f"practice:{login_id}:{nonce}"


@router.get("/question", response_model=PracticeQuestionResponse)
def get_practice_question(
    login: CurrentLogin = Depends(get_current_login),
    quiz: QuizContext = Depends(get_quiz),
):
    """
    Serve one random question.

    The question is remembered for this login, replacing any earlier one;
    the next answer is scored against it.

    Raises:
        HTTPException: 404 if the image pool yields no questions
    """
    question = pick_practice_question(quiz.question_pool.groups())
    if question is None:
        raise_not_found(ErrorMessages.NO_QUESTIONS_AVAILABLE)

    nonce = secrets.token_urlsafe(8)
    quiz.pending_questions.set(login.token_id, (nonce, question))
    view = build_question_view(
        quiz.images, question, 0, practice_scope(login.token_id, nonce)
    )
    account = login.account
    return PracticeQuestionResponse(
        question=question.question,
        question_url=view.question_url,
        options=view.options,
        correct_answers=account.correct_answers,
        total_answered=account.total_answered,
        online_count=quiz.presence.online_count(),
    )


@router.post("/answer", response_model=PracticeAnswerResponse)
def submit_practice_answer(
    answer: PracticeAnswerRequest,
    login: CurrentLogin = Depends(get_current_login),
    quiz: QuizContext = Depends(get_quiz),
):
    """
    Score the answer to the pending question and update progress.

    Answering too fast flags the account (progress reset, ``verdict`` is
    "flagged"); repeated flags in one login ban it, which revokes the
    login's token (``logged_out`` is true).

    Raises:
        HTTPException: 400 if no question is pending or the slot is not one
            of its options
    """
    pending = quiz.pending_questions.get(login.token_id)
    if pending is None:
        raise_bad_request(ErrorMessages.NO_PRACTICE_QUESTION)
    quiz.pending_questions.delete(login.token_id)

    nonce, question = pending
    selected_key = resolve_answer_slot(
        practice_scope(login.token_id, nonce), answer.slot, question.answer_keys
    )
    if selected_key is None:
        raise_bad_request(ErrorMessages.INVALID_ANSWER_SLOT)

    is_correct = selected_key == CORRECT_KEY
    result = quiz.practice.record_answer(
        login.account.username, login.token_id, is_correct
    )

    with graceful_failure(
        "record question stats", logger, context={"question": question.question}
    ):
        quiz.difficulty.record_answer(question.question, is_correct)

    logged_out = result.verdict is PracticeVerdict.BANNED
    if logged_out:
        end_login(quiz, login)

    correct_name = question.option(CORRECT_KEY)
    correct_url = quiz.images.signed_url(correct_name) if correct_name else None
    return PracticeAnswerResponse(
        verdict=result.verdict.value,
        is_correct=is_correct,
        correct_url=correct_url,
        correct_answers=result.account.correct_answers,
        total_answered=result.account.total_answered,
        is_cheater=result.account.is_cheater,
        logged_out=logged_out,
    )


@router.post("/reset", response_model=PracticeStatsResponse)
def reset_practice_stats(
    current_account: Account = Depends(get_current_account),
    quiz: QuizContext = Depends(get_quiz),
):
    """Zero the caller's progress counters and clear the cheat flag."""
    account = quiz.practice.reset_stats(current_account.username)
    logger.info(f"Practice statistics reset by {account.username}")
    return PracticeStatsResponse(
        correct_answers=account.correct_answers,
        total_answered=account.total_answered,
        is_cheater=account.is_cheater,
    )


@router.post("/report", response_model=ErrorReportResponse)
def report_question_error(
    report: ErrorReportRequest,
    current_account: Account = Depends(get_current_account),
    quiz: QuizContext = Depends(get_quiz),
):
    """
    Email a report about a broken question to the maintainer.

    ``sent`` is false when email is not configured or delivery failed.
    """
    if not report.message.strip():
        raise_bad_request(ErrorMessages.REPORT_MESSAGE_REQUIRED)

    sent = quiz.notifier.send_error_report(
        current_account.username, report.message, report.question
    )
    return ErrorReportResponse(sent=sent)
