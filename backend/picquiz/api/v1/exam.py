"""
Timed exam endpoints: start, resume, answer, end early and review.
"""
import logging
from datetime import datetime
from typing import Dict, List, NoReturn, Optional

from fastapi import APIRouter, Depends, Query

from picquiz.api.deps import get_quiz
from picquiz.core.auth import get_current_account
from picquiz.core.config import settings
from picquiz.core.datetime_utils import utc_now
from picquiz.core.error_responses import (
    ErrorMessages,
    raise_bad_request,
    raise_conflict,
    raise_forbidden,
    raise_not_found,
)
from picquiz.core.graceful_failure import graceful_failure
from picquiz.core.security import answer_slot_id, resolve_answer_slot
from picquiz.engine import scoring
from picquiz.engine.errors import (
    ActiveSessionExistsError,
    InvalidInputError,
    SessionAccessDeniedError,
    SessionExpiredError,
    SessionNotActiveError,
    SessionNotFoundError,
)
from picquiz.engine.sampler import build_exam_questions
from picquiz.engine.types import (
    CORRECT_KEY,
    Account,
    Difficulty,
    ExamQuestion,
    ExamSession,
    SessionStatus,
)
from picquiz.schemas.exam import (
    AnswerOption,
    ExamHistoryResponse,
    ExamSessionResponse,
    ExamSummary,
    QuestionView,
    ReviewResponse,
    SubmitAnswerRequest,
)
from picquiz.services.context import QuizContext
from picquiz.stores.base import ImageStore

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_difficulty(value: Optional[str]) -> Optional[Difficulty]:
    """
    Parse an optional difficulty filter.

    Raises:
        HTTPException: 400 for an unknown tag
    """
    if value is None or value == "":
        return None
    try:
        return Difficulty(value.lower())
    except ValueError:
        raise_bad_request(ErrorMessages.INVALID_DIFFICULTY)


def exam_scope(token: str, index: int) -> str:
    """Slot id scope of one exam question."""
    return f"exam:{token}:{index}"


def build_question_view(
    images: ImageStore, question: ExamQuestion, index: int, scope: str
) -> QuestionView:
    """
    Question and option slots with signed image URLs, in display order.

    Option keys never leave the server; each option carries an opaque slot
    id derived from ``scope`` instead.
    """
    urls: Dict[str, str] = images.signed_urls(question.object_names())
    return QuestionView(
        index=index,
        question_url=urls.get(question.question),
        options=[
            AnswerOption(slot=answer_slot_id(scope, key), url=urls.get(name))
            for key, name in question.options
        ],
    )


def build_session_response(
    quiz: QuizContext, session: ExamSession, now: Optional[datetime] = None
) -> ExamSessionResponse:
    now = now or utc_now()
    current_question = None
    if session.is_active and session.current_index < session.question_count:
        current_question = build_question_view(
            quiz.images,
            session.questions[session.current_index],
            session.current_index,
            exam_scope(session.token, session.current_index),
        )

    return ExamSessionResponse(
        token=session.token,
        status=session.status.value,
        started_at=session.started_at,
        deadline=quiz.exams.deadline(session),
        remaining_seconds=int(quiz.exams.remaining(session, now).total_seconds()),
        current_index=session.current_index,
        question_count=session.question_count,
        answered_count=session.answered_count,
        score=session.score,
        max_score=session.max_score,
        completed_at=session.completed_at,
        current_question=current_question,
    )


def build_summary(session: ExamSession) -> ExamSummary:
    return ExamSummary(
        token=session.token,
        status=session.status.value,
        started_at=session.started_at,
        completed_at=session.completed_at,
        question_count=session.question_count,
        answered_count=session.answered_count,
        score=session.score,
        max_score=session.max_score,
        percentage=scoring.percentage(session),
    )


def get_owned_session_or_404(
    quiz: QuizContext, token: str, username: str
) -> ExamSession:
    """
    Load a session owned by ``username`` with lazy transitions applied.

    Raises:
        HTTPException: 404 if the session does not exist, 403 if it belongs
            to another user
    """
    try:
        return quiz.exams.resume(token, username)
    except SessionNotFoundError:
        raise_not_found(ErrorMessages.EXAM_SESSION_NOT_FOUND)
    except SessionAccessDeniedError:
        raise_forbidden(ErrorMessages.SESSION_ACCESS_DENIED)


def raise_for_inactive(exc: SessionNotActiveError) -> NoReturn:
    if (
        isinstance(exc, SessionExpiredError)
        or exc.status == SessionStatus.EXPIRED.value
    ):
        raise_bad_request(ErrorMessages.SESSION_EXPIRED)
    raise_bad_request(ErrorMessages.session_already_finished(exc.status))


@router.post("/start", response_model=ExamSessionResponse)
def start_exam(
    difficulty: Optional[str] = Query(
        None, description="Restrict questions to easy, medium or hard"
    ),
    current_account: Account = Depends(get_current_account),
    quiz: QuizContext = Depends(get_quiz),
):
    """
    Start a new timed exam.

    Raises:
        HTTPException: 400 if an active session already exists (the detail
            carries its token), 404 if the image pool yields no questions,
            409 if a concurrent request created a session first
    """
    username = current_account.username
    tag = parse_difficulty(difficulty)

    # Checked before loading the pool so the client can offer "resume"
    active = quiz.exams.active_for(username)
    if active is not None:
        raise_bad_request(ErrorMessages.active_session_exists(active.token))

    groups = quiz.question_pool.groups(tag)
    if not groups:
        raise_not_found(ErrorMessages.NO_QUESTIONS_AVAILABLE)
    questions = build_exam_questions(groups, settings.EXAM_QUESTION_COUNT)

    try:
        session = quiz.exams.create(username, questions)
    except ActiveSessionExistsError as e:
        if e.token:
            raise_bad_request(ErrorMessages.active_session_exists(e.token))
        raise_conflict(ErrorMessages.SESSION_ALREADY_IN_PROGRESS)
    except InvalidInputError:
        raise_not_found(ErrorMessages.NO_QUESTIONS_AVAILABLE)

    return build_session_response(quiz, session)


@router.get("/active", response_model=Optional[ExamSessionResponse])
def get_active_exam(
    current_account: Account = Depends(get_current_account),
    quiz: QuizContext = Depends(get_quiz),
):
    """The caller's active exam, or null when there is none."""
    session = quiz.exams.active_for(current_account.username)
    if session is None:
        return None
    return build_session_response(quiz, session)


@router.get("/sessions", response_model=ExamHistoryResponse)
def list_exam_sessions(
    limit: int = Query(
        settings.EXAM_HISTORY_LIMIT,
        ge=1,
        le=200,
        description="Maximum number of sessions to return",
    ),
    current_account: Account = Depends(get_current_account),
    quiz: QuizContext = Depends(get_quiz),
):
    """The caller's exam sessions, newest first."""
    sessions = quiz.exams.history(current_account.username, limit)
    summaries: List[ExamSummary] = [build_summary(s) for s in sessions]
    return ExamHistoryResponse(sessions=summaries, total_count=len(summaries))


@router.get("/session/{token}", response_model=ExamSessionResponse)
def get_exam_session(
    token: str,
    current_account: Account = Depends(get_current_account),
    quiz: QuizContext = Depends(get_quiz),
):
    """Resume an exam: its state and the next unanswered question."""
    session = get_owned_session_or_404(quiz, token, current_account.username)
    return build_session_response(quiz, session)


@router.post("/session/{token}/answer", response_model=ExamSessionResponse)
def submit_exam_answer(
    token: str,
    answer: SubmitAnswerRequest,
    current_account: Account = Depends(get_current_account),
    quiz: QuizContext = Depends(get_quiz),
):
    """
    Record the answer for one question and advance the session.

    ``slot`` is one of the slot ids served with that question.

    Raises:
        HTTPException: 400 if the session is no longer active, has just
            expired, or the slot is not an option of the question
    """
    session = get_owned_session_or_404(quiz, token, current_account.username)
    # Same clamping the state machine applies, so the slot resolves against
    # the question that will actually be answered
    index = min(max(answer.index, 0), session.question_count - 1)
    selected_key = resolve_answer_slot(
        exam_scope(session.token, index),
        answer.slot,
        session.questions[index].answer_keys,
    )
    try:
        quiz.exams.submit_answer(session, index, selected_key or "")
    except SessionNotActiveError as e:
        raise_for_inactive(e)
    except InvalidInputError:
        raise_bad_request(ErrorMessages.INVALID_ANSWER_SLOT)

    return build_session_response(quiz, session)


@router.post("/session/{token}/end", response_model=ExamSessionResponse)
def end_exam(
    token: str,
    current_account: Account = Depends(get_current_account),
    quiz: QuizContext = Depends(get_quiz),
):
    """Finish an active exam before answering every question."""
    session = get_owned_session_or_404(quiz, token, current_account.username)
    try:
        quiz.exams.end_early(session)
    except SessionNotActiveError as e:
        raise_for_inactive(e)

    return build_session_response(quiz, session)


@router.get("/session/{token}/review/{index}", response_model=ReviewResponse)
def review_exam_question(
    token: str,
    index: int,
    current_account: Account = Depends(get_current_account),
    quiz: QuizContext = Depends(get_quiz),
):
    """
    One answered question with the player's choice.

    Once the session has ended the solution, the verdict and the explanation
    (when one exists) are included. While it is still active they are null,
    since the answer could otherwise be corrected before the exam ends.

    Raises:
        HTTPException: 400 if ``index`` is out of range, 404 if the
            question has not been answered
    """
    session = get_owned_session_or_404(quiz, token, current_account.username)
    if index < 0 or index >= session.question_count:
        raise_bad_request(
            ErrorMessages.question_index_out_of_range(index, session.question_count)
        )
    if index >= len(session.answers) or session.answers[index].is_empty:
        raise_not_found(ErrorMessages.ANSWER_NOT_FOUND)

    question = session.questions[index]
    answer = session.answers[index]
    scope = exam_scope(session.token, index)
    view = build_question_view(quiz.images, question, index, scope)
    response = ReviewResponse(
        token=session.token,
        index=index,
        status=session.status.value,
        question_url=view.question_url,
        options=view.options,
        selected_slot=answer_slot_id(scope, answer.selected_key),
    )
    if session.is_active:
        return response

    correct_slot = answer_slot_id(scope, CORRECT_KEY)
    response.is_correct = answer.is_correct
    response.correct_slot = correct_slot
    response.correct_url = next(
        (o.url for o in view.options if o.slot == correct_slot), None
    )
    with graceful_failure(
        "load explanation", logger, context={"question": question.question}
    ):
        response.explanation = quiz.explanations.get(question.question)
    return response
