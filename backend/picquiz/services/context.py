"""
Wiring of the engine and its collaborators.

One QuizContext is built at startup and stored on ``app.state``; tests
build their own with in-memory backends.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional, Tuple

from sqlalchemy.orm import sessionmaker

from picquiz.core.expiring import ExpiringCache
from picquiz.core.token_revocation import RevokedTokens
from picquiz.engine.anti_cheat import (
    AntiCheatMonitor,
    PracticeCounterStore,
    PracticeLoopGuard,
)
from picquiz.engine.session_machine import ExamSessionMachine
from picquiz.engine.types import ExamQuestion
from picquiz.services.email_service import EmailNotifier
from picquiz.services.presence import PresenceTracker
from picquiz.services.question_pool import QuestionPool
from picquiz.stores.accounts import create_account_store
from picquiz.stores.base import (
    AccountStore,
    DifficultyStore,
    ExplanationStore,
    ImageStore,
    SessionStore,
)
from picquiz.stores.difficulty import SqlQuestionStatsStore
from picquiz.stores.explanations import SqlExplanationStore
from picquiz.stores.images import create_image_store
from picquiz.stores.sessions import SqlSessionStore
from picquiz.stores.supabase import SupabaseClient

logger = logging.getLogger(__name__)


@dataclass
class QuizContext:
    accounts: AccountStore
    sessions: SessionStore
    images: ImageStore
    difficulty: DifficultyStore
    explanations: ExplanationStore
    exams: ExamSessionMachine
    practice: PracticeLoopGuard
    practice_counters: PracticeCounterStore
    # login id -> (nonce, question) awaiting an answer
    pending_questions: ExpiringCache[str, Tuple[str, ExamQuestion]]
    revoked_tokens: RevokedTokens
    session_factory: sessionmaker
    question_pool: QuestionPool
    presence: PresenceTracker
    notifier: EmailNotifier
    supabase: Optional[SupabaseClient] = None

    def close(self) -> None:
        if self.supabase is not None:
            self.supabase.close()


def build_context(
    settings: Any,
    session_factory: sessionmaker,
    *,
    accounts: Optional[AccountStore] = None,
    images: Optional[ImageStore] = None,
    notifier: Optional[EmailNotifier] = None,
) -> QuizContext:
    """Build every collaborator once, from configuration."""
    supabase = None
    if settings.use_remote_backends and (accounts is None or images is None):
        supabase = SupabaseClient(
            settings.SUPABASE_URL, settings.SUPABASE_KEY, settings.STORE_TIMEOUT_SECONDS
        )

    accounts = accounts or create_account_store(settings, supabase)
    images = images or create_image_store(settings, supabase)
    sessions = SqlSessionStore(session_factory)
    difficulty = SqlQuestionStatsStore(
        session_factory,
        min_attempts=settings.DIFFICULTY_MIN_ATTEMPTS,
        easy_rate=settings.DIFFICULTY_EASY_RATE,
        hard_rate=settings.DIFFICULTY_HARD_RATE,
    )
    explanations = SqlExplanationStore(
        session_factory, cache_seconds=settings.EXPLANATION_CACHE_SECONDS
    )

    login_ttl_seconds = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    counters = PracticeCounterStore(login_ttl_seconds)
    practice = PracticeLoopGuard(
        accounts,
        counters,
        AntiCheatMonitor(accounts, settings.CHEAT_FLAGS_BEFORE_BAN),
        window_seconds=settings.PRACTICE_WINDOW_SECONDS,
        max_answers=settings.PRACTICE_MAX_ANSWERS_PER_WINDOW,
        max_correct=settings.PRACTICE_MAX_CORRECT_PER_WINDOW,
    )
    exams = ExamSessionMachine(
        sessions,
        timedelta(seconds=settings.EXAM_DURATION_SECONDS),
        stats_store=difficulty,
    )

    return QuizContext(
        accounts=accounts,
        sessions=sessions,
        images=images,
        difficulty=difficulty,
        explanations=explanations,
        exams=exams,
        practice=practice,
        practice_counters=counters,
        pending_questions=ExpiringCache(login_ttl_seconds),
        revoked_tokens=RevokedTokens(),
        session_factory=session_factory,
        question_pool=QuestionPool(images, difficulty),
        presence=PresenceTracker(
            accounts,
            online_window_minutes=settings.ONLINE_WINDOW_MINUTES,
            throttle_seconds=settings.LAST_SEEN_THROTTLE_SECONDS,
            count_cache_seconds=settings.ONLINE_COUNT_CACHE_SECONDS,
        ),
        notifier=notifier or EmailNotifier.from_settings(settings),
        supabase=supabase,
    )
