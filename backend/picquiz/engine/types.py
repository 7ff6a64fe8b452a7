"""
Plain data types the engine operates on.

These are deliberately independent of the persistence layer: stores convert
their rows/records into these dataclasses and back.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from picquiz.core.datetime_utils import parse_timestamp

# Answer slot keys. Exactly one slot per question is keyed "correct".
CORRECT_KEY = "correct"
WRONG_KEYS: Tuple[str, ...] = ("a", "b", "c")
ANSWER_KEYS: Tuple[str, ...] = (CORRECT_KEY,) + WRONG_KEYS

POINTS_PER_CORRECT = 6

# [question, correct, wrong1, wrong2, wrong3]
QuestionGroup = Tuple[str, ...]
GROUP_SIZE = 5


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionStatus.ACTIVE


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass
class Account:
    """A player account. ``password_hash`` is a bcrypt hash, never plaintext."""

    username: str
    password_hash: str
    correct_answers: int = 0
    total_answered: int = 0
    is_cheater: bool = False
    is_banned: bool = False
    last_seen: Optional[datetime] = None

    def record_answer(self, is_correct: bool) -> None:
        self.total_answered += 1
        if is_correct:
            self.correct_answers += 1

    def reset_counters(self) -> None:
        """Zero both progress counters together; they are never reset apart."""
        self.correct_answers = 0
        self.total_answered = 0

    @property
    def success_rate(self) -> Optional[float]:
        if self.total_answered <= 0:
            return None
        return self.correct_answers / self.total_answered


@dataclass(frozen=True)
class ExamQuestion:
    """
    One exam question with its answer options baked in.

    ``options`` keeps the shuffled display order as (key, object name) pairs.
    """

    question: str
    options: Tuple[Tuple[str, str], ...]

    @property
    def answer_keys(self) -> Tuple[str, ...]:
        return tuple(key for key, _ in self.options)

    def option(self, key: str) -> Optional[str]:
        for option_key, name in self.options:
            if option_key == key:
                return name
        return None

    def object_names(self) -> List[str]:
        return [self.question] + [name for _, name in self.options]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "answers": [[key, name] for key, name in self.options],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExamQuestion":
        answers = data.get("answers") or []
        # Older payloads stored the answer map as a JSON object; its key
        # order is still the display order.
        if isinstance(answers, dict):
            pairs = tuple((str(k), str(v)) for k, v in answers.items())
        else:
            pairs = tuple((str(k), str(v)) for k, v in answers)
        return cls(question=str(data["question"]), options=pairs)


@dataclass
class ExamAnswer:
    """A recorded answer. The default instance is a padding slot."""

    selected_key: str = ""
    is_correct: bool = False
    answered_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.selected_key == ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selected_key": self.selected_key,
            "is_correct": self.is_correct,
            "answered_at": self.answered_at.isoformat() if self.answered_at else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExamAnswer":
        if not data:
            return cls()
        return cls(
            selected_key=data.get("selected_key") or "",
            is_correct=bool(data.get("is_correct", False)),
            answered_at=parse_timestamp(data.get("answered_at")),
        )


@dataclass
class ExamSession:
    token: str
    username: str
    started_at: datetime
    questions: Tuple[ExamQuestion, ...]
    answers: List[ExamAnswer] = field(default_factory=list)
    current_index: int = 0
    status: SessionStatus = SessionStatus.ACTIVE
    score: int = 0
    max_score: int = 0
    completed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def answered_count(self) -> int:
        return sum(1 for a in self.answers if not a.is_empty)

    @property
    def correct_count(self) -> int:
        return sum(1 for a in self.answers if a.is_correct)


@dataclass
class PracticeCounterState:
    """
    Rolling-window counters for one login.

    ``cheater_count`` survives window resets; it only goes away with the
    login itself (logout, ban or token expiry).
    """

    session_start: datetime
    rapid_total: int = 0
    rapid_correct: int = 0
    cheater_count: int = 0
