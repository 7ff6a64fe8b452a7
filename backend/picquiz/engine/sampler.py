"""
Random selection of question groups and answer orderings.

All randomness comes from ``secrets.SystemRandom``. Tests may pass their
own ``rng`` to get a deterministic order.
"""
import logging
import random
import secrets
from typing import List, MutableSequence, Optional, Sequence, Tuple, TypeVar

from picquiz.engine.image_pool import ImagePoolReader
from picquiz.engine.types import (
    CORRECT_KEY,
    WRONG_KEYS,
    ExamQuestion,
    QuestionGroup,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_random = secrets.SystemRandom()


def shuffle(items: MutableSequence[T], rng: Optional[random.Random] = None) -> None:
    """In-place Fisher-Yates shuffle driven by a CSPRNG."""
    rng = rng or _random
    for i in range(len(items) - 1, 0, -1):
        j = rng.randrange(i + 1)
        items[i], items[j] = items[j], items[i]


def shuffled(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    result = list(items)
    shuffle(result, rng)
    return result


def build_answer_map(
    group: QuestionGroup, rng: Optional[random.Random] = None
) -> List[Tuple[str, str]]:
    """
    Answer slots for one group, in random display order.

    Always contains ``"correct" -> group[1]``; ``"a"/"b"/"c"`` are added only
    for non-blank wrong answers, so the result holds two to four entries.
    """
    if len(group) < 2 or not group[1].strip():
        raise ValueError("A question group needs a question and a correct answer")

    options: List[Tuple[str, str]] = [(CORRECT_KEY, group[1])]
    wrong = [name for name in group[2:5] if name and name.strip()]
    options.extend(zip(WRONG_KEYS, wrong))
    shuffle(options, rng)
    return options


def build_question(
    group: QuestionGroup, rng: Optional[random.Random] = None
) -> ExamQuestion:
    return ExamQuestion(question=group[0], options=tuple(build_answer_map(group, rng)))


def select_groups(
    reader: ImagePoolReader,
    allow_list: Optional[Sequence[str]] = None,
) -> List[QuestionGroup]:
    """
    Groups eligible for an exam.

    With an allow-list (for example every question of one difficulty) only
    the matching groups are used, unless none match, in which case the whole
    pool is used.
    """
    if allow_list:
        groups = reader.group_by_allow_list(allow_list)
        if groups:
            return groups
        logger.info(
            f"Allow-list of {len(allow_list)} names matched no groups, "
            "falling back to the full pool"
        )
    return reader.group_all()


def build_exam_questions(
    groups: Sequence[QuestionGroup],
    count: int,
    rng: Optional[random.Random] = None,
) -> List[ExamQuestion]:
    """Shuffle the groups and bake answer maps for the first ``count``."""
    chosen = shuffled(groups, rng)[:count]
    return [build_question(group, rng) for group in chosen]


def pick_practice_question(
    groups: Sequence[QuestionGroup], rng: Optional[random.Random] = None
) -> Optional[ExamQuestion]:
    """One random question for the untimed practice loop."""
    if not groups:
        return None
    rng = rng or _random
    return build_question(groups[rng.randrange(len(groups))], rng)
