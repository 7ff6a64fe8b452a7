"""
Loads the current image pool and turns it into question groups.
"""
import logging
from typing import List, Optional

from picquiz.engine.image_pool import ImagePoolReader
from picquiz.engine.sampler import select_groups
from picquiz.engine.types import Difficulty, QuestionGroup
from picquiz.stores.base import DifficultyStore, ImageStore

logger = logging.getLogger(__name__)


class QuestionPool:
    def __init__(
        self,
        image_store: ImageStore,
        difficulty_store: Optional[DifficultyStore] = None,
    ):
        self.image_store = image_store
        self.difficulty_store = difficulty_store

    def reader(self) -> ImagePoolReader:
        return ImagePoolReader(self.image_store.list())

    def groups(self, difficulty: Optional[Difficulty] = None) -> List[QuestionGroup]:
        """
        Eligible groups, restricted to ``difficulty`` when questions of that
        difficulty are known and present in the pool.
        """
        reader = self.reader()
        allow_list = None
        if difficulty is not None and self.difficulty_store is not None:
            allow_list = self.difficulty_store.questions_for_difficulty(difficulty.value)
            if not allow_list:
                logger.info(
                    f"No questions classified as {difficulty.value}, using full pool"
                )
        groups = select_groups(reader, allow_list)
        if not groups:
            logger.warning(
                f"Image pool of {len(reader)} objects yields no question groups"
            )
        return groups
