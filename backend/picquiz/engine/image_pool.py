"""
Partition a sorted image listing into question groups.

The pool's sort order is load-bearing: five consecutive object names form
one group ``[question, correct, wrong1, wrong2, wrong3]``. A trailing
remainder of fewer than five names is never part of any group.
"""
import logging
from typing import Dict, Iterable, List, Sequence

from picquiz.engine.types import GROUP_SIZE, QuestionGroup

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp")


def filter_image_names(names: Iterable[str]) -> List[str]:
    """Keep image objects only, sorted by name (ordinal)."""
    return sorted(n for n in names if n.lower().endswith(IMAGE_EXTENSIONS))


class ImagePoolReader:
    """Groups a lexicographically sorted object listing into fives."""

    def __init__(self, pool: Sequence[str]):
        self.pool: List[str] = list(pool)
        self._exact: Dict[str, int] = {}
        self._folded: Dict[str, int] = {}
        self._trimmed: Dict[str, int] = {}
        for index, name in enumerate(self.pool):
            # First occurrence wins for every lookup tier.
            self._exact.setdefault(name, index)
            self._folded.setdefault(name.casefold(), index)
            self._trimmed.setdefault(name.strip().casefold(), index)

    def __len__(self) -> int:
        return len(self.pool)

    def _group_at(self, index: int) -> QuestionGroup:
        return tuple(self.pool[index : index + GROUP_SIZE])

    def group_all(self) -> List[QuestionGroup]:
        """Every full group of five, in pool order."""
        full = len(self.pool) - len(self.pool) % GROUP_SIZE
        return [self._group_at(i) for i in range(0, full, GROUP_SIZE)]

    def find(self, name: str) -> int:
        """
        Locate ``name`` in the pool: exact, then case-insensitive, then
        trimmed case-insensitive. Returns -1 when absent.
        """
        if name in self._exact:
            return self._exact[name]
        folded = name.casefold()
        if folded in self._folded:
            return self._folded[folded]
        return self._trimmed.get(name.strip().casefold(), -1)

    def group_by_allow_list(self, names: Iterable[str]) -> List[QuestionGroup]:
        """
        Groups starting at each allow-listed name, in allow-list order.

        A group is emitted only when the match index plus four is still inside
        the pool; unmatched and boundary-violating names are skipped silently.
        An empty result means the caller should fall back to group_all().
        """
        groups: List[QuestionGroup] = []
        skipped = 0
        for name in names:
            index = self.find(name)
            if index < 0 or index + GROUP_SIZE - 1 >= len(self.pool):
                skipped += 1
                continue
            groups.append(self._group_at(index))
        if skipped:
            logger.debug(f"Allow-list grouping skipped {skipped} unmatched names")
        return groups
