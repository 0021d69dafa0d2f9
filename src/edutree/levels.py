"""Level/type policy for the two hierarchy instances."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from edutree.exceptions import InvalidArgumentError

ROOT_LEVEL: Final[int] = 1


@dataclass(frozen=True)
class TreeInstanceConfig:
    """Shape and labels of one hierarchy instance.

    Attributes:
        key: Stable identifier used in URLs and storage names.
        label: Human-readable name used in messages.
        level_types: Semantic type for each level, index 0 being level 1.
        published_levels: Levels returned by the public navigation view.
    """

    key: str
    label: str
    level_types: tuple[str, ...]
    published_levels: tuple[int, ...] = (1, 2)

    @property
    def max_level(self) -> int:
        return len(self.level_types)

    @property
    def root_type(self) -> str:
        return self.level_types[0]

    @property
    def leaf_type(self) -> str:
        return self.level_types[-1]

    def validate_level(self, level: int) -> int:
        """Return ``level`` unchanged if it lies within the tree depth.

        Raises:
            InvalidArgumentError: If ``level`` is not an integer in
                ``[1, max_level]``.
        """
        if isinstance(level, bool) or not isinstance(level, int):
            raise InvalidArgumentError(f"Level must be an integer, got {level!r}")
        if level < ROOT_LEVEL or level > self.max_level:
            raise InvalidArgumentError(f"Level must be between {ROOT_LEVEL} and {self.max_level}")
        return level

    def type_for_level(self, level: int) -> str:
        """Map a level to its semantic type label."""
        return self.level_types[self.validate_level(level) - 1]

    def is_leaf(self, level: int) -> bool:
        return level == self.max_level


QUESTION_BANK = TreeInstanceConfig(
    key="question-bank",
    label="Main Bank",
    level_types=("Year", "Subject", "Part", "Section", "Chapter"),
)

PREVIOUS_PAPERS = TreeInstanceConfig(
    key="previous-papers",
    label="Previous Papers",
    level_types=("Exam", "Year", "Subject", "Section", "Chapter"),
)

TREE_INSTANCES: Final[dict[str, TreeInstanceConfig]] = {
    config.key: config for config in (QUESTION_BANK, PREVIOUS_PAPERS)
}


def get_tree_instance(key: str) -> TreeInstanceConfig:
    """Look up a registered tree instance by key."""
    try:
        return TREE_INSTANCES[key]
    except KeyError as exc:
        known = ", ".join(sorted(TREE_INSTANCES))
        raise InvalidArgumentError(f"Unknown tree instance {key!r} (expected one of: {known})") from exc
