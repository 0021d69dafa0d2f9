"""Tests for the level/type policy."""

from __future__ import annotations

import pytest

from edutree.exceptions import InvalidArgumentError
from edutree.levels import PREVIOUS_PAPERS, QUESTION_BANK, TREE_INSTANCES, get_tree_instance


@pytest.mark.parametrize(
    ("level", "question_bank_type", "previous_papers_type"),
    [
        (1, "Year", "Exam"),
        (2, "Subject", "Year"),
        (3, "Part", "Subject"),
        (4, "Section", "Section"),
        (5, "Chapter", "Chapter"),
    ],
)
def test_type_for_level(level: int, question_bank_type: str, previous_papers_type: str) -> None:
    assert QUESTION_BANK.type_for_level(level) == question_bank_type
    assert PREVIOUS_PAPERS.type_for_level(level) == previous_papers_type


@pytest.mark.parametrize("level", [0, 6, -1, True, 2.0])
def test_rejects_levels_outside_tree(level: object) -> None:
    with pytest.raises(InvalidArgumentError):
        QUESTION_BANK.type_for_level(level)  # type: ignore[arg-type]


def test_both_instances_share_shape() -> None:
    assert QUESTION_BANK.max_level == PREVIOUS_PAPERS.max_level == 5
    assert QUESTION_BANK.is_leaf(5)
    assert not QUESTION_BANK.is_leaf(4)


def test_registry_lookup() -> None:
    assert set(TREE_INSTANCES) == {"question-bank", "previous-papers"}
    assert get_tree_instance("previous-papers") is PREVIOUS_PAPERS


def test_registry_rejects_unknown_key() -> None:
    with pytest.raises(InvalidArgumentError, match="Unknown tree instance"):
        get_tree_instance("mock-tests")
