"""Tests for snapshot reordering."""

from __future__ import annotations

from typing import Callable
from unittest.mock import AsyncMock

import pytest

from edutree.exceptions import InvalidStateError, PersistenceError
from edutree.reorder import (
    ReorderStatus,
    array_move,
    find_sibling_context,
    move_and_persist,
    reorder_tree,
    replace_siblings,
)
from edutree.schemas import HierarchyNode

MakeNode = Callable[..., HierarchyNode]


@pytest.fixture
def tree(make_node: MakeNode) -> list[HierarchyNode]:
    """Two years; the first has subjects A-D, the second has X-Y with a nested part."""
    subjects = [make_node(name, level=2, order=i, parent_id="y1") for i, name in enumerate("abcd", start=1)]
    part = make_node("p1", level=3, parent_id="x")
    others = [
        make_node("x", level=2, order=1, parent_id="y2", children=[part]),
        make_node("y", level=2, order=2, parent_id="y2"),
    ]
    return [
        make_node("y1", order=1, children=subjects),
        make_node("y2", order=2, children=others),
    ]


def names(nodes: list[HierarchyNode]) -> list[str]:
    return [node.id for node in nodes]


class TestArrayMove:
    """Tests for array_move."""

    @pytest.mark.parametrize(
        ("source", "target", "expected"),
        [
            (0, 2, ["b", "c", "a", "d"]),
            (3, 0, ["d", "a", "b", "c"]),
            (1, 1, ["a", "b", "c", "d"]),
            (0, 3, ["b", "c", "d", "a"]),
        ],
    )
    def test_moves_single_element(self, source: int, target: int, expected: list[str]) -> None:
        assert array_move(list("abcd"), source, target) == expected

    def test_does_not_mutate_input(self) -> None:
        items = list("abc")
        array_move(items, 0, 2)
        assert items == ["a", "b", "c"]


class TestFindSiblingContext:
    """Tests for find_sibling_context."""

    def test_root_item(self, tree: list[HierarchyNode]) -> None:
        context = find_sibling_context(tree, "y2")

        assert context is not None
        assert (context.parent_id, context.path, context.index) == (None, (), 1)

    def test_nested_item(self, tree: list[HierarchyNode]) -> None:
        context = find_sibling_context(tree, "p1")

        assert context is not None
        assert context.parent_id == "x"
        assert context.path == (1, 0)
        assert names(list(context.siblings)) == ["p1"]

    def test_missing_item(self, tree: list[HierarchyNode]) -> None:
        assert find_sibling_context(tree, "nope") is None


class TestReorderTree:
    """Tests for reorder_tree."""

    def test_moves_and_renumbers_siblings(self, tree: list[HierarchyNode]) -> None:
        result = reorder_tree(tree, "a", "c")

        assert result.status is ReorderStatus.APPLIED
        assert names(result.tree[0].children) == ["b", "c", "a", "d"]
        assert [node.order for node in result.tree[0].children] == [1, 2, 3, 4]
        assert names(result.updated_siblings) == ["b", "c", "a", "d"]
        assert [(item.id, item.order) for item in result.to_reorder_items()] == [
            ("b", 1),
            ("c", 2),
            ("a", 3),
            ("d", 4),
        ]

    def test_leaves_unrelated_branches_untouched(self, tree: list[HierarchyNode]) -> None:
        snapshot = [node.model_copy(deep=True) for node in tree]

        result = reorder_tree(tree, "a", "c")

        assert result.tree[1] is tree[1]
        assert result.tree[0] is not tree[0]
        assert tree == snapshot

    def test_root_level_move(self, tree: list[HierarchyNode]) -> None:
        result = reorder_tree(tree, "y2", "y1")

        assert names(result.tree) == ["y2", "y1"]
        assert [node.order for node in result.tree] == [1, 2]
        assert result.tree[0].children is tree[1].children

    def test_same_item_is_a_no_op(self, tree: list[HierarchyNode]) -> None:
        result = reorder_tree(tree, "b", "b")

        assert result.status is ReorderStatus.UNCHANGED
        assert result.updated_siblings == []
        assert [node.order for node in result.tree[0].children] == [1, 2, 3, 4]

    def test_cross_branch_is_rejected(self, tree: list[HierarchyNode]) -> None:
        result = reorder_tree(tree, "a", "x")

        assert result.status is ReorderStatus.CROSS_BRANCH
        assert not result.applied
        assert result.tree == tree
        assert all(new is old for new, old in zip(result.tree, tree))

    def test_cross_level_is_rejected(self, tree: list[HierarchyNode]) -> None:
        assert reorder_tree(tree, "p1", "y").status is ReorderStatus.CROSS_BRANCH

    def test_unknown_item(self, tree: list[HierarchyNode]) -> None:
        result = reorder_tree(tree, "a", "ghost")

        assert result.status is ReorderStatus.NOT_FOUND
        assert result.tree == tree


def test_replace_siblings_copies_only_the_path(tree: list[HierarchyNode], make_node: MakeNode) -> None:
    new_parts = [make_node("p2", level=3, parent_id="x")]

    rebuilt = replace_siblings(tree, (1, 0), new_parts)

    assert rebuilt[0] is tree[0]
    assert rebuilt[1].children[1] is tree[1].children[1]
    assert rebuilt[1].children[0].children == new_parts
    assert names(tree[1].children[0].children) == ["p1"]


class TestMoveAndPersist:
    """Tests for optimistic persistence and reconciliation."""

    @pytest.mark.asyncio
    async def test_persists_updated_siblings(self, tree: list[HierarchyNode]) -> None:
        backend = AsyncMock()
        seen: list[list[HierarchyNode]] = []

        shown = await move_and_persist(backend, tree, "d", "a", on_update=seen.append)

        assert names(shown[0].children) == ["d", "a", "b", "c"]
        (items,), _ = backend.reorder.call_args
        assert [(item.id, item.order) for item in items] == [("d", 1), ("a", 2), ("b", 3), ("c", 4)]
        assert seen == [shown]
        backend.find_all.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejected_move_skips_backend(self, tree: list[HierarchyNode]) -> None:
        backend = AsyncMock()

        shown = await move_and_persist(backend, tree, "a", "x")

        assert shown == tree
        backend.reorder.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_refetches_authoritative_tree(
        self, tree: list[HierarchyNode], make_node: MakeNode
    ) -> None:
        authoritative = [make_node("y1")]
        backend = AsyncMock()
        backend.reorder.side_effect = InvalidStateError("conflict")
        backend.find_all.return_value = authoritative
        seen: list[list[HierarchyNode]] = []

        shown = await move_and_persist(backend, tree, "a", "c", on_update=seen.append)

        assert shown is authoritative
        assert names(seen[0][0].children) == ["b", "c", "a", "d"]
        assert seen[-1] is authoritative

    @pytest.mark.asyncio
    async def test_failure_without_refetch_restores_snapshot(self, tree: list[HierarchyNode]) -> None:
        backend = AsyncMock()
        backend.reorder.side_effect = PersistenceError("down")
        backend.find_all.side_effect = PersistenceError("still down")

        shown = await move_and_persist(backend, tree, "a", "c")

        assert shown == tree
        assert names(shown[0].children) == ["a", "b", "c", "d"]
