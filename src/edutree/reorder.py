"""Sibling reordering over a materialized hierarchy snapshot.

The functions here never mutate their input. A reorder rebuilds only the
nodes on the path from the root to the affected parent; every other branch
of the returned tree is the same object as in the input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Protocol, Sequence, TypeVar

from edutree.exceptions import EdutreeError
from edutree.schemas import HierarchyNode, ReorderItem
from edutree.utils.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Tree = list[HierarchyNode]


class ReorderStatus(str, Enum):
    """Outcome of :func:`reorder_tree`."""

    APPLIED = "applied"
    UNCHANGED = "unchanged"
    CROSS_BRANCH = "cross_branch"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class SiblingContext:
    """Where a node sits in a nested snapshot.

    Attributes:
        parent_id: Id of the parent node, or ``None`` for the root group.
        path: Indices leading from the root list to the parent node.
        siblings: The sibling list containing the node, in display order.
        index: Position of the node within ``siblings``.
    """

    parent_id: str | None
    path: tuple[int, ...]
    siblings: Sequence[HierarchyNode]
    index: int


@dataclass(frozen=True)
class ReorderResult:
    """New snapshot plus the sibling group that needs persisting."""

    status: ReorderStatus
    tree: Tree
    updated_siblings: list[HierarchyNode] = field(default_factory=list)

    @property
    def applied(self) -> bool:
        return self.status is ReorderStatus.APPLIED

    def to_reorder_items(self) -> list[ReorderItem]:
        return [ReorderItem(id=node.id, order=node.order) for node in self.updated_siblings]


def find_sibling_context(tree: Sequence[HierarchyNode], node_id: str) -> SiblingContext | None:
    """Locate ``node_id`` by depth-first search.

    Returns:
        The node's sibling context, or ``None`` if it is not in ``tree``.
    """
    stack: list[tuple[Sequence[HierarchyNode], str | None, tuple[int, ...]]] = [(tree, None, ())]
    while stack:
        siblings, parent_id, path = stack.pop()
        for index, node in enumerate(siblings):
            if node.id == node_id:
                return SiblingContext(parent_id=parent_id, path=path, siblings=siblings, index=index)
        # Reversed so the leftmost branch is searched first.
        for index in range(len(siblings) - 1, -1, -1):
            node = siblings[index]
            if node.children:
                stack.append((node.children, node.id, (*path, index)))
    return None


def array_move(items: Sequence[T], from_index: int, to_index: int) -> list[T]:
    """Move one element, keeping the relative order of the others."""
    moved = list(items)
    moved.insert(to_index, moved.pop(from_index))
    return moved


def renumber(siblings: Sequence[HierarchyNode]) -> list[HierarchyNode]:
    """Assign orders 1..N by position. Nodes already in place are reused."""
    return [
        node if node.order == position else node.model_copy(update={"order": position})
        for position, node in enumerate(siblings, start=1)
    ]


def replace_siblings(tree: Sequence[HierarchyNode], path: Sequence[int], siblings: list[HierarchyNode]) -> Tree:
    """Return a copy of ``tree`` with the group at ``path`` replaced.

    Only the lists and nodes along ``path`` are copied.
    """
    if not path:
        return siblings
    head, rest = path[0], path[1:]
    parent = tree[head]
    rebuilt = parent.model_copy(update={"children": replace_siblings(parent.children, rest, siblings)})
    return [*tree[:head], rebuilt, *tree[head + 1 :]]


def reorder_tree(tree: Sequence[HierarchyNode], active_id: str, over_id: str) -> ReorderResult:
    """Move ``active_id`` to the position of ``over_id`` within their sibling group.

    Both nodes must share a parent. Moves across branches or levels are
    rejected and the input tree is returned as is.
    """
    original = list(tree)
    if active_id == over_id:
        return ReorderResult(ReorderStatus.UNCHANGED, original)

    active = find_sibling_context(tree, active_id)
    over = find_sibling_context(tree, over_id)
    if active is None or over is None:
        logger.warning(
            "Reorder target not found in snapshot",
            extra={"active_id": active_id, "over_id": over_id},
        )
        return ReorderResult(ReorderStatus.NOT_FOUND, original)

    if active.parent_id != over.parent_id:
        logger.warning(
            "Cannot reorder items from different hierarchy branches",
            extra={"active_parent": active.parent_id, "over_parent": over.parent_id},
        )
        return ReorderResult(ReorderStatus.CROSS_BRANCH, original)

    updated = renumber(array_move(active.siblings, active.index, over.index))
    return ReorderResult(ReorderStatus.APPLIED, replace_siblings(tree, active.path, updated), updated)


class ReorderBackend(Protocol):
    """Anything that can persist a reorder batch and re-read the full tree."""

    async def reorder(self, items: list[ReorderItem]) -> list[HierarchyNode]: ...

    async def find_all(self) -> list[HierarchyNode]: ...


async def move_and_persist(
    backend: ReorderBackend,
    tree: Sequence[HierarchyNode],
    active_id: str,
    over_id: str,
    on_update: Callable[[Tree], None] | None = None,
) -> Tree:
    """Apply a reorder optimistically, then persist the affected sibling group.

    ``on_update`` receives the optimistic tree before persisting and, if
    persisting fails, the reconciled tree afterwards. Reconciliation re-reads
    the authoritative tree from ``backend``; if that also fails, the
    pre-move snapshot is restored.

    Returns:
        The tree that should be displayed after the call.
    """
    result = reorder_tree(tree, active_id, over_id)
    if not result.applied:
        return result.tree

    if on_update is not None:
        on_update(result.tree)

    try:
        await backend.reorder(result.to_reorder_items())
    except EdutreeError as exc:
        logger.warning("Failed to persist reorder, reconciling", extra={"active_id": active_id, "error": str(exc)})
        reconciled = await _reconcile(backend, tree)
        if on_update is not None:
            on_update(reconciled)
        return reconciled

    return result.tree


async def _reconcile(backend: ReorderBackend, previous: Sequence[HierarchyNode]) -> Tree:
    try:
        return await backend.find_all()
    except EdutreeError as exc:
        logger.error("Failed to refetch hierarchy, restoring previous snapshot", extra={"error": str(exc)})
        return list(previous)
