"""Repository adapter for hierarchy persistence.

The engine talks to storage only through :class:`HierarchyRepository`. The
in-memory implementation here backs the tests and the default server; a
database-backed adapter only needs to provide the same primitives.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Iterable, Mapping

from edutree.exceptions import InvalidStateError, NotFoundError
from edutree.schemas import HierarchyNode
from edutree.utils.logging_config import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NodeFilter:
    """Selection criteria for :meth:`HierarchyRepository.find`.

    ``parent_id`` is only applied when ``by_parent`` is set, so that
    "roots only" (``parent_id=None``) can be told apart from "any parent".
    """

    levels: tuple[int, ...] | None = None
    parent_id: str | None = None
    by_parent: bool = False
    is_published: bool | None = None

    @classmethod
    def at_level(cls, level: int) -> NodeFilter:
        return cls(levels=(level,))

    @classmethod
    def children_of(cls, parent_id: str | None) -> NodeFilter:
        return cls(parent_id=parent_id, by_parent=True)

    @classmethod
    def published(cls, levels: tuple[int, ...] | None = None) -> NodeFilter:
        return cls(levels=levels, is_published=True)

    def matches(self, node: HierarchyNode) -> bool:
        if self.levels is not None and node.level not in self.levels:
            return False
        if self.by_parent and node.parent_id != self.parent_id:
            return False
        if self.is_published is not None and node.is_published != self.is_published:
            return False
        return True


@dataclass(frozen=True)
class LevelAggregate:
    """Grouped count and question total for one level."""

    level: int
    count: int
    question_total: int


class HierarchyRepository(ABC):
    """Persistence primitives required by the hierarchy engine."""

    @abstractmethod
    async def get(self, node_id: str) -> HierarchyNode | None:
        """Point lookup without relations."""

    @abstractmethod
    async def get_tree(self, node_id: str, *, depth: int, with_parent: bool = True) -> HierarchyNode | None:
        """Point lookup with ``depth`` levels of children materialized."""

    @abstractmethod
    async def find(
        self,
        node_filter: NodeFilter,
        *,
        depth: int = 0,
        children_filter: NodeFilter | None = None,
        with_parent: bool = False,
    ) -> list[HierarchyNode]:
        """List matching nodes sorted by ``order``.

        Args:
            node_filter: Criteria for the top-level results.
            depth: Number of child levels to materialize under each result.
            children_filter: Optional criteria applied to every materialized
                child level.
            with_parent: Attach each result's parent reference.
        """

    @abstractmethod
    async def max_order(self, level: int, parent_id: str | None) -> int | None:
        """Highest ``order`` in a sibling group, or ``None`` if it is empty."""

    @abstractmethod
    async def count_children(self, node_id: str) -> int:
        """Number of direct children."""

    @abstractmethod
    async def group_by_level(self) -> list[LevelAggregate]:
        """Count and question total per level, ascending by level."""

    @abstractmethod
    async def create(self, node: HierarchyNode) -> HierarchyNode:
        """Insert a new node."""

    @abstractmethod
    async def update(self, node_id: str, changes: Mapping[str, Any]) -> HierarchyNode:
        """Apply ``changes`` to one node and refresh ``updated_at``.

        Raises:
            NotFoundError: If the node does not exist.
        """

    @abstractmethod
    async def update_many(self, node_ids: Iterable[str], changes: Mapping[str, Any]) -> int:
        """Apply ``changes`` to every existing node in ``node_ids``."""

    @abstractmethod
    async def delete(self, node_id: str) -> None:
        """Remove one node.

        Raises:
            NotFoundError: If the node does not exist.
        """

    @abstractmethod
    def transaction(self) -> Any:
        """Async context manager yielding a unit of work.

        Writes made through the yielded repository become visible only when
        the block exits cleanly; an exception discards all of them.
        """


class InMemoryRepository(HierarchyRepository):
    """Dictionary-backed repository.

    Stored nodes are replaced on every write and never mutated, so nodes
    returned to callers stay stable.
    """

    def __init__(self, nodes: Iterable[HierarchyNode] = ()) -> None:
        self._nodes: dict[str, HierarchyNode] = {node.id: node.detached() for node in nodes}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._nodes)

    # Storage hooks overridden by staged and file-backed subclasses.

    def _store(self, node: HierarchyNode) -> None:
        self._nodes[node.id] = node

    def _discard(self, node_id: str) -> None:
        self._nodes.pop(node_id, None)

    async def _after_write(self) -> None:
        return None

    async def _flush(self, snapshot: dict[str, HierarchyNode]) -> None:
        try:
            await self._after_write()
        except BaseException:
            self._nodes = snapshot
            raise

    def _children_index(self) -> dict[str | None, list[HierarchyNode]]:
        index: dict[str | None, list[HierarchyNode]] = defaultdict(list)
        for node in self._nodes.values():
            index[node.parent_id].append(node)
        for siblings in index.values():
            siblings.sort(key=_sort_key)
        return index

    def _materialize(
        self,
        node: HierarchyNode,
        depth: int,
        index: dict[str | None, list[HierarchyNode]],
        children_filter: NodeFilter | None,
    ) -> HierarchyNode:
        if depth <= 0:
            return node
        children = [
            self._materialize(child, depth - 1, index, children_filter)
            for child in index.get(node.id, [])
            if children_filter is None or children_filter.matches(child)
        ]
        return node.model_copy(update={"children": children})

    def _with_parent(self, node: HierarchyNode) -> HierarchyNode:
        if node.parent_id is None:
            return node
        return node.model_copy(update={"parent": self._nodes.get(node.parent_id)})

    async def get(self, node_id: str) -> HierarchyNode | None:
        return self._nodes.get(node_id)

    async def get_tree(self, node_id: str, *, depth: int, with_parent: bool = True) -> HierarchyNode | None:
        node = self._nodes.get(node_id)
        if node is None:
            return None
        tree = self._materialize(node, depth, self._children_index(), None)
        return self._with_parent(tree) if with_parent else tree

    async def find(
        self,
        node_filter: NodeFilter,
        *,
        depth: int = 0,
        children_filter: NodeFilter | None = None,
        with_parent: bool = False,
    ) -> list[HierarchyNode]:
        matches = sorted((node for node in self._nodes.values() if node_filter.matches(node)), key=_sort_key)
        index = self._children_index() if depth > 0 else {}
        results = []
        for node in matches:
            tree = self._materialize(node, depth, index, children_filter)
            results.append(self._with_parent(tree) if with_parent else tree)
        return results

    async def max_order(self, level: int, parent_id: str | None) -> int | None:
        orders = [node.order for node in self._nodes.values() if node.level == level and node.parent_id == parent_id]
        return max(orders, default=None)

    async def count_children(self, node_id: str) -> int:
        return sum(1 for node in self._nodes.values() if node.parent_id == node_id)

    async def group_by_level(self) -> list[LevelAggregate]:
        counts: dict[int, int] = defaultdict(int)
        totals: dict[int, int] = defaultdict(int)
        for node in self._nodes.values():
            counts[node.level] += 1
            totals[node.level] += node.question_count
        return [LevelAggregate(level=level, count=counts[level], question_total=totals[level]) for level in sorted(counts)]

    async def create(self, node: HierarchyNode) -> HierarchyNode:
        if node.id in self._nodes:
            raise InvalidStateError(f"Node with ID {node.id} already exists")
        stored = node.detached()
        snapshot = dict(self._nodes)
        self._store(stored)
        await self._flush(snapshot)
        return stored

    async def update(self, node_id: str, changes: Mapping[str, Any]) -> HierarchyNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NotFoundError(f"Node with ID {node_id} not found")
        updated = node.model_copy(update={**changes, "updated_at": utcnow()})
        snapshot = dict(self._nodes)
        self._store(updated)
        await self._flush(snapshot)
        return updated

    async def update_many(self, node_ids: Iterable[str], changes: Mapping[str, Any]) -> int:
        now = utcnow()
        updated = 0
        snapshot = dict(self._nodes)
        for node_id in node_ids:
            node = self._nodes.get(node_id)
            if node is None:
                continue
            self._store(node.model_copy(update={**changes, "updated_at": now}))
            updated += 1
        if updated:
            await self._flush(snapshot)
        return updated

    async def delete(self, node_id: str) -> None:
        if node_id not in self._nodes:
            raise NotFoundError(f"Node with ID {node_id} not found")
        snapshot = dict(self._nodes)
        self._discard(node_id)
        await self._flush(snapshot)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemoryRepository]:
        async with self._lock:
            work = _StagedRepository(self)
            try:
                yield work
            except BaseException:
                logger.debug("Transaction rolled back", extra={"staged_writes": len(work.touched)})
                raise
            snapshot = dict(self._nodes)
            for node_id in work.touched:
                staged = work.staged(node_id)
                if staged is None:
                    self._discard(node_id)
                else:
                    self._store(staged)
            if work.touched:
                await self._flush(snapshot)


class _StagedRepository(InMemoryRepository):
    """Working copy used inside a transaction."""

    def __init__(self, base: InMemoryRepository) -> None:
        super().__init__()
        self._nodes = dict(base._nodes)
        self.touched: set[str] = set()

    def _store(self, node: HierarchyNode) -> None:
        super()._store(node)
        self.touched.add(node.id)

    def _discard(self, node_id: str) -> None:
        super()._discard(node_id)
        self.touched.add(node_id)

    def staged(self, node_id: str) -> HierarchyNode | None:
        return self._nodes.get(node_id)


def _sort_key(node: HierarchyNode) -> tuple[int, datetime, str]:
    return (node.order, node.created_at, node.id)
