"""Hierarchy engine: CRUD with tree invariant enforcement.

One engine instance serves one tree instance. All state lives in the
repository; the engine caches nothing between calls.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, Mapping, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from edutree.exceptions import InvalidArgumentError, InvalidStateError, NotFoundError
from edutree.levels import ROOT_LEVEL, TreeInstanceConfig
from edutree.reorder import move_and_persist
from edutree.repository import HierarchyRepository, NodeFilter, utcnow
from edutree.schemas import CreateNodeInput, HierarchyNode, HierarchyStats, ReorderItem, UpdateNodeInput
from edutree.utils.logging_config import get_logger

logger = get_logger(__name__)

_InputT = TypeVar("_InputT", bound=BaseModel)


def _coerce_input(model: type[_InputT], data: _InputT | Mapping[str, Any]) -> _InputT:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidArgumentError(str(exc)) from exc


class HierarchyEngine:
    """Invariant-enforcing operations over one hierarchy instance.

    Args:
        config: Level/type policy of the tree instance.
        repository: Backing store for this instance only.
    """

    def __init__(self, config: TreeInstanceConfig, repository: HierarchyRepository) -> None:
        self.config = config
        self.repository = repository

    def __repr__(self) -> str:
        return f"HierarchyEngine({self.config.key!r})"

    def _not_found(self, node_id: str) -> NotFoundError:
        return NotFoundError(f"{self.config.label} hierarchy item with ID {node_id} not found")

    async def _require(self, node_id: str) -> HierarchyNode:
        node = await self.repository.get(node_id)
        if node is None:
            raise self._not_found(node_id)
        return node

    async def _with_relations(self, node_id: str) -> HierarchyNode:
        node = await self.repository.get_tree(node_id, depth=1, with_parent=True)
        if node is None:
            raise self._not_found(node_id)
        return node

    # Reads

    async def find_all(self) -> list[HierarchyNode]:
        """Return every root with its full subtree, ordered at every level."""
        return await self.repository.find(NodeFilter.at_level(ROOT_LEVEL), depth=self.config.max_level)

    async def find_one(self, node_id: str) -> HierarchyNode:
        """Return one node with its full subtree and parent reference.

        Raises:
            NotFoundError: If the node does not exist.
        """
        node = await self.repository.get_tree(node_id, depth=self.config.max_level, with_parent=True)
        if node is None:
            raise self._not_found(node_id)
        return node

    async def find_by_level(self, level: int) -> list[HierarchyNode]:
        """Return all nodes at ``level`` with direct children and parent."""
        self.config.validate_level(level)
        return await self.repository.find(NodeFilter.at_level(level), depth=1, with_parent=True)

    async def find_by_parent(self, parent_id: str) -> list[HierarchyNode]:
        """Return the direct children of ``parent_id``."""
        return await self.repository.find(NodeFilter.children_of(parent_id), depth=1, with_parent=True)

    async def find_published(self) -> list[HierarchyNode]:
        """Return the public navigation view.

        Only published nodes at the instance's navigation levels are listed,
        each with its published direct children.
        """
        return await self.repository.find(
            NodeFilter.published(self.config.published_levels),
            depth=1,
            children_filter=NodeFilter.published(),
            with_parent=True,
        )

    async def get_hierarchy_stats(self) -> list[HierarchyStats]:
        """Node count and question total per level, labeled with the level type."""
        return [
            HierarchyStats(
                level=aggregate.level,
                type=self.config.type_for_level(aggregate.level),
                count=aggregate.count,
                total_questions=aggregate.question_total,
            )
            for aggregate in await self.repository.group_by_level()
        ]

    # Writes

    async def create(self, data: CreateNodeInput | Mapping[str, Any]) -> HierarchyNode:
        """Create a node with derived ``type`` and ``order``.

        ``order`` is one past the highest order in the sibling group; caller
        supplied ``type``, ``order`` and ``isPublished`` are ignored.

        Raises:
            InvalidArgumentError: If the level is out of range or does not
                continue the parent's level.
            NotFoundError: If ``parent_id`` does not exist.
            InvalidStateError: If a question count is given below the leaf level.
        """
        payload = _coerce_input(CreateNodeInput, data)
        level = self.config.validate_level(payload.level)

        if payload.parent_id is not None:
            parent = await self.repository.get(payload.parent_id)
            if parent is None:
                raise NotFoundError(f"Parent with ID {payload.parent_id} not found")
            if parent.level != level - 1:
                raise InvalidArgumentError(
                    f"Invalid level hierarchy. Parent level is {parent.level}, "
                    f"child level should be {parent.level + 1}"
                )
        elif level != ROOT_LEVEL:
            raise InvalidArgumentError(
                f"Only level {ROOT_LEVEL} items ({self.config.root_type}s) can have no parent"
            )

        if payload.question_count and not self.config.is_leaf(level):
            raise InvalidStateError(
                f"Only {self.config.leaf_type.lower()}s (level {self.config.max_level}) can have question counts"
            )

        max_order = await self.repository.max_order(level, payload.parent_id)
        now = utcnow()
        node = HierarchyNode(
            id=uuid4().hex,
            name=payload.name,
            level=level,
            type=self.config.type_for_level(level),
            color=payload.color,
            order=(max_order or 0) + 1,
            parent_id=payload.parent_id,
            question_count=payload.question_count,
            is_published=False,
            created_at=now,
            updated_at=now,
        )
        await self.repository.create(node)
        logger.info(
            "Created hierarchy item",
            extra={"tree": self.config.key, "node_id": node.id, "level": level, "order": node.order},
        )
        return await self._with_relations(node.id)

    async def update(self, node_id: str, data: UpdateNodeInput | Mapping[str, Any]) -> HierarchyNode:
        """Update ``name``, ``color``, ``order`` or ``question_count``.

        Raises:
            NotFoundError: If the node does not exist.
            InvalidArgumentError: If the input tries to change ``level`` or
                ``parentId`` or is otherwise malformed.
            InvalidStateError: If the new order collides with a sibling or a
                question count is set below the leaf level.
        """
        payload = _coerce_input(UpdateNodeInput, data)
        node = await self._require(node_id)
        changes = payload.changes()

        if "question_count" in changes and not self.config.is_leaf(node.level):
            raise InvalidStateError(
                f"Only {self.config.leaf_type.lower()}s (level {self.config.max_level}) can have question counts"
            )
        if "order" in changes and changes["order"] != node.order:
            siblings = await self.repository.find(NodeFilter(levels=(node.level,), parent_id=node.parent_id, by_parent=True))
            if any(sibling.order == changes["order"] and sibling.id != node.id for sibling in siblings):
                raise InvalidStateError(f"Order {changes['order']} is already used by a sibling")

        if changes:
            await self.repository.update(node_id, changes)
        return await self._with_relations(node_id)

    async def delete(self, node_id: str) -> bool:
        """Permanently remove a node that has no children.

        Raises:
            NotFoundError: If the node does not exist.
            InvalidStateError: If the node has children.
        """
        await self._require(node_id)
        if await self.repository.count_children(node_id) > 0:
            raise InvalidStateError("Cannot delete item with children")
        await self.repository.delete(node_id)
        logger.info("Deleted hierarchy item", extra={"tree": self.config.key, "node_id": node_id})
        return True

    async def reorder(self, items: Iterable[ReorderItem | Mapping[str, Any]]) -> list[HierarchyNode]:
        """Apply a batch of order assignments atomically.

        The batch does not have to be a contiguous permutation, but every
        sibling group it touches must end with unique orders.

        Raises:
            InvalidArgumentError: If an item is malformed or an id repeats.
            NotFoundError: If any id does not exist. Nothing is applied.
            InvalidStateError: If the result would duplicate a sibling order.
                Nothing is applied.
        """
        batch = [_coerce_input(ReorderItem, item) for item in items]
        repeated = [node_id for node_id, seen in Counter(item.id for item in batch).items() if seen > 1]
        if repeated:
            raise InvalidArgumentError(f"Duplicate ids in reorder batch: {', '.join(sorted(repeated))}")
        if not batch:
            return []

        async with self.repository.transaction() as tx:
            groups: set[tuple[int, str | None]] = set()
            for item in batch:
                node = await tx.get(item.id)
                if node is None:
                    raise self._not_found(item.id)
                await tx.update(item.id, {"order": item.order})
                groups.add((node.level, node.parent_id))

            for level, parent_id in groups:
                siblings = await tx.find(NodeFilter(levels=(level,), parent_id=parent_id, by_parent=True))
                orders = Counter(sibling.order for sibling in siblings)
                clashes = sorted(order for order, seen in orders.items() if seen > 1)
                if clashes:
                    raise InvalidStateError(
                        f"Reorder would give siblings under {parent_id or 'root'} duplicate orders: {clashes}"
                    )

        logger.info("Reordered hierarchy items", extra={"tree": self.config.key, "count": len(batch)})
        return [await self._with_relations(item.id) for item in batch]

    async def update_question_count(self, node_id: str, count: int) -> HierarchyNode:
        """Set the question count of a leaf node.

        Raises:
            InvalidArgumentError: If ``count`` is not a non-negative integer.
            NotFoundError: If the node does not exist.
            InvalidStateError: If the node is not at the leaf level.
        """
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise InvalidArgumentError(f"Question count must be a non-negative integer, got {count!r}")
        node = await self._require(node_id)
        if not self.config.is_leaf(node.level):
            raise InvalidStateError(
                f"Only {self.config.leaf_type.lower()}s (level {self.config.max_level}) can have question counts"
            )
        await self.repository.update(node_id, {"question_count": count})
        return await self._with_relations(node_id)

    async def publish(self, node_id: str) -> HierarchyNode:
        """Mark a node published. Requires a published parent for non-roots.

        Raises:
            NotFoundError: If the node does not exist.
            InvalidStateError: If the parent is missing or not published.
        """
        node = await self._require(node_id)
        if node.level > ROOT_LEVEL and node.parent_id is not None:
            parent = await self.repository.get(node.parent_id)
            if parent is None:
                raise InvalidStateError(
                    f"Parent {node.parent_id} of {self.config.label} hierarchy item {node_id} no longer exists"
                )
            if not parent.is_published:
                raise InvalidStateError("Please publish the parent first to proceed")
        await self.repository.update(node_id, {"is_published": True})
        logger.info("Published hierarchy item", extra={"tree": self.config.key, "node_id": node_id})
        return await self._with_relations(node_id)

    async def unpublish(self, node_id: str) -> HierarchyNode:
        """Mark a node and all of its descendants unpublished.

        Raises:
            NotFoundError: If the node does not exist.
        """
        await self._require(node_id)
        async with self.repository.transaction() as tx:
            descendants = await self._descendant_ids(tx, node_id)
            await tx.update_many([node_id, *descendants], {"is_published": False})
        logger.info(
            "Unpublished hierarchy item",
            extra={"tree": self.config.key, "node_id": node_id, "descendants": len(descendants)},
        )
        return await self._with_relations(node_id)

    async def move(self, tree: list[HierarchyNode], active_id: str, over_id: str) -> list[HierarchyNode]:
        """Reorder ``active_id`` onto ``over_id`` within ``tree`` and persist it.

        Returns the tree to display: the optimistic result on success, the
        authoritative tree if persisting failed.
        """
        return await move_and_persist(self, tree, active_id, over_id)

    async def _descendant_ids(self, repository: HierarchyRepository, node_id: str) -> list[str]:
        tree = await repository.get_tree(node_id, depth=self.config.max_level, with_parent=False)
        if tree is None:
            return []
        return [node.id for node in tree.walk()][1:]
