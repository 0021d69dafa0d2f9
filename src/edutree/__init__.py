"""edutree: fixed-depth hierarchies for organizing educational content."""

from edutree.engine import HierarchyEngine
from edutree.exceptions import (
    EdutreeError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
)
from edutree.levels import PREVIOUS_PAPERS, QUESTION_BANK, TreeInstanceConfig, get_tree_instance
from edutree.reorder import ReorderResult, ReorderStatus, move_and_persist, reorder_tree
from edutree.repository import HierarchyRepository, InMemoryRepository
from edutree.schemas import CreateNodeInput, HierarchyNode, HierarchyStats, ReorderItem, UpdateNodeInput

__all__ = [
    "PREVIOUS_PAPERS",
    "QUESTION_BANK",
    "CreateNodeInput",
    "EdutreeError",
    "HierarchyEngine",
    "HierarchyNode",
    "HierarchyRepository",
    "HierarchyStats",
    "InMemoryRepository",
    "InvalidArgumentError",
    "InvalidStateError",
    "NotFoundError",
    "PersistenceError",
    "ReorderItem",
    "ReorderResult",
    "ReorderStatus",
    "TreeInstanceConfig",
    "UpdateNodeInput",
    "get_tree_instance",
    "move_and_persist",
    "reorder_tree",
]
