"""Shared schemas for edutree."""

from edutree.schemas.inputs import CreateNodeInput, ReorderItem, UpdateNodeInput
from edutree.schemas.node import HierarchyNode
from edutree.schemas.stats import HierarchyStats

__all__ = ["CreateNodeInput", "HierarchyNode", "HierarchyStats", "ReorderItem", "UpdateNodeInput"]
