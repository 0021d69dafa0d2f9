"""Hierarchy node model."""

from __future__ import annotations

from datetime import datetime
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class HierarchyNode(BaseModel):
    """One entry in a fixed-depth hierarchy.

    ``children`` is materialized by the repository on read and is never
    stored. ``parent`` is a one-level reference without its own relations.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    level: int = Field(..., ge=1)
    type: str
    color: str | None = None
    order: int = Field(default=0, ge=0)
    parent_id: str | None = None
    question_count: int = Field(default=0, ge=0)
    is_published: bool = False
    children: list[HierarchyNode] = Field(default_factory=list)
    parent: HierarchyNode | None = None
    created_at: datetime
    updated_at: datetime

    def detached(self) -> HierarchyNode:
        """Copy without ``children`` or ``parent``, as stored."""
        return self.model_copy(update={"children": [], "parent": None})

    def walk(self) -> Iterator[HierarchyNode]:
        """Yield this node and its materialized descendants depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()
