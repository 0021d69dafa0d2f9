"""Per-level statistics model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class HierarchyStats(BaseModel):
    """Node count and question total for one level."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    level: int
    type: str
    count: int
    total_questions: int
