"""Input models accepted by the hierarchy engine."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from edutree.levels import QUESTION_BANK

# Both instances share the same depth.
MAX_TREE_DEPTH = QUESTION_BANK.max_level

_IMMUTABLE_FIELDS = ("level", "parentId", "parent_id")
_NON_NULLABLE_FIELDS = ("name", "order", "question_count")


class _InputModel(BaseModel):
    # Unknown keys such as ``type``, ``order`` on create or ``isPublished``
    # are dropped rather than applied.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CreateNodeInput(_InputModel):
    """Fields a caller may supply when creating a node."""

    name: str
    level: int = Field(..., ge=1, le=MAX_TREE_DEPTH)
    color: str | None = None
    parent_id: str | None = None
    question_count: int = Field(default=0, ge=0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate that ``name`` is not blank."""
        if not v.strip():
            err = "name cannot be empty"
            raise ValueError(err)
        return v.strip()

    @field_validator("parent_id")
    @classmethod
    def normalize_parent_id(cls, v: str | None) -> str | None:
        """Treat an empty parent id as absent."""
        if v is None or not v.strip():
            return None
        return v.strip()


class UpdateNodeInput(_InputModel):
    """Partial update. Only fields explicitly provided are applied."""

    name: str | None = None
    color: str | None = None
    order: int | None = Field(default=None, ge=0)
    question_count: int | None = Field(default=None, ge=0)

    @model_validator(mode="before")
    @classmethod
    def reject_structural_fields(cls, data: Any) -> Any:
        """Reparenting and re-leveling are not supported through updates."""
        if isinstance(data, dict):
            present = [key for key in _IMMUTABLE_FIELDS if key in data]
            if present:
                err = f"{', '.join(present)} cannot be changed after creation"
                raise ValueError(err)
        return data

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            err = "name cannot be empty"
            raise ValueError(err)
        return v.strip() if v is not None else v

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> UpdateNodeInput:
        for field_name in _NON_NULLABLE_FIELDS:
            if field_name in self.model_fields_set and getattr(self, field_name) is None:
                err = f"{field_name} cannot be null"
                raise ValueError(err)
        return self

    def changes(self) -> dict[str, Any]:
        """Return the explicitly provided fields keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class ReorderItem(_InputModel):
    """Target order for one node in a reorder batch."""

    id: str = Field(..., min_length=1)
    order: int = Field(..., ge=0)
