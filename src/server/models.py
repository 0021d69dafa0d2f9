"""Pydantic models for request and response bodies not covered by edutree.schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class QuestionCountRequest(BaseModel):
    """Request body for the question-count endpoint.

    Attributes
    ----------
    count : int
        New question count for a leaf node.

    """

    count: int = Field(..., ge=0, description="Number of questions in the chapter")


class DeleteResponse(BaseModel):
    """Response body for a successful delete.

    Attributes
    ----------
    deleted : bool
        Always ``True``; failures are reported as errors.

    """

    deleted: bool = Field(..., description="Whether the item was deleted")


class ErrorResponse(BaseModel):
    """Error body returned for every engine failure.

    Attributes
    ----------
    detail : str
        Human-readable description of the failed invariant or missing item.

    """

    detail: str = Field(..., description="Error message")


class HealthResponse(BaseModel):
    """Liveness probe body."""

    status: str = "ok"
    trees: list[str] = Field(default_factory=list)
