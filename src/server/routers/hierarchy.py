"""Hierarchy endpoints, mounted once and parameterized by tree instance."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from edutree.engine import HierarchyEngine
from edutree.exceptions import InvalidArgumentError
from edutree.levels import get_tree_instance
from edutree.schemas import CreateNodeInput, HierarchyNode, HierarchyStats, ReorderItem, UpdateNodeInput
from server.models import DeleteResponse, ErrorResponse, QuestionCountRequest

COMMON_RESPONSES: dict[int | str, dict] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Malformed input"},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Item or tree not found"},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse, "description": "Tree invariant violated"},
}


def get_engine(request: Request, tree_key: str) -> HierarchyEngine:
    """Resolve the engine for the ``tree_key`` path parameter."""
    try:
        config = get_tree_instance(tree_key)
    except InvalidArgumentError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown hierarchy {tree_key!r}") from exc
    engines: dict[str, HierarchyEngine] = request.app.state.engines
    engine = engines.get(config.key)
    if engine is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Hierarchy {tree_key!r} is not loaded")
    return engine


EngineDep = Annotated[HierarchyEngine, Depends(get_engine)]

router = APIRouter(prefix="/api/{tree_key}", tags=["hierarchy"], responses=COMMON_RESPONSES)


@router.get("/items", response_model=list[HierarchyNode])
async def list_items(engine: EngineDep) -> list[HierarchyNode]:
    """Get all root items with their nested children."""
    return await engine.find_all()


@router.get("/items/published", response_model=list[HierarchyNode])
async def list_published_items(engine: EngineDep) -> list[HierarchyNode]:
    """Get the published navigation view."""
    return await engine.find_published()


@router.get("/items/by-level/{level}", response_model=list[HierarchyNode])
async def list_items_by_level(engine: EngineDep, level: int) -> list[HierarchyNode]:
    """Get all items at one level."""
    return await engine.find_by_level(level)


@router.get("/items/by-parent/{parent_id}", response_model=list[HierarchyNode])
async def list_items_by_parent(engine: EngineDep, parent_id: str) -> list[HierarchyNode]:
    """Get the direct children of one item."""
    return await engine.find_by_parent(parent_id)


@router.get("/stats", response_model=list[HierarchyStats])
async def hierarchy_stats(engine: EngineDep) -> list[HierarchyStats]:
    """Get node counts and question totals per level."""
    return await engine.get_hierarchy_stats()


@router.post("/items/reorder", response_model=list[HierarchyNode])
async def reorder_items(engine: EngineDep, items: list[ReorderItem]) -> list[HierarchyNode]:
    """Apply a batch of sibling orders atomically."""
    return await engine.reorder(items)


@router.get("/items/{node_id}", response_model=HierarchyNode)
async def get_item(engine: EngineDep, node_id: str) -> HierarchyNode:
    """Get one item with its nested children."""
    return await engine.find_one(node_id)


@router.post("/items", response_model=HierarchyNode, status_code=status.HTTP_201_CREATED)
async def create_item(engine: EngineDep, payload: CreateNodeInput) -> HierarchyNode:
    """Create an item. Type and order are derived."""
    return await engine.create(payload)


@router.patch("/items/{node_id}", response_model=HierarchyNode)
async def update_item(engine: EngineDep, node_id: str, payload: UpdateNodeInput) -> HierarchyNode:
    """Update name, color, order or question count."""
    return await engine.update(node_id, payload)


@router.delete("/items/{node_id}", response_model=DeleteResponse)
async def delete_item(engine: EngineDep, node_id: str) -> DeleteResponse:
    """Delete an item that has no children."""
    return DeleteResponse(deleted=await engine.delete(node_id))


@router.put("/items/{node_id}/question-count", response_model=HierarchyNode)
async def update_question_count(engine: EngineDep, node_id: str, payload: QuestionCountRequest) -> HierarchyNode:
    """Set the question count of a chapter."""
    return await engine.update_question_count(node_id, payload.count)


@router.post("/items/{node_id}/publish", response_model=HierarchyNode)
async def publish_item(engine: EngineDep, node_id: str) -> HierarchyNode:
    """Publish an item. The parent must already be published."""
    return await engine.publish(node_id)


@router.post("/items/{node_id}/unpublish", response_model=HierarchyNode)
async def unpublish_item(engine: EngineDep, node_id: str) -> HierarchyNode:
    """Unpublish an item and everything below it."""
    return await engine.unpublish(node_id)
