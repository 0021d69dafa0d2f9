"""Async HTTP client for one hierarchy instance of the edutree API."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

import httpx

from edutree.config import EDUTREE_API_URL, EDUTREE_HTTP_TIMEOUT_S
from edutree.http_utils import request_with_retries
from edutree.reorder import Tree, move_and_persist
from edutree.schemas import HierarchyNode, HierarchyStats, ReorderItem

_USER_AGENT = "edutree-client/0.1"


class HierarchyClient:
    """Client bound to one tree instance, e.g. ``question-bank``.

    Use as an async context manager, or pass an existing ``httpx.AsyncClient``
    whose lifetime the caller manages.
    """

    def __init__(
        self,
        tree_key: str,
        *,
        base_url: str = EDUTREE_API_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.tree_key = tree_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(EDUTREE_HTTP_TIMEOUT_S),
            headers={"User-Agent": _USER_AGENT},
        )

    async def __aenter__(self) -> HierarchyClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, suffix: str = "") -> str:
        return f"/api/{self.tree_key}/items{suffix}"

    async def _nodes(self, method: str, url: str, json: Any = None) -> list[HierarchyNode]:
        payload = await request_with_retries(self._client, method, url, json=json)
        return [HierarchyNode.model_validate(item) for item in payload]

    async def _node(self, method: str, url: str, json: Any = None) -> HierarchyNode:
        return HierarchyNode.model_validate(await request_with_retries(self._client, method, url, json=json))

    async def find_all(self) -> list[HierarchyNode]:
        return await self._nodes("GET", self._url())

    async def find_one(self, node_id: str) -> HierarchyNode:
        return await self._node("GET", self._url(f"/{node_id}"))

    async def find_by_level(self, level: int) -> list[HierarchyNode]:
        return await self._nodes("GET", self._url(f"/by-level/{level}"))

    async def find_by_parent(self, parent_id: str) -> list[HierarchyNode]:
        return await self._nodes("GET", self._url(f"/by-parent/{parent_id}"))

    async def find_published(self) -> list[HierarchyNode]:
        return await self._nodes("GET", self._url("/published"))

    async def get_hierarchy_stats(self) -> list[HierarchyStats]:
        payload = await request_with_retries(self._client, "GET", f"/api/{self.tree_key}/stats")
        return [HierarchyStats.model_validate(item) for item in payload]

    async def create(self, data: Mapping[str, Any]) -> HierarchyNode:
        return await self._node("POST", self._url(), json=dict(data))

    async def update(self, node_id: str, data: Mapping[str, Any]) -> HierarchyNode:
        return await self._node("PATCH", self._url(f"/{node_id}"), json=dict(data))

    async def delete(self, node_id: str) -> bool:
        payload = await request_with_retries(self._client, "DELETE", self._url(f"/{node_id}"))
        return bool(payload.get("deleted"))

    async def reorder(self, items: Sequence[ReorderItem]) -> list[HierarchyNode]:
        body = [item.model_dump(by_alias=True) for item in items]
        return await self._nodes("POST", self._url("/reorder"), json=body)

    async def update_question_count(self, node_id: str, count: int) -> HierarchyNode:
        return await self._node("PUT", self._url(f"/{node_id}/question-count"), json={"count": count})

    async def publish(self, node_id: str) -> HierarchyNode:
        return await self._node("POST", self._url(f"/{node_id}/publish"))

    async def unpublish(self, node_id: str) -> HierarchyNode:
        return await self._node("POST", self._url(f"/{node_id}/unpublish"))

    async def move(
        self,
        tree: Sequence[HierarchyNode],
        active_id: str,
        over_id: str,
        on_update: Callable[[Tree], None] | None = None,
    ) -> Tree:
        """Reorder locally, persist through the API and reconcile on failure."""
        return await move_and_persist(self, tree, active_id, over_id, on_update)
