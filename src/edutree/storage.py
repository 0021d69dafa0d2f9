"""JSON file persistence for hierarchy instances."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from edutree.exceptions import PersistenceError
from edutree.repository import InMemoryRepository
from edutree.schemas import HierarchyNode
from edutree.utils.logging_config import get_logger

logger = get_logger(__name__)

STORE_FORMAT_VERSION = 1


def store_path_for(instance_key: str, base_path: Path) -> Path:
    """Get the JSON document path for one tree instance.

    Args:
        instance_key: Tree instance key (e.g., "question-bank").
        base_path: Directory holding all instance documents.

    Returns:
        Path to the instance's JSON document.
    """
    return base_path / f"{instance_key.replace('/', '_')}.json"


async def read_text_async(path: Path, encoding: str = "utf-8") -> str:
    """Read text from a file asynchronously using a thread pool."""
    return await asyncio.to_thread(path.read_text, encoding=encoding)


def _write_atomic(path: Path, content: str, encoding: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(content, encoding=encoding)
    os.replace(tmp_path, path)


async def write_text_atomic_async(path: Path, content: str, encoding: str = "utf-8") -> None:
    """Write text to a file asynchronously, replacing it in one step.

    The content is written to a sibling temporary file first, so readers
    never observe a partially written document.
    """
    await asyncio.to_thread(_write_atomic, path, content, encoding)


class JsonFileRepository(InMemoryRepository):
    """In-memory repository mirrored to a single JSON document.

    Every committed write rewrites the document. Intended for tree sizes in
    the hundreds of nodes.
    """

    def __init__(self, path: Path, nodes: Iterable[HierarchyNode] = ()) -> None:
        super().__init__(nodes)
        self.path = path

    @classmethod
    async def open(cls, path: Path) -> JsonFileRepository:
        """Load a repository from ``path``, starting empty if it does not exist.

        Raises:
            PersistenceError: If the document cannot be read or parsed.
        """
        if not path.exists():
            logger.info("Starting empty hierarchy store", extra={"path": str(path)})
            return cls(path)
        try:
            payload = json.loads(await read_text_async(path))
            nodes = [HierarchyNode.model_validate(item) for item in payload.get("nodes", [])]
        except (OSError, ValueError, ValidationError, AttributeError) as exc:
            raise PersistenceError(f"Failed to load hierarchy store {path}: {exc}") from exc
        logger.info("Loaded hierarchy store", extra={"path": str(path), "nodes": len(nodes)})
        return cls(path, nodes)

    def dumps(self) -> str:
        nodes = [
            node.model_dump(mode="json", by_alias=True, exclude={"children", "parent"})
            for node in sorted(self._nodes.values(), key=lambda n: (n.level, n.parent_id or "", n.order))
        ]
        return json.dumps({"version": STORE_FORMAT_VERSION, "nodes": nodes}, indent=2, ensure_ascii=False)

    async def _after_write(self) -> None:
        try:
            await write_text_atomic_async(self.path, self.dumps())
        except OSError as exc:
            raise PersistenceError(f"Failed to write hierarchy store {self.path}: {exc}") from exc
