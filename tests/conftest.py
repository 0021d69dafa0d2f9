"""Test setup for edutree."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from edutree.engine import HierarchyEngine  # noqa: E402
from edutree.levels import PREVIOUS_PAPERS, QUESTION_BANK  # noqa: E402
from edutree.repository import InMemoryRepository  # noqa: E402
from edutree.schemas import HierarchyNode  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for pytest.

    This allows running adapter tests selectively:
        pytest -m integration       # run only end-to-end tests
        pytest -m "not integration" # skip them
    """
    config.addinivalue_line(
        "markers",
        "integration: end-to-end tests through the HTTP adapter",
    )


@pytest.fixture
def engine() -> HierarchyEngine:
    """Question-bank engine over an empty in-memory store."""
    return HierarchyEngine(QUESTION_BANK, InMemoryRepository())


@pytest.fixture
def papers_engine() -> HierarchyEngine:
    """Previous-papers engine over its own empty store."""
    return HierarchyEngine(PREVIOUS_PAPERS, InMemoryRepository())


@pytest.fixture
def make_node() -> Callable[..., HierarchyNode]:
    """Factory for detached snapshot nodes used by the reorder tests."""
    stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _make(
        node_id: str,
        *,
        level: int = 1,
        order: int = 1,
        parent_id: str | None = None,
        children: list[HierarchyNode] | None = None,
    ) -> HierarchyNode:
        return HierarchyNode(
            id=node_id,
            name=node_id.upper(),
            level=level,
            type=QUESTION_BANK.type_for_level(level),
            order=order,
            parent_id=parent_id,
            children=children or [],
            created_at=stamp,
            updated_at=stamp,
        )

    return _make
