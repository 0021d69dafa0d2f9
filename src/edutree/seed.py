"""Sample hierarchies and a loader that builds them through the engine."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from edutree.engine import HierarchyEngine
from edutree.utils.logging_config import get_logger

logger = get_logger(__name__)

SeedItem = Mapping[str, Any]


def _chapter(name: str, questions: int) -> dict[str, Any]:
    return {"name": name, "color": "#047857", "questionCount": questions}


QUESTION_BANK_SEED: list[SeedItem] = [
    {
        "name": "First Year",
        "color": "#8B5CF6",
        "children": [
            {
                "name": "Anatomy",
                "color": "#7C3AED",
                "children": [
                    {
                        "name": "Upper Limb",
                        "color": "#10B981",
                        "children": [
                            {
                                "name": "Shoulder Region",
                                "color": "#059669",
                                "children": [
                                    _chapter("Basic Shoulder Anatomy", 12),
                                    _chapter("Shoulder Movements", 8),
                                    _chapter("Shoulder Muscles", 15),
                                ],
                            },
                            {
                                "name": "Arm Region",
                                "color": "#059669",
                                "children": [_chapter("Arm Muscles", 10), _chapter("Arm Vessels", 6)],
                            },
                        ],
                    },
                ],
            },
        ],
    },
    {
        "name": "Second Year",
        "color": "#8B5CF6",
        "children": [
            {
                "name": "Pathology",
                "color": "#7C3AED",
                "children": [
                    {
                        "name": "General Pathology",
                        "color": "#6366F1",
                        "children": [
                            {
                                "name": "Inflammation",
                                "color": "#4F46E5",
                                "children": [
                                    _chapter("Acute Inflammation", 16),
                                    _chapter("Chronic Inflammation", 13),
                                ],
                            },
                        ],
                    },
                ],
            },
        ],
    },
]

PREVIOUS_PAPERS_SEED: list[SeedItem] = [
    {
        "name": "NEET PG",
        "color": "#F59E0B",
        "children": [
            {
                "name": "2023",
                "color": "#D97706",
                "children": [
                    {
                        "name": "Anatomy",
                        "color": "#B45309",
                        "children": [
                            {
                                "name": "Paper I",
                                "color": "#92400E",
                                "children": [_chapter("Upper Limb", 9), _chapter("Thorax", 7)],
                            },
                        ],
                    },
                ],
            },
        ],
    },
]

SEED_DATA: dict[str, list[SeedItem]] = {
    "question-bank": QUESTION_BANK_SEED,
    "previous-papers": PREVIOUS_PAPERS_SEED,
}


async def seed_tree(
    engine: HierarchyEngine,
    items: Iterable[SeedItem] | None = None,
    *,
    publish: bool = False,
) -> int:
    """Create ``items`` and their nested children through ``engine``.

    Levels follow nesting depth, so every engine invariant applies to the
    seeded tree. Defaults to the sample data for the engine's instance.

    Args:
        engine: Target engine.
        items: Nested mappings with ``name`` and optional ``color``,
            ``questionCount`` and ``children``.
        publish: Publish every created node, parents first.

    Returns:
        Number of nodes created.
    """
    roots = SEED_DATA.get(engine.config.key, []) if items is None else items
    created = 0

    async def create_level(level_items: Iterable[SeedItem], parent_id: str | None, level: int) -> None:
        nonlocal created
        for item in level_items:
            node = await engine.create(
                {
                    "name": item["name"],
                    "level": level,
                    "color": item.get("color"),
                    "parentId": parent_id,
                    "questionCount": item.get("questionCount", 0),
                }
            )
            created += 1
            if publish:
                await engine.publish(node.id)
            await create_level(item.get("children", ()), node.id, level + 1)

    await create_level(roots, None, 1)
    logger.info("Seeded hierarchy", extra={"tree": engine.config.key, "nodes": created})
    return created
