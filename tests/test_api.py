"""Tests for the HTTP adapter."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from edutree.engine import HierarchyEngine
from edutree.levels import PREVIOUS_PAPERS, QUESTION_BANK
from edutree.repository import InMemoryRepository
from server.main import create_app

pytestmark = pytest.mark.integration


@pytest.fixture
def client() -> TestClient:
    engines = {
        config.key: HierarchyEngine(config, InMemoryRepository()) for config in (QUESTION_BANK, PREVIOUS_PAPERS)
    }
    return TestClient(create_app(engines))


def create(client: TestClient, tree: str = "question-bank", **body: object) -> dict:
    response = client.post(f"/api/{tree}/items", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestHierarchyEndpoints:
    """Tests for the per-instance hierarchy routes."""

    def test_health_lists_trees(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.json() == {"status": "ok", "trees": ["previous-papers", "question-bank"]}

    def test_create_and_read_uses_camel_case(self, client: TestClient) -> None:
        root = create(client, name="2024", level=1)
        child = create(client, name="Physics", level=2, parentId=root["id"])

        tree = client.get("/api/question-bank/items").json()

        assert child["parentId"] == root["id"]
        assert child["type"] == "Subject"
        assert tree[0]["children"][0]["id"] == child["id"]
        assert tree[0]["isPublished"] is False

    def test_instances_are_separate(self, client: TestClient) -> None:
        exam = create(client, tree="previous-papers", name="NEET PG", level=1)

        assert exam["type"] == "Exam"
        assert client.get("/api/question-bank/items").json() == []
        assert client.get(f"/api/question-bank/items/{exam['id']}").status_code == 404

    def test_unknown_tree(self, client: TestClient) -> None:
        response = client.get("/api/mock-tests/items")

        assert response.status_code == 404
        assert "Unknown hierarchy" in response.json()["detail"]

    def test_registered_tree_without_engine(self) -> None:
        client = TestClient(create_app({QUESTION_BANK.key: HierarchyEngine(QUESTION_BANK, InMemoryRepository())}))

        assert client.get("/api/question-bank/items").status_code == 200
        assert client.get("/api/previous-papers/items").status_code == 503

    def test_error_mapping(self, client: TestClient) -> None:
        root = create(client, name="2024", level=1)
        child = create(client, name="Physics", level=2, parentId=root["id"])

        assert client.get("/api/question-bank/items/missing").status_code == 404
        assert client.get("/api/question-bank/items/by-level/6").status_code == 400
        assert client.post("/api/question-bank/items", json={"name": "x", "level": 3, "parentId": root["id"]}).status_code == 400
        assert client.post("/api/question-bank/items", json={"name": "x", "level": 9}).status_code == 422
        assert client.delete(f"/api/question-bank/items/{root['id']}").status_code == 409

        response = client.post(f"/api/question-bank/items/{child['id']}/publish")
        assert response.status_code == 409
        assert response.json() == {"detail": "Please publish the parent first to proceed"}

    def test_update_rejects_reparenting(self, client: TestClient) -> None:
        root = create(client, name="2024", level=1)

        response = client.patch(f"/api/question-bank/items/{root['id']}", json={"parentId": "x"})

        assert response.status_code == 422

    def test_publish_cascade_through_api(self, client: TestClient) -> None:
        root = create(client, name="2024", level=1)
        child = create(client, name="Physics", level=2, parentId=root["id"])
        client.post(f"/api/question-bank/items/{root['id']}/publish")
        client.post(f"/api/question-bank/items/{child['id']}/publish")

        published = client.get("/api/question-bank/items/published").json()
        assert {node["name"] for node in published} == {"2024", "Physics"}

        response = client.post(f"/api/question-bank/items/{root['id']}/unpublish")
        assert response.json()["isPublished"] is False
        assert client.get(f"/api/question-bank/items/{child['id']}").json()["isPublished"] is False

    def test_reorder_question_count_stats_and_delete(self, client: TestClient) -> None:
        parent_id = None
        for level, name in enumerate(["2024", "Physics", "Mechanics", "Kinematics"], start=1):
            parent_id = create(client, name=name, level=level, parentId=parent_id)["id"]
        first = create(client, name="One", level=5, parentId=parent_id)
        second = create(client, name="Two", level=5, parentId=parent_id)

        reordered = client.post(
            "/api/question-bank/items/reorder",
            json=[{"id": first["id"], "order": 2}, {"id": second["id"], "order": 1}],
        )
        counted = client.put(f"/api/question-bank/items/{first['id']}/question-count", json={"count": 7})
        stats = client.get("/api/question-bank/stats").json()
        children = client.get(f"/api/question-bank/items/by-parent/{parent_id}").json()
        deleted = client.delete(f"/api/question-bank/items/{second['id']}")

        assert [item["order"] for item in reordered.json()] == [2, 1]
        assert counted.json()["questionCount"] == 7
        assert stats[-1] == {"level": 5, "type": "Chapter", "count": 2, "totalQuestions": 7}
        assert [child["name"] for child in children] == ["Two", "One"]
        assert deleted.json() == {"deleted": True}
