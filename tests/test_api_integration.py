"""Integration tests for the reference Backend API"""

import os

import pytest
from fastapi.testclient import TestClient

from beads_sync.config import SyncConfig
from beads_sync.main import create_app
from beads_sync.storage import jsonl

from conftest import make_issue


@pytest.fixture
def config(jsonl_path):
    return SyncConfig(jsonl_path=str(jsonl_path))


@pytest.fixture
def client(config):
    """Create test client"""
    with TestClient(create_app(config, watch_interval=None)) as client:
        yield client


def create(client, **fields):
    response = client.post("/api/issues", json={"title": "Test issue", **fields})
    assert response.status_code == 201, response.text
    return response.json()


def test_health_check(client):
    """Test health check endpoint"""
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_issue_success(client):
    """Test successful issue creation"""
    data = create(client, description="Test description", issue_type="feature", priority=1)
    assert data["id"] == "BD-1"
    assert data["title"] == "Test issue"
    assert data["issue_type"] == "feature"
    assert data["priority"] == 1
    assert data["status"] == "open"


def test_create_issue_defaults(client):
    data = create(client)
    assert data["priority"] == 3
    assert data["issue_type"] == "task"


def test_ids_are_sequential(client):
    assert [create(client)["id"] for _ in range(3)] == ["BD-1", "BD-2", "BD-3"]


def test_create_issue_validation_error(client):
    """Test issue creation with invalid data"""
    assert client.post("/api/issues", json={}).status_code == 422
    assert client.post("/api/issues", json={"title": "x", "priority": 7}).status_code == 422
    assert client.post("/api/issues", json={"title": "x", "colour": "red"}).status_code == 422


def test_create_with_unknown_dependency(client):
    response = client.post("/api/issues", json={"title": "x", "deps": ["BD-42"]})
    assert response.status_code == 400
    assert "BD-42" in response.json()["detail"]


def test_get_issue(client):
    created = create(client)
    response = client.get(f"/api/issues/{created['id']}")
    assert response.status_code == 200
    assert response.json() == created


def test_get_issue_not_found(client):
    """Test getting non-existent issue"""
    response = client.get("/api/issues/BD-999")
    assert response.status_code == 404


def test_list_issues_newest_first(client):
    create(client, title="First")
    create(client, title="Second")
    response = client.get("/api/issues")
    assert response.status_code == 200
    assert [issue["title"] for issue in response.json()] == ["Second", "First"]


def test_list_issues_with_dependents(client):
    first = create(client, title="Design")
    create(client, title="Build", deps=[first["id"]])

    plain = {issue["id"]: issue for issue in client.get("/api/issues").json()}
    assert "dependents" not in plain["BD-1"]

    detailed = {issue["id"]: issue for issue in client.get("/api/issues?includeDeps=true").json()}
    assert [dependent["id"] for dependent in detailed["BD-1"]["dependents"]] == ["BD-2"]
    assert detailed["BD-2"]["dependents"] == []


def test_update_issue(client):
    created = create(client)
    response = client.patch(f"/api/issues/{created['id']}", json={"status": "in_progress", "assignee": "bob"})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "in_progress"
    assert data["assignee"] == "bob"
    assert data["title"] == created["title"]
    assert data["updated_at"] != created["updated_at"]


def test_update_issue_errors(client):
    created = create(client)
    assert client.patch("/api/issues/BD-999", json={"priority": 1}).status_code == 404
    assert client.patch(f"/api/issues/{created['id']}", json={"titel": "typo"}).status_code == 422
    assert client.patch(f"/api/issues/{created['id']}", json={"title": None}).status_code == 422


def test_delete_closes_issue(client):
    created = create(client)
    response = client.delete(f"/api/issues/{created['id']}")
    assert response.status_code == 200
    assert response.json()["status"] == "closed"
    assert response.json()["closed_at"]

    # The record is kept
    kept = client.get(f"/api/issues/{created['id']}").json()
    assert kept["status"] == "closed"
    assert client.delete("/api/issues/BD-999").status_code == 404


def test_ready_and_blocked(client):
    design = create(client, title="Design", priority=1)
    build = create(client, title="Build", priority=0, deps=[design["id"]])

    ready = client.get("/api/ready").json()
    assert [issue["id"] for issue in ready] == [design["id"]]
    blocked = client.get("/api/blocked").json()
    assert [issue["id"] for issue in blocked] == [build["id"]]

    client.delete(f"/api/issues/{design['id']}")
    assert [issue["id"] for issue in client.get("/api/ready").json()] == [build["id"]]
    assert client.get("/api/blocked").json() == []


def test_add_and_remove_dependency(client):
    a = create(client, title="A")
    b = create(client, title="B")

    response = client.post(f"/api/issues/{b['id']}/dependencies", json={"depends_on_id": a["id"]})
    assert response.status_code == 201
    assert [dep["depends_on_id"] for dep in response.json()["dependencies"]] == [a["id"]]

    dependents = client.get(f"/api/issues/{a['id']}/dependents").json()
    assert [issue["id"] for issue in dependents] == [b["id"]]

    response = client.delete(f"/api/issues/{b['id']}/dependencies/{a['id']}")
    assert response.status_code == 200
    assert response.json()["dependencies"] == []
    assert client.delete(f"/api/issues/{b['id']}/dependencies/{a['id']}").status_code == 404


def test_dependency_constraints(client):
    a = create(client, title="A")
    b = create(client, title="B", deps=[a["id"]])

    cycle = client.post(f"/api/issues/{a['id']}/dependencies", json={"depends_on_id": b["id"]})
    assert cycle.status_code == 400
    assert "circular" in cycle.json()["detail"]

    duplicate = client.post(f"/api/issues/{b['id']}/dependencies", json={"depends_on_id": a["id"], "type": "related"})
    assert duplicate.status_code == 400

    self_dep = client.post(f"/api/issues/{a['id']}/dependencies", json={"depends_on_id": a["id"]})
    assert self_dep.status_code == 400

    related = client.post(f"/api/issues/{a['id']}/dependencies", json={"depends_on_id": b["id"], "type": "related"})
    assert related.status_code == 201


def test_why_blocked(client):
    a = create(client, title="A")
    b = create(client, title="B", deps=[a["id"]])
    c = create(client, title="C", deps=[b["id"]])

    response = client.get(f"/api/issues/{c['id']}/why-blocked")
    assert response.status_code == 200
    assert [link["id"] for link in response.json()["blocking_chain"]] == [c["id"], b["id"], a["id"]]
    assert client.get("/api/issues/BD-999/why-blocked").status_code == 404


def test_changes_persist_to_jsonl(client, config):
    created = create(client, title="Persisted")
    client.patch(f"/api/issues/{created['id']}", json={"notes": "saved"})

    issues = jsonl.load_issues(config.jsonl_path)
    assert [(issue.id, issue.notes) for issue in issues] == [(created["id"], "saved")]

    with TestClient(create_app(config, watch_interval=None)) as second:
        assert second.get(f"/api/issues/{created['id']}").json()["notes"] == "saved"


def test_existing_file_loaded_on_startup(config):
    jsonl.save_issues(config.jsonl_path, [make_issue("BD-7", "Imported")])
    with TestClient(create_app(config, watch_interval=None)) as client:
        assert client.get("/api/issues/BD-7").json()["title"] == "Imported"
        assert create(client)["id"] == "BD-8"


def test_mutations_are_broadcast(client):
    with client.websocket_connect("/ws") as websocket:
        created = create(client, title="Broadcast me")
        message = websocket.receive_json()
        assert message["type"] == "issue:created"
        assert message["data"]["id"] == created["id"]

        client.patch(f"/api/issues/{created['id']}", json={"priority": 0})
        message = websocket.receive_json()
        assert message["type"] == "issue:updated"
        assert message["data"]["priority"] == 0

        client.delete(f"/api/issues/{created['id']}")
        message = websocket.receive_json()
        assert message["type"] == "issue:updated"
        assert message["data"]["status"] == "closed"


def test_external_edit_triggers_refresh(config):
    with TestClient(create_app(config, watch_interval=0.02)) as client:
        with client.websocket_connect("/ws") as websocket:
            jsonl.save_issues(config.jsonl_path, [make_issue("BD-3", "Edited by hand")])
            stat = os.stat(config.jsonl_path)
            os.utime(config.jsonl_path, (stat.st_atime + 5, stat.st_mtime + 5))

            message = websocket.receive_json()
            assert message == {"type": "issues:refresh"}
            assert client.get("/api/issues/BD-3").json()["title"] == "Edited by hand"
