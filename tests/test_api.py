from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from taskflow import storage
from taskflow.main import create_app
from taskflow.storage import MemoryTaskStore


@pytest.fixture
def client(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ("TASKFLOW_STORE", "TASKFLOW_DATA_PATH", "TASKFLOW_ACTIVITY_LOG"):
        monkeypatch.delenv(key, raising=False)
    with TestClient(create_app()) as test_client:
        yield test_client


def test_end_to_end_flow(client):
    created = client.post("/tasks", json={"text": "Buy milk"})
    assert created.status_code == 201
    assert created.json() == {"id": 1, "text": "Buy milk", "completed": False}

    listed = client.get("/tasks")
    assert listed.status_code == 200
    assert listed.json() == [{"id": 1, "text": "Buy milk", "completed": False}]

    updated = client.put("/tasks/1", json={"completed": True})
    assert updated.status_code == 200
    assert updated.json()["completed"] is True

    cleared = client.delete("/tasks/completed")
    assert cleared.status_code == 200
    assert cleared.json() == {"deletedCount": 1}

    assert client.get("/tasks").json() == []


@pytest.mark.parametrize(
    "body, message",
    [
        ({"text": ""}, "Task text is required"),
        ({"text": "x" * 501}, "Task text is too long"),
        ({}, "Task text is required"),
        ({"text": "ok", "completed": "true"}, "Completed must be a boolean"),
        (["not", "an", "object"], "Request body must be an object"),
    ],
)
def test_create_rejects_invalid_body(client, body, message):
    response = client.post("/tasks", json=body)

    assert response.status_code == 400
    assert response.json() == {"message": message}
    assert client.get("/tasks").json() == []


def test_create_rejects_malformed_json(client):
    response = client.post(
        "/tasks", content=b"{text:", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert "message" in response.json()


def test_create_honours_completed_flag(client):
    response = client.post("/tasks", json={"text": "Done", "completed": True})

    assert response.status_code == 201
    assert response.json()["completed"] is True


def test_update_errors(client):
    client.post("/tasks", json={"text": "a"})

    invalid_id = client.put("/tasks/abc", json={"completed": True})
    assert invalid_id.status_code == 400
    assert invalid_id.json() == {"message": "Invalid task ID"}

    invalid_body = client.put("/tasks/1", json={"text": ""})
    assert invalid_body.status_code == 400
    assert invalid_body.json() == {"message": "Task text is required"}

    missing = client.put("/tasks/99", json={"completed": True})
    assert missing.status_code == 404
    assert missing.json() == {"message": "Task not found"}


def test_update_partial_text(client):
    client.post("/tasks", json={"text": "Old", "completed": True})

    response = client.put("/tasks/1", json={"text": "New"})

    assert response.json() == {"id": 1, "text": "New", "completed": True}


def test_delete_task(client):
    client.post("/tasks", json={"text": "a"})

    deleted = client.delete("/tasks/1")
    assert deleted.status_code == 204
    assert deleted.content == b""

    again = client.delete("/tasks/1")
    assert again.status_code == 404
    assert again.json() == {"message": "Task not found"}

    invalid = client.delete("/tasks/one")
    assert invalid.status_code == 400
    assert invalid.json() == {"message": "Invalid task ID"}


def test_toggle_all_routes_before_task_id(client):
    empty = client.put("/tasks/toggle-all")
    assert empty.status_code == 200
    assert empty.json() == []

    client.post("/tasks", json={"text": "a", "completed": True})
    client.post("/tasks", json={"text": "b"})

    toggled = client.put("/tasks/toggle-all")
    assert [task["completed"] for task in toggled.json()] == [True, True]

    toggled_back = client.put("/tasks/toggle-all")
    assert [task["completed"] for task in toggled_back.json()] == [False, False]


def test_clear_completed_with_nothing_completed(client):
    client.post("/tasks", json={"text": "a"})

    response = client.delete("/tasks/completed")

    assert response.json() == {"deletedCount": 0}
    assert len(client.get("/tasks").json()) == 1


def test_internal_error_returns_generic_message():
    class FailingStore(MemoryTaskStore):
        def clear_completed(self):
            raise RuntimeError("connection lost")

    with TestClient(create_app(store=FailingStore())) as client:
        response = client.delete("/tasks/completed")

    assert response.status_code == 500
    assert response.json() == {"message": "Failed to clear completed tasks"}


def test_json_store_persists_across_apps(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TASKFLOW_STORE", "json")
    monkeypatch.setenv("TASKFLOW_DATA_PATH", str(tmp_path / "tasks.json"))

    with TestClient(create_app()) as client:
        client.post("/tasks", json={"text": "remember me"})

    with TestClient(create_app()) as client:
        tasks = client.get("/tasks").json()

    assert tasks == [{"id": 1, "text": "remember me", "completed": False}]


def test_activity_endpoint(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TASKFLOW_STORE", raising=False)
    monkeypatch.setenv("TASKFLOW_ACTIVITY_LOG", str(tmp_path / "activity.log"))

    with TestClient(create_app()) as client:
        client.post("/tasks", json={"text": "a"})
        client.delete("/tasks/1")
        entries = client.get("/activity", params={"limit": 5}).json()
        invalid_limit = client.get("/activity", params={"limit": 0})

    assert [entry["operation"] for entry in entries] == ["create_task", "delete_task"]
    assert invalid_limit.status_code == 400
    assert "message" in invalid_limit.json()


class FailingStore(MemoryTaskStore):
    """Raises from every operation a route can call."""

    def list_tasks(self):
        raise RuntimeError("connection lost")

    def update_task(self, task_id, updates):
        raise RuntimeError("connection lost")

    def delete_task(self, task_id):
        raise RuntimeError("connection lost")


@pytest.mark.parametrize(
    "method, path, body, message",
    [
        ("GET", "/tasks", None, "Failed to fetch tasks"),
        ("PUT", "/tasks/1", {"completed": True}, "Failed to update task"),
        ("DELETE", "/tasks/1", None, "Failed to delete task"),
        ("PUT", "/tasks/toggle-all", None, "Failed to toggle all tasks"),
    ],
)
def test_store_failures_return_generic_messages(method, path, body, message):
    with TestClient(create_app(store=FailingStore())) as client:
        response = client.request(method, path, json=body)

    assert response.status_code == 500
    assert response.json() == {"message": message}


def test_failed_write_is_not_visible(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TASKFLOW_STORE", "json")
    monkeypatch.setenv("TASKFLOW_DATA_PATH", str(tmp_path / "tasks.json"))

    def fail_write(target_path, content):
        raise OSError("disk full")

    with TestClient(create_app()) as client:
        monkeypatch.setattr(storage, "_atomic_write", fail_write)
        created = client.post("/tasks", json={"text": "ghost"})
        listed = client.get("/tasks")

    assert created.status_code == 500
    assert created.json() == {"message": "Failed to create task"}
    assert listed.json() == []
