"""Task REST endpoints."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import APIRouter, Body, Query, Request, Response

from taskflow.activity import (
    append_activity_log,
    build_activity_entry,
    read_activity_entries,
)
from taskflow.errors import InternalError, NotFoundError, TaskFlowError
from taskflow.schema import parse_create_payload, parse_task_id, parse_update_payload
from taskflow.storage import TaskStore

logger = logging.getLogger(__name__)

tasks_router = APIRouter()


def get_request_store(request: Request) -> TaskStore:
    """Return the store attached to the application serving this request."""
    return request.app.state.store


@contextmanager
def _store_errors(operation: str, message: str) -> Iterator[None]:
    try:
        yield
    except TaskFlowError:
        raise
    except Exception as exc:
        logger.exception("%s failed", operation)
        raise InternalError(message, {"operation": operation}) from exc


def _record_activity(
    request: Request, operation: str, task_id: int | None, summary: str
) -> None:
    logger.info("%s task_id=%s %s", operation, task_id, summary)
    config = getattr(request.app.state, "config", None)
    log_path = getattr(config, "activity_log_path", None)
    if log_path is None:
        return
    try:
        append_activity_log(log_path, build_activity_entry(operation, task_id, summary))
    except OSError:
        logger.warning("could not append to activity log %s", log_path, exc_info=True)


@tasks_router.get("/tasks")
def list_tasks(request: Request) -> list[dict[str, Any]]:
    """Return every task ordered by id."""
    store = get_request_store(request)
    with _store_errors("list_tasks", "Failed to fetch tasks"):
        tasks = store.list_tasks()
    return [task.to_dict() for task in tasks]


@tasks_router.post("/tasks", status_code=201)
def create_task(request: Request, payload: Any = Body(default=None)) -> dict[str, Any]:
    """Create a task from ``{text, completed?}``."""
    fields = parse_create_payload(payload)
    store = get_request_store(request)
    with _store_errors("create_task", "Failed to create task"):
        task = store.create_task(fields["text"], fields["completed"])
    _record_activity(request, "create_task", task.id, "create task")
    return task.to_dict()


# Static paths are registered before /tasks/{task_id} so they are matched first.
@tasks_router.delete("/tasks/completed")
def clear_completed_tasks(request: Request) -> dict[str, int]:
    """Delete every completed task."""
    store = get_request_store(request)
    with _store_errors("clear_completed", "Failed to clear completed tasks"):
        deleted_count = store.clear_completed()
    _record_activity(
        request, "clear_completed", None, f"cleared {deleted_count} completed tasks"
    )
    return {"deletedCount": deleted_count}


@tasks_router.put("/tasks/toggle-all")
def toggle_all_tasks(request: Request) -> list[dict[str, Any]]:
    """Mark every task complete, or every task active if all were complete.

    Updates are applied one task at a time; a task removed between the read
    and its update is left out of the result.
    """
    store = get_request_store(request)
    with _store_errors("toggle_all", "Failed to toggle all tasks"):
        tasks = store.list_tasks()
        all_completed = all(task.completed for task in tasks)
        new_status = not all_completed

        updated_tasks = []
        for task in tasks:
            updated = store.update_task(task.id, {"completed": new_status})
            if updated is not None:
                updated_tasks.append(updated)
    _record_activity(
        request,
        "toggle_all",
        None,
        f"set completed={str(new_status).lower()} on {len(updated_tasks)} tasks",
    )
    return [task.to_dict() for task in updated_tasks]


@tasks_router.put("/tasks/{task_id}")
def update_task(
    task_id: str, request: Request, payload: Any = Body(default=None)
) -> dict[str, Any]:
    """Apply a partial ``{text?, completed?}`` update to one task."""
    parsed_id = parse_task_id(task_id)
    updates = parse_update_payload(payload)
    store = get_request_store(request)
    with _store_errors("update_task", "Failed to update task"):
        task = store.update_task(parsed_id, updates)
    if task is None:
        raise NotFoundError("Task not found", {"id": parsed_id})
    _record_activity(
        request, "update_task", task.id, f"update {', '.join(sorted(updates)) or 'nothing'}"
    )
    return task.to_dict()


@tasks_router.delete("/tasks/{task_id}", status_code=204)
def delete_task(task_id: str, request: Request) -> Response:
    """Delete one task; the response has no body."""
    parsed_id = parse_task_id(task_id)
    store = get_request_store(request)
    with _store_errors("delete_task", "Failed to delete task"):
        deleted = store.delete_task(parsed_id)
    if not deleted:
        raise NotFoundError("Task not found", {"id": parsed_id})
    _record_activity(request, "delete_task", parsed_id, "delete task")
    return Response(status_code=204)


@tasks_router.get("/activity")
def read_activity_log(
    request: Request, limit: int = Query(default=50, gt=0)
) -> list[dict[str, Any]]:
    """Return the most recent activity log entries."""
    config = getattr(request.app.state, "config", None)
    log_path = getattr(config, "activity_log_path", None)
    if log_path is None:
        return []
    return read_activity_entries(log_path, limit)
