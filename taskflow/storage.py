"""Task stores: the abstract contract plus in-memory and JSON-file backends."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Any, Mapping

from taskflow.config import AppConfig, ConfigError
from taskflow.errors import ValidationError
from taskflow.schema import Task, validate_completed, validate_task_text

logger = logging.getLogger(__name__)

DATA_FORMAT_VERSION = 1


class StoreError(RuntimeError):
    """Raised when a store cannot read or write its backing data."""


class TaskStore(ABC):
    """Contract shared by every task backend.

    Ids are assigned sequentially from 1 and never reused for the lifetime
    of the store. Every method is atomic with respect to the others.
    """

    @abstractmethod
    def list_tasks(self) -> list[Task]:
        """Return all tasks ordered by ascending id."""

    @abstractmethod
    def get_task(self, task_id: int) -> Task | None:
        """Return the task with ``task_id`` or ``None``."""

    @abstractmethod
    def create_task(self, text: str, completed: bool = False) -> Task:
        """Store a new task under the next id and return it."""

    @abstractmethod
    def update_task(self, task_id: int, updates: Mapping[str, Any]) -> Task | None:
        """Merge ``text``/``completed`` into a task; ``None`` if it is absent."""

    @abstractmethod
    def delete_task(self, task_id: int) -> bool:
        """Remove a task; report whether anything was removed."""

    @abstractmethod
    def clear_completed(self) -> int:
        """Remove every completed task and return how many were removed."""

    def close(self) -> None:
        """Release backend resources."""


def _apply_updates(task: Task, updates: Mapping[str, Any]) -> Task:
    changes: dict[str, Any] = {}
    if "text" in updates:
        changes["text"] = validate_task_text(updates["text"])
    if "completed" in updates:
        changes["completed"] = validate_completed(updates["completed"])
    return replace(task, **changes)


class MemoryTaskStore(TaskStore):
    """Tasks held in a dict keyed by id."""

    def __init__(self) -> None:
        self._tasks: dict[int, Task] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def list_tasks(self) -> list[Task]:
        with self._lock:
            return sorted(self._tasks.values(), key=lambda task: task.id)

    def get_task(self, task_id: int) -> Task | None:
        with self._lock:
            return self._tasks.get(task_id)

    def create_task(self, text: str, completed: bool = False) -> Task:
        text = validate_task_text(text)
        completed = validate_completed(completed)
        with self._lock:
            task = Task(id=self._next_id, text=text, completed=completed)
            tasks = dict(self._tasks)
            tasks[task.id] = task
            self._commit(tasks, self._next_id + 1)
            return task

    def update_task(self, task_id: int, updates: Mapping[str, Any]) -> Task | None:
        with self._lock:
            existing = self._tasks.get(task_id)
            if existing is None:
                return None
            updated = _apply_updates(existing, updates)
            tasks = dict(self._tasks)
            tasks[task_id] = updated
            self._commit(tasks, self._next_id)
            return updated

    def delete_task(self, task_id: int) -> bool:
        with self._lock:
            if task_id not in self._tasks:
                return False
            tasks = dict(self._tasks)
            del tasks[task_id]
            self._commit(tasks, self._next_id)
            return True

    def clear_completed(self) -> int:
        with self._lock:
            tasks = {
                task_id: task
                for task_id, task in self._tasks.items()
                if not task.completed
            }
            removed = len(self._tasks) - len(tasks)
            if removed:
                self._commit(tasks, self._next_id)
            return removed

    def _commit(self, tasks: dict[int, Task], next_id: int) -> None:
        # State is swapped in only after it has been persisted.
        self._persist(tasks, next_id)
        self._tasks = tasks
        self._next_id = next_id

    def _persist(self, tasks: dict[int, Task], next_id: int) -> None:
        """Hook for subclasses that write state through to durable storage."""


def _atomic_write(target_path: Path, content: str) -> None:
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=target_path.parent, delete=False
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_path, target_path)
    finally:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass


class JsonFileTaskStore(MemoryTaskStore):
    """In-memory store that rewrites a JSON document after each mutation.

    The document records the next id as well as the tasks so deleted ids are
    not handed out again after a restart.
    """

    def __init__(self, data_path: Path) -> None:
        super().__init__()
        self.data_path = Path(data_path)
        self._load()

    def _load(self) -> None:
        if not self.data_path.exists():
            self.data_path.parent.mkdir(parents=True, exist_ok=True)
            return
        try:
            raw = json.loads(self.data_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Unable to read task data: {self.data_path}") from exc
        if not isinstance(raw, dict) or not isinstance(raw.get("tasks"), list):
            raise StoreError(f"Task data must be an object with a tasks list: {self.data_path}")

        try:
            tasks = [Task.from_dict(item) for item in raw["tasks"]]
            next_id = int(raw.get("nextId", 1))
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            raise StoreError(f"Task data contains an invalid record: {self.data_path}") from exc
        self._tasks = {}
        for task in tasks:
            if task.id in self._tasks:
                raise StoreError(
                    f"Task data contains duplicate id {task.id}: {self.data_path}"
                )
            self._tasks[task.id] = task
        self._next_id = max(next_id, max(self._tasks, default=0) + 1)
        logger.info(
            "loaded %d tasks from %s (next id %d)",
            len(self._tasks),
            self.data_path,
            self._next_id,
        )

    def _persist(self, tasks: dict[int, Task], next_id: int) -> None:
        document = {
            "version": DATA_FORMAT_VERSION,
            "nextId": next_id,
            "tasks": [task.to_dict() for task in sorted(tasks.values(), key=lambda task: task.id)],
        }
        _atomic_write(self.data_path, json.dumps(document, indent=2) + "\n")


def build_store(config: AppConfig) -> TaskStore:
    """Construct the store selected by configuration."""
    if config.store_backend == "memory":
        return MemoryTaskStore()
    if config.store_backend == "json":
        if config.data_path is None:
            raise ConfigError("TASKFLOW_DATA_PATH is required for the json store.")
        return JsonFileTaskStore(config.data_path)
    raise ConfigError(f"Unknown task store backend: {config.store_backend}")
