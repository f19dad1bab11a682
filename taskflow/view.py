"""Client-side task list state: filtering, editing, mutations and notifications.

The view never patches its cached list locally. Every successful mutation
invalidates the cache and the full list is fetched again, so what is shown
always reflects the server.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, TypeVar

from taskflow.client import TaskApiClient, TaskApiError
from taskflow.schema import Task

logger = logging.getLogger(__name__)

FILTERS = ("all", "active", "completed")
FILTER_LABELS = {"all": "All Tasks", "active": "Active", "completed": "Completed"}

T = TypeVar("T")


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    variant: str = "default"


@dataclass(frozen=True)
class TaskCounts:
    total: int
    completed: int

    @property
    def remaining(self) -> int:
        return self.total - self.completed


class TaskListView:
    def __init__(self, client: TaskApiClient) -> None:
        self.client = client
        self.tasks: list[Task] = []
        self.filter = "all"
        self.draft_text = ""
        self.editing_task_id: int | None = None
        self.editing_text = ""
        self.notifications: list[Notification] = []

    # Queries

    def load(self) -> list[Task]:
        """Fetch the full task list and replace the cached copy."""
        self.tasks = self.client.list_tasks()
        return self.tasks

    @property
    def visible_tasks(self) -> list[Task]:
        if self.filter == "active":
            return [task for task in self.tasks if not task.completed]
        if self.filter == "completed":
            return [task for task in self.tasks if task.completed]
        return list(self.tasks)

    @property
    def counts(self) -> TaskCounts:
        completed = sum(1 for task in self.tasks if task.completed)
        return TaskCounts(total=len(self.tasks), completed=completed)

    @property
    def can_clear_completed(self) -> bool:
        return self.counts.completed > 0

    @property
    def can_toggle_all(self) -> bool:
        return self.counts.total > 0

    def set_filter(self, name: str) -> None:
        if name not in FILTERS:
            raise ValueError(f"unknown filter {name!r}; expected one of {FILTERS}")
        self.filter = name

    # Notifications

    def notify(self, title: str, description: str, variant: str = "default") -> None:
        self.notifications.append(Notification(title, description, variant))

    def pop_notifications(self) -> list[Notification]:
        pending, self.notifications = self.notifications, []
        return pending

    # Mutations

    def _mutate(self, action: str, call: Callable[[], T]) -> tuple[bool, T | None]:
        try:
            result = call()
        except TaskApiError as exc:
            logger.warning("failed to %s: %s", action, exc)
            self.notify(
                "Error",
                f"Failed to {action}. Please try again.",
                variant="destructive",
            )
            return False, None
        try:
            self.load()
        except TaskApiError as exc:
            # The mutation stands; the stale list is kept until the next load.
            logger.warning("failed to refresh tasks after %s: %s", action, exc)
        return True, result

    def set_draft(self, text: str) -> None:
        self.draft_text = text

    def submit_draft(self) -> Task | None:
        text = self.draft_text.strip()
        if not text:
            return None
        ok, task = self._mutate(
            "create task", lambda: self.client.create_task(text, completed=False)
        )
        if ok:
            self.draft_text = ""
            self.notify("Task created", "Your task has been added successfully.")
        return task

    def toggle_task(self, task: Task) -> Task | None:
        _, updated = self._mutate(
            "update task",
            lambda: self.client.update_task(task.id, {"completed": not task.completed}),
        )
        if updated is not None:
            self._leave_edit_mode()
        return updated

    def start_edit(self, task: Task) -> None:
        self.editing_task_id = task.id
        self.editing_text = task.text

    def set_edit_text(self, text: str) -> None:
        self.editing_text = text

    def commit_edit(self) -> Task | None:
        """Save the edit buffer (on blur or Enter); blank text is ignored."""
        if self.editing_task_id is None:
            return None
        text = self.editing_text.strip()
        if not text:
            return None
        task_id = self.editing_task_id
        _, updated = self._mutate(
            "update task", lambda: self.client.update_task(task_id, {"text": text})
        )
        if updated is not None:
            self._leave_edit_mode()
        return updated

    def cancel_edit(self) -> None:
        self._leave_edit_mode()

    def handle_edit_key(self, key: str) -> Task | None:
        if key == "Enter":
            return self.commit_edit()
        if key == "Escape":
            self.cancel_edit()
        return None

    def _leave_edit_mode(self) -> None:
        self.editing_task_id = None
        self.editing_text = ""

    def delete_task(self, task_id: int) -> bool:
        ok, _ = self._mutate("delete task", lambda: self.client.delete_task(task_id))
        if ok:
            self.notify("Task deleted", "Your task has been removed.")
        return ok

    def clear_completed(self) -> int | None:
        if not self.can_clear_completed:
            return None
        ok, deleted_count = self._mutate(
            "clear completed tasks", self.client.clear_completed
        )
        if ok:
            self.notify(
                "Completed tasks cleared", "All completed tasks have been removed."
            )
        return deleted_count

    def toggle_all(self) -> list[Task] | None:
        if not self.can_toggle_all:
            return None
        _, tasks = self._mutate("toggle all tasks", self.client.toggle_all)
        return tasks

    # Rendering

    def render(self) -> str:
        counts = self.counts
        lines = [
            "TaskFlow",
            f"{counts.total} Total Tasks | {counts.completed} Completed | "
            f"{counts.remaining} Remaining",
            "",
            " ".join(
                f"[{FILTER_LABELS[name]}]" if name == self.filter else FILTER_LABELS[name]
                for name in FILTERS
            ),
            "",
        ]
        visible = self.visible_tasks
        if not visible:
            lines.append("No tasks yet")
            lines.append("Add your first task above to get started!")
        for task in visible:
            mark = "x" if task.completed else " "
            if task.id == self.editing_task_id:
                lines.append(f"[{mark}] {task.id}. > {self.editing_text}")
            else:
                lines.append(f"[{mark}] {task.id}. {task.text}")
        lines.append("")
        lines.append(f"{counts.remaining} of {counts.total} tasks remaining")
        return "\n".join(lines)
