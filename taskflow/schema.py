"""Task record and payload validation helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from taskflow.errors import ValidationError

MAX_TEXT_LENGTH = 500

_TASK_ID_PATTERN = re.compile(r"^-?[0-9]+$")


@dataclass(frozen=True)
class Task:
    id: int
    text: str
    completed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "completed": self.completed}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Build a task from its wire form; invalid fields raise ValidationError."""
        task_id = data["id"]
        if not isinstance(task_id, int) or isinstance(task_id, bool):
            raise ValidationError(
                "Invalid task ID", {"id": str(task_id)}, code="INVALID_ID"
            )
        return cls(
            id=task_id,
            text=validate_task_text(data["text"]),
            completed=validate_completed(data.get("completed", False)),
        )


def validate_task_text(text: Any) -> str:
    if not isinstance(text, str):
        raise ValidationError(
            "Task text must be a string",
            {"field": "text", "type": type(text).__name__},
            code="INVALID_TYPE",
        )
    if len(text) < 1:
        raise ValidationError(
            "Task text is required", {"field": "text"}, code="MISSING_TEXT"
        )
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationError(
            "Task text is too long",
            {"field": "text", "maxLength": MAX_TEXT_LENGTH, "length": len(text)},
            code="TEXT_TOO_LONG",
        )
    return text


def validate_completed(completed: Any) -> bool:
    # bool is checked exactly so 0/1 are rejected like any other non-boolean.
    if not isinstance(completed, bool):
        raise ValidationError(
            "Completed must be a boolean",
            {"field": "completed", "type": type(completed).__name__},
            code="INVALID_TYPE",
        )
    return completed


def _ensure_payload_dict(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationError(
            "Request body must be an object",
            {"type": type(payload).__name__},
            code="INVALID_TYPE",
        )
    return payload


def parse_create_payload(payload: Any) -> dict[str, Any]:
    """Validate a create body and return the fields to store.

    Fields are checked in a fixed order and the first failure is raised.
    Unknown keys are dropped.
    """
    payload = _ensure_payload_dict(payload)
    if "text" not in payload:
        raise ValidationError(
            "Task text is required", {"field": "text"}, code="MISSING_TEXT"
        )
    fields = {"text": validate_task_text(payload["text"]), "completed": False}
    if "completed" in payload:
        fields["completed"] = validate_completed(payload["completed"])
    return fields


def parse_update_payload(payload: Any) -> dict[str, Any]:
    """Validate a partial update body; only the fields present are returned."""
    payload = _ensure_payload_dict(payload)
    updates: dict[str, Any] = {}
    if "text" in payload:
        updates["text"] = validate_task_text(payload["text"])
    if "completed" in payload:
        updates["completed"] = validate_completed(payload["completed"])
    return updates


def parse_task_id(raw_id: str) -> int:
    """Parse a path segment as a base-10 task id."""
    candidate = raw_id.strip() if isinstance(raw_id, str) else ""
    if not _TASK_ID_PATTERN.fullmatch(candidate):
        raise ValidationError(
            "Invalid task ID", {"id": str(raw_id)}, code="INVALID_ID"
        )
    return int(candidate)
