"""Structured error types for task API responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class ErrorResponse:
    """Error payload carried by task exceptions."""

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class TaskFlowError(RuntimeError):
    """Exception carrying a structured error response and an HTTP status."""

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Mapping[str, Any] | None = None,
        *,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.error = ErrorResponse(
            code=code or self.default_code,
            message=message,
            details=dict(details or {}),
        )


class ValidationError(TaskFlowError):
    """Raised for a malformed task id or request body."""

    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFoundError(TaskFlowError):
    """Raised when an operation references a task that does not exist."""

    status_code = 404
    default_code = "TASK_NOT_FOUND"


class InternalError(TaskFlowError):
    """Raised when the store fails unexpectedly."""

    status_code = 500
    default_code = "INTERNAL_ERROR"


def error_response(error: ErrorResponse) -> dict[str, Any]:
    """Wire body for an error: only the human-readable message is exposed."""
    return {"message": error.message}
