"""HTTP client for the task API."""

from __future__ import annotations

from typing import Any

import httpx

from taskflow.schema import Task


class TaskApiError(RuntimeError):
    """Raised when the task API answers with a non-success status."""

    def __init__(self, method: str, path: str, status_code: int, message: str) -> None:
        super().__init__(f"{method} {path} failed with {status_code}: {message}")
        self.method = method
        self.path = path
        self.status_code = status_code
        self.message = message


class TaskApiClient:
    """Thin wrapper over the REST endpoints.

    Pass ``http`` to reuse an existing client, e.g. a FastAPI ``TestClient``.
    Requests carry no timeout and are never retried.
    """

    def __init__(
        self, base_url: str | None = None, *, http: httpx.Client | None = None
    ) -> None:
        if http is None and base_url is None:
            raise ValueError("base_url or http is required")
        self._owns_http = http is None
        self._http = http or httpx.Client(base_url=base_url, timeout=None)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "TaskApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        try:
            response = self._http.request(method, path, json=body)
        except httpx.HTTPError as exc:
            raise TaskApiError(method, path, 0, str(exc)) from exc
        if not response.is_success:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict) and "message" in payload:
                message = payload["message"]
            else:
                message = response.text or response.reason_phrase
            raise TaskApiError(method, path, response.status_code, str(message))
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def list_tasks(self) -> list[Task]:
        return [Task.from_dict(item) for item in self._request("GET", "/tasks")]

    def create_task(self, text: str, completed: bool = False) -> Task:
        data = self._request("POST", "/tasks", {"text": text, "completed": completed})
        return Task.from_dict(data)

    def update_task(self, task_id: int, updates: dict[str, Any]) -> Task:
        return Task.from_dict(self._request("PUT", f"/tasks/{task_id}", updates))

    def delete_task(self, task_id: int) -> None:
        self._request("DELETE", f"/tasks/{task_id}")

    def clear_completed(self) -> int:
        return int(self._request("DELETE", "/tasks/completed")["deletedCount"])

    def toggle_all(self) -> list[Task]:
        return [Task.from_dict(item) for item in self._request("PUT", "/tasks/toggle-all")]
