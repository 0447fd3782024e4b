from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import requests

from taskminder.errors import BackendError, BackendUnavailable, TaskNotFound, ValidationError
from taskminder.models.task_model import Task

logger = logging.getLogger(__name__)


class RemoteTaskStore:
    """
    Task store backed by the taskminder HTTP API.

    Error mapping:
    - connection problems / timeouts -> BackendUnavailable
    - 400 -> ValidationError, 404 -> TaskNotFound
    - anything else that is not 2xx -> BackendError
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise BackendUnavailable(f"{method} {url} failed: {exc}") from exc

        if r.ok:
            try:
                return r.json()
            except ValueError as exc:
                raise BackendError(f"{method} {url}: response is not JSON", status_code=r.status_code) from exc

        message = _error_message(r)
        if r.status_code == 400:
            raise ValidationError(message)
        if r.status_code == 404:
            raise TaskNotFound(message)
        raise BackendError(f"{method} {url}: {r.status_code} {message}", status_code=r.status_code)

    def register(self, email: str) -> None:
        self._request("POST", "/api/register", json={"email": email})

    def list(self, user_key: str) -> list[Task]:
        data = self._request("GET", "/api/tasks", params={"email": user_key})
        if not isinstance(data, list):
            raise BackendError("Unexpected task list payload")
        return [Task.from_dict(item) for item in data]

    def create(self, user_key: str, fields: Mapping[str, Any]) -> Task:
        payload = {**fields, "email": user_key}
        return Task.from_dict(self._request("POST", "/api/tasks", json=payload))

    def update(self, user_key: str, task_id: int, fields: Mapping[str, Any]) -> Task:
        payload = {**fields, "email": user_key}
        return Task.from_dict(self._request("PUT", f"/api/tasks/{task_id}", json=payload))

    def delete(self, user_key: str, task_id: int) -> bool:
        data = self._request("DELETE", f"/api/tasks/{task_id}", params={"email": user_key})
        return bool(data.get("ok")) if isinstance(data, dict) else False


def _error_message(r: requests.Response) -> str:
    try:
        data = r.json()
    except ValueError:
        return r.text or r.reason or ""
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return r.text
