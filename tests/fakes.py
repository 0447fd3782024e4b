# tests/fakes.py

from __future__ import annotations

import json as _json
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import requests

from taskminder.errors import MailError
from taskminder.models.task_model import Task


@dataclass
class RecordingMailer:
    """
    Mailer double for reminder tests.

    - Records every (recipient, task) it is asked to send
    - Raises MailError while ``fail`` is set
    """

    fail: bool = False
    sent: list[tuple[str, Task]] = field(default_factory=list)
    attempts: int = 0

    def send_reminder(self, recipient: str, task: Task) -> None:
        self.attempts += 1
        if self.fail:
            raise MailError("smtp down")
        self.sent.append((recipient, task))


class FakeTimer:
    """Stands in for ReminderTimer; never runs anything on its own."""

    instances: list[FakeTimer] = []

    def __init__(self, func, *, interval_minutes: float = 30.0, name: str = "", **_: Any) -> None:
        self.func = func
        self.interval_minutes = interval_minutes
        self.name = name
        self.started = 0
        self.cancelled = 0
        FakeTimer.instances.append(self)

    def start(self) -> None:
        self.started += 1

    def cancel(self) -> None:
        self.cancelled += 1

    @property
    def running(self) -> bool:
        return self.started > 0 and self.cancelled == 0


class FakeResponse:
    def __init__(self, status_code: int, body: bytes, reason: str = "") -> None:
        self.status_code = status_code
        self._body = body
        self.reason = reason

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    @property
    def text(self) -> str:
        return self._body.decode("utf-8")

    def json(self) -> Any:
        return _json.loads(self.text)


class FlaskSession:
    """
    requests.Session look-alike that routes calls into a Flask test client,
    so RemoteTaskStore talks to the real routes without a socket.
    """

    def __init__(self, test_client) -> None:
        self.test_client = test_client
        self.down = False

    def request(self, method: str, url: str, *, params=None, json=None, timeout=None) -> FakeResponse:
        if self.down:
            raise requests.ConnectionError("connection refused")
        path = urlsplit(url).path
        resp = self.test_client.open(path, method=method, query_string=params, json=json)
        return FakeResponse(resp.status_code, resp.get_data(), resp.status)


class UnreachableSession:
    def request(self, method: str, url: str, **_: Any):
        raise requests.ConnectionError(f"cannot reach {url}")
