# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskminder.app import create_app
from taskminder.client.local_store import LocalStorage, LocalTaskStore
from taskminder.client.remote_store import RemoteTaskStore
from taskminder.models.task_repository import TaskRepository
from taskminder.utils.db import connect

from .fakes import FakeTimer, FlaskSession, RecordingMailer


@pytest.fixture()
def app(tmp_path: Path):
    """Flask app on a throwaway SQLite file, with the reminder timer off."""
    return create_app(
        {
            "TESTING": True,
            "DATABASE_PATH": str(tmp_path / "tasks.sqlite3"),
            "REMINDERS_ENABLED": False,
        }
    )


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def repo(app):
    """Direct SQL access to the same database the routes use."""
    conn = connect(app.config["DATABASE_PATH"])
    try:
        yield TaskRepository(conn)
    finally:
        conn.close()


@pytest.fixture()
def local_store(tmp_path: Path) -> LocalTaskStore:
    return LocalTaskStore(LocalStorage(tmp_path / "local"))


@pytest.fixture()
def backend_session(client) -> FlaskSession:
    return FlaskSession(client)


@pytest.fixture()
def remote_store(backend_session: FlaskSession) -> RemoteTaskStore:
    return RemoteTaskStore("http://testserver", session=backend_session)


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture(autouse=True)
def _reset_fake_timers():
    FakeTimer.instances.clear()
    yield
    FakeTimer.instances.clear()
