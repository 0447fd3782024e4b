# tests/test_task_client.py

from __future__ import annotations

from datetime import timedelta

import pytest

from taskminder.client.local_store import LocalStorage, LocalTaskStore, Settings
from taskminder.client.remote_store import RemoteTaskStore
from taskminder.client.task_client import TaskClient
from taskminder.errors import BackendUnavailable, ValidationError

from .fakes import FakeTimer, RecordingMailer, UnreachableSession

EMAIL = "ann@example.com"


def _client(local_store, remote=None, mailer=None) -> TaskClient:
    return TaskClient(local_store, remote, mailer or RecordingMailer(), timer_factory=FakeTimer)


def _offline_remote() -> RemoteTaskStore:
    return RemoteTaskStore("http://localhost:1", session=UnreachableSession())


def test_stays_local_when_backend_unreachable(local_store) -> None:
    local_store.save_settings(Settings(email=EMAIL))
    client = _client(local_store, _offline_remote())

    assert client.start() is False
    assert client.use_backend is False
    assert FakeTimer.instances[-1].running

    client.add_task({"text": "offline task"})
    assert [t.text for t in local_store.list()] == ["offline task"]


def test_no_email_means_local_mode(local_store, remote_store) -> None:
    client = _client(local_store, remote_store)
    assert client.start() is False
    assert client.reminders_running


def test_backend_mode_cancels_local_timer(local_store, remote_store) -> None:
    local_store.save_settings(Settings(email=EMAIL))
    client = _client(local_store, remote_store)

    assert client.start() is True
    assert client.use_backend
    assert not client.reminders_running
    assert FakeTimer.instances[0].cancelled == 1


def test_start_without_reminders_schedules_nothing(local_store) -> None:
    client = _client(local_store, _offline_remote())
    client.start(reminders=False)

    assert FakeTimer.instances == []
    assert client.save_email(EMAIL) is False
    assert FakeTimer.instances == []


def test_local_tasks_migrate_once(local_store, remote_store, backend_session) -> None:
    local_store.create(None, {"text": "first", "dueDate": "2024-03-01", "dueTime": "8am"})
    local_store.create(None, {"text": "second", "plannedEffort": 15, "effortUnit": "minutes"})
    local_store.save_settings(Settings(email=EMAIL))

    client = _client(local_store, remote_store)
    assert client.start() is True
    assert [t.text for t in client.tasks] == ["second", "first"]
    assert client.tasks[0].effort_unit == "minutes"
    assert local_store.load_settings().migrated_email == EMAIL

    for task in client.tasks:
        client.delete_task(task.id)

    again = _client(local_store, remote_store)
    assert again.start() is True
    assert again.tasks == []


def test_interrupted_migration_resumes_where_it_stopped(local_store, remote_store, backend_session) -> None:
    for text in ("t0", "t1", "t2"):
        local_store.create(None, {"text": text})
    local_store.save_settings(Settings(email=EMAIL))

    posts = 0
    forward = backend_session.request

    def drop_on_second_post(method, url, **kwargs):
        nonlocal posts
        if method == "POST" and url.endswith("/api/tasks"):
            posts += 1
            if posts == 2:
                backend_session.down = True
        return forward(method, url, **kwargs)

    backend_session.request = drop_on_second_post

    first = _client(local_store, remote_store)
    assert first.start() is False
    settings = local_store.load_settings()
    assert (settings.migrating_email, settings.migrated_ids) == (EMAIL, [1])

    backend_session.down = False
    second = _client(local_store, remote_store)
    assert second.start() is True
    assert [t.text for t in second.tasks] == ["t2", "t1", "t0"]

    settings = local_store.load_settings()
    assert settings.migrated_email == EMAIL
    assert (settings.migrating_email, settings.migrated_ids) == ("", [])


def test_no_migration_when_backend_has_tasks(local_store, remote_store) -> None:
    remote_store.create(EMAIL, {"text": "already there"})
    local_store.create(None, {"text": "local only"})
    local_store.save_settings(Settings(email=EMAIL))

    client = _client(local_store, remote_store)
    client.start()

    assert [t.text for t in client.tasks] == ["already there"]


def test_save_email_validates(local_store, remote_store) -> None:
    client = _client(local_store, remote_store)

    with pytest.raises(ValidationError):
        client.save_email("nope")
    assert local_store.load_settings().email == ""


def test_save_email_registers_and_enables_backend(local_store, remote_store, repo) -> None:
    client = _client(local_store, remote_store)
    client.start()

    assert client.save_email(f"  {EMAIL} ") is True
    assert client.use_backend
    assert repo.get_user(EMAIL) is not None
    assert local_store.load_settings().email == EMAIL


def test_save_email_offline_keeps_local_reminders(local_store) -> None:
    client = _client(local_store, _offline_remote())
    client.start()

    assert client.save_email(EMAIL) is False
    assert client.reminders_running
    assert local_store.load_settings().email == EMAIL


def test_backend_loss_on_write_falls_back(local_store, remote_store, backend_session) -> None:
    local_store.save_settings(Settings(email=EMAIL))
    client = _client(local_store, remote_store)
    client.start()
    backend_session.down = True

    with pytest.raises(BackendUnavailable):
        client.add_task({"text": "lost"})

    assert client.use_backend is False
    assert client.reminders_running
    assert local_store.list() == []


def test_backend_loss_on_read_is_silent(local_store, remote_store, backend_session) -> None:
    local_store.create(None, {"text": "cached"})
    local_store.save_settings(Settings(email=EMAIL, migrated_email=EMAIL))
    remote_store.create(EMAIL, {"text": "remote"})
    client = _client(local_store, remote_store)
    client.start()
    backend_session.down = True

    assert [t.text for t in client.refresh()] == ["cached"]
    assert client.use_backend is False


def test_toggle_complete_keeps_notified_but_edit_resets(local_store) -> None:
    client = _client(local_store)
    task = client.add_task({"text": "x", "dueDate": "2024-01-02"})
    local_store.set_notified(task.id, True)

    assert client.toggle_complete(task.id).notified is True
    assert client.edit_task(task.id, {"dueTime": "5pm"}).notified is False


def test_local_reminders_send_once(local_store) -> None:
    mailer = RecordingMailer()
    local_store.save_settings(Settings(email=EMAIL))
    client = _client(local_store, mailer=mailer)
    task = client.add_task({"text": "pay rent", "dueDate": "2024-01-02", "dueTime": "9am"})
    now = task.due_instant - timedelta(hours=24)

    assert client.check_reminders(now) == [task.id]
    assert client.check_reminders(now + timedelta(minutes=5)) == []
    assert [(r, t.text) for r, t in mailer.sent] == [(EMAIL, "pay rent")]
    assert client.tasks[0].notified is True


def test_completed_task_gets_no_local_reminder(local_store) -> None:
    mailer = RecordingMailer()
    local_store.save_settings(Settings(email=EMAIL))
    client = _client(local_store, mailer=mailer)
    task = client.add_task({"text": "x", "dueDate": "2024-01-02"})
    client.toggle_complete(task.id)

    assert client.check_reminders(task.due_instant - timedelta(hours=24)) == []


def test_backend_mode_skips_local_reminders(local_store, remote_store) -> None:
    mailer = RecordingMailer()
    local_store.create(None, {"text": "x", "dueDate": "2024-01-02"})
    local_store.save_settings(Settings(email=EMAIL))
    client = _client(local_store, remote_store, mailer)
    client.start()

    assert client.check_reminders() == []
    assert mailer.attempts == 0


def test_local_and_backend_lists_match(tmp_path, remote_store) -> None:
    local = _client(LocalTaskStore(LocalStorage(tmp_path / "a")))
    remote_local = LocalTaskStore(LocalStorage(tmp_path / "b"))
    remote_local.save_settings(Settings(email=EMAIL))
    backend = _client(remote_local, remote_store)
    backend.start()
    assert backend.use_backend

    for client in (local, backend):
        a = client.add_task({"text": "write report", "dueDate": "2024-05-01", "dueTime": "4:30pm"})
        b = client.add_task({"text": "gym", "plannedEffort": "45", "effortUnit": "minutes"})
        c = client.add_task({"text": "call mom", "dueDate": "2024-05-03"})
        client.edit_task(a.id, {"dueTime": "bogus"})
        client.toggle_complete(b.id)
        client.delete_task(c.id)
        client.add_task({"text": "read", "plannedEffort": 1})

    def strip_ids(tasks):
        return [{k: v for k, v in t.to_dict().items() if k != "id"} for t in tasks]

    assert strip_ids(local.refresh()) == strip_ids(backend.refresh())
    assert [t["text"] for t in strip_ids(local.tasks)] == ["read", "gym", "write report"]
