"""
Mode-aware task client.

Owns the session (saved email, cached task list, current mode) and routes
every task operation either to local storage or to the backend API.

Mode rules:
- start in local mode with the local reminder timer running;
- once the backend answers for the saved email, switch to backend mode,
  cancel the local timer and let the server send reminders;
- if the backend stops answering, drop back to local mode.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from taskminder.client.local_store import LocalTaskStore, Settings
from taskminder.client.remote_store import RemoteTaskStore
from taskminder.errors import BackendError, BackendUnavailable, TaskNotFound, ValidationError
from taskminder.models.task_model import Task
from taskminder.models.user_model import is_valid_email
from taskminder.reminders.scheduler import ReminderTimer
from taskminder.reminders.sweep import Mailer, run_reminder_sweep

logger = logging.getLogger(__name__)

# Fields copied when local tasks are migrated to a fresh backend account.
_MIGRATED_FIELDS = ("text", "dueDate", "dueTime", "plannedEffort", "effortUnit", "completed")


class TaskStore(Protocol):
    def list(self, user_key: str) -> list[Task]: ...

    def create(self, user_key: str, fields: Mapping[str, Any]) -> Task: ...

    def update(self, user_key: str, task_id: int, fields: Mapping[str, Any]) -> Task: ...

    def delete(self, user_key: str, task_id: int) -> bool: ...


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


@dataclass
class Session:
    settings: Settings = field(default_factory=Settings)
    tasks: list[Task] = field(default_factory=list)
    use_backend: bool = False

    @classmethod
    def load(cls, local: LocalTaskStore) -> Session:
        return cls(settings=local.load_settings(), tasks=local.list())


class TaskClient:
    def __init__(
        self,
        local: LocalTaskStore,
        remote: RemoteTaskStore | None = None,
        mailer: Mailer | None = None,
        *,
        reminder_interval_minutes: float = 30.0,
        timer_factory: Callable[..., Timer] = ReminderTimer,
    ) -> None:
        self.local = local
        self.remote = remote
        self.mailer = mailer
        self.reminder_interval_minutes = reminder_interval_minutes
        self.timer_factory = timer_factory
        self.session = Session.load(local)
        self._timer: Timer | None = None
        # Off for one-shot commands that must not send mail in the background.
        self.reminders_enabled = True

    @property
    def use_backend(self) -> bool:
        return self.session.use_backend

    @property
    def email(self) -> str:
        return self.session.settings.email

    @property
    def tasks(self) -> list[Task]:
        return self.session.tasks

    @property
    def store(self) -> TaskStore:
        if self.session.use_backend and self.remote is not None:
            return self.remote
        return self.local

    # ---- lifecycle ----

    def start(self, *, reminders: bool = True) -> bool:
        """Schedule local reminders, then probe the backend. Returns True in backend mode."""
        self.reminders_enabled = reminders
        self.schedule_local_reminders()
        return self.try_enable_backend()

    def stop(self) -> None:
        self.cancel_local_reminders()

    def try_enable_backend(self) -> bool:
        email = self.email
        if not email or self.remote is None:
            return False
        settings = self.session.settings
        try:
            remote_tasks = self.remote.list(email)
            # A migration cut short by the backend going away resumes even
            # though the account is no longer empty.
            if settings.migrated_email != email and (
                not remote_tasks or settings.migrating_email == email
            ):
                self._migrate_local_tasks(email)
            self.session.tasks = self.remote.list(email)
        except BackendError as exc:
            logger.info("Backend not available, staying in local mode: %s", exc)
            self.session.use_backend = False
            return False

        self.session.use_backend = True
        self.cancel_local_reminders()
        logger.info("Backend mode active for %s", email)
        return True

    def _migrate_local_tasks(self, email: str) -> None:
        settings = self.session.settings
        if settings.migrating_email != email:
            settings.migrating_email = email
            settings.migrated_ids = []
            self.local.save_settings(settings)

        done = set(settings.migrated_ids)
        # Oldest first so the backend ids keep the local order.
        pending = [t for t in reversed(self.local.list()) if t.id not in done]
        for task in pending:
            data = task.to_dict()
            self.remote.create(email, {k: data[k] for k in _MIGRATED_FIELDS})
            settings.migrated_ids.append(task.id)
            self.local.save_settings(settings)

        settings.migrated_email = email
        settings.migrating_email = ""
        settings.migrated_ids = []
        self.local.save_settings(settings)
        if pending:
            logger.info("Migrated %d local tasks to the backend for %s", len(pending), email)

    def save_email(self, email: str) -> bool:
        """Persist the user's email; returns True if backend reminders are active."""
        email = (email or "").strip()
        if not is_valid_email(email):
            raise ValidationError("Please enter a valid email address.")
        self.session.settings.email = email
        self.local.save_settings(self.session.settings)

        if self.remote is not None:
            try:
                self.remote.register(email)
            except BackendError as exc:
                logger.info("Could not register %s with the backend: %s", email, exc)
            else:
                if self.try_enable_backend():
                    return True

        self.session.use_backend = False
        self.schedule_local_reminders()
        return False

    # ---- tasks ----

    def refresh(self) -> list[Task]:
        if self.session.use_backend:
            try:
                self.session.tasks = self.remote.list(self.email)
                return self.session.tasks
            except BackendUnavailable as exc:
                self._fall_back_to_local(exc)
        self.session.tasks = self.local.list()
        return self.session.tasks

    def add_task(self, fields: Mapping[str, Any]) -> Task:
        task = self._write(lambda store: store.create(self.email, fields))
        self.refresh()
        return task

    def edit_task(self, task_id: int, changes: Mapping[str, Any]) -> Task:
        task = self._write(lambda store: store.update(self.email, task_id, changes))
        self.refresh()
        return task

    def toggle_complete(self, task_id: int) -> Task:
        current = self.find(task_id)
        return self.edit_task(task_id, {"completed": not current.completed})

    def delete_task(self, task_id: int) -> bool:
        deleted = self._write(lambda store: store.delete(self.email, task_id))
        self.refresh()
        return deleted

    def find(self, task_id: int) -> Task:
        for task in self.refresh():
            if task.id == task_id:
                return task
        raise TaskNotFound(f"Task {task_id} not found")

    def _write(self, op: Callable[[TaskStore], Any]) -> Any:
        store = self.store
        try:
            return op(store)
        except BackendUnavailable as exc:
            self._fall_back_to_local(exc)
            raise

    def _fall_back_to_local(self, exc: Exception) -> None:
        logger.warning("Backend unreachable, switching to local mode: %s", exc)
        self.session.use_backend = False
        self.schedule_local_reminders()

    # ---- local reminders ----

    def schedule_local_reminders(self) -> None:
        if self.session.use_backend or not self.reminders_enabled:
            return
        self.cancel_local_reminders()
        self._timer = self.timer_factory(
            self.check_reminders,
            interval_minutes=self.reminder_interval_minutes,
            name="local-reminder-sweep",
        )
        self._timer.start()

    def cancel_local_reminders(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    @property
    def reminders_running(self) -> bool:
        return self._timer is not None

    def check_reminders(self, now: datetime | None = None) -> list[int]:
        if self.session.use_backend or not self.email or self.mailer is None:
            return []
        sent = run_reminder_sweep(self.local.reminder_repo(self.email), self.mailer, now=now)
        if sent:
            self.session.tasks = self.local.list()
        return sent
