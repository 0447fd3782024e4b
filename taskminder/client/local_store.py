from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from taskminder.errors import TaskNotFound, ValidationError
from taskminder.models.task_model import Task, normalize_task
from taskminder.reminders.sweep import Reminder

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"
SETTINGS_KEY = "settings"
# Next local task id. Only grows, so a deleted task's id is never handed out again.
NEXT_ID_KEY = "nextTaskId"


class LocalStorage:
    """
    Key/value blobs persisted as JSON files, one file per key.

    A missing or unreadable blob reads as None; callers substitute their
    own empty value.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get_item(self, key: str) -> Any:
        path = self._path(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError:
            logger.warning("Could not read %s", path, exc_info=True)
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed JSON in %s", path)
            return None

    def set_item(self, key: str, value: Any) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(value, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, path)


@dataclass
class Settings:
    email: str = ""
    # Email whose backend account already received this machine's local tasks.
    migrated_email: str = ""
    # A migration that stopped partway: its target email and the local ids already sent.
    migrating_email: str = ""
    migrated_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "migratedEmail": self.migrated_email,
            "migratingEmail": self.migrating_email,
            "migratedIds": list(self.migrated_ids),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Settings:
        if not isinstance(data, Mapping):
            return cls()
        ids = data.get("migratedIds")
        return cls(
            email=str(data.get("email") or ""),
            migrated_email=str(data.get("migratedEmail") or ""),
            migrating_email=str(data.get("migratingEmail") or ""),
            migrated_ids=[i for i in ids if isinstance(i, int)] if isinstance(ids, list) else [],
        )


class LocalTaskStore:
    """
    Task store backed by ``LocalStorage``.

    Same contract as the backend: ids are assigned on create, lists come
    back newest first, and every write goes through ``normalize_task``.
    The user key is ignored since local storage belongs to one user.
    """

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage
        # The reminder timer runs on its own thread.
        self._lock = threading.RLock()

    # ---- persistence ----

    def load_tasks(self) -> list[Task]:
        raw = self.storage.get_item(TASKS_KEY)
        if not isinstance(raw, list):
            if raw is not None:
                logger.warning("Stored tasks are not a list; starting empty")
            return []

        tasks: list[Task] = []
        for entry in raw:
            if not isinstance(entry, Mapping):
                continue
            try:
                tasks.append(Task.from_dict(entry))
            except (ValidationError, ValueError, TypeError):
                logger.warning("Skipping unreadable stored task: %r", entry)

        # Entries written without ids get the next free ones, in stored order.
        next_id = self._next_free_id(tasks)
        for i, task in enumerate(tasks):
            if task.id is None:
                tasks[i] = replace(task, id=next_id)
                next_id += 1
        return tasks

    def save_tasks(self, tasks: list[Task]) -> None:
        self.storage.set_item(TASKS_KEY, [t.to_dict() for t in tasks])

    def _next_free_id(self, tasks: list[Task]) -> int:
        stored = self.storage.get_item(NEXT_ID_KEY)
        floor = stored if isinstance(stored, int) and not isinstance(stored, bool) else 1
        return max(floor, max((t.id for t in tasks if t.id is not None), default=0) + 1)

    def load_settings(self) -> Settings:
        return Settings.from_dict(self.storage.get_item(SETTINGS_KEY))

    def save_settings(self, settings: Settings) -> None:
        self.storage.set_item(SETTINGS_KEY, settings.to_dict())

    # ---- store interface ----

    def list(self, user_key: str | None = None) -> list[Task]:
        with self._lock:
            return sorted(self.load_tasks(), key=lambda t: t.id, reverse=True)

    def create(self, user_key: str | None, fields: Mapping[str, Any]) -> Task:
        with self._lock:
            tasks = self.load_tasks()
            task = normalize_task(fields)
            task.id = self._next_free_id(tasks)
            self.storage.set_item(NEXT_ID_KEY, task.id + 1)
            tasks.append(task)
            self.save_tasks(tasks)
            return task

    def update(self, user_key: str | None, task_id: int, fields: Mapping[str, Any]) -> Task:
        with self._lock:
            tasks = self.load_tasks()
            i = self._index(tasks, task_id)
            tasks[i] = normalize_task(fields, tasks[i])
            self.save_tasks(tasks)
            return tasks[i]

    def delete(self, user_key: str | None, task_id: int) -> bool:
        with self._lock:
            tasks = self.load_tasks()
            kept = [t for t in tasks if t.id != task_id]
            if len(kept) == len(tasks):
                return False
            self.save_tasks(kept)
            return True

    def get(self, task_id: int) -> Task:
        with self._lock:
            tasks = self.load_tasks()
            return tasks[self._index(tasks, task_id)]

    @staticmethod
    def _index(tasks: list[Task], task_id: int) -> int:
        for i, task in enumerate(tasks):
            if task.id == task_id:
                return i
        raise TaskNotFound(f"Task {task_id} not found")

    # ---- reminders ----

    def reminder_repo(self, recipient: str) -> LocalReminderRepo:
        return LocalReminderRepo(self, recipient)

    def set_notified(self, task_id: int, value: bool, *, expect: bool | None = None) -> bool:
        with self._lock:
            tasks = self.load_tasks()
            try:
                i = self._index(tasks, task_id)
            except TaskNotFound:
                return False
            task = tasks[i]
            if expect is not None and (task.notified != expect or task.completed):
                return False
            tasks[i] = replace(task, notified=value)
            self.save_tasks(tasks)
            return True


class LocalReminderRepo:
    """Reminder view of the local store; every task goes to one recipient."""

    def __init__(self, store: LocalTaskStore, recipient: str) -> None:
        self.store = store
        self.recipient = recipient

    def pending_reminders(self) -> list[Reminder]:
        if not self.recipient:
            return []
        return [
            Reminder(recipient=self.recipient, task=t)
            for t in self.store.list()
            if not t.completed and not t.notified and t.due_instant is not None
        ]

    def claim_reminder(self, task_id: int) -> bool:
        return self.store.set_notified(task_id, True, expect=False)

    def release_reminder(self, task_id: int) -> None:
        self.store.set_notified(task_id, False)
