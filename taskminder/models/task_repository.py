import logging
import sqlite3
from typing import Optional

from taskminder.models.task_model import Task
from taskminder.models.user_model import User
from taskminder.reminders.sweep import Reminder

logger = logging.getLogger(__name__)


class TaskRepository:
    """SQL access for users and their tasks.

    Every task query is scoped by the owner's email; only the reminder
    methods look across users.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ---- users ----

    def ensure_user(self, email: str) -> None:
        self.conn.execute("INSERT OR IGNORE INTO users(email) VALUES (?)", (email,))
        self.conn.commit()

    def get_user(self, email: str) -> Optional[User]:
        row = self.conn.execute(
            "SELECT id, email, created_at FROM users WHERE email = ?", (email,)
        ).fetchone()
        if row is None:
            return None
        return User(id=row["id"], email=row["email"], created_at=row["created_at"])

    # ---- tasks ----

    def list_for_user(self, email: str) -> list[Task]:
        rows = self.conn.execute(
            "SELECT * FROM tasks WHERE user_email = ? ORDER BY id DESC", (email,)
        ).fetchall()
        return [Task.from_row(r) for r in rows]

    def get(self, email: str, task_id: int) -> Optional[Task]:
        row = self.conn.execute(
            "SELECT * FROM tasks WHERE id = ? AND user_email = ?", (task_id, email)
        ).fetchone()
        return Task.from_row(row) if row is not None else None

    def create(self, email: str, task: Task) -> Task:
        self.conn.execute("INSERT OR IGNORE INTO users(email) VALUES (?)", (email,))
        cur = self.conn.execute(
            """
            INSERT INTO tasks(user_email, text, due_date, due_time, due_instant,
                              planned_effort, effort_unit, completed, notified)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (email, *self._columns(task)),
        )
        self.conn.commit()
        return self.get(email, cur.lastrowid)

    def update(self, email: str, task_id: int, task: Task) -> Optional[Task]:
        cur = self.conn.execute(
            """
            UPDATE tasks
               SET text = ?, due_date = ?, due_time = ?, due_instant = ?,
                   planned_effort = ?, effort_unit = ?, completed = ?, notified = ?
             WHERE id = ? AND user_email = ?
            """,
            (*self._columns(task), task_id, email),
        )
        self.conn.commit()
        if cur.rowcount == 0:
            return None
        return self.get(email, task_id)

    def delete(self, email: str, task_id: int) -> bool:
        cur = self.conn.execute(
            "DELETE FROM tasks WHERE id = ? AND user_email = ?", (task_id, email)
        )
        self.conn.commit()
        return cur.rowcount > 0

    # ---- reminders ----

    def pending_reminders(self) -> list[Reminder]:
        rows = self.conn.execute(
            """
            SELECT * FROM tasks
             WHERE due_instant IS NOT NULL AND completed = 0 AND notified = 0
             ORDER BY due_instant
            """
        ).fetchall()
        return [Reminder(recipient=r["user_email"], task=Task.from_row(r)) for r in rows]

    def claim_reminder(self, task_id: int) -> bool:
        """Flip ``notified`` 0 -> 1; False if another sweep got there first."""
        cur = self.conn.execute(
            "UPDATE tasks SET notified = 1 WHERE id = ? AND notified = 0 AND completed = 0",
            (task_id,),
        )
        self.conn.commit()
        return cur.rowcount == 1

    def release_reminder(self, task_id: int) -> None:
        self.conn.execute("UPDATE tasks SET notified = 0 WHERE id = ?", (task_id,))
        self.conn.commit()

    @staticmethod
    def _columns(task: Task) -> tuple:
        return (
            task.text,
            task.due_date,
            task.due_time,
            task.due_instant.isoformat() if task.due_instant else None,
            task.planned_effort,
            task.effort_unit.value,
            int(task.completed),
            int(task.notified),
        )
