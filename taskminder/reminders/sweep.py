"""
Reminder sweep.

One pass over the tasks that still need a reminder:
- keep those whose due instant is 23.5 to 24 hours away,
- claim each one (notified: False -> True) so no other sweep sends it too,
- send the email; on any send failure, release the claim so the next
  sweep tries again, and carry on with the remaining tasks.

Local and backend modes both run this function; only the repo and mailer
differ.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Protocol

from taskminder.errors import MailError
from taskminder.utils.timeparse import as_aware

if TYPE_CHECKING:
    from taskminder.models.task_model import Task

logger = logging.getLogger(__name__)

REMINDER_LEAD = timedelta(hours=24)
REMINDER_WINDOW = timedelta(minutes=30)
SCAN_INTERVAL = timedelta(minutes=30)


@dataclass(frozen=True)
class Reminder:
    recipient: str
    task: Task


class ReminderRepo(Protocol):
    def pending_reminders(self) -> Iterable[Reminder]: ...

    def claim_reminder(self, task_id: int) -> bool: ...

    def release_reminder(self, task_id: int) -> None: ...


class Mailer(Protocol):
    def send_reminder(self, recipient: str, task: Task) -> None: ...


def is_reminder_due(task: Task, now: datetime) -> bool:
    if task.completed or task.notified or task.due_instant is None:
        return False
    remaining = task.due_instant - as_aware(now)
    return REMINDER_LEAD - REMINDER_WINDOW <= remaining <= REMINDER_LEAD


def run_reminder_sweep(
    repo: ReminderRepo,
    mailer: Mailer,
    *,
    now: datetime | None = None,
) -> list[int]:
    """Send every reminder that is due at ``now``; return the task ids sent."""
    now = as_aware(now) if now is not None else datetime.now(timezone.utc)
    sent: list[int] = []

    for reminder in repo.pending_reminders():
        task = reminder.task
        if task.id is None or not is_reminder_due(task, now):
            continue
        if not repo.claim_reminder(task.id):
            logger.debug("Reminder for task %s already claimed", task.id)
            continue

        try:
            mailer.send_reminder(reminder.recipient, task)
        except MailError as exc:
            logger.warning("Reminder for task %s to %s failed: %s", task.id, reminder.recipient, exc)
            repo.release_reminder(task.id)
            continue
        except Exception:
            # Unexpected failures get the same release, plus a traceback.
            logger.exception("Reminder for task %s to %r crashed", task.id, reminder.recipient)
            repo.release_reminder(task.id)
            continue

        logger.info("Reminder sent to %s for task %s", reminder.recipient, task.id)
        sent.append(task.id)

    return sent
