import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from taskminder.reminders.mailer import SmtpMailer
from taskminder.reminders.sweep import SCAN_INTERVAL, run_reminder_sweep

logger = logging.getLogger(__name__)

EXTENSION_KEY = "taskminder.reminders"


class ReminderTimer:
    """Runs ``func`` every ``interval_minutes`` on a background thread.

    Runs never overlap: a tick that is still busy when the next one is due
    makes the next one wait (and late ticks are coalesced). ``cancel`` may
    be called any number of times.
    """

    def __init__(
        self,
        func: Callable[[], object],
        *,
        interval_minutes: float = SCAN_INTERVAL.total_seconds() / 60,
        run_immediately: bool = True,
        name: str = "reminder-sweep",
    ):
        self.func = func
        self.interval_minutes = interval_minutes
        self.run_immediately = run_immediately
        self.name = name
        self._scheduler: Optional[BackgroundScheduler] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        with self._lock:
            if self._scheduler is not None:
                return
            job_kwargs = {}
            if self.run_immediately:
                # next_run_time=None would add the job paused.
                job_kwargs["next_run_time"] = datetime.now(timezone.utc)
            scheduler = BackgroundScheduler(timezone=timezone.utc)
            scheduler.add_job(
                self.func,
                "interval",
                minutes=self.interval_minutes,
                id=self.name,
                max_instances=1,
                coalesce=True,
                **job_kwargs,
            )
            scheduler.start()
            self._scheduler = scheduler
        logger.info("Started %s every %s min", self.name, self.interval_minutes)

    def cancel(self) -> None:
        with self._lock:
            scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return
        scheduler.shutdown(wait=False)
        logger.info("Cancelled %s", self.name)


def init_reminders(app, mailer=None) -> ReminderTimer:
    """Start the server-side sweep over every user's tasks."""
    from taskminder.models.task_repository import TaskRepository
    from taskminder.utils.db import get_db

    mailer = mailer or SmtpMailer.from_config(app.config)
    if not getattr(mailer, "configured", True):
        app.logger.warning("SMTP_HOST is not set; reminder emails will be logged and skipped.")

    def sweep() -> list[int]:
        with app.app_context():
            return run_reminder_sweep(TaskRepository(get_db()), mailer)

    timer = ReminderTimer(
        sweep,
        interval_minutes=app.config.get("REMINDER_INTERVAL_MINUTES", 30),
        name="server-reminder-sweep",
    )
    timer.start()
    app.extensions[EXTENSION_KEY] = timer
    return timer
