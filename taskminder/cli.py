"""
Command-line task list.

Each command loads the local session, probes the backend for the saved
email, runs one operation against whichever store is active and prints
the resulting list. ``watch`` keeps the local reminder timer running
until interrupted.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

from taskminder.client.local_store import LocalStorage, LocalTaskStore
from taskminder.client.remote_store import RemoteTaskStore
from taskminder.client.task_client import TaskClient
from taskminder.config import ClientConfig, load_client_config
from taskminder.errors import TaskminderError
from taskminder.logging_setup import setup_logging
from taskminder.models.task_model import Task
from taskminder.reminders.mailer import EmailJSMailer
from taskminder.utils.timeparse import format_due_instant

logger = logging.getLogger(__name__)


def build_client(config: ClientConfig) -> TaskClient:
    local = LocalTaskStore(LocalStorage(config.data_dir))
    remote = RemoteTaskStore(config.api_base, timeout=config.http_timeout) if config.api_base else None
    mailer = EmailJSMailer(
        config.emailjs_public_key,
        config.emailjs_service_id,
        config.emailjs_template_id,
        timeout=config.http_timeout,
    )
    return TaskClient(
        local,
        remote,
        mailer,
        reminder_interval_minutes=config.reminder_interval_minutes,
    )


def format_task(task: Task) -> str:
    mark = "x" if task.completed else " "
    if task.planned_effort is not None:
        unit = "min" if task.effort_unit == "minutes" else "hrs"
        planned = f"{task.planned_effort:g} {unit}"
    else:
        planned = "—"
    return f"[{mark}] {task.id:>3}  {task.text}  (Due: {format_due_instant(task.due_instant)} • Planned: {planned})"


def _task_fields(args: argparse.Namespace) -> dict:
    fields = {}
    for attr, key in (
        ("text", "text"),
        ("date", "dueDate"),
        ("time", "dueTime"),
        ("effort", "plannedEffort"),
        ("unit", "effortUnit"),
    ):
        value = getattr(args, attr, None)
        if value is not None:
            fields[key] = value
    return fields


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskminder", description="Personal task list with email reminders.")
    parser.add_argument("--data-dir", type=Path, help="local storage directory")
    parser.add_argument("--api-base", help="backend URL (empty string for local only)")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("email", help="save your email and enable reminders")
    p.add_argument("address")

    p = sub.add_parser("add", help="add a task")
    p.add_argument("text")
    p.add_argument("--date", help="due date, YYYY-MM-DD")
    p.add_argument("--time", help="due time, e.g. 7:30pm (defaults to 9:00am)")
    p.add_argument("--effort", help="planned effort")
    p.add_argument("--unit", choices=["hours", "minutes"])

    sub.add_parser("list", help="show tasks")

    p = sub.add_parser("edit", help="edit a task")
    p.add_argument("id", type=int)
    p.add_argument("--text")
    p.add_argument("--date", help="due date, YYYY-MM-DD ('' to clear)")
    p.add_argument("--time", help="due time ('' to clear)")
    p.add_argument("--effort", help="planned effort ('' to clear)")
    p.add_argument("--unit", choices=["hours", "minutes"])

    p = sub.add_parser("done", help="toggle completion")
    p.add_argument("id", type=int)

    p = sub.add_parser("rm", help="delete a task")
    p.add_argument("id", type=int)

    sub.add_parser("watch", help="send local reminders until interrupted")
    return parser


def _print_tasks(client: TaskClient) -> None:
    tasks = client.tasks
    if not tasks:
        print("No tasks.")
    for task in tasks:
        print(format_task(task))


def _watch(client: TaskClient) -> None:
    if client.use_backend:
        print("Backend mode: the server sends reminders for", client.email)
        return
    if not client.email:
        print("No email saved; run `taskminder email ADDRESS` first.")
        return

    stop = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, stopping...", signum)
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    client.schedule_local_reminders()
    print(f"Watching for reminders for {client.email}. Press Ctrl+C to stop.")
    try:
        stop.wait()
    finally:
        client.stop()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_client_config()
    if args.data_dir is not None:
        config.data_dir = args.data_dir
    if args.api_base is not None:
        config.api_base = args.api_base
    setup_logging(console_level="DEBUG" if args.verbose else config.log_level)

    client = build_client(config)
    try:
        client.start(reminders=False)
        if args.command == "email":
            if client.save_email(args.address):
                print("Email saved. Server reminders 1 day before are enabled.")
            else:
                print("Email saved locally. Client reminders will be used.")
            return 0
        if args.command == "watch":
            client.reminders_enabled = True
            _watch(client)
            return 0

        if args.command == "add":
            client.add_task(_task_fields(args))
        elif args.command == "edit":
            client.edit_task(args.id, _task_fields(args))
        elif args.command == "done":
            client.toggle_complete(args.id)
        elif args.command == "rm":
            client.delete_task(args.id)
        else:
            client.refresh()
        _print_tasks(client)
        return 0
    except TaskminderError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    finally:
        client.stop()


if __name__ == "__main__":
    sys.exit(main())
