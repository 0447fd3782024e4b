import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

import requests
from markupsafe import escape

from taskminder.errors import MailError
from taskminder.models.task_model import Task
from taskminder.utils.timeparse import format_due_instant

logger = logging.getLogger(__name__)

REMINDER_SUBJECT = "Task reminder - 1 day left"
EMAILJS_SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"


def render_reminder_html(task: Task) -> str:
    return (
        f"<p>Reminder: Your task <b>{escape(task.text)}</b> "
        f"is due on {escape(format_due_instant(task.due_instant))}</p>"
    )


class SmtpMailer:
    """Server-side reminders over SMTP.

    With no host configured, sends are logged and skipped.
    """

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        from_addr: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_addr = from_addr or user
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "SmtpMailer":
        return cls(
            host=config.get("SMTP_HOST"),
            port=int(config.get("SMTP_PORT") or 587),
            user=config.get("SMTP_USER"),
            password=config.get("SMTP_PASS"),
            from_addr=config.get("MAIL_FROM"),
        )

    @property
    def configured(self) -> bool:
        return bool(self.host)

    def send_reminder(self, recipient: str, task: Task) -> None:
        if not self.configured:
            logger.info("SMTP not configured, skip send to %s: %s", recipient, REMINDER_SUBJECT)
            return

        try:
            msg = self._build_message(recipient, task)
        except ValueError as exc:
            raise MailError(f"Cannot address reminder to {recipient!r}: {exc}") from exc

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls()
                    smtp.ehlo()
                if self.user:
                    smtp.login(self.user, self.password or "")
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailError(f"SMTP send failed: {exc}") from exc

    def _build_message(self, recipient: str, task: Task) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = REMINDER_SUBJECT
        msg["From"] = self.from_addr or ""
        msg["To"] = recipient
        msg.set_content(f"Reminder: your task {task.text!r} is due on {format_due_instant(task.due_instant)}")
        msg.add_alternative(render_reminder_html(task), subtype="html")
        return msg


class EmailJSMailer:
    """Client-side reminders through the EmailJS transactional API."""

    def __init__(
        self,
        public_key: Optional[str],
        service_id: Optional[str],
        template_id: Optional[str],
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ):
        self.public_key = public_key
        self.service_id = service_id
        self.template_id = template_id
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.public_key and self.service_id and self.template_id)

    def send_reminder(self, recipient: str, task: Task) -> None:
        if not self.configured:
            logger.info("EmailJS not configured, skip reminder to %s for task %s", recipient, task.id)
            return

        payload = {
            "service_id": self.service_id,
            "template_id": self.template_id,
            "user_id": self.public_key,
            "template_params": {
                "to_email": recipient,
                "task_title": task.text,
                "task_due_date": format_due_instant(task.due_instant),
            },
        }
        try:
            resp = self.session.post(EMAILJS_SEND_URL, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise MailError(f"EmailJS request failed: {exc}") from exc
        if not resp.ok:
            raise MailError(f"EmailJS rejected reminder: {resp.status_code} {resp.text}")
        logger.debug("EmailJS accepted reminder to %s", recipient)
