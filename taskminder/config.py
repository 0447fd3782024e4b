import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from the working directory so local development settings are picked up
load_dotenv()


def _env_flag(name: str, default: str = "1") -> bool:
    return os.environ.get(name, default) == "1"


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    DATABASE_PATH = os.environ.get("DATABASE_PATH", os.path.join("instance", "taskminder.sqlite3"))

    SMTP_HOST = os.environ.get("SMTP_HOST")
    SMTP_PORT = int(os.environ.get("SMTP_PORT", "587"))
    SMTP_USER = os.environ.get("SMTP_USER")
    SMTP_PASS = os.environ.get("SMTP_PASS")
    MAIL_FROM = os.environ.get("MAIL_FROM")

    REMINDERS_ENABLED = _env_flag("REMINDERS_ENABLED")
    REMINDER_INTERVAL_MINUTES = float(os.environ.get("REMINDER_INTERVAL_MINUTES", "30"))

    DEBUG = os.environ.get("FLASK_DEBUG", "0") == "1"


@dataclass
class ClientConfig:
    api_base: str = "http://localhost:4000"
    data_dir: Path = Path.home() / ".taskminder"
    emailjs_public_key: Optional[str] = None
    emailjs_service_id: Optional[str] = None
    emailjs_template_id: Optional[str] = None
    reminder_interval_minutes: float = 30.0
    http_timeout: float = 10.0
    log_level: str = "INFO"


def load_client_config() -> ClientConfig:
    load_dotenv(override=False)
    return ClientConfig(
        api_base=os.environ.get("TASKMINDER_API_BASE", "http://localhost:4000"),
        data_dir=Path(os.environ.get("TASKMINDER_DATA_DIR", Path.home() / ".taskminder")).expanduser(),
        emailjs_public_key=os.environ.get("EMAILJS_PUBLIC_KEY") or None,
        emailjs_service_id=os.environ.get("EMAILJS_SERVICE_ID") or None,
        emailjs_template_id=os.environ.get("EMAILJS_TEMPLATE_ID") or None,
        reminder_interval_minutes=float(os.environ.get("REMINDER_INTERVAL_MINUTES", "30")),
        http_timeout=float(os.environ.get("TASKMINDER_HTTP_TIMEOUT", "10")),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
    )
