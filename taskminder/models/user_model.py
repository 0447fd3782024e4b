import re
from dataclasses import dataclass
from typing import Any, Optional

_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def is_valid_email(email: Any) -> bool:
    return isinstance(email, str) and _EMAIL_RE.fullmatch(email) is not None


@dataclass
class User:
    email: str
    created_at: Optional[str] = None
    id: Optional[int] = None
