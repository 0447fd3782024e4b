import re
from datetime import date, datetime, time, timezone
from typing import Optional, Tuple, Union

_TIME_12H_RE = re.compile(r"(\d{1,2})(?::(\d{1,2}))?(am|pm)", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")

# Used when a task has a due date but no (parseable) time.
DEFAULT_DUE_TIME = time(9, 0)


def parse_time_12h(raw: Optional[str]) -> Optional[Tuple[int, int]]:
    """Parse a 12-hour clock string such as ``"7:30 pm"`` or ``"12AM"``.

    Returns ``(hour, minute)`` on a 24-hour clock, or ``None`` when the
    input does not match. A miss is not an error: callers fall back to
    ``DEFAULT_DUE_TIME``.
    """
    if not raw:
        return None
    cleaned = _WHITESPACE_RE.sub("", str(raw)).lower()
    match = _TIME_12H_RE.fullmatch(cleaned)
    if not match:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2)) if match.group(2) else 0
    if not 1 <= hour <= 12 or not 0 <= minute <= 59:
        return None

    if match.group(3) == "am":
        if hour == 12:
            hour = 0
    elif hour != 12:
        hour += 12
    return hour, minute


def parse_due_date(raw: Union[date, str]) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    parts = str(raw).strip().split("-")
    if len(parts) != 3 or not all(p.isascii() and p.isdigit() for p in parts):
        raise ValueError(f"Invalid due date: {raw!r}")
    year, month, day = (int(p) for p in parts)
    return date(year, month, day)


def resolve_due_instant(
    due_date: Optional[Union[date, str]],
    due_time: Optional[str] = None,
) -> Optional[datetime]:
    """Combine a calendar date and an optional clock string into one instant.

    The wall-clock time is read in the local time zone and the result is an
    aware UTC datetime. No date means no instant.
    """
    if not due_date:
        return None
    day = parse_due_date(due_date)
    parsed = parse_time_12h(due_time)
    hour, minute = parsed if parsed else (DEFAULT_DUE_TIME.hour, DEFAULT_DUE_TIME.minute)
    local = datetime(day.year, day.month, day.day, hour, minute, 0)
    return local.astimezone().astimezone(timezone.utc)


def as_aware(value: datetime) -> datetime:
    """Naive datetimes are taken as local time."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


def format_due_instant(instant: Optional[datetime]) -> str:
    if instant is None:
        return "No date"
    local = as_aware(instant).astimezone()
    hour = local.hour % 12 or 12
    return f"{local:%b} {local.day}, {local.year} • {hour}:{local:%M} {local:%p}"
