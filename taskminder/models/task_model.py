import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Mapping, Optional

from taskminder.errors import ValidationError
from taskminder.utils.timeparse import resolve_due_instant


class EffortUnit(StrEnum):
    HOURS = "hours"
    MINUTES = "minutes"

    @classmethod
    def from_raw(cls, raw: Any) -> "EffortUnit":
        return cls.MINUTES if raw == cls.MINUTES.value else cls.HOURS


# Older clients send these names.
_WIRE_ALIASES = {
    "plannedTime": "plannedEffort",
    "timeUnit": "effortUnit",
}

# Fields whose change counts as an edit (and so resets ``notified``).
_CONTENT_FIELDS = ("text", "due_date", "due_time", "due_instant", "planned_effort", "effort_unit")


@dataclass
class Task:
    text: str
    due_date: Optional[str] = None  # YYYY-MM-DD
    due_time: Optional[str] = None  # free-form 12h clock, e.g. "7:30 pm"
    due_instant: Optional[datetime] = None  # aware UTC, derived from due_date + due_time
    planned_effort: Optional[float] = None
    effort_unit: EffortUnit = EffortUnit.HOURS
    completed: bool = False
    notified: bool = False
    id: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "dueDate": self.due_date,
            "dueTime": self.due_time,
            "dueInstant": self.due_instant.isoformat() if self.due_instant else None,
            "plannedEffort": self.planned_effort,
            "effortUnit": self.effort_unit.value,
            "completed": self.completed,
            "notified": self.notified,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Task":
        """Load a task that was already normalized once (API response or local blob)."""
        data = _canonical(data)
        text = str(data.get("text") or "").strip()
        if not text:
            raise ValidationError("Task text required")
        due_date = data.get("dueDate") or None
        due_time = data.get("dueTime") or None
        due_instant = _parse_instant(data.get("dueInstant"))
        if due_date is None:
            due_instant = None
        elif due_instant is None:
            due_instant = _resolve(due_date, due_time)
        raw_id = data.get("id")
        return cls(
            id=int(raw_id) if raw_id is not None else None,
            text=text,
            due_date=due_date,
            due_time=due_time,
            due_instant=due_instant,
            planned_effort=_parse_effort(data.get("plannedEffort")),
            effort_unit=EffortUnit.from_raw(data.get("effortUnit")),
            completed=bool(data.get("completed")),
            notified=bool(data.get("notified")),
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Task":
        return cls(
            id=row["id"],
            text=row["text"],
            due_date=row["due_date"],
            due_time=row["due_time"],
            due_instant=_parse_instant(row["due_instant"]),
            planned_effort=row["planned_effort"],
            effort_unit=EffortUnit.from_raw(row["effort_unit"]),
            completed=bool(row["completed"]),
            notified=bool(row["notified"]),
        )


def normalize_task(payload: Mapping[str, Any], existing: Optional[Task] = None) -> Task:
    """Build a validated Task from wire fields.

    Used for both create and update. On update ``payload`` is merged over
    ``existing``; ``notified`` survives only a pure completion toggle.
    """
    merged = existing.to_dict() if existing is not None else {}
    merged.update(_canonical(payload))

    text = str(merged.get("text") or "").strip()
    if not text:
        raise ValidationError("Task text required")

    due_date = _blank_to_none(merged.get("dueDate"))
    due_time = _blank_to_none(merged.get("dueTime"))
    due_instant = _resolve(due_date, due_time)

    task = Task(
        id=existing.id if existing is not None else None,
        text=text,
        due_date=due_date,
        due_time=due_time,
        due_instant=due_instant,
        planned_effort=_parse_effort(merged.get("plannedEffort")),
        effort_unit=EffortUnit.from_raw(merged.get("effortUnit")),
        completed=bool(merged.get("completed")),
    )
    if existing is not None and not _content_changed(existing, task):
        task = replace(task, notified=existing.notified)
    return task


def _content_changed(before: Task, after: Task) -> bool:
    return any(getattr(before, name) != getattr(after, name) for name in _CONTENT_FIELDS)


def _canonical(payload: Mapping[str, Any]) -> dict[str, Any]:
    out = dict(payload)
    for alias, name in _WIRE_ALIASES.items():
        if alias in out and name not in out:
            out[name] = out.pop(alias)
        else:
            out.pop(alias, None)
    return out


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _resolve(due_date: Optional[str], due_time: Optional[str]) -> Optional[datetime]:
    try:
        return resolve_due_instant(due_date, due_time)
    except ValueError:
        raise ValidationError("Invalid due date, expected YYYY-MM-DD") from None


def _parse_effort(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError("Planned effort must be a number")
    try:
        effort = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Planned effort must be a number") from None
    if not math.isfinite(effort):
        raise ValidationError("Planned effort must be a number")
    if effort < 0:
        raise ValidationError("Planned effort cannot be negative")
    return effort


def _parse_instant(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        instant = value
    else:
        instant = datetime.fromisoformat(str(value))
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)
