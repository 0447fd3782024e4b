# tests/test_timeparse.py

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from taskminder.utils.timeparse import format_due_instant, parse_time_12h, resolve_due_instant


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("12:00am", (0, 0)),
        ("12:30pm", (12, 30)),
        ("7:05am", (7, 5)),
        ("7 pm", (19, 0)),
        (" 11:59 PM ", (23, 59)),
        ("1AM", (1, 0)),
        ("12pm", (12, 0)),
        ("9:5pm", (21, 5)),
    ],
)
def test_parse_time_12h_valid(raw: str, expected: tuple[int, int]) -> None:
    assert parse_time_12h(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        "25:00pm", "abc", "", None, "13:00pm", "0:30am", "7:60pm", "7:30", "19:00", "7:30 p.m.",
        # Only ASCII digits count.
        "\uff17pm", "\u0667:30pm",
    ],
)
def test_parse_time_12h_malformed_is_no_match(raw) -> None:
    assert parse_time_12h(raw) is None


@pytest.mark.parametrize("raw", ["25:00pm", "abc", "", None])
def test_resolver_defaults_to_nine_am(raw) -> None:
    local = resolve_due_instant(date(2024, 3, 5), raw).astimezone()
    assert (local.year, local.month, local.day, local.hour, local.minute) == (2024, 3, 5, 9, 0)


def test_resolver_uses_parsed_time_in_local_zone() -> None:
    instant = resolve_due_instant("2024-03-05", "7:30 pm")

    assert instant.tzinfo == timezone.utc
    local = instant.astimezone()
    assert (local.day, local.hour, local.minute) == (5, 19, 30)
    assert instant == datetime(2024, 3, 5, 19, 30).astimezone()


@pytest.mark.parametrize("raw", [None, ""])
def test_resolver_without_date_has_no_instant(raw) -> None:
    assert resolve_due_instant(raw, "7:30pm") is None


@pytest.mark.parametrize("raw", ["2024-13-01", "next tuesday", "2024/01/02", "\uff12\uff10\uff12\uff14-01-02"])
def test_resolver_rejects_malformed_date(raw: str) -> None:
    with pytest.raises(ValueError):
        resolve_due_instant(raw)


def test_format_due_instant() -> None:
    instant = datetime(2024, 1, 2, 21, 5).astimezone()

    assert format_due_instant(instant) == "Jan 2, 2024 • 9:05 PM"
    assert format_due_instant(None) == "No date"
