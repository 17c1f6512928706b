from __future__ import annotations

from datetime import date, datetime, time
from typing import Union

from ..core.constants import DAY_OF_WEEK_LABELS
from ..core.exceptions import ValidationError

TimeLike = Union[str, time, datetime]


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def format_hhmm(value: Union[time, datetime]) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def parse_hhmm(value: TimeLike) -> time:
    """Accept 'HH:MM' (or 'HH:MM:SS'), time or datetime; seconds are dropped."""
    if isinstance(value, datetime):
        return time(value.hour, value.minute)
    if isinstance(value, time):
        return time(value.hour, value.minute)

    parts = (value or "").strip().split(":")
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
        return time(hour=hours, minute=minutes)
    except (IndexError, ValueError):
        raise ValidationError(f"Giờ không hợp lệ (HH:MM): {value!r}")


def to_minutes(value: TimeLike) -> int:
    """Minutes since midnight."""
    t = parse_hhmm(value)
    return t.hour * 60 + t.minute


def day_of_week_label(value: date) -> str:
    return DAY_OF_WEEK_LABELS[value.weekday()]


def format_timestamp(value: datetime) -> str:
    """Display format used for audit entries and confirmations (vi-VN style)."""
    return value.strftime("%H:%M:%S %d/%m/%Y")
