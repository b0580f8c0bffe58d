from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Callable, Optional

from ..core.exceptions import ValidationError

Clock = Callable[[], datetime]


def parse_iso_date(value: Optional[str], field_name: str = "Date") -> date:
    """Parse YYYY-MM-DD string into date."""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} is invalid (YYYY-MM-DD)")
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"{field_name} is invalid (YYYY-MM-DD)")


def parse_clock_time(value: Optional[str], field_name: str = "Time") -> time:
    v = value.strip() if isinstance(value, str) else ""
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(v, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"{field_name} is invalid (HH:MM)")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def display_date(value: Any) -> str:
    """Short calendar form, e.g. "Feb 24".

    Falls back to the raw value when it cannot be read as a date.
    """
    try:
        d = value if isinstance(value, date) else datetime.strptime(str(value), "%Y-%m-%d").date()
    except ValueError:
        return str(value)
    return f"{d.strftime('%b')} {d.day}"


def _clock_label(value: Any) -> str:
    t = value
    if not isinstance(t, time):
        t = datetime.strptime(str(value)[:5], "%H:%M").time()
    hour = t.hour % 12 or 12
    return f"{hour}:{t.minute:02d} {'AM' if t.hour < 12 else 'PM'}"


def format_time_range(start: Any, end: Any) -> str:
    """"6:00 PM - 7:00 PM"; raw values joined when they cannot be parsed."""
    try:
        return f"{_clock_label(start)} - {_clock_label(end)}"
    except ValueError:
        return f"{start} - {end}"


def iso(value: Optional[date]) -> Optional[str]:
    return value.strftime("%Y-%m-%d") if value else None
