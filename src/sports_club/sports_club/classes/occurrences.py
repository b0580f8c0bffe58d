"""Projection of weekly class slots onto calendar dates."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

from ..common.datetime_utils import display_date
from ..core.enums import DayOfWeek
from .model import ClassCancellation, ClassOccurrence, ClassSlot


def first_on_or_after(start: date, day: DayOfWeek) -> date:
    return start + timedelta(days=(day.weekday - start.weekday()) % 7)


def generate_occurrences(
    slot: ClassSlot,
    cancellations: Iterable[ClassCancellation],
    *,
    today: date,
    days: int,
) -> list[ClassOccurrence]:
    """List the slot's dates among the `days` calendar days starting today.

    Both today and the last day of the window are included. Dates found in
    `cancellations` are flagged with their reason. A slot whose day_of_week
    cannot be read produces no occurrences.
    """
    day = DayOfWeek.parse(slot.day_of_week)
    if day is None or days <= 0:
        return []

    reasons = {c.cancelled_date: c.reason for c in cancellations if c.class_id == slot.class_id}
    last = today + timedelta(days=days - 1)
    tomorrow = today + timedelta(days=1)

    out: list[ClassOccurrence] = []
    cursor = first_on_or_after(today, day)
    while cursor <= last:
        if slot.runs_on(cursor):
            cancelled = cursor in reasons
            out.append(
                ClassOccurrence(
                    class_id=slot.class_id,
                    date=cursor,
                    day_short=cursor.strftime("%a"),
                    day_long=cursor.strftime("%A"),
                    display_date=display_date(cursor),
                    is_today=cursor == today,
                    is_tomorrow=cursor == tomorrow,
                    is_cancelled=cancelled,
                    cancel_reason=reasons.get(cursor) if cancelled else None,
                )
            )
        cursor += timedelta(days=7)
    return out


def slot_sort_key(slot: ClassSlot) -> tuple:
    """Weekday (Monday first), then start time, then id. Unknown days sort last."""
    day = slot.day
    return (day.weekday if day else 7, slot.start_time, slot.class_id)
