from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..common.datetime_utils import format_time_range, iso
from ..core.enums import AssignmentStatus, DayOfWeek


@dataclass(frozen=True)
class ClassSlot:
    """Domain entity: a recurring weekly class block of one program."""

    class_id: int
    program_id: int
    day_of_week: str
    start_time: time
    end_time: time
    capacity: Optional[int]
    is_active: bool = True
    label: str = ""
    coach_id: Optional[int] = None
    coach_name: Optional[str] = None
    program_name: Optional[str] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None

    @property
    def day(self) -> Optional[DayOfWeek]:
        return DayOfWeek.parse(self.day_of_week)

    @property
    def formatted_time(self) -> str:
        return format_time_range(self.start_time, self.end_time)

    def runs_on(self, on_date: date) -> bool:
        """True if on_date falls inside the slot's validity window."""
        if self.valid_from and on_date < self.valid_from:
            return False
        if self.valid_to and on_date > self.valid_to:
            return False
        return True

    def to_dict(self) -> dict:
        return {
            "id": self.class_id,
            "program_id": self.program_id,
            "program_name": self.program_name,
            "label": self.label,
            "day_of_week": self.day_of_week,
            "start_time": self.start_time.strftime("%H:%M") if isinstance(self.start_time, time) else self.start_time,
            "end_time": self.end_time.strftime("%H:%M") if isinstance(self.end_time, time) else self.end_time,
            "formatted_time": self.formatted_time,
            "capacity": self.capacity,
            "coach_name": self.coach_name,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class ClassCancellation:
    cancellation_id: int
    class_id: int
    cancelled_date: date
    reason: Optional[str] = None


@dataclass(frozen=True)
class ClassOccurrence:
    """One concrete calendar date of a ClassSlot (derived, never stored)."""

    class_id: int
    date: date
    day_short: str
    day_long: str
    display_date: str
    is_today: bool
    is_tomorrow: bool
    is_cancelled: bool
    cancel_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "date": iso(self.date),
            "day_short": self.day_short,
            "day_long": self.day_long,
            "display_date": self.display_date,
            "is_today": self.is_today,
            "is_tomorrow": self.is_tomorrow,
            "is_cancelled": self.is_cancelled,
            "cancel_reason": self.cancel_reason,
        }


@dataclass(frozen=True)
class MemberClassAssignment:
    assignment_id: int
    member_id: int
    class_id: int
    status: AssignmentStatus
    assigned_at: Optional[datetime] = None
    assigned_by: Optional[int] = None
    notes: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == AssignmentStatus.ACTIVE
