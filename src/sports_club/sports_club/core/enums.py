from __future__ import annotations

from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Account role used for access checks."""

    ADMIN = "admin"
    MEMBER = "member"


class DayOfWeek(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def weekday(self) -> int:
        """Python weekday number (Monday == 0)."""
        return _WEEKDAY_ORDER.index(self)

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["DayOfWeek"]:
        """Case-insensitive lookup; None for anything unrecognised."""
        try:
            return cls(value.strip().lower()) if isinstance(value, str) else None
        except ValueError:
            return None


_WEEKDAY_ORDER = list(DayOfWeek)


class AssignmentStatus(str, Enum):
    ACTIVE = "active"
    DROPPED = "dropped"


class AbsenceStatus(str, Enum):
    """Absence workflow states.

    pending -> approved -> makeup_selected -> completed
    pending -> rejected, approved -> expired
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    MAKEUP_SELECTED = "makeup_selected"
    COMPLETED = "completed"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in {AbsenceStatus.REJECTED, AbsenceStatus.COMPLETED, AbsenceStatus.EXPIRED}


# Statuses that consume one of the member's monthly makeups.
MAKEUP_USED_STATUSES = (AbsenceStatus.MAKEUP_SELECTED, AbsenceStatus.COMPLETED)
