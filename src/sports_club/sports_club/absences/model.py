from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence

from ..classes.model import ClassSlot
from ..core.enums import AbsenceStatus


@dataclass(frozen=True)
class Absence:
    """Domain entity: a member's reported absence from one class date."""

    absence_id: int
    member_id: int
    class_id: int
    absent_date: date
    reason: Optional[str]
    status: AbsenceStatus
    makeup_deadline: date
    created_at: Optional[datetime] = None
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
    makeup_class_id: Optional[int] = None
    makeup_date: Optional[date] = None


@dataclass(frozen=True)
class SlotAvailability:
    slot: ClassSlot
    available_spots: int
    is_full: bool
    makeup_date: Optional[date] = None

    def to_dict(self) -> dict:
        row = self.slot.to_dict()
        row["available_spots"] = self.available_spots
        row["is_full"] = self.is_full
        row["makeup_date"] = self.makeup_date.strftime("%Y-%m-%d") if self.makeup_date else None
        return row


@dataclass(frozen=True)
class MakeupOptions:
    """Read-model returned to the member when choosing a makeup class."""

    slots: Sequence[SlotAvailability]
    deadline: date
    days_remaining: Optional[int]
    makeups_used: int
    makeups_limit: int

    def to_dict(self) -> dict:
        return {
            "slots": [s.to_dict() for s in self.slots],
            "deadline": self.deadline.strftime("%Y-%m-%d"),
            "days_remaining": self.days_remaining,
            "makeups_used": self.makeups_used,
            "makeups_limit": self.makeups_limit,
        }
