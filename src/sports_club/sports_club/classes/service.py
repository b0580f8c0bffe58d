from __future__ import annotations

import logging
from datetime import date, time, timedelta
from typing import Optional

from ..common.datetime_utils import Clock, now_local
from ..common.validators import optional_text, require_positive_id
from ..core.constants import DEFAULT_UPCOMING_DAYS, MAX_UPCOMING_DAYS
from ..core.enums import AssignmentStatus, DayOfWeek, Role
from ..core.exceptions import AuthorizationError, CapacityExceededError, NotFoundError, ValidationError
from .model import ClassOccurrence, ClassSlot
from .occurrences import generate_occurrences
from .repository import ClassRepository

logger = logging.getLogger(__name__)


class ClassService:
    def __init__(self, classes: ClassRepository, *, clock: Clock = now_local):
        self._classes = classes
        self._clock = clock

    def _today(self) -> date:
        return self._clock().date()

    def get_slot(self, class_id: int) -> ClassSlot:
        slot = self._classes.get_by_id(int(class_id))
        if not slot:
            raise NotFoundError("Class not found")
        return slot

    # -------- Calendar --------
    def upcoming_for_slot(self, slot: ClassSlot, *, days: int) -> list[ClassOccurrence]:
        today = self._today()
        cancellations = self._classes.list_cancellations(
            class_id=slot.class_id,
            start=today,
            end=today + timedelta(days=days),
        )
        return generate_occurrences(slot, cancellations, today=today, days=days)

    def list_upcoming_occurrences(self, class_id: int, days: int = DEFAULT_UPCOMING_DAYS) -> list[ClassOccurrence]:
        days = int(days)
        if not 1 <= days <= MAX_UPCOMING_DAYS:
            raise ValidationError(f"Days must be between 1 and {MAX_UPCOMING_DAYS}")
        return self.upcoming_for_slot(self.get_slot(class_id), days=days)

    def list_my_classes(self, *, member_id: int, days: int = DEFAULT_UPCOMING_DAYS) -> list[dict]:
        """Member's active class assignments with their upcoming dates."""
        days = int(days)
        if not 1 <= days <= MAX_UPCOMING_DAYS:
            raise ValidationError(f"Days must be between 1 and {MAX_UPCOMING_DAYS}")

        out: list[dict] = []
        for assignment in self._classes.list_member_assignments(member_id=int(member_id)):
            slot = self._classes.get_by_id(assignment.class_id)
            if not slot:
                continue
            row = slot.to_dict()
            row["assignment_id"] = assignment.assignment_id
            row["upcoming_dates"] = [o.to_dict() for o in self.upcoming_for_slot(slot, days=days)]
            out.append(row)
        return out

    # -------- Admin --------
    def create_slot(
        self,
        *,
        current_role: Role,
        program_id: int,
        day_of_week: str,
        start_time: time,
        end_time: time,
        capacity: Optional[int] = None,
        label: str = "",
        coach_id: Optional[int] = None,
        valid_from: Optional[date] = None,
        valid_to: Optional[date] = None,
    ) -> int:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Not authorized")

        day = DayOfWeek.parse(day_of_week)
        if day is None:
            raise ValidationError("Day of week is invalid")
        if start_time >= end_time:
            raise ValidationError("Start time must be before end time")
        if capacity is not None and int(capacity) <= 0:
            raise ValidationError("Capacity must be a positive number")
        if valid_from and valid_to and valid_to < valid_from:
            raise ValidationError("Valid to must be on or after valid from")

        class_id = self._classes.create_slot(
            program_id=require_positive_id(program_id, "Program"),
            day_of_week=day.value,
            start_time=start_time,
            end_time=end_time,
            capacity=int(capacity) if capacity is not None else None,
            label=optional_text(label, "Label", 100) or "",
            coach_id=coach_id,
            valid_from=valid_from,
            valid_to=valid_to,
        )
        logger.info("Created class %s (program=%s, %s %s)", class_id, program_id, day.value, start_time)
        return class_id

    def set_active(self, *, current_role: Role, class_id: int, is_active: bool) -> None:
        """Deactivate instead of deleting; absences and attendance keep pointing at the slot."""
        if current_role != Role.ADMIN:
            raise AuthorizationError("Not authorized")
        self.get_slot(class_id)
        self._classes.set_active(int(class_id), is_active=is_active)

    def cancel_date(self, *, current_role: Role, class_id: int, cancelled_date: date, reason: Optional[str] = None) -> int:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Not authorized")

        slot = self.get_slot(class_id)
        if slot.day is None or cancelled_date.weekday() != slot.day.weekday:
            raise ValidationError(f"Class does not run on {cancelled_date.strftime('%A')}")
        return self._classes.add_cancellation(
            class_id=slot.class_id,
            cancelled_date=cancelled_date,
            reason=optional_text(reason, "Reason", 255),
        )

    def assign_member(
        self,
        *,
        current_role: Role,
        admin_user_id: int,
        member_id: int,
        class_id: int,
        notes: Optional[str] = None,
    ) -> int:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Not authorized")

        slot = self.get_slot(class_id)
        member_id = require_positive_id(member_id, "Member")

        if not self._classes.is_enrolled_in_program(member_id=member_id, program_id=slot.program_id):
            raise ValidationError("Member is not enrolled in this program")

        existing = self._classes.get_assignment(member_id=member_id, class_id=slot.class_id)
        if existing and existing.is_active:
            raise ValidationError("Member is already assigned to this class slot")

        if slot.capacity and self._classes.count_active_members(slot.class_id) >= slot.capacity:
            raise CapacityExceededError(f"Class is at full capacity ({slot.capacity})")

        assignment_id = self._classes.assign_member(
            member_id=member_id,
            class_id=slot.class_id,
            assigned_by=int(admin_user_id),
            notes=optional_text(notes, "Notes", 255),
        )
        logger.info("Assigned member %s to class %s", member_id, slot.class_id)
        return assignment_id

    def unassign_member(self, *, current_role: Role, member_id: int, class_id: int) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Not authorized")

        if not self._classes.set_assignment_status(
            member_id=int(member_id),
            class_id=int(class_id),
            status=AssignmentStatus.DROPPED,
        ):
            raise NotFoundError("Assignment not found")
        logger.info("Removed member %s from class %s", member_id, class_id)
