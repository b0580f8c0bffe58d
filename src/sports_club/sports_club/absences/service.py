from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from ..classes.model import ClassSlot
from ..classes.occurrences import first_on_or_after, slot_sort_key
from ..classes.repository import ClassRepository
from ..common.datetime_utils import Clock, now_local
from ..common.validators import optional_text
from ..core.constants import DEFAULT_LIST_LIMIT, MAX_MAKEUPS_PER_MONTH, MAX_REASON_LENGTH, UNLIMITED_SPOTS
from ..core.enums import AbsenceStatus, Role
from ..core.exceptions import (
    AuthorizationError,
    CapacityExceededError,
    DeadlineExpiredError,
    InvalidStateError,
    MonthlyCapExceededError,
    NotFoundError,
    ValidationError,
)
from . import lifecycle
from .model import Absence, MakeupOptions, SlotAvailability
from .repository import AbsenceRepository

logger = logging.getLogger(__name__)


def _month_bounds_overlap(slot: ClassSlot, year: int, month: int) -> bool:
    key = (year, month)
    if slot.valid_to and (slot.valid_to.year, slot.valid_to.month) < key:
        return False
    if slot.valid_from and (slot.valid_from.year, slot.valid_from.month) > key:
        return False
    return True


class AbsenceService:
    """Absence reporting, admin decisions, makeup booking and deadline expiry."""

    def __init__(self, absences: AbsenceRepository, classes: ClassRepository, *, clock: Clock = now_local):
        self._absences = absences
        self._classes = classes
        self._clock = clock

    def _today(self) -> date:
        return self._clock().date()

    def _get(self, absence_id: int) -> Absence:
        absence = self._absences.get_by_id(int(absence_id))
        if not absence:
            raise NotFoundError("Absence not found")
        return absence

    def _get_owned(self, *, member_id: int, absence_id: int) -> Absence:
        absence = self._get(absence_id)
        if absence.member_id != int(member_id):
            raise AuthorizationError("Not authorized")
        return absence

    def _ensure_before_deadline(self, absence: Absence, today: date) -> None:
        if lifecycle.is_past_deadline(absence, today):
            raise DeadlineExpiredError(
                f"Makeup selection deadline expired ({absence.makeup_deadline.strftime('%b %d, %Y')})"
            )

    def _makeups_used(self, absence: Absence) -> int:
        return self._absences.count_makeups_in_month(
            member_id=absence.member_id,
            year=absence.absent_date.year,
            month=absence.absent_date.month,
            exclude_absence_id=absence.absence_id,
        )

    def _ensure_monthly_cap(self, absence: Absence) -> int:
        used = self._makeups_used(absence)
        if used >= MAX_MAKEUPS_PER_MONTH:
            raise MonthlyCapExceededError(f"Maximum {MAX_MAKEUPS_PER_MONTH} makeup classes per month already used")
        return used

    # -------- Member: report & list --------
    def report_absence(
        self,
        *,
        member_id: int,
        class_id: int,
        absent_date: date,
        reason: Optional[str] = None,
    ) -> Absence:
        if absent_date < self._today():
            raise ValidationError("Cannot report absence for a past date")
        reason = optional_text(reason, "Reason", MAX_REASON_LENGTH)

        slot = self._classes.get_by_id(int(class_id))
        if not slot:
            raise NotFoundError("Class not found")

        assignment = self._classes.get_assignment(member_id=int(member_id), class_id=slot.class_id)
        if not assignment or not assignment.is_active:
            raise AuthorizationError("You are not assigned to this class")

        if self._absences.exists_for(member_id=int(member_id), class_id=slot.class_id, absent_date=absent_date):
            raise ValidationError("Absence already reported for this class on that date")

        absence_id = self._absences.create(
            member_id=int(member_id),
            class_id=slot.class_id,
            absent_date=absent_date,
            reason=reason,
            makeup_deadline=lifecycle.makeup_deadline_for(absent_date),
        )
        logger.info("Absence %s reported by member %s for class %s on %s", absence_id, member_id, slot.class_id, absent_date)
        return self._get(absence_id)

    def list_absences(self, *, member_id: int, limit: int = DEFAULT_LIST_LIMIT) -> list[dict]:
        today = self._today()
        slots: dict[int, Optional[ClassSlot]] = {}

        def slot_dict(class_id: Optional[int]) -> Optional[dict]:
            if class_id is None:
                return None
            if class_id not in slots:
                slots[class_id] = self._classes.get_by_id(class_id)
            slot = slots[class_id]
            return slot.to_dict() if slot else None

        out: list[dict] = []
        for absence in self._absences.list_for_member(member_id=int(member_id), limit=limit):
            row = lifecycle.to_dict(absence, today=today)
            row["program_class"] = slot_dict(absence.class_id)
            row["makeup_class"] = slot_dict(absence.makeup_class_id)
            out.append(row)
        return out

    # -------- Admin decisions --------
    def list_admin_absences(
        self,
        *,
        current_role: Role,
        status: Optional[AbsenceStatus] = None,
        program_id: Optional[int] = None,
    ) -> list[dict]:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Not authorized")
        return list(self._absences.list_admin_view(status=status, program_id=program_id, limit=DEFAULT_LIST_LIMIT))

    def approve(self, *, current_role: Role, admin_user_id: int, absence_id: int, admin_notes: str = "") -> Absence:
        """pending -> approved. The makeup deadline set at report time is kept."""
        if current_role != Role.ADMIN:
            raise AuthorizationError("Not authorized")

        absence = self._get(absence_id)
        notes = optional_text(admin_notes, "Admin notes", MAX_REASON_LENGTH)
        updated = lifecycle.approve(absence, decided_by=int(admin_user_id), decided_at=self._clock(), admin_notes=notes)

        if not self._absences.decide(
            absence_id=absence.absence_id,
            status=updated.status,
            decided_by=int(admin_user_id),
            admin_notes=notes,
        ):
            raise InvalidStateError("Absence was already processed")

        logger.info("Absence %s approved by %s (deadline %s)", absence.absence_id, admin_user_id, absence.makeup_deadline)
        return self._absences.get_by_id(absence.absence_id) or updated

    def reject(self, *, current_role: Role, admin_user_id: int, absence_id: int, admin_notes: str = "") -> Absence:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Not authorized")

        absence = self._get(absence_id)
        notes = optional_text(admin_notes, "Admin notes", MAX_REASON_LENGTH)
        updated = lifecycle.reject(absence, decided_by=int(admin_user_id), decided_at=self._clock(), admin_notes=notes)

        if not self._absences.decide(
            absence_id=absence.absence_id,
            status=updated.status,
            decided_by=int(admin_user_id),
            admin_notes=notes,
        ):
            raise InvalidStateError("Absence was already processed")

        logger.info("Absence %s rejected by %s", absence.absence_id, admin_user_id)
        return self._absences.get_by_id(absence.absence_id) or updated

    # -------- Makeups --------
    def _makeup_date_for(self, absence: Absence, slot: ClassSlot, today: date) -> Optional[date]:
        """The slot's one date inside the makeup window, if it has one."""
        day = slot.day
        if day is None:
            return None
        start = max(absence.absent_date + timedelta(days=1), today)
        candidate = first_on_or_after(start, day)
        if candidate > absence.makeup_deadline or candidate.month != absence.absent_date.month:
            return None
        return candidate if slot.runs_on(candidate) else None

    def available_slots(self, absence: Absence) -> list[SlotAvailability]:
        """Active slots of the same program, other than the one missed.

        Spots left count both regular members and makeups already booked on
        the slot's date inside the window. Full slots are kept (is_full=True)
        so they can be shown as unavailable.
        """
        original = self._classes.get_by_id(absence.class_id)
        if not original:
            raise NotFoundError("Class not found")

        today = self._today()
        year, month = absence.absent_date.year, absence.absent_date.month
        candidates = [
            s
            for s in self._classes.list_for_program(program_id=original.program_id, active_only=True)
            if s.is_active and s.class_id != original.class_id and _month_bounds_overlap(s, year, month)
        ]

        out: list[SlotAvailability] = []
        for slot in sorted(candidates, key=slot_sort_key):
            makeup_date = self._makeup_date_for(absence, slot, today)
            if slot.capacity:
                taken = self._classes.count_active_members(slot.class_id)
                if makeup_date:
                    taken += self._absences.count_makeups_on(class_id=slot.class_id, makeup_date=makeup_date)
                available = max(0, slot.capacity - taken)
            else:
                available = UNLIMITED_SPOTS
            out.append(
                SlotAvailability(slot=slot, available_spots=available, is_full=available == 0, makeup_date=makeup_date)
            )
        return out

    def list_makeup_slots(self, *, member_id: int, absence_id: int) -> MakeupOptions:
        today = self._today()
        absence = self._get_owned(member_id=member_id, absence_id=absence_id)
        self._ensure_before_deadline(absence, today)
        if absence.status != AbsenceStatus.APPROVED:
            raise InvalidStateError("Absence has not been approved yet")
        used = self._ensure_monthly_cap(absence)

        return MakeupOptions(
            slots=self.available_slots(absence),
            deadline=absence.makeup_deadline,
            days_remaining=lifecycle.days_left_for_makeup(absence, today),
            makeups_used=used,
            makeups_limit=MAX_MAKEUPS_PER_MONTH,
        )

    def _validate_makeup_date(self, absence: Absence, slot: ClassSlot, makeup_date: date, today: date) -> None:
        day = slot.day
        if day is None or makeup_date.weekday() != day.weekday:
            raise ValidationError(f"Selected class does not run on {makeup_date.strftime('%A')}")
        if makeup_date <= absence.absent_date:
            raise ValidationError("Makeup class date must be after the absent date")
        if makeup_date < today:
            raise ValidationError("Makeup class date cannot be in the past")
        if makeup_date > absence.makeup_deadline:
            raise ValidationError("Makeup date must be within the 7-day window")
        if (makeup_date.year, makeup_date.month) != (absence.absent_date.year, absence.absent_date.month):
            raise ValidationError("Makeup class must be in the same month as the absence")
        if not slot.runs_on(makeup_date):
            raise ValidationError("Selected class does not run on that date")
        if self._classes.list_cancellations(class_id=slot.class_id, start=makeup_date, end=makeup_date):
            raise ValidationError("Selected class is cancelled on that date")

    def select_makeup(
        self,
        *,
        member_id: int,
        absence_id: int,
        makeup_class_id: int,
        makeup_date: date,
    ) -> Absence:
        """approved -> makeup_selected, after checking every booking rule in order."""
        today = self._today()
        absence = self._get_owned(member_id=member_id, absence_id=absence_id)
        self._ensure_before_deadline(absence, today)
        updated = lifecycle.select_makeup(absence, makeup_class_id=int(makeup_class_id), makeup_date=makeup_date)
        self._ensure_monthly_cap(absence)

        original = self._classes.get_by_id(absence.class_id)
        slot = self._classes.get_by_id(int(makeup_class_id))
        if not slot:
            raise NotFoundError("Makeup class not found")
        if not slot.is_active:
            raise ValidationError("Selected class is no longer active")
        if slot.class_id == absence.class_id:
            raise ValidationError("Makeup class must differ from the missed class")
        if original and slot.program_id != original.program_id:
            raise ValidationError("Makeup class must be in the same program")
        assignment = self._classes.get_assignment(member_id=absence.member_id, class_id=slot.class_id)
        if assignment and assignment.is_active:
            raise ValidationError("You are already assigned to this class slot")

        self._validate_makeup_date(absence, slot, makeup_date, today)

        if slot.capacity:
            taken = self._classes.count_active_members(slot.class_id) + self._absences.count_makeups_on(
                class_id=slot.class_id, makeup_date=makeup_date
            )
            if taken >= slot.capacity:
                raise CapacityExceededError("Selected class is full")

        if not self._absences.set_makeup(
            absence_id=absence.absence_id,
            makeup_class_id=slot.class_id,
            makeup_date=makeup_date,
            today=today,
        ):
            current = self._absences.get_by_id(absence.absence_id)
            if current is None or current.status == AbsenceStatus.EXPIRED or lifecycle.is_past_deadline(current, today):
                raise DeadlineExpiredError("Makeup selection deadline expired")
            raise InvalidStateError("Absence was already processed")

        logger.info(
            "Absence %s: member %s booked makeup class %s on %s",
            absence.absence_id,
            absence.member_id,
            slot.class_id,
            makeup_date,
        )
        return self._absences.get_by_id(absence.absence_id) or updated

    def complete_makeup(self, *, absence_id: int) -> Absence:
        """makeup_selected -> completed, once the member attended the makeup."""
        absence = self._get(absence_id)
        updated = lifecycle.complete(absence)
        if not self._absences.mark_completed(absence_id=absence.absence_id):
            raise InvalidStateError("Absence was already processed")
        logger.info("Absence %s makeup completed", absence.absence_id)
        return self._absences.get_by_id(absence.absence_id) or updated

    def complete_for_attendance(self, *, member_id: int, class_id: int, on_date: date) -> Optional[Absence]:
        """Attendance hook: complete the makeup booked for this member, class and date, if any."""
        absence = self._absences.find_selected_makeup(
            member_id=int(member_id),
            class_id=int(class_id),
            makeup_date=on_date,
        )
        if absence is None:
            return None
        return self.complete_makeup(absence_id=absence.absence_id)

    # -------- Sweeper --------
    def expire_deadlines(self) -> int:
        """Expire approved absences whose makeup deadline has passed. Returns the number changed."""
        today = self._today()
        count = 0
        for absence in self._absences.list_expirable(today=today):
            lifecycle.expire(absence, today=today)
            if self._absences.mark_expired(absence_id=absence.absence_id, today=today):
                count += 1
        logger.info("Expired %s absence makeup deadline(s)", count)
        return count
