"""Absence state machine.

Every allowed edge has exactly one function here; each checks the source
status and returns the updated (immutable) Absence or raises
InvalidStateError. Persistence happens in the service/repository layer.

    pending --approve--> approved --select_makeup--> makeup_selected --complete--> completed
    pending --reject---> rejected
    approved --expire--> expired
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

from ..core.constants import MAKEUP_WINDOW_DAYS
from ..core.enums import AbsenceStatus
from ..core.exceptions import InvalidStateError
from .model import Absence

TRANSITIONS: dict[str, tuple[AbsenceStatus, AbsenceStatus]] = {
    "approve": (AbsenceStatus.PENDING, AbsenceStatus.APPROVED),
    "reject": (AbsenceStatus.PENDING, AbsenceStatus.REJECTED),
    "select_makeup": (AbsenceStatus.APPROVED, AbsenceStatus.MAKEUP_SELECTED),
    "complete": (AbsenceStatus.MAKEUP_SELECTED, AbsenceStatus.COMPLETED),
    "expire": (AbsenceStatus.APPROVED, AbsenceStatus.EXPIRED),
}

_STATE_MESSAGES = {
    "approve": "Only pending absences can be approved",
    "reject": "Only pending absences can be rejected",
    "select_makeup": "Absence has not been approved yet",
    "complete": "No makeup class has been selected for this absence",
    "expire": "Only approved absences can expire",
}


def makeup_deadline_for(absent_date: date) -> date:
    return absent_date + timedelta(days=MAKEUP_WINDOW_DAYS)


def _target(absence: Absence, edge: str) -> AbsenceStatus:
    source, target = TRANSITIONS[edge]
    if absence.status != source:
        raise InvalidStateError(_STATE_MESSAGES[edge])
    return target


def approve(absence: Absence, *, decided_by: int, decided_at: datetime, admin_notes: Optional[str] = None) -> Absence:
    return replace(
        absence,
        status=_target(absence, "approve"),
        decided_by=decided_by,
        decided_at=decided_at,
        admin_notes=admin_notes,
    )


def reject(absence: Absence, *, decided_by: int, decided_at: datetime, admin_notes: Optional[str] = None) -> Absence:
    return replace(
        absence,
        status=_target(absence, "reject"),
        decided_by=decided_by,
        decided_at=decided_at,
        admin_notes=admin_notes,
    )


def select_makeup(absence: Absence, *, makeup_class_id: int, makeup_date: date) -> Absence:
    return replace(
        absence,
        status=_target(absence, "select_makeup"),
        makeup_class_id=makeup_class_id,
        makeup_date=makeup_date,
    )


def complete(absence: Absence) -> Absence:
    return replace(absence, status=_target(absence, "complete"))


def expire(absence: Absence, *, today: date) -> Absence:
    target = _target(absence, "expire")
    if today <= absence.makeup_deadline:
        raise InvalidStateError("Makeup deadline has not passed yet")
    return replace(absence, status=target)


def is_past_deadline(absence: Absence, today: date) -> bool:
    """The deadline date itself is still selectable."""
    return today > absence.makeup_deadline


def is_deadline_expired(absence: Absence, today: date) -> bool:
    """Approved absence whose makeup window closed without a selection."""
    return absence.status == AbsenceStatus.APPROVED and is_past_deadline(absence, today)


def days_left_for_makeup(absence: Absence, today: date) -> Optional[int]:
    """Days until the makeup deadline, floored at 0. None once the absence is terminal."""
    if absence.status.is_terminal:
        return None
    return max(0, (absence.makeup_deadline - today).days)


def to_dict(absence: Absence, *, today: date) -> dict:
    return {
        "id": absence.absence_id,
        "member_id": absence.member_id,
        "program_class_id": absence.class_id,
        "absent_date": absence.absent_date.strftime("%Y-%m-%d"),
        "reason": absence.reason,
        "status": absence.status.value,
        "admin_notes": absence.admin_notes,
        "makeup_deadline": absence.makeup_deadline.strftime("%Y-%m-%d"),
        "days_left": days_left_for_makeup(absence, today),
        "makeup_class_id": absence.makeup_class_id,
        "makeup_date": absence.makeup_date.strftime("%Y-%m-%d") if absence.makeup_date else None,
    }
