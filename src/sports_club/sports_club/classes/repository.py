from __future__ import annotations

from datetime import date, time
from typing import Optional, Protocol, Sequence

from ..core.enums import AssignmentStatus
from .model import ClassCancellation, ClassSlot, MemberClassAssignment


class ClassRepository(Protocol):
    """Repository interface for class slots, cancellations and member assignments.

    Services depend on this Protocol, not on the MySQL implementation.
    """

    # Slots
    def get_by_id(self, class_id: int) -> Optional[ClassSlot]:
        raise NotImplementedError

    def list_for_program(self, *, program_id: int, active_only: bool = True) -> Sequence[ClassSlot]:
        raise NotImplementedError

    def create_slot(
        self,
        *,
        program_id: int,
        day_of_week: str,
        start_time: time,
        end_time: time,
        capacity: Optional[int],
        label: str,
        coach_id: Optional[int] = None,
        valid_from: Optional[date] = None,
        valid_to: Optional[date] = None,
    ) -> int:
        raise NotImplementedError

    def set_active(self, class_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError

    # Cancellations
    def list_cancellations(
        self,
        *,
        class_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[ClassCancellation]:
        raise NotImplementedError

    def add_cancellation(self, *, class_id: int, cancelled_date: date, reason: Optional[str]) -> int:
        raise NotImplementedError

    # Assignments
    def count_active_members(self, class_id: int) -> int:
        raise NotImplementedError

    def get_assignment(self, *, member_id: int, class_id: int) -> Optional[MemberClassAssignment]:
        raise NotImplementedError

    def list_member_assignments(self, *, member_id: int, active_only: bool = True) -> Sequence[MemberClassAssignment]:
        raise NotImplementedError

    def assign_member(
        self,
        *,
        member_id: int,
        class_id: int,
        assigned_by: Optional[int],
        notes: Optional[str] = None,
    ) -> int:
        """Create the assignment, or reactivate a dropped one. Returns assignment_id."""

        raise NotImplementedError

    def set_assignment_status(self, *, member_id: int, class_id: int, status: AssignmentStatus) -> bool:
        raise NotImplementedError

    def is_enrolled_in_program(self, *, member_id: int, program_id: int) -> bool:
        raise NotImplementedError
