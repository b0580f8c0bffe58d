from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import AbsenceStatus
from .model import Absence


class AbsenceRepository(Protocol):
    """Persistence for absences.

    Status-changing writes are conditional on the expected current status and
    return False when the row was not in that status (processed elsewhere).
    """

    def create(
        self,
        *,
        member_id: int,
        class_id: int,
        absent_date: date,
        reason: Optional[str],
        makeup_deadline: date,
    ) -> int:
        raise NotImplementedError

    def get_by_id(self, absence_id: int) -> Optional[Absence]:
        raise NotImplementedError

    def exists_for(self, *, member_id: int, class_id: int, absent_date: date) -> bool:
        raise NotImplementedError

    def list_for_member(self, *, member_id: int, limit: int = 200) -> Sequence[Absence]:
        """Newest absent_date first."""

        raise NotImplementedError

    def list_admin_view(
        self,
        *,
        status: Optional[AbsenceStatus] = None,
        program_id: Optional[int] = None,
        limit: int = 200,
    ) -> Sequence[dict]:
        """Rows for the admin table (joined with member/class/program)."""

        raise NotImplementedError

    def decide(
        self,
        *,
        absence_id: int,
        status: AbsenceStatus,
        decided_by: int,
        admin_notes: Optional[str] = None,
    ) -> bool:
        """pending -> approved/rejected."""

        raise NotImplementedError

    def set_makeup(self, *, absence_id: int, makeup_class_id: int, makeup_date: date, today: date) -> bool:
        """approved -> makeup_selected, only while makeup_deadline >= today."""

        raise NotImplementedError

    def mark_completed(self, *, absence_id: int) -> bool:
        """makeup_selected -> completed."""

        raise NotImplementedError

    def mark_expired(self, *, absence_id: int, today: date) -> bool:
        """approved -> expired, only when makeup_deadline < today."""

        raise NotImplementedError

    def list_expirable(self, *, today: date) -> Sequence[Absence]:
        """Approved absences whose makeup_deadline is before today."""

        raise NotImplementedError

    def count_makeups_in_month(self, *, member_id: int, year: int, month: int, exclude_absence_id: int) -> int:
        """Absences in makeup_selected/completed whose absent_date is in the given month."""

        raise NotImplementedError

    def count_makeups_on(self, *, class_id: int, makeup_date: date) -> int:
        """Makeups already booked into class_id on makeup_date."""

        raise NotImplementedError

    def find_selected_makeup(self, *, member_id: int, class_id: int, makeup_date: date) -> Optional[Absence]:
        raise NotImplementedError
