from __future__ import annotations

from datetime import date, datetime

import pytest

from src.sports_club.sports_club.absences import lifecycle
from src.sports_club.sports_club.core.enums import AbsenceStatus
from src.sports_club.sports_club.core.exceptions import InvalidStateError

from tests.fakes import absence

DECIDED_AT = datetime(2024, 6, 2, 10, 0, 0)


def test_deadline_is_seven_days_after_absence():
    assert lifecycle.makeup_deadline_for(date(2024, 6, 1)) == date(2024, 6, 8)
    assert lifecycle.makeup_deadline_for(date(2024, 6, 28)) == date(2024, 7, 5)


def test_happy_path_through_every_state():
    a = absence(status=AbsenceStatus.PENDING)

    a = lifecycle.approve(a, decided_by=1, decided_at=DECIDED_AT, admin_notes="ok")
    assert a.status == AbsenceStatus.APPROVED
    assert a.decided_by == 1

    a = lifecycle.select_makeup(a, makeup_class_id=2, makeup_date=date(2024, 6, 7))
    assert a.status == AbsenceStatus.MAKEUP_SELECTED
    assert (a.makeup_class_id, a.makeup_date) == (2, date(2024, 6, 7))

    a = lifecycle.complete(a)
    assert a.status == AbsenceStatus.COMPLETED
    assert a.status.is_terminal


@pytest.mark.parametrize(
    "status",
    [AbsenceStatus.APPROVED, AbsenceStatus.REJECTED, AbsenceStatus.MAKEUP_SELECTED, AbsenceStatus.COMPLETED, AbsenceStatus.EXPIRED],
)
def test_only_pending_can_be_decided(status):
    a = absence(status=status)
    with pytest.raises(InvalidStateError):
        lifecycle.approve(a, decided_by=1, decided_at=DECIDED_AT)
    with pytest.raises(InvalidStateError):
        lifecycle.reject(a, decided_by=1, decided_at=DECIDED_AT)


def test_select_makeup_requires_approved():
    with pytest.raises(InvalidStateError):
        lifecycle.select_makeup(absence(status=AbsenceStatus.PENDING), makeup_class_id=2, makeup_date=date(2024, 6, 7))


def test_complete_requires_selected_makeup():
    with pytest.raises(InvalidStateError):
        lifecycle.complete(absence(status=AbsenceStatus.APPROVED))


def test_expire_only_after_deadline():
    a = absence(status=AbsenceStatus.APPROVED)

    with pytest.raises(InvalidStateError):
        lifecycle.expire(a, today=date(2024, 6, 8))
    assert lifecycle.expire(a, today=date(2024, 6, 9)).status == AbsenceStatus.EXPIRED

    with pytest.raises(InvalidStateError):
        lifecycle.expire(absence(status=AbsenceStatus.MAKEUP_SELECTED), today=date(2024, 6, 30))


def test_deadline_day_is_still_open():
    a = absence(status=AbsenceStatus.APPROVED)

    assert lifecycle.is_past_deadline(a, date(2024, 6, 8)) is False
    assert lifecycle.is_past_deadline(a, date(2024, 6, 9)) is True
    assert lifecycle.is_deadline_expired(a, date(2024, 6, 9)) is True
    assert lifecycle.is_deadline_expired(absence(status=AbsenceStatus.COMPLETED), date(2024, 6, 9)) is False


def test_days_left_until_terminal():
    assert lifecycle.days_left_for_makeup(absence(status=AbsenceStatus.APPROVED), date(2024, 6, 5)) == 3
    assert lifecycle.days_left_for_makeup(absence(status=AbsenceStatus.PENDING), date(2024, 6, 20)) == 0
    assert lifecycle.days_left_for_makeup(absence(status=AbsenceStatus.MAKEUP_SELECTED), date(2024, 6, 5)) == 3
    assert lifecycle.days_left_for_makeup(absence(status=AbsenceStatus.REJECTED), date(2024, 6, 5)) is None
    assert lifecycle.days_left_for_makeup(absence(status=AbsenceStatus.COMPLETED), date(2024, 6, 5)) is None
    assert lifecycle.days_left_for_makeup(absence(status=AbsenceStatus.EXPIRED), date(2024, 6, 20)) is None


def test_to_dict_shape():
    row = lifecycle.to_dict(
        absence(status=AbsenceStatus.MAKEUP_SELECTED, makeup_class_id=2, makeup_date=date(2024, 6, 7)),
        today=date(2024, 6, 5),
    )

    assert row["status"] == "makeup_selected"
    assert row["absent_date"] == "2024-06-01"
    assert row["makeup_deadline"] == "2024-06-08"
    assert row["makeup_date"] == "2024-06-07"
    assert row["days_left"] == 3
