from __future__ import annotations

from datetime import date, datetime, time

import pytest

from src.sports_club.sports_club.classes.service import ClassService
from src.sports_club.sports_club.core.enums import AssignmentStatus, Role
from src.sports_club.sports_club.core.exceptions import (
    AuthorizationError,
    CapacityExceededError,
    NotFoundError,
    ValidationError,
)

from tests.fakes import FakeClassRepo, make_slot


def fixed_now():
    return datetime(2024, 6, 3, 8, 0, 0)


def _svc(repo: FakeClassRepo) -> ClassService:
    return ClassService(repo, clock=fixed_now)


def test_list_upcoming_occurrences_applies_cancellations():
    repo = FakeClassRepo([make_slot(1, "monday")])
    repo.add_cancellation(class_id=1, cancelled_date=date(2024, 6, 10), reason="Holiday")

    occ = _svc(repo).list_upcoming_occurrences(1, 14)

    assert [(o.date, o.is_cancelled) for o in occ] == [(date(2024, 6, 3), False), (date(2024, 6, 10), True)]


@pytest.mark.parametrize("days", [0, 91])
def test_list_upcoming_occurrences_rejects_bad_window(days):
    repo = FakeClassRepo([make_slot(1, "monday")])
    with pytest.raises(ValidationError):
        _svc(repo).list_upcoming_occurrences(1, days)


def test_list_upcoming_occurrences_unknown_class():
    with pytest.raises(NotFoundError):
        _svc(FakeClassRepo()).list_upcoming_occurrences(5, 7)


def test_list_my_classes_only_active_assignments():
    repo = FakeClassRepo([make_slot(1, "monday"), make_slot(2, "friday")])
    repo.assign_member(member_id=7, class_id=1, assigned_by=1)
    repo.assign_member(member_id=7, class_id=2, assigned_by=1)
    repo.set_assignment_status(member_id=7, class_id=2, status=AssignmentStatus.DROPPED)

    rows = _svc(repo).list_my_classes(member_id=7, days=7)

    assert [r["id"] for r in rows] == [1]
    assert rows[0]["formatted_time"] == "6:00 PM - 7:00 PM"
    assert [d["date"] for d in rows[0]["upcoming_dates"]] == ["2024-06-03"]


def test_create_slot_requires_admin():
    with pytest.raises(AuthorizationError):
        _svc(FakeClassRepo()).create_slot(
            current_role=Role.MEMBER,
            program_id=1,
            day_of_week="monday",
            start_time=time(18, 0),
            end_time=time(19, 0),
        )


def test_create_slot_normalises_day_and_validates_times():
    repo = FakeClassRepo()
    svc = _svc(repo)

    class_id = svc.create_slot(
        current_role=Role.ADMIN,
        program_id=1,
        day_of_week="Monday",
        start_time=time(18, 0),
        end_time=time(19, 0),
        capacity=12,
        label=" Evening ",
    )
    assert repo.slots[class_id].day_of_week == "monday"
    assert repo.slots[class_id].label == "Evening"

    with pytest.raises(ValidationError):
        svc.create_slot(
            current_role=Role.ADMIN,
            program_id=1,
            day_of_week="monday",
            start_time=time(19, 0),
            end_time=time(18, 0),
        )
    with pytest.raises(ValidationError):
        svc.create_slot(
            current_role=Role.ADMIN,
            program_id=1,
            day_of_week="noday",
            start_time=time(18, 0),
            end_time=time(19, 0),
        )


def test_cancel_date_must_match_weekday():
    repo = FakeClassRepo([make_slot(1, "monday")])
    svc = _svc(repo)

    with pytest.raises(ValidationError):
        svc.cancel_date(current_role=Role.ADMIN, class_id=1, cancelled_date=date(2024, 6, 4))

    svc.cancel_date(current_role=Role.ADMIN, class_id=1, cancelled_date=date(2024, 6, 10), reason="Holiday")
    assert [c.cancelled_date for c in repo.cancellations] == [date(2024, 6, 10)]


def test_assign_member_checks_enrolment_duplicates_and_capacity():
    repo = FakeClassRepo([make_slot(1, "monday", capacity=1)], enrolled=[(7, 1), (8, 1)])
    svc = _svc(repo)

    with pytest.raises(ValidationError):
        svc.assign_member(current_role=Role.ADMIN, admin_user_id=1, member_id=9, class_id=1)

    svc.assign_member(current_role=Role.ADMIN, admin_user_id=1, member_id=7, class_id=1)
    with pytest.raises(ValidationError):
        svc.assign_member(current_role=Role.ADMIN, admin_user_id=1, member_id=7, class_id=1)
    with pytest.raises(CapacityExceededError):
        svc.assign_member(current_role=Role.ADMIN, admin_user_id=1, member_id=8, class_id=1)


def test_unassign_member_marks_dropped():
    repo = FakeClassRepo([make_slot(1, "monday")])
    repo.assign_member(member_id=7, class_id=1, assigned_by=1)
    svc = _svc(repo)

    svc.unassign_member(current_role=Role.ADMIN, member_id=7, class_id=1)

    assert repo.get_assignment(member_id=7, class_id=1).status == AssignmentStatus.DROPPED
    with pytest.raises(NotFoundError):
        svc.unassign_member(current_role=Role.ADMIN, member_id=8, class_id=1)


def test_set_active_toggles_slot():
    repo = FakeClassRepo([make_slot(1, "monday")])

    _svc(repo).set_active(current_role=Role.ADMIN, class_id=1, is_active=False)

    assert repo.slots[1].is_active is False
