from __future__ import annotations

from datetime import date, datetime, time

import pytest

from src.sports_club.sports_club.absences.service import AbsenceService
from src.sports_club.sports_club.core.enums import AbsenceStatus, Role
from src.sports_club.sports_club.core.exceptions import (
    AuthorizationError,
    CapacityExceededError,
    DeadlineExpiredError,
    InvalidStateError,
    MonthlyCapExceededError,
    NotFoundError,
    ValidationError,
)

from tests.fakes import FakeAbsenceRepo, FakeClassRepo, absence, make_slot

MEMBER = 7

# Absent from Saturday class 1 on 2024-06-01; Friday class 2 is the usual makeup.
SAT, FRI = 1, 2


def clock_at(y, m, d):
    return lambda: datetime(y, m, d, 9, 0, 0)


def _setup(*absences, today=(2024, 6, 5), slots=None, repo_cls=FakeAbsenceRepo):
    classes = FakeClassRepo(
        slots
        or [
            make_slot(SAT, "saturday", capacity=10),
            make_slot(FRI, "friday", capacity=10),
        ]
    )
    classes.assign_member(member_id=MEMBER, class_id=SAT, assigned_by=1)
    repo = repo_cls(absences)
    return AbsenceService(repo, classes, clock=clock_at(*today)), repo, classes


# -------- report --------
def test_report_sets_pending_and_deadline():
    svc, repo, _ = _setup(today=(2024, 6, 1))

    a = svc.report_absence(member_id=MEMBER, class_id=SAT, absent_date=date(2024, 6, 1), reason="  Sick ")

    assert a.status == AbsenceStatus.PENDING
    assert a.makeup_deadline == date(2024, 6, 8)
    assert a.reason == "Sick"


def test_report_rejects_past_date():
    svc, _, _ = _setup(today=(2024, 6, 2))
    with pytest.raises(ValidationError):
        svc.report_absence(member_id=MEMBER, class_id=SAT, absent_date=date(2024, 6, 1))


def test_report_rejects_long_reason():
    svc, _, _ = _setup(today=(2024, 6, 1))
    with pytest.raises(ValidationError):
        svc.report_absence(member_id=MEMBER, class_id=SAT, absent_date=date(2024, 6, 8), reason="x" * 501)


def test_report_requires_assignment_and_known_class():
    svc, _, _ = _setup(today=(2024, 6, 1))
    with pytest.raises(AuthorizationError):
        svc.report_absence(member_id=99, class_id=SAT, absent_date=date(2024, 6, 8))
    with pytest.raises(NotFoundError):
        svc.report_absence(member_id=MEMBER, class_id=404, absent_date=date(2024, 6, 8))


def test_report_rejects_duplicate():
    svc, _, _ = _setup(today=(2024, 6, 1))
    svc.report_absence(member_id=MEMBER, class_id=SAT, absent_date=date(2024, 6, 8))
    with pytest.raises(ValidationError):
        svc.report_absence(member_id=MEMBER, class_id=SAT, absent_date=date(2024, 6, 8))


# -------- decisions --------
def test_approve_keeps_deadline_and_records_decider():
    svc, repo, _ = _setup(absence(status=AbsenceStatus.PENDING))

    a = svc.approve(current_role=Role.ADMIN, admin_user_id=1, absence_id=1, admin_notes="fine")

    assert a.status == AbsenceStatus.APPROVED
    assert a.makeup_deadline == date(2024, 6, 8)
    assert a.decided_by == 1
    assert a.admin_notes == "fine"


def test_approve_twice_is_invalid_state():
    svc, _, _ = _setup(absence(status=AbsenceStatus.PENDING))
    svc.approve(current_role=Role.ADMIN, admin_user_id=1, absence_id=1)
    with pytest.raises(InvalidStateError):
        svc.reject(current_role=Role.ADMIN, admin_user_id=1, absence_id=1)


def test_decisions_require_admin():
    svc, _, _ = _setup(absence(status=AbsenceStatus.PENDING))
    with pytest.raises(AuthorizationError):
        svc.approve(current_role=Role.MEMBER, admin_user_id=MEMBER, absence_id=1)
    with pytest.raises(AuthorizationError):
        svc.list_admin_absences(current_role=Role.MEMBER)


def test_reject_is_terminal():
    svc, _, _ = _setup(absence(status=AbsenceStatus.PENDING))
    a = svc.reject(current_role=Role.ADMIN, admin_user_id=1, absence_id=1, admin_notes="no")
    assert a.status == AbsenceStatus.REJECTED
    with pytest.raises(InvalidStateError):
        svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=FRI, makeup_date=date(2024, 6, 7))


# -------- makeup selection --------
def test_select_makeup_within_window():
    svc, repo, _ = _setup(absence())

    a = svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=FRI, makeup_date=date(2024, 6, 7))

    assert a.status == AbsenceStatus.MAKEUP_SELECTED
    assert (a.makeup_class_id, a.makeup_date) == (FRI, date(2024, 6, 7))


def test_select_makeup_on_deadline_day_is_allowed():
    slots = [make_slot(SAT, "saturday"), make_slot(FRI, "friday"), make_slot(3, "saturday", start=time(9, 0))]
    svc, _, _ = _setup(absence(), today=(2024, 6, 8), slots=slots)

    a = svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=3, makeup_date=date(2024, 6, 8))

    assert a.status == AbsenceStatus.MAKEUP_SELECTED


def test_select_makeup_after_deadline_fails():
    svc, repo, _ = _setup(absence(), today=(2024, 6, 9))

    with pytest.raises(DeadlineExpiredError):
        svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=FRI, makeup_date=date(2024, 6, 14))
    assert repo.get_by_id(1).status == AbsenceStatus.APPROVED


def test_deadline_is_checked_before_status():
    svc, repo, _ = _setup(absence(status=AbsenceStatus.PENDING), today=(2024, 6, 9))

    with pytest.raises(DeadlineExpiredError):
        svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=FRI, makeup_date=date(2024, 6, 14))
    assert repo.get_by_id(1).status == AbsenceStatus.PENDING


def test_select_makeup_for_someone_elses_absence():
    svc, _, _ = _setup(absence(member_id=8))
    with pytest.raises(AuthorizationError):
        svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=FRI, makeup_date=date(2024, 6, 7))


def test_select_makeup_on_pending_absence():
    svc, _, _ = _setup(absence(status=AbsenceStatus.PENDING))
    with pytest.raises(InvalidStateError):
        svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=FRI, makeup_date=date(2024, 6, 7))


def test_third_makeup_in_month_is_refused():
    svc, repo, _ = _setup(
        absence(10, status=AbsenceStatus.COMPLETED, absent_date=date(2024, 6, 1), makeup_class_id=FRI, makeup_date=date(2024, 6, 7)),
        absence(11, status=AbsenceStatus.MAKEUP_SELECTED, absent_date=date(2024, 6, 2), makeup_class_id=FRI, makeup_date=date(2024, 6, 7)),
        absence(1, absent_date=date(2024, 6, 1)),
    )

    with pytest.raises(MonthlyCapExceededError):
        svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=FRI, makeup_date=date(2024, 6, 7))
    with pytest.raises(MonthlyCapExceededError):
        svc.list_makeup_slots(member_id=MEMBER, absence_id=1)
    assert repo.get_by_id(1).status == AbsenceStatus.APPROVED


def test_makeups_from_another_month_do_not_count():
    svc, _, _ = _setup(
        absence(10, status=AbsenceStatus.COMPLETED, absent_date=date(2024, 5, 25)),
        absence(11, status=AbsenceStatus.COMPLETED, absent_date=date(2024, 5, 26)),
        absence(1),
    )

    a = svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=FRI, makeup_date=date(2024, 6, 7))

    assert a.status == AbsenceStatus.MAKEUP_SELECTED


def test_select_makeup_when_class_is_full():
    slots = [make_slot(SAT, "saturday"), make_slot(FRI, "friday", capacity=2)]
    svc, _, classes = _setup(
        absence(20, member_id=50, status=AbsenceStatus.MAKEUP_SELECTED, makeup_class_id=FRI, makeup_date=date(2024, 6, 7)),
        absence(),
        slots=slots,
    )
    classes.assign_member(member_id=40, class_id=FRI, assigned_by=1)

    with pytest.raises(CapacityExceededError):
        svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=FRI, makeup_date=date(2024, 6, 7))


@pytest.mark.parametrize(
    "class_id, makeup_date",
    [
        (FRI, date(2024, 6, 6)),  # not a Friday
        (FRI, date(2024, 6, 14)),  # beyond the 7-day window
        (SAT, date(2024, 6, 8)),  # the missed class itself
    ],
)
def test_select_makeup_date_rules(class_id, makeup_date):
    svc, _, _ = _setup(absence())
    with pytest.raises(ValidationError):
        svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=class_id, makeup_date=makeup_date)


def test_select_makeup_must_stay_in_month_of_absence():
    svc, _, _ = _setup(absence(absent_date=date(2024, 6, 29)), today=(2024, 6, 29))
    with pytest.raises(ValidationError):
        svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=FRI, makeup_date=date(2024, 7, 5))


def test_select_makeup_other_program_or_cancelled():
    slots = [make_slot(SAT, "saturday"), make_slot(FRI, "friday"), make_slot(3, "friday", program_id=2)]
    svc, _, classes = _setup(absence(), slots=slots)

    with pytest.raises(ValidationError):
        svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=3, makeup_date=date(2024, 6, 7))

    classes.add_cancellation(class_id=FRI, cancelled_date=date(2024, 6, 7), reason="Gym closed")
    with pytest.raises(ValidationError):
        svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=FRI, makeup_date=date(2024, 6, 7))


class SweptBeforeWrite(FakeAbsenceRepo):
    """Sweeper expires the row between the service's read and its write."""

    def set_makeup(self, **kw):
        self.add(absence(status=AbsenceStatus.EXPIRED))
        return super().set_makeup(**kw)


def test_select_makeup_loses_race_with_sweeper():
    svc, repo, _ = _setup(absence(), repo_cls=SweptBeforeWrite)

    with pytest.raises(DeadlineExpiredError):
        svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=FRI, makeup_date=date(2024, 6, 7))


# -------- finder --------
def test_list_makeup_slots_lists_same_program_and_flags_full():
    slots = [
        make_slot(SAT, "saturday"),
        make_slot(FRI, "friday", capacity=1),
        make_slot(3, "monday", capacity=None),
        make_slot(4, "tuesday", program_id=2),
        make_slot(5, "wednesday", is_active=False),
    ]
    svc, _, classes = _setup(absence(), slots=slots)
    classes.assign_member(member_id=40, class_id=FRI, assigned_by=1)

    options = svc.list_makeup_slots(member_id=MEMBER, absence_id=1)

    assert [(s.slot.class_id, s.available_spots, s.is_full) for s in options.slots] == [
        (3, 999, False),
        (FRI, 0, True),
    ]
    assert options.deadline == date(2024, 6, 8)
    assert options.days_remaining == 3
    assert (options.makeups_used, options.makeups_limit) == (0, 2)
    assert options.to_dict()["slots"][0]["id"] == 3


def test_list_makeup_slots_counts_makeups_booked_in_window():
    slots = [make_slot(SAT, "saturday"), make_slot(FRI, "friday", capacity=2)]
    svc, _, classes = _setup(
        absence(20, member_id=50, status=AbsenceStatus.MAKEUP_SELECTED, makeup_class_id=FRI, makeup_date=date(2024, 6, 7)),
        absence(21, member_id=51, status=AbsenceStatus.COMPLETED, makeup_class_id=FRI, makeup_date=date(2024, 5, 31)),
        absence(),
        slots=slots,
    )
    classes.assign_member(member_id=40, class_id=FRI, assigned_by=1)

    options = svc.list_makeup_slots(member_id=MEMBER, absence_id=1)

    assert [(s.slot.class_id, s.makeup_date, s.available_spots, s.is_full) for s in options.slots] == [
        (FRI, date(2024, 6, 7), 0, True),
    ]
    assert options.to_dict()["slots"][0]["makeup_date"] == "2024-06-07"
    with pytest.raises(CapacityExceededError):
        svc.select_makeup(member_id=MEMBER, absence_id=1, makeup_class_id=FRI, makeup_date=date(2024, 6, 7))


def test_list_makeup_slots_requires_approval():
    svc, _, _ = _setup(absence(status=AbsenceStatus.PENDING))
    with pytest.raises(InvalidStateError):
        svc.list_makeup_slots(member_id=MEMBER, absence_id=1)


# -------- completion --------
def test_complete_makeup():
    svc, repo, _ = _setup(absence(status=AbsenceStatus.MAKEUP_SELECTED, makeup_class_id=FRI, makeup_date=date(2024, 6, 7)))

    assert svc.complete_makeup(absence_id=1).status == AbsenceStatus.COMPLETED
    with pytest.raises(InvalidStateError):
        svc.complete_makeup(absence_id=1)


def test_complete_for_attendance_matches_booked_makeup():
    svc, repo, _ = _setup(absence(status=AbsenceStatus.MAKEUP_SELECTED, makeup_class_id=FRI, makeup_date=date(2024, 6, 7)))

    assert svc.complete_for_attendance(member_id=MEMBER, class_id=FRI, on_date=date(2024, 6, 6)) is None
    done = svc.complete_for_attendance(member_id=MEMBER, class_id=FRI, on_date=date(2024, 6, 7))

    assert done.status == AbsenceStatus.COMPLETED


def test_list_absences_nests_classes():
    svc, _, _ = _setup(absence(status=AbsenceStatus.MAKEUP_SELECTED, makeup_class_id=FRI, makeup_date=date(2024, 6, 7)))

    rows = svc.list_absences(member_id=MEMBER)

    assert rows[0]["program_class"]["id"] == SAT
    assert rows[0]["makeup_class"]["id"] == FRI
