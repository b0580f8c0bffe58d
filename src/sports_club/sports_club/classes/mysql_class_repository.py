from __future__ import annotations

from datetime import date, time
from typing import Optional, Sequence

from ..core.enums import AssignmentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_date, normalize_mysql_time
from .model import ClassCancellation, ClassSlot, MemberClassAssignment
from .repository import ClassRepository

_SLOT_SELECT = """
    SELECT pc.class_id, pc.program_id, pc.day_of_week, pc.start_time, pc.end_time,
           pc.capacity, pc.is_active, pc.label, pc.coach_id, pc.valid_from, pc.valid_to,
           p.name AS program_name, c.name AS coach_name
    FROM program_classes pc
    JOIN programs p ON p.program_id = pc.program_id
    LEFT JOIN coaches c ON c.coach_id = pc.coach_id
"""


def _to_slot(r: dict) -> ClassSlot:
    return ClassSlot(
        class_id=int(r["class_id"]),
        program_id=int(r["program_id"]),
        day_of_week=str(r["day_of_week"]),
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        capacity=int(r["capacity"]) if r.get("capacity") is not None else None,
        is_active=bool(r["is_active"]),
        label=r.get("label") or "",
        coach_id=r.get("coach_id"),
        coach_name=r.get("coach_name"),
        program_name=r.get("program_name"),
        valid_from=normalize_mysql_date(r.get("valid_from")),
        valid_to=normalize_mysql_date(r.get("valid_to")),
    )


def _to_assignment(r: dict) -> MemberClassAssignment:
    return MemberClassAssignment(
        assignment_id=int(r["assignment_id"]),
        member_id=int(r["member_id"]),
        class_id=int(r["class_id"]),
        status=AssignmentStatus(r["status"]),
        assigned_at=r.get("assigned_at"),
        assigned_by=r.get("assigned_by"),
        notes=r.get("notes"),
    )


class MySQLClassRepository(ClassRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Slots --------
    def get_by_id(self, class_id: int) -> Optional[ClassSlot]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SLOT_SELECT + " WHERE pc.class_id=%s", (int(class_id),))
            r = fetchone(cur)
            return _to_slot(r) if r else None

    def list_for_program(self, *, program_id: int, active_only: bool = True) -> Sequence[ClassSlot]:
        sql = _SLOT_SELECT + " WHERE pc.program_id=%s"
        if active_only:
            sql += " AND pc.is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY pc.class_id", (int(program_id),))
            return [_to_slot(r) for r in fetchall(cur)]

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO program_classes(
                    program_id, coach_id, label, day_of_week, start_time, end_time,
                    capacity, valid_from, valid_to, is_active
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (int(program_id), coach_id, label, day_of_week, start_time, end_time, capacity, valid_from, valid_to),
            )
            return int(cur.lastrowid)

    def set_active(self, class_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE program_classes SET is_active=%s WHERE class_id=%s", (1 if is_active else 0, int(class_id)))
            return cur.rowcount > 0

    # -------- Cancellations --------
    def list_cancellations(
        self,
        *,
        class_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[ClassCancellation]:
        clauses = ["class_id=%s"]
        params: list[object] = [int(class_id)]
        if start is not None:
            clauses.append("cancelled_date >= %s")
            params.append(start)
        if end is not None:
            clauses.append("cancelled_date <= %s")
            params.append(end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT cancellation_id, class_id, cancelled_date, reason
                FROM class_cancellations
                WHERE {" AND ".join(clauses)}
                ORDER BY cancelled_date
                """,
                tuple(params),
            )
            return [
                ClassCancellation(
                    cancellation_id=int(r["cancellation_id"]),
                    class_id=int(r["class_id"]),
                    cancelled_date=normalize_mysql_date(r["cancelled_date"]),
                    reason=r.get("reason"),
                )
                for r in fetchall(cur)
            ]

    def add_cancellation(self, *, class_id: int, cancelled_date: date, reason: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO class_cancellations(class_id, cancelled_date, reason)
                VALUES(%s,%s,%s)
                ON DUPLICATE KEY UPDATE reason=VALUES(reason)
                """,
                (int(class_id), cancelled_date, reason),
            )
            if cur.lastrowid:
                return int(cur.lastrowid)

            cur.execute(
                "SELECT cancellation_id FROM class_cancellations WHERE class_id=%s AND cancelled_date=%s",
                (int(class_id), cancelled_date),
            )
            r = fetchone(cur)
            return int(r["cancellation_id"]) if r else 0

    # -------- Assignments --------
    def count_active_members(self, class_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM member_class_assignments WHERE class_id=%s AND status=%s",
                (int(class_id), AssignmentStatus.ACTIVE.value),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def get_assignment(self, *, member_id: int, class_id: int) -> Optional[MemberClassAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT assignment_id, member_id, class_id, status, assigned_at, assigned_by, notes
                FROM member_class_assignments
                WHERE member_id=%s AND class_id=%s
                """,
                (int(member_id), int(class_id)),
            )
            r = fetchone(cur)
            return _to_assignment(r) if r else None

    def list_member_assignments(self, *, member_id: int, active_only: bool = True) -> Sequence[MemberClassAssignment]:
        sql = """
            SELECT assignment_id, member_id, class_id, status, assigned_at, assigned_by, notes
            FROM member_class_assignments
            WHERE member_id=%s
        """
        params: list[object] = [int(member_id)]
        if active_only:
            sql += " AND status=%s"
            params.append(AssignmentStatus.ACTIVE.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY assignment_id", tuple(params))
            return [_to_assignment(r) for r in fetchall(cur)]

    def assign_member(
        self,
        *,
        member_id: int,
        class_id: int,
        assigned_by: Optional[int],
        notes: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO member_class_assignments(member_id, class_id, status, assigned_by, notes)
                VALUES(%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE status=VALUES(status), assigned_by=VALUES(assigned_by),
                                        notes=VALUES(notes), assigned_at=CURRENT_TIMESTAMP
                """,
                (int(member_id), int(class_id), AssignmentStatus.ACTIVE.value, assigned_by, notes),
            )
            if cur.lastrowid:
                return int(cur.lastrowid)

            cur.execute(
                "SELECT assignment_id FROM member_class_assignments WHERE member_id=%s AND class_id=%s",
                (int(member_id), int(class_id)),
            )
            r = fetchone(cur)
            return int(r["assignment_id"]) if r else 0

    def set_assignment_status(self, *, member_id: int, class_id: int, status: AssignmentStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE member_class_assignments SET status=%s WHERE member_id=%s AND class_id=%s",
                (status.value, int(member_id), int(class_id)),
            )
            return cur.rowcount > 0

    def is_enrolled_in_program(self, *, member_id: int, program_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS ok FROM member_programs WHERE member_id=%s AND program_id=%s AND status='active'",
                (int(member_id), int(program_id)),
            )
            return fetchone(cur) is not None
