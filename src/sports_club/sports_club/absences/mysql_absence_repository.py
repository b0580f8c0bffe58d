from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import MAKEUP_USED_STATUSES, AbsenceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, normalize_mysql_date
from .model import Absence
from .repository import AbsenceRepository

_ABSENCE_COLUMNS = """
    absence_id, member_id, class_id, absent_date, reason, status, makeup_deadline,
    created_at, decided_by, decided_at, admin_notes, makeup_class_id, makeup_date
"""

_USED = tuple(s.value for s in MAKEUP_USED_STATUSES)


def _to_absence(r: dict) -> Absence:
    return Absence(
        absence_id=int(r["absence_id"]),
        member_id=int(r["member_id"]),
        class_id=int(r["class_id"]),
        absent_date=normalize_mysql_date(r["absent_date"]),
        reason=r.get("reason"),
        status=AbsenceStatus(r["status"]),
        makeup_deadline=normalize_mysql_date(r["makeup_deadline"]),
        created_at=r.get("created_at"),
        decided_by=r.get("decided_by"),
        decided_at=r.get("decided_at"),
        admin_notes=r.get("admin_notes"),
        makeup_class_id=r.get("makeup_class_id"),
        makeup_date=normalize_mysql_date(r.get("makeup_date")),
    )


class MySQLAbsenceRepository(AbsenceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        member_id: int,
        class_id: int,
        absent_date: date,
        reason: Optional[str],
        makeup_deadline: date,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO class_absences(member_id, class_id, absent_date, reason, status, makeup_deadline)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(member_id), int(class_id), absent_date, reason, AbsenceStatus.PENDING.value, makeup_deadline),
            )
            return int(cur.lastrowid)

    def get_by_id(self, absence_id: int) -> Optional[Absence]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_ABSENCE_COLUMNS} FROM class_absences WHERE absence_id=%s", (int(absence_id),))
            r = fetchone(cur)
            return _to_absence(r) if r else None

    def exists_for(self, *, member_id: int, class_id: int, absent_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS ok FROM class_absences WHERE member_id=%s AND class_id=%s AND absent_date=%s",
                (int(member_id), int(class_id), absent_date),
            )
            return fetchone(cur) is not None

    def list_for_member(self, *, member_id: int, limit: int = 200) -> Sequence[Absence]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ABSENCE_COLUMNS}
                FROM class_absences
                WHERE member_id=%s
                ORDER BY absent_date DESC, absence_id DESC
                LIMIT %s
                """,
                (int(member_id), int(limit)),
            )
            return [_to_absence(r) for r in fetchall(cur)]

    def list_admin_view(
        self,
        *,
        status: Optional[AbsenceStatus] = None,
        program_id: Optional[int] = None,
        limit: int = 200,
    ) -> Sequence[dict]:
        clauses = ["1=1"]
        params: list[object] = []
        if status is not None:
            clauses.append("a.status=%s")
            params.append(status.value)
        if program_id is not None:
            clauses.append("pc.program_id=%s")
            params.append(int(program_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT a.absence_id, a.member_id, u.full_name, a.class_id, pc.label, pc.day_of_week,
                       p.name AS program_name, a.absent_date, a.reason, a.status, a.makeup_deadline,
                       a.admin_notes, a.makeup_class_id, mc.label AS makeup_label, a.makeup_date,
                       a.created_at
                FROM class_absences a
                JOIN users u ON u.user_id = a.member_id
                JOIN program_classes pc ON pc.class_id = a.class_id
                JOIN programs p ON p.program_id = pc.program_id
                LEFT JOIN program_classes mc ON mc.class_id = a.makeup_class_id
                WHERE {where}
                ORDER BY a.created_at DESC
                LIMIT %s
                """,
                tuple(params + [int(limit)]),
            )
            out: list[dict] = []
            for r in fetchall(cur):
                makeup_date = normalize_mysql_date(r.get("makeup_date"))
                out.append(
                    {
                        "id": int(r["absence_id"]),
                        "member_id": int(r["member_id"]),
                        "member_name": r["full_name"],
                        "program_class_id": int(r["class_id"]),
                        "class_label": r.get("label") or "",
                        "day_of_week": r["day_of_week"],
                        "program_name": r["program_name"],
                        "absent_date": normalize_mysql_date(r["absent_date"]).strftime("%Y-%m-%d"),
                        "reason": r.get("reason") or "",
                        "status": r["status"],
                        "makeup_deadline": normalize_mysql_date(r["makeup_deadline"]).strftime("%Y-%m-%d"),
                        "admin_notes": r.get("admin_notes") or "",
                        "makeup_class_id": r.get("makeup_class_id"),
                        "makeup_class": r.get("makeup_label"),
                        "makeup_date": makeup_date.strftime("%Y-%m-%d") if makeup_date else None,
                        "created_at": r["created_at"].strftime("%Y-%m-%d %H:%M"),
                    }
                )
            return out

    def decide(
        self,
        *,
        absence_id: int,
        status: AbsenceStatus,
        decided_by: int,
        admin_notes: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE class_absences
                SET status=%s, decided_by=%s, decided_at=NOW(), admin_notes=%s
                WHERE absence_id=%s AND status=%s
                """,
                (status.value, int(decided_by), admin_notes, int(absence_id), AbsenceStatus.PENDING.value),
            )
            return cur.rowcount > 0

    def set_makeup(self, *, absence_id: int, makeup_class_id: int, makeup_date: date, today: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE class_absences
                SET status=%s, makeup_class_id=%s, makeup_date=%s
                WHERE absence_id=%s AND status=%s AND makeup_deadline >= %s
                """,
                (
                    AbsenceStatus.MAKEUP_SELECTED.value,
                    int(makeup_class_id),
                    makeup_date,
                    int(absence_id),
                    AbsenceStatus.APPROVED.value,
                    today,
                ),
            )
            return cur.rowcount > 0

    def mark_completed(self, *, absence_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE class_absences SET status=%s WHERE absence_id=%s AND status=%s",
                (AbsenceStatus.COMPLETED.value, int(absence_id), AbsenceStatus.MAKEUP_SELECTED.value),
            )
            return cur.rowcount > 0

    def mark_expired(self, *, absence_id: int, today: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE class_absences
                SET status=%s
                WHERE absence_id=%s AND status=%s AND makeup_deadline < %s
                """,
                (AbsenceStatus.EXPIRED.value, int(absence_id), AbsenceStatus.APPROVED.value, today),
            )
            return cur.rowcount > 0

    def list_expirable(self, *, today: date) -> Sequence[Absence]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ABSENCE_COLUMNS}
                FROM class_absences
                WHERE status=%s AND makeup_deadline < %s
                ORDER BY makeup_deadline, absence_id
                """,
                (AbsenceStatus.APPROVED.value, today),
            )
            return [_to_absence(r) for r in fetchall(cur)]

    def count_makeups_in_month(self, *, member_id: int, year: int, month: int, exclude_absence_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS n
                FROM class_absences
                WHERE member_id=%s
                  AND YEAR(absent_date)=%s AND MONTH(absent_date)=%s
                  AND status IN ({in_clause(_USED)})
                  AND absence_id <> %s
                """,
                (int(member_id), int(year), int(month), *_USED, int(exclude_absence_id)),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def count_makeups_on(self, *, class_id: int, makeup_date: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS n
                FROM class_absences
                WHERE makeup_class_id=%s AND makeup_date=%s AND status IN ({in_clause(_USED)})
                """,
                (int(class_id), makeup_date, *_USED),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def find_selected_makeup(self, *, member_id: int, class_id: int, makeup_date: date) -> Optional[Absence]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ABSENCE_COLUMNS}
                FROM class_absences
                WHERE member_id=%s AND makeup_class_id=%s AND makeup_date=%s AND status=%s
                LIMIT 1
                """,
                (int(member_id), int(class_id), makeup_date, AbsenceStatus.MAKEUP_SELECTED.value),
            )
            r = fetchone(cur)
            return _to_absence(r) if r else None
