from __future__ import annotations

from dataclasses import dataclass

from .absences.mysql_absence_repository import MySQLAbsenceRepository
from .absences.service import AbsenceService
from .classes.mysql_class_repository import MySQLClassRepository
from .classes.service import ClassService
from .common.datetime_utils import Clock, now_local
from .database.connection import DBConfig, DatabaseConnection
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection
    clock: Clock

    users_repo: MySQLUserRepository
    classes_repo: MySQLClassRepository
    absences_repo: MySQLAbsenceRepository

    auth_service: AuthService
    class_service: ClassService
    absence_service: AbsenceService


def build_container(*, db_config: dict, clock: Clock = now_local) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    users_repo = MySQLUserRepository(conn)
    classes_repo = MySQLClassRepository(conn)
    absences_repo = MySQLAbsenceRepository(conn)

    return Container(
        conn=conn,
        clock=clock,
        users_repo=users_repo,
        classes_repo=classes_repo,
        absences_repo=absences_repo,
        auth_service=AuthService(users_repo),
        class_service=ClassService(classes_repo, clock=clock),
        absence_service=AbsenceService(absences_repo, classes_repo, clock=clock),
    )
