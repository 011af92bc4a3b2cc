from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .class_model import SchoolClass
from .class_repository import ClassRepository


def _to_class(r: dict) -> SchoolClass:
    return SchoolClass(
        class_code=str(r["class_code"]),
        class_name=r.get("class_name") or "",
        homeroom_teacher=r.get("homeroom_teacher"),
    )


class MySQLClassRepository(ClassRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT class_code, class_name, homeroom_teacher FROM school_classes ORDER BY class_code")
            return [_to_class(r) for r in fetchall(cur)]
