from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import StudentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceStats, Student
from .repository import StudentRepository

_SELECT_STUDENT = """
    SELECT s.student_id, s.student_name, s.line_user_id, s.line_display_name,
           s.registered_at, s.status,
           GROUP_CONCAT(sc.class_code ORDER BY sc.joined_at SEPARATOR ',') AS class_codes
    FROM students s
    LEFT JOIN student_classes sc ON sc.student_id = s.student_id
"""


def _to_student(r: dict) -> Student:
    codes = r.get("class_codes") or ""
    return Student(
        student_id=str(r["student_id"]),
        student_name=r["student_name"],
        class_codes=tuple(c for c in codes.split(",") if c),
        line_user_id=r.get("line_user_id"),
        registered_at=r["registered_at"],
        status=StudentStatus(r["status"]),
        line_display_name=r.get("line_display_name"),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, where: str, params: tuple) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT_STUDENT} WHERE {where} GROUP BY s.student_id", params)
            r = fetchone(cur)
            return _to_student(r) if r else None

    def get_by_id(self, student_id: str) -> Optional[Student]:
        return self._get_one("s.student_id=%s", (student_id,))

    def get_by_line_user(self, line_user_id: str) -> Optional[Student]:
        return self._get_one("s.line_user_id=%s", (line_user_id,))

    def list_by_class(self, class_code: str) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_SELECT_STUDENT}
                WHERE s.student_id IN (SELECT student_id FROM student_classes WHERE class_code=%s)
                GROUP BY s.student_id
                ORDER BY s.student_id
                """,
                (class_code,),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        student_id: str,
        student_name: str,
        class_code: str,
        line_user_id: str,
        line_display_name: Optional[str],
        registered_at: datetime,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO students(student_id, student_name, line_user_id, line_display_name, registered_at, status)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (student_id, student_name, line_user_id, line_display_name, registered_at, StudentStatus.ACTIVE.value),
            )
            cur.execute(
                "INSERT INTO student_classes(student_id, class_code, joined_at) VALUES(%s,%s,%s)",
                (student_id, class_code, registered_at),
            )

    def bind_line_user(self, student_id: str, *, line_user_id: str, line_display_name: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE students
                SET line_user_id=%s, line_display_name=%s, status=%s
                WHERE student_id=%s
                """,
                (line_user_id, line_display_name, StudentStatus.ACTIVE.value, student_id),
            )
            return cur.rowcount > 0

    def unbind(self, student_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE students SET line_user_id=NULL, status=%s WHERE student_id=%s",
                (StudentStatus.UNBOUND.value, student_id),
            )
            return cur.rowcount > 0

    def add_class(self, student_id: str, class_code: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT IGNORE INTO student_classes(student_id, class_code) VALUES(%s,%s)",
                (student_id, class_code),
            )
            return cur.rowcount > 0

    def remove_class(self, student_id: str, class_code: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM student_classes WHERE student_id=%s AND class_code=%s",
                (student_id, class_code),
            )
            return cur.rowcount > 0

    def get_stats(self, student_id: str) -> Optional[AttendanceStats]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id, attended_count, late_count, absent_count, updated_at
                FROM attendance_stats
                WHERE student_id=%s
                """,
                (student_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return AttendanceStats(
                student_id=str(r["student_id"]),
                attended_count=int(r["attended_count"] or 0),
                late_count=int(r["late_count"] or 0),
                absent_count=int(r["absent_count"] or 0),
                updated_at=r.get("updated_at"),
            )

    def save_stats(self, stats: AttendanceStats) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_stats(student_id, attended_count, late_count, absent_count, attendance_rate, updated_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    attended_count=VALUES(attended_count),
                    late_count=VALUES(late_count),
                    absent_count=VALUES(absent_count),
                    attendance_rate=VALUES(attendance_rate),
                    updated_at=VALUES(updated_at)
                """,
                (
                    stats.student_id,
                    stats.attended_count,
                    stats.late_count,
                    stats.absent_count,
                    stats.attendance_rate,
                    stats.updated_at,
                ),
            )
