from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, to_float, to_time
from .model import Course
from .repository import CourseRepository

_SELECT_COURSE = """
    SELECT c.course_id, c.subject, c.teacher, c.weekday, c.start_time, c.end_time,
           c.classroom, c.classroom_lat, c.classroom_lon, c.check_radius, c.late_minutes, c.is_active,
           GROUP_CONCAT(cc.class_code ORDER BY cc.class_code SEPARATOR ',') AS class_codes
    FROM courses c
    LEFT JOIN course_classes cc ON cc.course_id = c.course_id
"""


def _to_course(r: dict) -> Course:
    codes = r.get("class_codes") or ""
    return Course(
        course_id=str(r["course_id"]),
        subject=r["subject"],
        class_codes=tuple(c for c in codes.split(",") if c),
        weekday=int(r["weekday"]),
        start_time=to_time(r["start_time"]),
        end_time=to_time(r["end_time"]),
        classroom=r.get("classroom"),
        classroom_lat=to_float(r.get("classroom_lat")),
        classroom_lon=to_float(r.get("classroom_lon")),
        check_radius=int(r["check_radius"]),
        late_minutes=int(r["late_minutes"]),
        teacher=r.get("teacher"),
        is_active=bool(r["is_active"]),
    )


class MySQLCourseRepository(CourseRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, course_id: str) -> Optional[Course]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT_COURSE} WHERE c.course_id=%s GROUP BY c.course_id", (course_id,))
            r = fetchone(cur)
            return _to_course(r) if r else None

    def list_active_for_weekday(self, weekday: int) -> Sequence[Course]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_SELECT_COURSE}
                WHERE c.is_active=1 AND c.weekday=%s
                GROUP BY c.course_id
                ORDER BY c.start_time
                """,
                (int(weekday),),
            )
            return [_to_course(r) for r in fetchall(cur)]
