from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import AttendanceStatus
from ..core.exceptions import DuplicateError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, to_float
from .model import AttendanceRecord, CourseAttendanceSummary
from .repository import AttendanceRepository

_COLUMNS = "record_id, session_id, student_id, recorded_at, status, late_minutes, gps_lat, gps_lon, note"


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        session_id=str(r["session_id"]),
        student_id=str(r["student_id"]),
        recorded_at=r["recorded_at"],
        status=AttendanceStatus(r["status"]),
        late_minutes=int(r.get("late_minutes") or 0),
        gps_lat=to_float(r.get("gps_lat")),
        gps_lon=to_float(r.get("gps_lon")),
        note=r.get("note"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_session_and_student(self, session_id: str, student_id: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE session_id=%s AND student_id=%s",
                (session_id, student_id),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create(
        self,
        *,
        session_id: str,
        student_id: str,
        recorded_at: datetime,
        status: AttendanceStatus,
        late_minutes: int = 0,
        gps_lat: Optional[float] = None,
        gps_lon: Optional[float] = None,
        note: Optional[str] = None,
    ) -> AttendanceRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        session_id, student_id, recorded_at, status, late_minutes, gps_lat, gps_lon, note
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (session_id, student_id, recorded_at, status.value, int(late_minutes), gps_lat, gps_lon, note),
                )
                record_id = int(cur.lastrowid)
        except IntegrityError as e:
            if not is_duplicate_key(e):
                raise
            existing = self.get_for_session_and_student(session_id, student_id)
            raise DuplicateError(
                "Attendance already recorded",
                status=existing.status if existing else status,
            ) from e

        return AttendanceRecord(
            record_id=record_id,
            session_id=session_id,
            student_id=student_id,
            recorded_at=recorded_at,
            status=status,
            late_minutes=int(late_minutes),
            gps_lat=gps_lat,
            gps_lon=gps_lon,
            note=note,
        )

    def get_recent_for_student(self, student_id: str, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE student_id=%s
                ORDER BY recorded_at DESC, record_id DESC
                LIMIT %s
                """,
                (student_id, int(limit)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def summarize_by_course(self, student_id: str) -> Sequence[CourseAttendanceSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT c.course_id, c.subject,
                       SUM(ar.status=%s) AS on_time,
                       SUM(ar.status=%s) AS late,
                       SUM(ar.status=%s) AS absent
                FROM attendance_records ar
                JOIN checkin_sessions s ON s.session_id = ar.session_id
                JOIN courses c ON c.course_id = s.course_id
                WHERE ar.student_id=%s
                GROUP BY c.course_id, c.subject
                ORDER BY c.subject
                """,
                (
                    AttendanceStatus.ON_TIME.value,
                    AttendanceStatus.LATE.value,
                    AttendanceStatus.ABSENT.value,
                    student_id,
                ),
            )
            return [
                CourseAttendanceSummary(
                    course_id=str(r["course_id"]),
                    subject=r["subject"],
                    on_time=int(r["on_time"] or 0),
                    late=int(r["late"] or 0),
                    absent=int(r["absent"] or 0),
                )
                for r in fetchall(cur)
            ]
