from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, CourseAttendanceSummary


class AttendanceRepository(Protocol):
    def get_for_session_and_student(self, session_id: str, student_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

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
        """Insert-if-absent; raises DuplicateError when (session, student) already exists."""

        raise NotImplementedError

    def get_recent_for_student(self, student_id: str, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def summarize_by_course(self, student_id: str) -> Sequence[CourseAttendanceSummary]:
        raise NotImplementedError
