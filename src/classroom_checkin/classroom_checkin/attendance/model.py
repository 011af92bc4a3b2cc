from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's outcome for one session. Unique on (session, student)."""

    record_id: int
    session_id: str
    student_id: str
    recorded_at: datetime
    status: AttendanceStatus
    late_minutes: int = 0
    gps_lat: Optional[float] = None
    gps_lon: Optional[float] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class CheckinResult:
    status: AttendanceStatus
    late_minutes: int
    record: AttendanceRecord


@dataclass(frozen=True)
class CourseAttendanceSummary:
    """Read-model: one student's tally for a course."""

    course_id: str
    subject: str
    on_time: int
    late: int
    absent: int

    @property
    def total(self) -> int:
        return self.on_time + self.late + self.absent
