from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import minutes_between, now_local
from ..core.constants import RECENT_HISTORY_LIMIT
from ..core.enums import AttendanceStatus
from ..core.exceptions import DuplicateError, NotFoundError
from ..courses.repository import CourseRepository
from ..notifications.service import NotificationService
from ..sessions.model import CheckinSession
from ..sessions.repository import SessionRepository
from ..students.model import AttendanceStats, Student
from ..students.repository import StudentRepository
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord, CheckinResult, CourseAttendanceSummary, Location
from .repository import AttendanceRepository
from .strategies.base import StatusDecision

logger = logging.getLogger(__name__)


class AttendanceRecorder:
    """Records at most one attendance outcome per (session, student).

    Geofence admission is decided by the caller before ``record_attendance``;
    this class only classifies on-time/late and persists.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        sessions: SessionRepository,
        courses: CourseRepository,
        students: StudentRepository,
        notifications: NotificationService,
        *,
        tz_name: str,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
    ):
        self._attendance = attendance
        self._sessions = sessions
        self._courses = courses
        self._students = students
        self._notifications = notifications
        self._tz_name = tz_name
        self._factory = strategy_factory or AttendanceStrategyFactory()

    def record_attendance(
        self,
        session_id: str,
        student_id: str,
        location: Optional[Location] = None,
        *,
        now: Optional[datetime] = None,
        notify: bool = True,
    ) -> CheckinResult:
        now = now or now_local(self._tz_name)

        existing = self._attendance.get_for_session_and_student(session_id, student_id)
        if existing:
            raise DuplicateError("Attendance already recorded", status=existing.status)

        session = self._sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError("Check-in session not found")
        course = self._courses.get_by_id(session.course_id)
        if not course:
            raise NotFoundError("Course not found")

        strategy = self._factory.for_checkin(
            now=now, session_start=session.starts_at, late_threshold_minutes=course.late_minutes
        )
        decision = strategy.decide(minutes_elapsed=minutes_between(session.starts_at, now))

        record = self._persist(session, student_id, decision, now=now, location=location)
        result = CheckinResult(status=record.status, late_minutes=record.late_minutes, record=record)

        if notify:
            student = self._students.get_by_id(student_id)
            if student:
                self._notifications.attendance_recorded(student, course, result)

        return result

    def record_absence(self, session: CheckinSession, student: Student, *, now: datetime) -> Optional[AttendanceRecord]:
        """Synthesize an absence; returns None when a record already exists."""

        if self._attendance.get_for_session_and_student(session.session_id, student.student_id):
            return None

        decision = self._factory.for_absence().decide(minutes_elapsed=0)
        try:
            return self._persist(session, student.student_id, decision, now=now)
        except DuplicateError:
            # Lost a race with a late check-in; that record stands.
            return None

    def recent_history(self, student_id: str, *, limit: int = RECENT_HISTORY_LIMIT) -> Sequence[AttendanceRecord]:
        return self._attendance.get_recent_for_student(student_id, limit)

    def course_summary(self, student_id: str) -> Sequence[CourseAttendanceSummary]:
        return self._attendance.summarize_by_course(student_id)

    def _persist(
        self,
        session: CheckinSession,
        student_id: str,
        decision: StatusDecision,
        *,
        now: datetime,
        location: Optional[Location] = None,
    ) -> AttendanceRecord:
        record = self._attendance.create(
            session_id=session.session_id,
            student_id=student_id,
            recorded_at=now,
            status=decision.status,
            late_minutes=decision.late_minutes if decision.status == AttendanceStatus.LATE else 0,
            gps_lat=location.latitude if location else None,
            gps_lon=location.longitude if location else None,
            note=decision.note,
        )
        self._update_stats(student_id, record.status, now=now)
        logger.info("Recorded %s for student %s in session %s", record.status.value, student_id, session.session_id)
        return record

    def _update_stats(self, student_id: str, status: AttendanceStatus, *, now: datetime) -> None:
        stats = self._students.get_stats(student_id) or AttendanceStats(student_id=student_id)
        self._students.save_stats(stats.apply(status, when=now))
