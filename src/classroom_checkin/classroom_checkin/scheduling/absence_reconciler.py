from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from ..attendance.model import AttendanceRecord
from ..attendance.service import AttendanceRecorder
from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_ABSENCE_WARNING_THRESHOLD
from ..core.enums import AlertLevel, AttendanceStatus, SessionState
from ..core.exceptions import NotFoundError
from ..courses.model import Course
from ..courses.repository import CourseRepository
from ..notifications.service import NotificationService
from ..sessions.model import CheckinSession
from ..sessions.repository import SessionRepository
from ..students.model import Student
from ..students.repository import StudentRepository

logger = logging.getLogger(__name__)


@dataclass
class ReconcileSummary:
    sessions_closed: int = 0
    absences_recorded: int = 0
    failures: int = 0

    def to_dict(self) -> dict:
        return {
            "sessions_closed": self.sessions_closed,
            "absences_recorded": self.absences_recorded,
            "failures": self.failures,
        }


def consecutive_absences(records: Iterable[AttendanceRecord]) -> int:
    """Count the leading run of absences in newest-first records."""

    count = 0
    for r in records:
        if r.status != AttendanceStatus.ABSENT:
            break
        count += 1
    return count


def alert_level(consecutive: int) -> Optional[AlertLevel]:
    if consecutive >= 5:
        return AlertLevel.CRITICAL
    if consecutive >= 3:
        return AlertLevel.WARNING
    if consecutive >= 2:
        return AlertLevel.NOTICE
    return None


class AbsenceReconciler:
    """Closes ended sessions and records an absence for every enrolled student without a record.

    Safe to call repeatedly: a session is claimed with an OPEN -> CLOSING compare-and-set
    before any absentee is written, so overlapping sweeps skip it.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        courses: CourseRepository,
        students: StudentRepository,
        recorder: AttendanceRecorder,
        notifications: NotificationService,
        *,
        tz_name: str,
        notify_absent: bool = True,
        warning_threshold: int = DEFAULT_ABSENCE_WARNING_THRESHOLD,
    ):
        self._sessions = sessions
        self._courses = courses
        self._students = students
        self._recorder = recorder
        self._notifications = notifications
        self._tz_name = tz_name
        self._notify_absent = notify_absent
        self._warning_threshold = int(warning_threshold)

    def sweep(self, *, now: Optional[datetime] = None) -> ReconcileSummary:
        now = now or now_local(self._tz_name)
        summary = ReconcileSummary()
        logger.info("Absence sweep started at %s", now)

        for session in self._sessions.list_by_state(SessionState.OPEN):
            if not session.has_ended(now):
                continue
            try:
                recorded = self._reconcile(session, now=now)
            except Exception:
                logger.exception("Absence sweep failed for session %s", session.session_id)
                summary.failures += 1
                continue
            if recorded is not None:
                summary.sessions_closed += 1
                summary.absences_recorded += recorded

        logger.info(
            "Absence sweep finished: %s sessions closed, %s absences, %s failures",
            summary.sessions_closed,
            summary.absences_recorded,
            summary.failures,
        )
        return summary

    def complete_session(self, session_id: str, *, now: Optional[datetime] = None) -> ReconcileSummary:
        """Reconcile one session immediately, whether or not its end time has passed."""

        now = now or now_local(self._tz_name)
        session = self._sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError("Check-in session not found")

        summary = ReconcileSummary()
        recorded = self._reconcile(session, now=now)
        if recorded is not None:
            summary.sessions_closed = 1
            summary.absences_recorded = recorded
        return summary

    def _reconcile(self, session: CheckinSession, *, now: datetime) -> Optional[int]:
        """Returns the number of absences recorded, or None if another sweep owns the session."""

        if not self._sessions.transition(
            session.session_id, from_state=SessionState.OPEN, to_state=SessionState.CLOSING
        ):
            logger.info("Session %s is already being closed; skipping", session.session_id)
            return None

        recorded = 0
        try:
            course = self._courses.get_by_id(session.course_id)
            if not course:
                logger.warning("Session %s references unknown course %s", session.session_id, session.course_id)
            else:
                for student in self._enrolled(course):
                    try:
                        if self._mark_absent(session, course, student, now=now):
                            recorded += 1
                    except Exception:
                        logger.exception(
                            "Could not mark student %s absent for session %s", student.student_id, session.session_id
                        )
        finally:
            self._sessions.transition(
                session.session_id, from_state=SessionState.CLOSING, to_state=SessionState.CLOSED
            )

        logger.info("Session %s closed with %s absences", session.session_id, recorded)
        return recorded

    def _enrolled(self, course: Course) -> list[Student]:
        seen: dict[str, Student] = {}
        for class_code in course.class_codes:
            for student in self._students.list_by_class(class_code):
                seen.setdefault(student.student_id, student)
        return list(seen.values())

    def _mark_absent(self, session: CheckinSession, course: Course, student: Student, *, now: datetime) -> bool:
        record = self._recorder.record_absence(session, student, now=now)
        if record is None:
            return False

        if self._notify_absent and student.is_linked:
            try:
                self._notifications.absence_recorded(student, course, session)
                self._warn_if_repeated(student)
            except Exception:
                logger.exception(
                    "Absence for student %s in session %s was saved but not announced",
                    student.student_id,
                    session.session_id,
                )
        return True

    def _warn_if_repeated(self, student: Student) -> None:
        recent = self._recorder.recent_history(student.student_id, limit=max(self._warning_threshold, 5))
        streak = consecutive_absences(recent)
        level = alert_level(streak)
        if level and streak >= self._warning_threshold:
            self._notifications.absence_warning(student, streak, level)
