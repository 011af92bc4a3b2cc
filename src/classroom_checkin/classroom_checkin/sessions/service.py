from __future__ import annotations

import logging
import secrets
from datetime import date, datetime, time, timedelta
from typing import Optional

from ..common.checkin_code import CheckinCode
from ..core.enums import SessionState
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..courses.model import Course
from ..courses.repository import CourseRepository
from .model import CheckinSession
from .repository import SessionRepository

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    # Part of the check-in code, so it must not be guessable from the clock.
    return f"S{secrets.token_hex(8)}"


class SessionRegistry:
    """Resolves (course, date) to its single non-closed check-in session."""

    def __init__(self, sessions: SessionRepository, courses: CourseRepository):
        self._sessions = sessions
        self._courses = courses

    def find_active_session(self, course_id: str, session_date: date) -> Optional[CheckinSession]:
        return self._sessions.find_active(course_id, session_date)

    def get_session(self, session_id: str) -> CheckinSession:
        session = self._sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError("Check-in session not found")
        return session

    def get_course(self, course_id: str) -> Course:
        course = self._courses.get_by_id(course_id)
        if not course:
            raise NotFoundError("Course not found")
        return course

    def open_session(
        self,
        course_id: str,
        session_date: date,
        start_time: time,
        end_time: time,
        *,
        now: datetime,
    ) -> CheckinSession:
        # An end before the start means the class runs past midnight.
        if end_time == start_time:
            raise ValidationError("Session end time must differ from its start time")

        existing = self._sessions.find_active(course_id, session_date)
        if existing:
            raise ConflictError(
                f"Course {course_id} already has an open session on {session_date}",
                session_id=existing.session_id,
            )

        session = CheckinSession(
            session_id=new_session_id(),
            course_id=course_id,
            session_date=session_date,
            start_time=start_time,
            end_time=end_time,
            state=SessionState.OPEN,
            created_at=now,
        )
        self._sessions.create(session)
        logger.info("Opened session %s for course %s on %s", session.session_id, course_id, session_date)
        return session

    def resolve_code(self, code: CheckinCode, today: date) -> tuple[Course, CheckinSession]:
        """Return the course and session a check-in code points at, if still accepting."""

        course = self.get_course(code.course_id)
        if not course.is_active:
            raise NotFoundError("Course not found")

        session = self._sessions.find_active(code.course_id, today)
        if not session:
            overnight = self._sessions.find_active(code.course_id, today - timedelta(days=1))
            if overnight and overnight.crosses_midnight:
                session = overnight
        if not session or session.session_id != code.session_id or not session.is_open:
            raise NotFoundError("This check-in session has ended or does not exist")
        return course, session
