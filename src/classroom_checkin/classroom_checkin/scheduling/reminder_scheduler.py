from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_REMIND_MINUTES, REMINDER_TOLERANCE_MINUTES
from ..core.enums import LedgerAction
from ..core.exceptions import ConflictError
from ..courses.model import Course
from ..courses.repository import CourseRepository
from ..notifications.service import NotificationService
from ..sessions.model import CheckinSession
from ..sessions.service import SessionRegistry
from ..students.repository import StudentRepository
from .repository import DispatchLedger

logger = logging.getLogger(__name__)


@dataclass
class ReminderSummary:
    sessions_opened: int = 0
    prompts_sent: int = 0
    failures: int = 0

    def to_dict(self) -> dict:
        return {
            "sessions_opened": self.sessions_opened,
            "prompts_sent": self.prompts_sent,
            "failures": self.failures,
        }


class ReminderScheduler:
    """Opens today's session shortly before class and pushes check-in prompts once per (course, day)."""

    def __init__(
        self,
        courses: CourseRepository,
        students: StudentRepository,
        registry: SessionRegistry,
        ledger: DispatchLedger,
        notifications: NotificationService,
        *,
        tz_name: str,
        remind_minutes: int = DEFAULT_REMIND_MINUTES,
        tolerance_minutes: int = REMINDER_TOLERANCE_MINUTES,
        enabled: bool = True,
    ):
        self._courses = courses
        self._students = students
        self._registry = registry
        self._ledger = ledger
        self._notifications = notifications
        self._tz_name = tz_name
        self._remind_minutes = int(remind_minutes)
        self._tolerance = timedelta(minutes=int(tolerance_minutes))
        self._enabled = enabled

    def is_due(self, course: Course, now: datetime) -> bool:
        remind_at = datetime.combine(now.date(), course.start_time) - timedelta(minutes=self._remind_minutes)
        return abs(now - remind_at) <= self._tolerance

    def sweep(self, *, now: Optional[datetime] = None) -> ReminderSummary:
        now = now or now_local(self._tz_name)
        summary = ReminderSummary()
        if not self._enabled:
            logger.info("Class reminders are disabled; skipping sweep")
            return summary

        for course in self._courses.list_active_for_weekday(now.weekday()):
            if not self.is_due(course, now):
                continue
            try:
                self._remind(course, now=now, summary=summary)
            except Exception:
                logger.exception("Reminder failed for course %s", course.course_id)
                summary.failures += 1

        logger.info(
            "Reminder sweep finished: %s sessions opened, %s prompts sent, %s failures",
            summary.sessions_opened,
            summary.prompts_sent,
            summary.failures,
        )
        return summary

    def _remind(self, course: Course, *, now: datetime, summary: ReminderSummary) -> None:
        today = now.date()
        if self._ledger.has_entry(course.course_id, today, LedgerAction.REMINDER):
            return

        session = self._open_or_reuse(course, now=now, summary=summary)
        summary.prompts_sent += self._send_prompts(course, session)
        self._ledger.add_entry(course.course_id, today, LedgerAction.REMINDER, now=now)

    def _open_or_reuse(self, course: Course, *, now: datetime, summary: ReminderSummary) -> CheckinSession:
        try:
            session = self._registry.open_session(
                course.course_id, now.date(), course.start_time, course.end_time, now=now
            )
            summary.sessions_opened += 1
            return session
        except ConflictError:
            # Opened by hand or by an overlapping sweep; prompt against that one.
            session = self._registry.find_active_session(course.course_id, now.date())
            if session is None:
                raise
            return session

    def _send_prompts(self, course: Course, session: CheckinSession) -> int:
        sent = 0
        seen: set[str] = set()
        for class_code in course.class_codes:
            for student in self._students.list_by_class(class_code):
                if student.student_id in seen or not student.is_linked:
                    continue
                seen.add(student.student_id)
                if self._notifications.checkin_prompt(student, course, session):
                    sent += 1
        return sent
