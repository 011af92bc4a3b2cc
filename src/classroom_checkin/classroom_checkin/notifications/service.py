from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

from ..attendance.model import CheckinResult
from ..common.checkin_code import format_checkin_code
from ..core.enums import AlertLevel, AttendanceStatus, CheckinMode
from ..core.exceptions import DeliveryFailure
from ..courses.model import Course
from ..sessions.model import CheckinSession
from ..students.model import Student
from .messages import checkin_prompt, text_message

logger = logging.getLogger(__name__)


class MessagingClient(Protocol):
    def push_message(self, to: str, messages: Sequence[dict]) -> None:
        raise NotImplementedError


class NotificationService:
    """Best-effort outbound notifications.

    Delivery failures are logged and reported as ``False``; they never propagate
    to the caller whose state change triggered them.
    """

    def __init__(self, client: Optional[MessagingClient]):
        self._client = client

    def push(self, line_user_id: Optional[str], messages: Sequence[dict]) -> bool:
        if not line_user_id or self._client is None:
            return False
        try:
            self._client.push_message(line_user_id, messages)
            return True
        except DeliveryFailure as e:
            logger.warning("Push to %s failed: %s", line_user_id, e)
            return False

    def attendance_recorded(self, student: Student, course: Course, result: CheckinResult) -> bool:
        if result.status == AttendanceStatus.LATE:
            text = f"Checked in (late {result.late_minutes} min)\nCourse: {course.subject}"
        else:
            text = f"Checked in on time\nCourse: {course.subject}"
        return self.push(student.line_user_id, [text_message(text)])

    def absence_recorded(self, student: Student, course: Course, session: CheckinSession) -> bool:
        text = (
            "Absence notice\n\n"
            f"You were marked absent:\nCourse: {course.subject}\nDate: {session.session_date:%Y-%m-%d}\n\n"
            "Contact your teacher if this is a mistake."
        )
        return self.push(student.line_user_id, [text_message(text)])

    def absence_warning(self, student: Student, consecutive: int, level: AlertLevel) -> bool:
        text = (
            f"Attendance warning ({level.value})\n\n"
            f"{student.student_name}, you have been absent {consecutive} times in a row."
        )
        return self.push(student.line_user_id, [text_message(text)])

    def checkin_prompt(self, student: Student, course: Course, session: CheckinSession) -> bool:
        where = course.classroom or "classroom"
        text = f"Starts {session.start_time:%H:%M} at {where}"
        if course.venue_only:
            # Remote codes are refused for these courses, so no button.
            notice = f"{course.subject} reminder\n\n{text}\n\nScan the QR code at the venue to check in."
            return self.push(student.line_user_id, [text_message(notice)])
        code = format_checkin_code(CheckinMode.GPS, course.course_id, session.session_id)
        return self.push(student.line_user_id, [checkin_prompt(f"{course.subject} check-in", text, code)])
