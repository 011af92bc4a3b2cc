from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Terminal classification of an attendance record."""

    ON_TIME = "ON_TIME"
    LATE = "LATE"
    ABSENT = "ABSENT"


class SessionState(str, Enum):
    """Lifecycle of a check-in session. Only the absence sweep moves it forward."""

    OPEN = "OPEN"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


class StudentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    UNBOUND = "UNBOUND"


class CheckinMode(str, Enum):
    """How a check-in code was obtained.

    DIRECT codes are presented at the venue by the teacher and skip geofencing.
    GPS codes are learner-initiated and go through the geofence when the course has one.
    """

    DIRECT = "direct"
    GPS = "gps"


class ConversationStep(str, Enum):
    AWAITING_STUDENT_ID = "awaitingStudentId"
    AWAITING_NAME = "awaitingName"
    AWAITING_CLASS = "awaitingClass"
    AWAITING_LOCATION = "awaitingLocation"
    AWAITING_CLASS_TO_JOIN = "awaitingClassToJoin"
    AWAITING_CLASS_TO_LEAVE = "awaitingClassToLeave"
    AWAITING_UNBIND_CONFIRM = "awaitingUnbindConfirm"


class LedgerAction(str, Enum):
    REMINDER = "reminder"


class AlertLevel(str, Enum):
    NOTICE = "notice"
    WARNING = "warning"
    CRITICAL = "critical"
