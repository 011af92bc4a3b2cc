from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceRecorder
from .conversation.service import ConversationService
from .conversation.store import ConversationStore, InMemoryConversationStore, MySQLConversationStore
from .courses.mysql_course_repository import MySQLCourseRepository
from .courses.repository import CourseRepository
from .database.connection import DatabaseConnection, DBConfig
from .notifications.line_client import LineMessagingClient
from .notifications.service import NotificationService
from .scheduling.absence_reconciler import AbsenceReconciler
from .scheduling.mysql_ledger_repository import MySQLDispatchLedger
from .scheduling.reminder_scheduler import ReminderScheduler
from .scheduling.repository import DispatchLedger
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository
from .sessions.service import SessionRegistry
from .students.class_repository import ClassRepository
from .students.mysql_class_repository import MySQLClassRepository
from .students.mysql_student_repository import MySQLStudentRepository
from .students.repository import StudentRepository
from .students.service import StudentService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    line_client: Optional[LineMessagingClient]

    students_repo: StudentRepository
    classes_repo: ClassRepository
    courses_repo: CourseRepository
    sessions_repo: SessionRepository
    attendance_repo: AttendanceRepository
    ledger: DispatchLedger
    conversation_store: ConversationStore

    notification_service: NotificationService
    student_service: StudentService
    session_registry: SessionRegistry
    attendance_recorder: AttendanceRecorder
    conversation_service: ConversationService
    absence_reconciler: AbsenceReconciler
    reminder_scheduler: ReminderScheduler


def wire_services(
    *,
    settings: Any,
    students_repo: StudentRepository,
    classes_repo: ClassRepository,
    courses_repo: CourseRepository,
    sessions_repo: SessionRepository,
    attendance_repo: AttendanceRepository,
    ledger: DispatchLedger,
    conversation_store: ConversationStore,
    line_client: Optional[LineMessagingClient] = None,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build the service graph on top of any repository implementations."""

    tz_name = getattr(settings, "TIMEZONE", "Asia/Taipei")

    notification_service = NotificationService(line_client)
    student_service = StudentService(students_repo, classes_repo)
    session_registry = SessionRegistry(sessions_repo, courses_repo)
    attendance_recorder = AttendanceRecorder(
        attendance_repo,
        sessions_repo,
        courses_repo,
        students_repo,
        notification_service,
        tz_name=tz_name,
        strategy_factory=AttendanceStrategyFactory(),
    )
    conversation_service = ConversationService(
        student_service,
        session_registry,
        attendance_recorder,
        conversation_store,
        tz_name=tz_name,
    )
    absence_reconciler = AbsenceReconciler(
        sessions_repo,
        courses_repo,
        students_repo,
        attendance_recorder,
        notification_service,
        tz_name=tz_name,
        notify_absent=bool(getattr(settings, "NOTIFY_ABSENT", True)),
        warning_threshold=int(getattr(settings, "ABSENCE_WARNING_THRESHOLD", 3)),
    )
    reminder_scheduler = ReminderScheduler(
        courses_repo,
        students_repo,
        session_registry,
        ledger,
        notification_service,
        tz_name=tz_name,
        remind_minutes=int(getattr(settings, "REMIND_MINUTES", 10)),
        enabled=bool(getattr(settings, "REMIND_BEFORE_CLASS", True)),
    )

    return Container(
        conn=conn,
        line_client=line_client,
        students_repo=students_repo,
        classes_repo=classes_repo,
        courses_repo=courses_repo,
        sessions_repo=sessions_repo,
        attendance_repo=attendance_repo,
        ledger=ledger,
        conversation_store=conversation_store,
        notification_service=notification_service,
        student_service=student_service,
        session_registry=session_registry,
        attendance_recorder=attendance_recorder,
        conversation_service=conversation_service,
        absence_reconciler=absence_reconciler,
        reminder_scheduler=reminder_scheduler,
    )


def build_container(*, settings: Any) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(settings.DB_CONFIG))

    if getattr(settings, "CONVERSATION_BACKEND", "memory") == "mysql":
        conversation_store: ConversationStore = MySQLConversationStore(conn)
    else:
        conversation_store = InMemoryConversationStore()

    token = getattr(settings, "LINE_CHANNEL_ACCESS_TOKEN", "")
    line_client = LineMessagingClient(token) if token else None

    return wire_services(
        settings=settings,
        students_repo=MySQLStudentRepository(conn),
        classes_repo=MySQLClassRepository(conn),
        courses_repo=MySQLCourseRepository(conn),
        sessions_repo=MySQLSessionRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        ledger=MySQLDispatchLedger(conn),
        conversation_store=conversation_store,
        line_client=line_client,
        conn=conn,
    )
