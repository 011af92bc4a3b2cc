from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from urllib.parse import parse_qs

from ..attendance.geofence import ensure_within_geofence
from ..attendance.model import Location
from ..attendance.service import AttendanceRecorder
from ..common.checkin_code import looks_like_checkin_code, parse_checkin_code
from ..common.datetime_utils import format_datetime, now_local
from ..common.validators import validate_student_id, validate_student_name
from ..core.constants import MAX_GEOFENCE_RETRIES
from ..core.enums import AttendanceStatus, CheckinMode, ConversationStep
from ..core.exceptions import DuplicateError, GeofenceRejection, NotFoundError, ValidationError
from ..courses.model import Course
from ..notifications.messages import choice_message, location_request, postback_action, status_label, text_message
from ..sessions.model import CheckinSession
from ..sessions.service import SessionRegistry
from ..students.model import Student
from ..students.service import RegistrationOutcome, StudentService
from .commands import Command, classify, is_confirmation
from .state import ConversationState
from .store import ConversationStore

logger = logging.getLogger(__name__)

Replies = list[dict]

NOT_REGISTERED = "❌ You are not registered yet.\n\nType \"register\" to link your student ID."
VENUE_ONLY = "🚫 This course only accepts check-in at the venue.\n\nPlease scan the code your teacher shows in class."
HELP_TEXT = (
    "📖 Help\n\n"
    "• register - link your student ID\n"
    "• profile - your details and statistics\n"
    "• history - last 10 check-ins\n"
    "• summary - attendance per course\n"
    "• join / leave - manage your classes\n"
    "• unbind - unlink this account\n"
    "• cancel - stop the current step\n\n"
    "To check in, scan the QR code from your teacher or tap the check-in button in the reminder."
)

_STATUS_ICONS = {
    AttendanceStatus.ON_TIME: "✅",
    AttendanceStatus.LATE: "⚠️",
    AttendanceStatus.ABSENT: "❌",
}


class ConversationService:
    """Per-user multi-step chat flows: registration, class membership, unbind and check-in.

    Every handler returns the reply messages for the inbound event; sending them is
    the webhook controller's job.
    """

    def __init__(
        self,
        students: StudentService,
        registry: SessionRegistry,
        recorder: AttendanceRecorder,
        store: ConversationStore,
        *,
        tz_name: str,
    ):
        self._students = students
        self._registry = registry
        self._recorder = recorder
        self._store = store
        self._tz_name = tz_name

    # ------------------------------------------------------------------ entry points

    def handle_text(
        self,
        user_id: str,
        text: str,
        *,
        display_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Replies:
        now = now or now_local(self._tz_name)
        text = (text or "").strip()

        if classify(text) == Command.CANCEL:
            return self._cancel(user_id)

        if looks_like_checkin_code(text):
            return self._start_checkin(user_id, text, now=now)

        state = self._store.get(user_id)
        if state:
            return self._continue_flow(user_id, state, text, display_name=display_name, now=now)

        return self._handle_command(user_id, text, display_name=display_name)

    def handle_location(
        self,
        user_id: str,
        latitude: float,
        longitude: float,
        *,
        now: Optional[datetime] = None,
    ) -> Replies:
        now = now or now_local(self._tz_name)

        state = self._store.get(user_id)
        if not state or state.step != ConversationStep.AWAITING_LOCATION:
            return [text_message("❌ Please scan a check-in code first.")]

        student = self._students.get_by_line_user(user_id)
        if not student:
            self._store.clear(user_id)
            return [text_message(NOT_REGISTERED)]

        # Re-read the course: its geofence may have changed since the flow started.
        try:
            course = self._registry.get_course(state.course_id)
            session = self._registry.get_session(state.session_id)
            if not session.is_open or session.course_id != course.course_id:
                raise NotFoundError("This check-in session has ended or does not exist")
        except NotFoundError as e:
            self._store.clear(user_id)
            return [text_message(f"❌ {e}")]

        if course.venue_only:
            self._store.clear(user_id)
            return [text_message(VENUE_ONLY)]

        location = Location(latitude=float(latitude), longitude=float(longitude))
        try:
            ensure_within_geofence(course, location)
        except ValidationError as e:
            return [location_request(f"❌ {e}\n\nPlease share your location again.")]
        except GeofenceRejection as e:
            return self._reject_location(user_id, state, e)

        return self._record(user_id, student, course, session, location, now=now)

    def handle_postback(
        self,
        user_id: str,
        data: str,
        *,
        display_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Replies:
        now = now or now_local(self._tz_name)
        params = {k: v[0] for k, v in parse_qs(data or "").items() if v}
        if params.get("action") != "selectClass" or not params.get("class"):
            return []

        state = self._store.get(user_id)
        if not state:
            return []
        if state.step == ConversationStep.AWAITING_CLASS:
            return self._complete_registration(user_id, state, params["class"], display_name=display_name, now=now)
        if state.step == ConversationStep.AWAITING_CLASS_TO_JOIN:
            return self._join_class(user_id, params["class"])
        return []

    # ------------------------------------------------------------------ idle commands

    def _handle_command(self, user_id: str, text: str, *, display_name: Optional[str]) -> Replies:
        command = classify(text)
        student = self._students.get_by_line_user(user_id)

        if command == Command.HELP:
            return [text_message(HELP_TEXT)]

        if command == Command.REGISTER:
            if student:
                return [text_message(f"✅ You are already registered!\n\n{self._format_student(student)}")]
            self._store.set(user_id, ConversationState(step=ConversationStep.AWAITING_STUDENT_ID))
            return [text_message("📝 Registration\n\nPlease enter your student ID:")]

        if command is None:
            if not student:
                greeting = f"👋 Welcome {display_name}!" if display_name else "👋 Welcome!"
                return [text_message(f"{greeting}\n\n{NOT_REGISTERED}\n\nType \"help\" for more commands.")]
            return [
                text_message(
                    f"👋 Hello {student.student_name}!\n\n"
                    "📌 Commands: profile, history, summary, join, leave, unbind, help\n\n"
                    "📍 To check in, scan the QR code from your teacher."
                )
            ]

        if not student:
            return [text_message(NOT_REGISTERED)]

        if command == Command.PROFILE:
            return [text_message(self._format_profile(student))]
        if command == Command.HISTORY:
            return [text_message(self._format_history(student))]
        if command == Command.SUMMARY:
            return [text_message(self._format_summary(student))]
        if command == Command.JOIN_CLASS:
            return self._begin_join(user_id, student)
        if command == Command.LEAVE_CLASS:
            return self._begin_leave(user_id, student)
        if command == Command.UNBIND:
            self._store.set(user_id, ConversationState(step=ConversationStep.AWAITING_UNBIND_CONFIRM))
            return [
                choice_message(
                    f"⚠️ Unlink student ID {student.student_id} from this account?",
                    [("Yes", "yes"), ("No", "no")],
                )
            ]
        return [text_message(HELP_TEXT)]

    def _cancel(self, user_id: str) -> Replies:
        if self._store.get(user_id) is None:
            return [text_message("Nothing to cancel.")]
        self._store.clear(user_id)
        return [text_message("Cancelled.")]

    # ------------------------------------------------------------------ multi-step flows

    def _continue_flow(
        self,
        user_id: str,
        state: ConversationState,
        text: str,
        *,
        display_name: Optional[str],
        now: datetime,
    ) -> Replies:
        step = state.step

        if step == ConversationStep.AWAITING_STUDENT_ID:
            try:
                student_id = validate_student_id(text)
            except ValidationError as e:
                return [text_message(f"❌ {e}\n\nPlease enter your student ID:")]
            self._store.set(user_id, state.advance(ConversationStep.AWAITING_NAME, student_id=student_id))
            return [text_message(f"Student ID: {student_id} ✓\n\nPlease enter your name:")]

        if step == ConversationStep.AWAITING_NAME:
            try:
                name = validate_student_name(text)
            except ValidationError as e:
                return [text_message(f"❌ {e}\n\nPlease enter your name again:")]
            self._store.set(user_id, state.advance(ConversationStep.AWAITING_CLASS, student_name=name))
            return [self._class_prompt(f"Name: {name} ✓\n\nPlease choose your class:", self._students.list_classes())]

        if step == ConversationStep.AWAITING_CLASS:
            return self._complete_registration(user_id, state, text, display_name=display_name, now=now)

        if step == ConversationStep.AWAITING_LOCATION:
            return [location_request("📍 Share your location to finish checking in, or type \"cancel\".")]

        if step == ConversationStep.AWAITING_CLASS_TO_JOIN:
            return self._join_class(user_id, text)

        if step == ConversationStep.AWAITING_CLASS_TO_LEAVE:
            return self._leave_class(user_id, text)

        if step == ConversationStep.AWAITING_UNBIND_CONFIRM:
            return self._confirm_unbind(user_id, text)

        self._store.clear(user_id)
        return [text_message(HELP_TEXT)]

    def _complete_registration(
        self,
        user_id: str,
        state: ConversationState,
        class_text: str,
        *,
        display_name: Optional[str],
        now: datetime,
    ) -> Replies:
        try:
            result = self._students.register(
                line_user_id=user_id,
                student_id=state.student_id or "",
                student_name=state.student_name or "",
                class_code=class_text,
                now=now,
                line_display_name=display_name,
            )
        except ValidationError as e:
            return [text_message(f"❌ {e}\n\nPlease enter your class:")]

        self._store.clear(user_id)
        student = result.student
        if result.outcome == RegistrationOutcome.ALREADY_REGISTERED:
            return [text_message(f"✅ You are already registered!\n\n{self._format_student(student)}")]
        if result.outcome == RegistrationOutcome.REBOUND:
            return [
                text_message(
                    "🔄 Student ID linked to this account.\n"
                    "The previously linked account no longer receives notifications.\n\n"
                    f"{self._format_student(student)}"
                )
            ]
        return [text_message(f"🎉 Registration complete!\n\n{self._format_student(student)}\n\nYou can now check in.")]

    def _begin_join(self, user_id: str, student: Student) -> Replies:
        classes = self._students.list_classes()
        available = self._students.available_classes(student)
        if classes and not available:
            return [text_message("You have already joined every class.")]

        self._store.set(user_id, ConversationState(step=ConversationStep.AWAITING_CLASS_TO_JOIN))
        return [self._class_prompt("Which class do you want to join?", available)]

    def _join_class(self, user_id: str, class_text: str) -> Replies:
        student = self._students.get_by_line_user(user_id)
        if not student:
            self._store.clear(user_id)
            return [text_message(NOT_REGISTERED)]
        try:
            updated = self._students.join_class(student, class_text)
        except ValidationError as e:
            return [text_message(f"❌ {e}\n\nPlease enter another class, or type \"cancel\".")]

        self._store.clear(user_id)
        return [text_message(f"✅ Class joined.\n\nYour classes: {', '.join(updated.class_codes)}")]

    def _begin_leave(self, user_id: str, student: Student) -> Replies:
        if not self._students.can_leave_class(student):
            return [text_message("❌ You cannot leave your only class.")]

        self._store.set(user_id, ConversationState(step=ConversationStep.AWAITING_CLASS_TO_LEAVE))
        return [choice_message("Which class do you want to leave?", [(c, c) for c in student.class_codes])]

    def _leave_class(self, user_id: str, class_text: str) -> Replies:
        student = self._students.get_by_line_user(user_id)
        if not student:
            self._store.clear(user_id)
            return [text_message(NOT_REGISTERED)]
        try:
            updated = self._students.leave_class(student, class_text)
        except ValidationError as e:
            return [text_message(f"❌ {e}\n\nPlease enter another class, or type \"cancel\".")]

        self._store.clear(user_id)
        return [text_message(f"✅ Class left.\n\nYour classes: {', '.join(updated.class_codes)}")]

    def _confirm_unbind(self, user_id: str, text: str) -> Replies:
        self._store.clear(user_id)
        if not is_confirmation(text):
            return [text_message("Unbind cancelled.")]

        student = self._students.get_by_line_user(user_id)
        if not student:
            return [text_message(NOT_REGISTERED)]
        try:
            self._students.unbind(student)
        except NotFoundError as e:
            return [text_message(f"❌ {e}")]
        return [text_message("✅ This account is no longer linked. Type \"register\" to link again.")]

    # ------------------------------------------------------------------ check-in

    def _start_checkin(self, user_id: str, text: str, *, now: datetime) -> Replies:
        student = self._students.get_by_line_user(user_id)
        if not student:
            self._store.clear(user_id)
            return [text_message(NOT_REGISTERED)]

        try:
            code = parse_checkin_code(text)
        except ValidationError as e:
            return [text_message(f"❌ {e}")]

        try:
            course, session = self._registry.resolve_code(code, now.date())
        except NotFoundError as e:
            self._store.clear(user_id)
            return [text_message(f"❌ {e}")]

        if code.mode == CheckinMode.DIRECT:
            return self._record(user_id, student, course, session, None, now=now)

        if course.venue_only:
            self._store.clear(user_id)
            return [text_message(VENUE_ONLY)]

        if not course.requires_geofence:
            return self._record(user_id, student, course, session, None, now=now)

        self._store.set(
            user_id,
            ConversationState(
                step=ConversationStep.AWAITING_LOCATION,
                course_id=course.course_id,
                session_id=session.session_id,
            ),
        )
        return [location_request(f"📚 Checking in: {course.subject}\n\nShare your location to complete check-in.")]

    def _reject_location(self, user_id: str, state: ConversationState, rejection: GeofenceRejection) -> Replies:
        retries = state.retries + 1
        figures = f"📍 Distance: {round(rejection.distance)} m\n📏 Allowed: {rejection.radius} m"

        if retries >= MAX_GEOFENCE_RETRIES:
            self._store.clear(user_id)
            return [
                text_message(
                    f"🚫 Check-in failed.\n\n{figures}\n\n"
                    "Please check in at the venue by scanning the code your teacher shows."
                )
            ]

        self._store.set(user_id, state.advance(ConversationStep.AWAITING_LOCATION, retries=retries))
        left = MAX_GEOFENCE_RETRIES - retries
        return [
            location_request(
                f"🚫 You are outside the classroom range.\n\n{figures}\n\n"
                f"Move closer and share your location again ({left} attempt(s) left)."
            )
        ]

    def _record(
        self,
        user_id: str,
        student: Student,
        course: Course,
        session: CheckinSession,
        location: Optional[Location],
        *,
        now: datetime,
    ) -> Replies:
        self._store.clear(user_id)
        try:
            # The reply below already tells the student, so no separate push.
            result = self._recorder.record_attendance(
                session.session_id, student.student_id, location, now=now, notify=False
            )
        except DuplicateError as e:
            return [text_message(f"ℹ️ You have already checked in.\n\nStatus: {status_label(e.status)}")]
        except NotFoundError as e:
            return [text_message(f"❌ {e}")]

        if result.status == AttendanceStatus.LATE:
            return [
                text_message(
                    f"⚠️ Checked in (late)\n\n📚 Course: {course.subject}\n⏰ Time: {format_datetime(now)}\n"
                    f"📍 Late by {result.late_minutes} min\n\nPlease be on time next class!"
                )
            ]
        return [
            text_message(
                f"✅ Checked in!\n\n📚 Course: {course.subject}\n⏰ Time: {format_datetime(now)}\n📍 On time"
            )
        ]

    # ------------------------------------------------------------------ formatting

    @staticmethod
    def _class_prompt(text: str, classes) -> dict:
        if not classes:
            return text_message(f"{text}\n(type your class code, e.g. 801)")
        return text_message(
            text,
            quick_reply=[postback_action(c.label, action="selectClass", **{"class": c.class_code}) for c in classes],
        )

    @staticmethod
    def _format_student(student: Student) -> str:
        return (
            f"📋 Student ID: {student.student_id}\n"
            f"👤 Name: {student.student_name}\n"
            f"🏫 Class: {', '.join(student.class_codes) or '-'}"
        )

    def _format_profile(self, student: Student) -> str:
        profile = self._students.profile(student)
        lines = [
            "📋 Profile\n",
            f"👤 Name: {student.student_name}",
            f"🔢 Student ID: {student.student_id}",
            f"🏫 Class: {', '.join(c.label for c in profile.classes) or '-'}",
            f"📅 Registered: {format_datetime(student.registered_at)}",
        ]
        if profile.stats:
            stats = profile.stats
            lines += [
                "\n📊 Attendance",
                f"✅ Attended: {stats.attended_count}",
                f"⚠️ Late: {stats.late_count}",
                f"❌ Absent: {stats.absent_count}",
                f"📈 Rate: {stats.attendance_rate}%",
            ]
        return "\n".join(lines)

    def _format_history(self, student: Student) -> str:
        records = self._recorder.recent_history(student.student_id)
        if not records:
            return "📊 No check-in records yet."

        lines = [f"📊 Last {len(records)} check-ins\n"]
        for r in records:
            lines.append(f"{_STATUS_ICONS[r.status]} {format_datetime(r.recorded_at)}")
            if r.status == AttendanceStatus.LATE:
                lines.append(f"   late {r.late_minutes} min")
        return "\n".join(lines)

    def _format_summary(self, student: Student) -> str:
        rows = self._recorder.course_summary(student.student_id)
        if not rows:
            return "📊 No attendance yet."

        lines = ["📊 Attendance by course\n"]
        for row in rows:
            lines.append(f"📚 {row.subject}: ✅{row.on_time} ⚠️{row.late} ❌{row.absent} / {row.total}")
        return "\n".join(lines)
