from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time
from types import SimpleNamespace
from typing import Optional

import pytest

from classroom_checkin.attendance.model import AttendanceRecord, CourseAttendanceSummary
from classroom_checkin.container import Container, wire_services
from classroom_checkin.conversation.store import InMemoryConversationStore
from classroom_checkin.core.enums import AttendanceStatus, SessionState, StudentStatus
from classroom_checkin.core.exceptions import ConflictError, DeliveryFailure, DuplicateError
from classroom_checkin.courses.model import Course
from classroom_checkin.sessions.model import CheckinSession
from classroom_checkin.students.class_model import SchoolClass
from classroom_checkin.students.model import AttendanceStats, Student

# Monday
CLASS_DAY = date(2026, 3, 2)
CLASSROOM = (25.000, 121.000)


class InMemoryStudents:
    def __init__(self):
        self.students: dict[str, Student] = {}
        self.stats: dict[str, AttendanceStats] = {}

    def add(self, student: Student) -> Student:
        self.students[student.student_id] = student
        return student

    def get_by_id(self, student_id: str) -> Optional[Student]:
        return self.students.get(student_id)

    def get_by_line_user(self, line_user_id: str) -> Optional[Student]:
        for s in self.students.values():
            if line_user_id and s.line_user_id == line_user_id:
                return s
        return None

    def list_by_class(self, class_code: str):
        return [s for s in sorted(self.students.values(), key=lambda s: s.student_id) if s.belongs_to(class_code)]

    def create(self, *, student_id, student_name, class_code, line_user_id, line_display_name, registered_at) -> None:
        self.students[student_id] = Student(
            student_id=student_id,
            student_name=student_name,
            class_codes=(class_code,),
            line_user_id=line_user_id,
            registered_at=registered_at,
            line_display_name=line_display_name,
        )

    def bind_line_user(self, student_id: str, *, line_user_id: str, line_display_name=None) -> bool:
        s = self.students.get(student_id)
        if not s:
            return False
        self.students[student_id] = replace(
            s, line_user_id=line_user_id, line_display_name=line_display_name, status=StudentStatus.ACTIVE
        )
        return True

    def unbind(self, student_id: str) -> bool:
        s = self.students.get(student_id)
        if not s:
            return False
        self.students[student_id] = replace(s, line_user_id=None, status=StudentStatus.UNBOUND)
        return True

    def add_class(self, student_id: str, class_code: str) -> bool:
        s = self.students[student_id]
        if s.belongs_to(class_code):
            return False
        self.students[student_id] = replace(s, class_codes=s.class_codes + (class_code,))
        return True

    def remove_class(self, student_id: str, class_code: str) -> bool:
        s = self.students[student_id]
        self.students[student_id] = replace(s, class_codes=tuple(c for c in s.class_codes if c != class_code))
        return True

    def get_stats(self, student_id: str) -> Optional[AttendanceStats]:
        return self.stats.get(student_id)

    def save_stats(self, stats: AttendanceStats) -> None:
        self.stats[stats.student_id] = stats


class InMemoryClasses:
    def __init__(self, classes: list[SchoolClass]):
        self._classes = list(classes)

    def list_all(self):
        return list(self._classes)


class InMemoryCourses:
    def __init__(self, courses: list[Course]):
        self.courses = {c.course_id: c for c in courses}

    def get_by_id(self, course_id: str):
        return self.courses.get(course_id)

    def list_active_for_weekday(self, weekday: int):
        return [c for c in self.courses.values() if c.is_active and c.weekday == weekday]


class InMemorySessions:
    def __init__(self):
        self.sessions: dict[str, CheckinSession] = {}

    def get_by_id(self, session_id: str):
        return self.sessions.get(session_id)

    def find_active(self, course_id: str, session_date: date):
        candidates = [
            s
            for s in self.sessions.values()
            if s.course_id == course_id and s.session_date == session_date and s.state != SessionState.CLOSED
        ]
        return max(candidates, key=lambda s: s.created_at, default=None)

    def create(self, session: CheckinSession) -> None:
        existing = self.find_active(session.course_id, session.session_date)
        if existing:
            raise ConflictError("Active session exists", session_id=existing.session_id)
        self.sessions[session.session_id] = session

    def list_by_state(self, state: SessionState):
        return [s for s in self.sessions.values() if s.state == state]

    def transition(self, session_id: str, *, from_state: SessionState, to_state: SessionState) -> bool:
        s = self.sessions.get(session_id)
        if not s or s.state != from_state:
            return False
        self.sessions[session_id] = replace(s, state=to_state)
        return True


class InMemoryAttendance:
    def __init__(self, sessions: InMemorySessions, courses: InMemoryCourses):
        self._sessions = sessions
        self._courses = courses
        self.records: dict[tuple[str, str], AttendanceRecord] = {}

    def get_for_session_and_student(self, session_id: str, student_id: str):
        return self.records.get((session_id, student_id))

    def create(self, *, session_id, student_id, recorded_at, status, late_minutes=0, gps_lat=None, gps_lon=None, note=None):
        existing = self.records.get((session_id, student_id))
        if existing:
            raise DuplicateError("Attendance already recorded", status=existing.status)
        record = AttendanceRecord(
            record_id=len(self.records) + 1,
            session_id=session_id,
            student_id=student_id,
            recorded_at=recorded_at,
            status=status,
            late_minutes=late_minutes,
            gps_lat=gps_lat,
            gps_lon=gps_lon,
            note=note,
        )
        self.records[(session_id, student_id)] = record
        return record

    def get_recent_for_student(self, student_id: str, limit: int):
        items = [r for r in self.records.values() if r.student_id == student_id]
        items.sort(key=lambda r: (r.recorded_at, r.record_id), reverse=True)
        return items[:limit]

    def summarize_by_course(self, student_id: str):
        tally: dict[str, dict[AttendanceStatus, int]] = {}
        for r in self.records.values():
            if r.student_id != student_id:
                continue
            course_id = self._sessions.get_by_id(r.session_id).course_id
            counts = tally.setdefault(course_id, {s: 0 for s in AttendanceStatus})
            counts[r.status] += 1
        return [
            CourseAttendanceSummary(
                course_id=cid,
                subject=self._courses.get_by_id(cid).subject,
                on_time=c[AttendanceStatus.ON_TIME],
                late=c[AttendanceStatus.LATE],
                absent=c[AttendanceStatus.ABSENT],
            )
            for cid, c in sorted(tally.items())
        ]


class InMemoryLedger:
    def __init__(self):
        self.entries: set[tuple] = set()

    def has_entry(self, subject, ledger_date, action) -> bool:
        return (subject, ledger_date, action) in self.entries

    def add_entry(self, subject, ledger_date, action, *, now) -> bool:
        key = (subject, ledger_date, action)
        if key in self.entries:
            return False
        self.entries.add(key)
        return True


class FakeLineClient:
    def __init__(self):
        self.pushed: list[tuple[str, list[dict]]] = []
        self.replies: list[tuple[str, list[dict]]] = []
        self.fail_push = False

    def push_message(self, to, messages) -> None:
        if self.fail_push:
            raise DeliveryFailure("push failed")
        self.pushed.append((to, list(messages)))

    def reply_message(self, reply_token, messages) -> None:
        self.replies.append((reply_token, list(messages)))

    def get_profile(self, user_id):
        return {"userId": user_id, "displayName": "Tester"}

    def pushed_to(self, line_user_id: str) -> list[dict]:
        return [m for to, batch in self.pushed if to == line_user_id for m in batch]


def make_course(course_id: str = "C1", **overrides) -> Course:
    values = dict(
        course_id=course_id,
        subject="Math",
        class_codes=("801",),
        weekday=CLASS_DAY.weekday(),
        start_time=time(8, 0),
        end_time=time(9, 0),
        classroom="Room 201",
        classroom_lat=CLASSROOM[0],
        classroom_lon=CLASSROOM[1],
        check_radius=50,
        late_minutes=10,
    )
    values.update(overrides)
    return Course(**values)


def make_student(student_id: str = "123456", line_user_id: Optional[str] = "U-alice", **overrides) -> Student:
    values = dict(
        student_id=student_id,
        student_name="Alice",
        class_codes=("801",),
        line_user_id=line_user_id,
        registered_at=datetime(2026, 2, 1, 12, 0),
    )
    values.update(overrides)
    return Student(**values)


@pytest.fixture
def settings():
    return SimpleNamespace(
        TIMEZONE="Asia/Taipei",
        NOTIFY_ABSENT=True,
        ABSENCE_WARNING_THRESHOLD=3,
        REMIND_BEFORE_CLASS=True,
        REMIND_MINUTES=10,
    )


@pytest.fixture
def line_client():
    return FakeLineClient()


@pytest.fixture
def container(settings, line_client) -> Container:
    courses = InMemoryCourses(
        [
            make_course("C1"),
            make_course("C2", subject="PE", check_radius=-1),
            make_course("C3", subject="Art", classroom_lat=None, classroom_lon=None, check_radius=0),
        ]
    )
    sessions = InMemorySessions()
    return wire_services(
        settings=settings,
        students_repo=InMemoryStudents(),
        classes_repo=InMemoryClasses(
            [SchoolClass("801", "Class 801", "Ms. Lin"), SchoolClass("802", "Class 802", "Mr. Wu")]
        ),
        courses_repo=courses,
        sessions_repo=sessions,
        attendance_repo=InMemoryAttendance(sessions, courses),
        ledger=InMemoryLedger(),
        conversation_store=InMemoryConversationStore(),
        line_client=line_client,
    )


@pytest.fixture
def alice(container) -> Student:
    return container.students_repo.add(make_student())


@pytest.fixture
def open_session(container):
    """Open today's 08:00-09:00 session for a course id."""

    def _open(course_id: str = "C1", *, now: datetime = datetime(2026, 3, 2, 7, 50)) -> CheckinSession:
        course = container.courses_repo.get_by_id(course_id)
        return container.session_registry.open_session(
            course_id, CLASS_DAY, course.start_time, course.end_time, now=now
        )

    return _open
