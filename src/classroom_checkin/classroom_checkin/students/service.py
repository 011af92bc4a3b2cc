from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from ..common.validators import require_non_empty, validate_student_id, validate_student_name
from ..core.exceptions import NotFoundError, ValidationError
from .class_model import SchoolClass
from .class_repository import ClassRepository
from .model import AttendanceStats, Student
from .repository import StudentRepository

logger = logging.getLogger(__name__)


class RegistrationOutcome(str, Enum):
    CREATED = "CREATED"
    REBOUND = "REBOUND"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"


@dataclass(frozen=True)
class RegistrationResult:
    outcome: RegistrationOutcome
    student: Student


@dataclass(frozen=True)
class StudentProfile:
    student: Student
    classes: tuple[SchoolClass, ...]
    stats: Optional[AttendanceStats]


class StudentService:
    """Use cases driven by the chat bot: registration, rebind, class membership, unbind."""

    def __init__(self, students: StudentRepository, classes: ClassRepository):
        self._students = students
        self._classes = classes

    def get_by_line_user(self, line_user_id: str) -> Optional[Student]:
        return self._students.get_by_line_user(line_user_id)

    def list_classes(self) -> Sequence[SchoolClass]:
        return self._classes.list_all()

    def resolve_class_code(self, text: str) -> str:
        """Match free text against class codes or names; unknown text is kept as-is."""

        text = require_non_empty(text, "Class")
        for c in self._classes.list_all():
            if text in (c.class_code, c.class_name):
                return c.class_code
        return text

    def register(
        self,
        *,
        line_user_id: str,
        student_id: str,
        student_name: str,
        class_code: str,
        now: datetime,
        line_display_name: Optional[str] = None,
    ) -> RegistrationResult:
        student_id = validate_student_id(student_id)
        student_name = validate_student_name(student_name)
        class_code = self.resolve_class_code(class_code)

        current = self._students.get_by_line_user(line_user_id)
        if current:
            return RegistrationResult(RegistrationOutcome.ALREADY_REGISTERED, current)

        existing = self._students.get_by_id(student_id)
        if existing:
            # Same student number from a new messaging identity: treat as a device change.
            self._students.bind_line_user(
                student_id, line_user_id=line_user_id, line_display_name=line_display_name
            )
            if not existing.belongs_to(class_code):
                self._students.add_class(student_id, class_code)
            logger.info("Student %s rebound to a new messaging identity", student_id)
            return RegistrationResult(RegistrationOutcome.REBOUND, self._require(student_id))

        self._students.create(
            student_id=student_id,
            student_name=student_name,
            class_code=class_code,
            line_user_id=line_user_id,
            line_display_name=line_display_name,
            registered_at=now,
        )
        logger.info("Student %s registered in class %s", student_id, class_code)
        return RegistrationResult(RegistrationOutcome.CREATED, self._require(student_id))

    def available_classes(self, student: Student) -> list[SchoolClass]:
        return [c for c in self._classes.list_all() if not student.belongs_to(c.class_code)]

    def join_class(self, student: Student, class_text: str) -> Student:
        class_code = self.resolve_class_code(class_text)
        if student.belongs_to(class_code):
            raise ValidationError(f"You are already in class {class_code}")

        self._students.add_class(student.student_id, class_code)
        return self._require(student.student_id)

    def can_leave_class(self, student: Student) -> bool:
        return len(student.class_codes) > 1

    def leave_class(self, student: Student, class_text: str) -> Student:
        if not self.can_leave_class(student):
            raise ValidationError("You cannot leave your only class")

        class_code = self.resolve_class_code(class_text)
        if not student.belongs_to(class_code):
            raise ValidationError(f"You are not in class {class_code}")

        self._students.remove_class(student.student_id, class_code)
        return self._require(student.student_id)

    def unbind(self, student: Student) -> None:
        if not self._students.unbind(student.student_id):
            raise NotFoundError("Student not found")
        logger.info("Student %s unbound from messaging identity", student.student_id)

    def profile(self, student: Student) -> StudentProfile:
        by_code = {c.class_code: c for c in self._classes.list_all()}
        classes = tuple(by_code.get(code) or SchoolClass(class_code=code, class_name=code) for code in student.class_codes)
        return StudentProfile(student=student, classes=classes, stats=self._students.get_stats(student.student_id))

    def _require(self, student_id: str) -> Student:
        student = self._students.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found")
        return student
