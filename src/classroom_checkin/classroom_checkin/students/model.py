from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from ..core.enums import AttendanceStatus, StudentStatus


@dataclass(frozen=True)
class Student:
    """Domain entity: a learner, identified by the externally issued student number.

    ``line_user_id`` is the linked messaging identity; it is cleared on unbind and
    replaced on rebind.
    """

    student_id: str
    student_name: str
    class_codes: tuple[str, ...]
    line_user_id: Optional[str]
    registered_at: datetime
    status: StudentStatus = StudentStatus.ACTIVE
    line_display_name: Optional[str] = None

    @property
    def is_linked(self) -> bool:
        return bool(self.line_user_id) and self.status == StudentStatus.ACTIVE

    def belongs_to(self, class_code: str) -> bool:
        return class_code in self.class_codes


@dataclass(frozen=True)
class AttendanceStats:
    """Rolling per-student counters. Late check-ins also count as attended."""

    student_id: str
    attended_count: int = 0
    late_count: int = 0
    absent_count: int = 0
    updated_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def attendance_rate(self) -> int:
        total = self.attended_count + self.absent_count
        if total == 0:
            return 0
        return round(self.attended_count * 100 / total)

    def apply(self, status: AttendanceStatus, *, when: datetime) -> "AttendanceStats":
        if status == AttendanceStatus.ON_TIME:
            return replace(self, attended_count=self.attended_count + 1, updated_at=when)
        if status == AttendanceStatus.LATE:
            return replace(
                self,
                attended_count=self.attended_count + 1,
                late_count=self.late_count + 1,
                updated_at=when,
            )
        return replace(self, absent_count=self.absent_count + 1, updated_at=when)
