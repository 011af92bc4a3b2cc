from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceStats, Student


class StudentRepository(Protocol):
    """Repository interface for students, their class memberships and counters.

    Note (DIP): services depend on this interface, never on a concrete store.
    """

    def get_by_id(self, student_id: str) -> Optional[Student]:
        raise NotImplementedError

    def get_by_line_user(self, line_user_id: str) -> Optional[Student]:
        raise NotImplementedError

    def list_by_class(self, class_code: str) -> Sequence[Student]:
        raise NotImplementedError

    def create(
        self,
        *,
        student_id: str,
        student_name: str,
        class_code: str,
        line_user_id: str,
        line_display_name: Optional[str],
        registered_at: datetime,
    ) -> None:
        raise NotImplementedError

    def bind_line_user(self, student_id: str, *, line_user_id: str, line_display_name: Optional[str]) -> bool:
        """Point the student at a new messaging identity, superseding the old one."""

        raise NotImplementedError

    def unbind(self, student_id: str) -> bool:
        raise NotImplementedError

    def add_class(self, student_id: str, class_code: str) -> bool:
        raise NotImplementedError

    def remove_class(self, student_id: str, class_code: str) -> bool:
        raise NotImplementedError

    def get_stats(self, student_id: str) -> Optional[AttendanceStats]:
        raise NotImplementedError

    def save_stats(self, stats: AttendanceStats) -> None:
        raise NotImplementedError
