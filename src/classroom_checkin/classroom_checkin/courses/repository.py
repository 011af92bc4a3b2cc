from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Course


class CourseRepository(Protocol):
    def get_by_id(self, course_id: str) -> Optional[Course]:
        raise NotImplementedError

    def list_active_for_weekday(self, weekday: int) -> Sequence[Course]:
        raise NotImplementedError
