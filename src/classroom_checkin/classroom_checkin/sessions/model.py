from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from ..core.enums import SessionState


@dataclass(frozen=True)
class CheckinSession:
    """Domain entity: one dated instantiation of a course, open for attendance capture."""

    session_id: str
    course_id: str
    session_date: date
    start_time: time
    end_time: time
    state: SessionState
    created_at: datetime

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.session_date, self.start_time)

    @property
    def crosses_midnight(self) -> bool:
        return self.end_time < self.start_time

    @property
    def ends_at(self) -> datetime:
        end_date = self.session_date + timedelta(days=1) if self.crosses_midnight else self.session_date
        return datetime.combine(end_date, self.end_time)

    @property
    def is_open(self) -> bool:
        return self.state == SessionState.OPEN

    def has_ended(self, now: datetime) -> bool:
        return now > self.ends_at
