from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import SessionState
from .model import CheckinSession


class SessionRepository(Protocol):
    def get_by_id(self, session_id: str) -> Optional[CheckinSession]:
        raise NotImplementedError

    def find_active(self, course_id: str, session_date: date) -> Optional[CheckinSession]:
        """Most recently opened session for (course, date) that is not CLOSED."""

        raise NotImplementedError

    def create(self, session: CheckinSession) -> None:
        """Insert a session; raises ConflictError if a non-closed one exists for (course, date)."""

        raise NotImplementedError

    def list_by_state(self, state: SessionState) -> Sequence[CheckinSession]:
        raise NotImplementedError

    def transition(self, session_id: str, *, from_state: SessionState, to_state: SessionState) -> bool:
        """Compare-and-set the state; returns False if the session was not in ``from_state``."""

        raise NotImplementedError
