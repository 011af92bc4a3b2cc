from __future__ import annotations

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Late check-in; minutes late are counted from the session start."""

    def decide(self, *, minutes_elapsed: int) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.LATE, late_minutes=minutes_elapsed)
