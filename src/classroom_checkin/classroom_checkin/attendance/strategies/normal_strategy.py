from __future__ import annotations

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class NormalStrategy(AttendanceStrategy):
    """Check-in within the late threshold."""

    def decide(self, *, minutes_elapsed: int) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.ON_TIME)
