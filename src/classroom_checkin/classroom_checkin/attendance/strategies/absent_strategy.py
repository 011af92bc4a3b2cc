from __future__ import annotations

from ...core.constants import ABSENCE_NOTE
from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class AbsentStrategy(AttendanceStrategy):
    """No check-in before the session ended. Only the absence sweep uses this."""

    def decide(self, *, minutes_elapsed: int) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.ABSENT, note=ABSENCE_NOTE)
