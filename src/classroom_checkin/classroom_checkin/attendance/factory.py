from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..common.datetime_utils import minutes_between
from .strategies.absent_strategy import AbsentStrategy
from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_checkin(self, *, now: datetime, session_start: datetime, late_threshold_minutes: int) -> AttendanceStrategy:
        # The threshold is exclusive: exactly N minutes after start is still on time.
        if minutes_between(session_start, now) > int(late_threshold_minutes):
            return LateStrategy()
        return NormalStrategy()

    def for_absence(self) -> AttendanceStrategy:
        return AbsentStrategy()
