from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional

from ..core.constants import DEFAULT_CHECK_RADIUS, DEFAULT_LATE_MINUTES, VENUE_ONLY_RADIUS


@dataclass(frozen=True)
class Course:
    """Domain entity: a recurring class meeting.

    ``check_radius`` drives admission: > 0 with coordinates means GPS-gated,
    0 or missing coordinates means unrestricted, -1 means in-person scan only.
    ``weekday`` follows ``date.weekday()`` (Monday is 0).
    """

    course_id: str
    subject: str
    class_codes: tuple[str, ...]
    weekday: int
    start_time: time
    end_time: time
    classroom: Optional[str] = None
    classroom_lat: Optional[float] = None
    classroom_lon: Optional[float] = None
    check_radius: int = DEFAULT_CHECK_RADIUS
    late_minutes: int = DEFAULT_LATE_MINUTES
    teacher: Optional[str] = None
    is_active: bool = True

    @property
    def has_coordinates(self) -> bool:
        return self.classroom_lat is not None and self.classroom_lon is not None

    @property
    def venue_only(self) -> bool:
        return self.check_radius == VENUE_ONLY_RADIUS

    @property
    def requires_geofence(self) -> bool:
        return self.check_radius > 0 and self.has_coordinates
