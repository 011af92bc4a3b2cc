from __future__ import annotations

import math

from ..common.geo import distance_meters
from ..core.exceptions import GeofenceRejection, ValidationError
from ..courses.model import Course
from .model import Location


def ensure_within_geofence(course: Course, location: Location) -> float:
    """Return the distance to the classroom, raising if it exceeds the course radius.

    Courses without a geofence admit any location (distance 0 is returned).
    """

    if not course.requires_geofence:
        return 0.0

    distance = distance_meters(
        location.latitude, location.longitude, course.classroom_lat, course.classroom_lon
    )
    if not math.isfinite(distance):
        raise ValidationError("Invalid location")
    if distance > course.check_radius:
        raise GeofenceRejection(
            "You are not within the classroom range",
            distance=distance,
            radius=course.check_radius,
        )
    return distance
