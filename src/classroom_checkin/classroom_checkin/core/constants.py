"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_METERS = 6_371_000

# Geofence radius semantics on a course.
VENUE_ONLY_RADIUS = -1
DEFAULT_CHECK_RADIUS = 50
DEFAULT_LATE_MINUTES = 10

MAX_GEOFENCE_RETRIES = 3
RECENT_HISTORY_LIMIT = 10
MAX_QUICK_REPLY_ITEMS = 13

DEFAULT_REMIND_MINUTES = 10
REMINDER_TOLERANCE_MINUTES = 5
DEFAULT_ABSENCE_WARNING_THRESHOLD = 3

STUDENT_ID_PATTERN = r"^\d{6,10}$"
STUDENT_NAME_MIN_LENGTH = 2
STUDENT_NAME_MAX_LENGTH = 10

LEGACY_CHECKIN_PREFIX = "簽到:"
ABSENCE_NOTE = "auto-marked absent"
