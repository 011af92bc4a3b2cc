from __future__ import annotations

import re

from ..core.constants import STUDENT_ID_PATTERN, STUDENT_NAME_MAX_LENGTH, STUDENT_NAME_MIN_LENGTH
from ..core.exceptions import ValidationError

_STUDENT_ID_RE = re.compile(STUDENT_ID_PATTERN)


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def validate_student_id(value: str) -> str:
    value = (value or "").strip()
    if not _STUDENT_ID_RE.match(value):
        raise ValidationError("Student ID must be 6-10 digits")
    return value


def validate_student_name(value: str) -> str:
    value = (value or "").strip()
    if not STUDENT_NAME_MIN_LENGTH <= len(value) <= STUDENT_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Name must be {STUDENT_NAME_MIN_LENGTH}-{STUDENT_NAME_MAX_LENGTH} characters"
        )
    return value
