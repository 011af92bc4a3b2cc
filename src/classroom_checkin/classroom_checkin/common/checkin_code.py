from __future__ import annotations

from dataclasses import dataclass

from ..core.constants import LEGACY_CHECKIN_PREFIX
from ..core.enums import CheckinMode
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class CheckinCode:
    """Parsed form of ``<mode>:<courseId>|<sessionId>``."""

    mode: CheckinMode
    course_id: str
    session_id: str

    def __str__(self) -> str:
        return format_checkin_code(self.mode, self.course_id, self.session_id)


def format_checkin_code(mode: CheckinMode, course_id: str, session_id: str) -> str:
    return f"{mode.value}:{course_id}|{session_id}"


def looks_like_checkin_code(text: str) -> bool:
    text = (text or "").strip()
    if text.startswith(LEGACY_CHECKIN_PREFIX):
        return True
    head, sep, _ = text.partition(":")
    return bool(sep) and head.lower() in {m.value for m in CheckinMode}


def parse_checkin_code(text: str) -> CheckinCode:
    text = (text or "").strip()

    if text.startswith(LEGACY_CHECKIN_PREFIX):
        mode = CheckinMode.GPS
        body = text[len(LEGACY_CHECKIN_PREFIX):]
    else:
        head, sep, body = text.partition(":")
        if not sep:
            raise ValidationError("Invalid check-in code")
        try:
            mode = CheckinMode(head.strip().lower())
        except ValueError:
            raise ValidationError("Invalid check-in code")

    parts = body.split("|")
    if len(parts) != 2:
        raise ValidationError("Invalid check-in code")

    course_id, session_id = (p.strip() for p in parts)
    if not course_id or not session_id:
        raise ValidationError("Invalid check-in code")

    return CheckinCode(mode=mode, course_id=course_id, session_id=session_id)
