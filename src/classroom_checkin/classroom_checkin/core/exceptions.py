from __future__ import annotations

from typing import Optional

from .enums import AttendanceStatus


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when user input (identifier, name, check-in code) is malformed."""


class NotFoundError(DomainError):
    """Raised when a course, session or student cannot be resolved."""


class DuplicateError(DomainError):
    """Raised when an attendance record already exists for (session, student)."""

    def __init__(self, message: str, *, status: AttendanceStatus):
        super().__init__(message)
        self.status = status


class ConflictError(DomainError):
    """Raised when a non-closed session already exists for (course, date)."""

    def __init__(self, message: str, *, session_id: Optional[str] = None):
        super().__init__(message)
        self.session_id = session_id


class GeofenceRejection(DomainError):
    """Raised when a reported location lies outside the classroom radius."""

    def __init__(self, message: str, *, distance: float, radius: int):
        super().__init__(message)
        self.distance = distance
        self.radius = radius


class DeliveryFailure(DomainError):
    """Raised by the messaging client when a push or reply cannot be delivered."""
