from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Optional

from ..core.enums import ConversationStep


@dataclass(frozen=True)
class ConversationState:
    """In-progress multi-turn flow for one messaging identity."""

    step: ConversationStep
    student_id: Optional[str] = None
    student_name: Optional[str] = None
    course_id: Optional[str] = None
    session_id: Optional[str] = None
    retries: int = 0

    def advance(self, step: ConversationStep, **changes: Any) -> "ConversationState":
        return replace(self, step=step, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["step"] = self.step.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationState":
        return cls(
            step=ConversationStep(data["step"]),
            student_id=data.get("student_id"),
            student_name=data.get("student_name"),
            course_id=data.get("course_id"),
            session_id=data.get("session_id"),
            retries=int(data.get("retries") or 0),
        )
