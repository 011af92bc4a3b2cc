from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SchoolClass:
    class_code: str
    class_name: str
    homeroom_teacher: Optional[str] = None

    @property
    def label(self) -> str:
        return self.class_name or self.class_code
