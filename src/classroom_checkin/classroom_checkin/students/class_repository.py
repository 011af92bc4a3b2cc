from __future__ import annotations

from typing import Protocol, Sequence

from .class_model import SchoolClass


class ClassRepository(Protocol):
    def list_all(self) -> Sequence[SchoolClass]:
        raise NotImplementedError
