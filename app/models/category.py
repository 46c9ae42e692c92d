from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Category:
    id: UUID
    name: str
    description: str = ""
    courses: tuple[UUID, ...] = ()  # back-reference, not owning

    @staticmethod
    def new(*, name: str, description: str = "") -> Category:
        return Category(id=uuid4(), name=name.strip(), description=description.strip())
