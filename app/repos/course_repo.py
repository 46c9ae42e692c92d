from __future__ import annotations

from dataclasses import replace
from typing import Any, Protocol
from uuid import UUID

from app.models.course import Course

# Scalar fields that update() may change.  Array fields go through the
# dedicated add_*/remove_* methods so concurrent appends are not lost.
UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "what_you_will_learn",
        "price",
        "category_id",
        "thumbnail",
        "tags",
        "instructions",
        "status",
    }
)


class CourseRepo(Protocol):
    async def get_by_id(self, course_id: UUID) -> Course | None: ...
    async def add(self, course: Course) -> None: ...
    async def update(self, course_id: UUID, changes: dict[str, Any]) -> Course | None: ...
    async def delete(self, course_id: UUID) -> bool: ...
    async def list_published(self) -> list[Course]: ...
    async def list_by_instructor(self, instructor_id: UUID) -> list[Course]: ...
    async def add_section(self, course_id: UUID, section_id: UUID) -> None: ...
    async def remove_section(self, course_id: UUID, section_id: UUID) -> None: ...
    async def add_student(self, course_id: UUID, user_id: UUID) -> None: ...
    async def remove_student(self, course_id: UUID, user_id: UUID) -> None: ...
    async def add_rating(self, course_id: UUID, rating_id: UUID) -> None: ...


def _check_fields(changes: dict[str, Any]) -> None:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"fields not updatable: {sorted(unknown)}")


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Course] = {}

    async def get_by_id(self, course_id: UUID) -> Course | None:
        return self._by_id.get(course_id)

    async def add(self, course: Course) -> None:
        if course.id in self._by_id:
            raise ValueError("course already exists")
        self._by_id[course.id] = course

    async def update(self, course_id: UUID, changes: dict[str, Any]) -> Course | None:
        _check_fields(changes)
        c = self._by_id.get(course_id)
        if c is None:
            return None
        updated = replace(c, **changes)
        self._by_id[course_id] = updated
        return updated

    async def delete(self, course_id: UUID) -> bool:
        return self._by_id.pop(course_id, None) is not None

    async def list_published(self) -> list[Course]:
        return [c for c in self._by_id.values() if c.status == "Published"]

    async def list_by_instructor(self, instructor_id: UUID) -> list[Course]:
        mine = [c for c in self._by_id.values() if c.instructor_id == instructor_id]
        return sorted(mine, key=lambda c: c.created_at, reverse=True)

    async def add_section(self, course_id: UUID, section_id: UUID) -> None:
        self._append(course_id, "sections", section_id)

    async def remove_section(self, course_id: UUID, section_id: UUID) -> None:
        self._remove(course_id, "sections", section_id)

    async def add_student(self, course_id: UUID, user_id: UUID) -> None:
        self._append(course_id, "students_enrolled", user_id)

    async def remove_student(self, course_id: UUID, user_id: UUID) -> None:
        self._remove(course_id, "students_enrolled", user_id)

    async def add_rating(self, course_id: UUID, rating_id: UUID) -> None:
        self._append(course_id, "ratings", rating_id)

    def _append(self, course_id: UUID, attr: str, value: UUID) -> None:
        c = self._require(course_id)
        current: tuple[UUID, ...] = getattr(c, attr)
        if value not in current:
            self._by_id[course_id] = replace(c, **{attr: (*current, value)})

    def _remove(self, course_id: UUID, attr: str, value: UUID) -> None:
        c = self._require(course_id)
        current: tuple[UUID, ...] = getattr(c, attr)
        self._by_id[course_id] = replace(
            c, **{attr: tuple(v for v in current if v != value)}
        )

    def _require(self, course_id: UUID) -> Course:
        c = self._by_id.get(course_id)
        if c is None:
            raise KeyError("course not found")
        return c
