from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.progress import CourseProgress


class ProgressRepo(Protocol):
    async def get(self, course_id: UUID, user_id: UUID) -> CourseProgress | None: ...
    async def save(self, progress: CourseProgress) -> None: ...
    async def delete(self, course_id: UUID, user_id: UUID) -> bool: ...
    async def list_for_course(self, course_id: UUID) -> list[CourseProgress]: ...


class InMemoryProgressRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], CourseProgress] = {}

    async def get(self, course_id: UUID, user_id: UUID) -> CourseProgress | None:
        return self._store.get((course_id, user_id))

    async def save(self, progress: CourseProgress) -> None:
        self._store[(progress.course_id, progress.user_id)] = progress

    async def delete(self, course_id: UUID, user_id: UUID) -> bool:
        return self._store.pop((course_id, user_id), None) is not None

    async def list_for_course(self, course_id: UUID) -> list[CourseProgress]:
        return [p for (cid, _), p in self._store.items() if cid == course_id]
