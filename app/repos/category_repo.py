from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.category import Category


class CategoryRepo(Protocol):
    async def get_by_id(self, category_id: UUID) -> Category | None: ...
    async def get_by_name(self, name: str) -> Category | None: ...
    async def add(self, category: Category) -> None: ...
    async def list_all(self) -> list[Category]: ...
    async def add_course(self, category_id: UUID, course_id: UUID) -> None: ...
    async def remove_course(self, category_id: UUID, course_id: UUID) -> None: ...


class InMemoryCategoryRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Category] = {}

    async def get_by_id(self, category_id: UUID) -> Category | None:
        return self._by_id.get(category_id)

    async def get_by_name(self, name: str) -> Category | None:
        key = name.strip().lower()
        return next(
            (c for c in self._by_id.values() if c.name.lower() == key), None
        )

    async def add(self, category: Category) -> None:
        if await self.get_by_name(category.name) is not None:
            raise ValueError("category name already exists")
        self._by_id[category.id] = category

    async def list_all(self) -> list[Category]:
        return sorted(self._by_id.values(), key=lambda c: c.name.lower())

    async def add_course(self, category_id: UUID, course_id: UUID) -> None:
        c = self._require(category_id)
        if course_id not in c.courses:
            self._by_id[category_id] = replace(c, courses=(*c.courses, course_id))

    async def remove_course(self, category_id: UUID, course_id: UUID) -> None:
        c = self._require(category_id)
        self._by_id[category_id] = replace(
            c, courses=tuple(x for x in c.courses if x != course_id)
        )

    def _require(self, category_id: UUID) -> Category:
        c = self._by_id.get(category_id)
        if c is None:
            raise KeyError("category not found")
        return c
