from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.user import User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def add_course(self, user_id: UUID, course_id: UUID) -> None: ...
    async def remove_course(self, user_id: UUID, course_id: UUID) -> None: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        email = email.strip().lower()
        return next((u for u in self._by_id.values() if u.email == email), None)

    async def add(self, user: User) -> None:
        if await self.get_by_email(user.email) is not None:
            raise ValueError("email already exists")
        self._by_id[user.id] = user

    async def add_course(self, user_id: UUID, course_id: UUID) -> None:
        u = self._require(user_id)
        if course_id not in u.courses:
            self._by_id[user_id] = replace(u, courses=(*u.courses, course_id))

    async def remove_course(self, user_id: UUID, course_id: UUID) -> None:
        u = self._require(user_id)
        self._by_id[user_id] = replace(
            u, courses=tuple(c for c in u.courses if c != course_id)
        )

    def _require(self, user_id: UUID) -> User:
        u = self._by_id.get(user_id)
        if u is None:
            raise KeyError("user not found")
        return u
