from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.course import RatingAndReview


class RatingRepo(Protocol):
    async def get_many(self, rating_ids: tuple[UUID, ...]) -> list[RatingAndReview]: ...
    async def get_for_user(
        self, course_id: UUID, user_id: UUID
    ) -> RatingAndReview | None: ...
    async def add(self, rating: RatingAndReview) -> None: ...
    async def delete(self, rating_id: UUID) -> bool: ...


class InMemoryRatingRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, RatingAndReview] = {}

    async def get_many(self, rating_ids: tuple[UUID, ...]) -> list[RatingAndReview]:
        return [self._by_id[i] for i in rating_ids if i in self._by_id]

    async def get_for_user(
        self, course_id: UUID, user_id: UUID
    ) -> RatingAndReview | None:
        return next(
            (
                r
                for r in self._by_id.values()
                if r.course_id == course_id and r.user_id == user_id
            ),
            None,
        )

    async def add(self, rating: RatingAndReview) -> None:
        if await self.get_for_user(rating.course_id, rating.user_id) is not None:
            raise ValueError("course already rated by this user")
        self._by_id[rating.id] = rating

    async def delete(self, rating_id: UUID) -> bool:
        return self._by_id.pop(rating_id, None) is not None
