"""PostgreSQL implementation of RatingRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import RatingRow
from app.models.course import RatingAndReview
from app.repos.pg_common import writing


class PgRatingRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_many(self, rating_ids: tuple[UUID, ...]) -> list[RatingAndReview]:
        if not rating_ids:
            return []
        stmt = select(RatingRow).where(RatingRow.id.in_(rating_ids))
        rows = {r.id: r for r in (await self._session.execute(stmt)).scalars()}
        return [_row_to_rating(rows[i]) for i in rating_ids if i in rows]

    async def get_for_user(
        self, course_id: UUID, user_id: UUID
    ) -> RatingAndReview | None:
        stmt = select(RatingRow).where(
            RatingRow.course_id == course_id, RatingRow.user_id == user_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_rating(row) if row is not None else None

    async def add(self, rating: RatingAndReview) -> None:
        if await self.get_for_user(rating.course_id, rating.user_id) is not None:
            raise ValueError("course already rated by this user")
        async with writing(self._session):
            self._session.add(
                RatingRow(
                    id=rating.id,
                    course_id=rating.course_id,
                    user_id=rating.user_id,
                    rating=rating.rating,
                    review=rating.review,
                )
            )

    async def delete(self, rating_id: UUID) -> bool:
        async with writing(self._session):
            result = await self._session.execute(
                delete(RatingRow).where(RatingRow.id == rating_id)
            )
        return result.rowcount > 0


def _row_to_rating(row: RatingRow) -> RatingAndReview:
    return RatingAndReview(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        rating=row.rating,
        review=row.review or "",
    )
