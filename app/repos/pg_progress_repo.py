"""PostgreSQL implementation of ProgressRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import CourseProgressRow
from app.models.progress import CourseProgress
from app.repos.pg_common import writing


class PgProgressRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, course_id: UUID, user_id: UUID) -> CourseProgress | None:
        stmt = select(CourseProgressRow).where(
            CourseProgressRow.course_id == course_id,
            CourseProgressRow.user_id == user_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_progress(row) if row is not None else None

    async def save(self, progress: CourseProgress) -> None:
        stmt = insert(CourseProgressRow).values(
            course_id=progress.course_id,
            user_id=progress.user_id,
            completed_videos=list(progress.completed_videos),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[CourseProgressRow.course_id, CourseProgressRow.user_id],
            set_={"completed_videos": stmt.excluded.completed_videos},
        )
        async with writing(self._session):
            await self._session.execute(stmt)

    async def delete(self, course_id: UUID, user_id: UUID) -> bool:
        async with writing(self._session):
            result = await self._session.execute(
                delete(CourseProgressRow).where(
                    CourseProgressRow.course_id == course_id,
                    CourseProgressRow.user_id == user_id,
                )
            )
        return result.rowcount > 0

    async def list_for_course(self, course_id: UUID) -> list[CourseProgress]:
        stmt = select(CourseProgressRow).where(CourseProgressRow.course_id == course_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_progress(r) for r in rows]


def _row_to_progress(row: CourseProgressRow) -> CourseProgress:
    return CourseProgress(
        course_id=row.course_id,
        user_id=row.user_id,
        completed_videos=tuple(row.completed_videos or ()),
    )
