"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import CourseRow
from app.models.course import Course
from app.repos.course_repo import UPDATABLE_FIELDS
from app.repos.pg_common import append_unique, remove_value, writing


class PgCourseRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id, populate_existing=True)
        return _row_to_course(row) if row is not None else None

    async def add(self, course: Course) -> None:
        async with writing(self._session):
            self._session.add(
                CourseRow(
                    id=course.id,
                    name=course.name,
                    description=course.description,
                    what_you_will_learn=course.what_you_will_learn,
                    price=course.price,
                    instructor_id=course.instructor_id,
                    category_id=course.category_id,
                    thumbnail=course.thumbnail,
                    tags=list(course.tags),
                    instructions=list(course.instructions),
                    status=course.status,
                    sections=list(course.sections),
                    students_enrolled=list(course.students_enrolled),
                    ratings=list(course.ratings),
                    created_at=course.created_at,
                )
            )

    async def update(self, course_id: UUID, changes: dict[str, Any]) -> Course | None:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"fields not updatable: {sorted(unknown)}")
        values = {
            k: list(v) if isinstance(v, tuple) else v for k, v in changes.items()
        }
        if values:
            stmt = update(CourseRow).where(CourseRow.id == course_id).values(values)
            async with writing(self._session):
                result = await self._session.execute(stmt)
            if result.rowcount == 0:
                return None
        return await self.get_by_id(course_id)

    async def delete(self, course_id: UUID) -> bool:
        async with writing(self._session):
            result = await self._session.execute(
                delete(CourseRow).where(CourseRow.id == course_id)
            )
        return result.rowcount > 0

    async def list_published(self) -> list[Course]:
        stmt = select(CourseRow).where(CourseRow.status == "Published")
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_course(r) for r in rows]

    async def list_by_instructor(self, instructor_id: UUID) -> list[Course]:
        stmt = (
            select(CourseRow)
            .where(CourseRow.instructor_id == instructor_id)
            .order_by(CourseRow.created_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_course(r) for r in rows]

    async def add_section(self, course_id: UUID, section_id: UUID) -> None:
        await append_unique(self._session, CourseRow, course_id, "sections", section_id)

    async def remove_section(self, course_id: UUID, section_id: UUID) -> None:
        await remove_value(self._session, CourseRow, course_id, "sections", section_id)

    async def add_student(self, course_id: UUID, user_id: UUID) -> None:
        await append_unique(
            self._session, CourseRow, course_id, "students_enrolled", user_id
        )

    async def remove_student(self, course_id: UUID, user_id: UUID) -> None:
        await remove_value(
            self._session, CourseRow, course_id, "students_enrolled", user_id
        )

    async def add_rating(self, course_id: UUID, rating_id: UUID) -> None:
        await append_unique(self._session, CourseRow, course_id, "ratings", rating_id)


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        name=row.name,
        description=row.description,
        what_you_will_learn=row.what_you_will_learn,
        price=row.price,
        instructor_id=row.instructor_id,
        category_id=row.category_id,
        thumbnail=row.thumbnail,
        tags=tuple(row.tags or ()),
        instructions=tuple(row.instructions or ()),
        status=row.status,  # type: ignore[arg-type]
        sections=tuple(row.sections or ()),
        students_enrolled=tuple(row.students_enrolled or ()),
        ratings=tuple(row.ratings or ()),
        created_at=row.created_at,
    )
