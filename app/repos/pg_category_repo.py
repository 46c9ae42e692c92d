"""PostgreSQL implementation of CategoryRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import CategoryRow
from app.models.category import Category
from app.repos.pg_common import append_unique, remove_value, writing


class PgCategoryRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, category_id: UUID) -> Category | None:
        row = await self._session.get(CategoryRow, category_id, populate_existing=True)
        return _row_to_category(row) if row is not None else None

    async def get_by_name(self, name: str) -> Category | None:
        stmt = select(CategoryRow).where(
            func.lower(CategoryRow.name) == name.strip().lower()
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_category(row) if row is not None else None

    async def add(self, category: Category) -> None:
        if await self.get_by_name(category.name) is not None:
            raise ValueError("category name already exists")
        async with writing(self._session):
            self._session.add(
                CategoryRow(
                    id=category.id,
                    name=category.name,
                    description=category.description,
                    courses=list(category.courses),
                )
            )

    async def list_all(self) -> list[Category]:
        stmt = select(CategoryRow).order_by(func.lower(CategoryRow.name))
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_category(r) for r in rows]

    async def add_course(self, category_id: UUID, course_id: UUID) -> None:
        await append_unique(
            self._session, CategoryRow, category_id, "courses", course_id
        )

    async def remove_course(self, category_id: UUID, course_id: UUID) -> None:
        await remove_value(self._session, CategoryRow, category_id, "courses", course_id)


def _row_to_category(row: CategoryRow) -> Category:
    return Category(
        id=row.id,
        name=row.name,
        description=row.description or "",
        courses=tuple(row.courses or ()),
    )
