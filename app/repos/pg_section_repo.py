"""PostgreSQL implementations of SectionRepo and SubSectionRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import SectionRow, SubSectionRow
from app.models.course import Section, SubSection
from app.repos.pg_common import append_unique, remove_value, writing


class PgSectionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, section_id: UUID) -> Section | None:
        row = await self._session.get(SectionRow, section_id, populate_existing=True)
        return _row_to_section(row) if row is not None else None

    async def get_many(self, section_ids: tuple[UUID, ...]) -> list[Section]:
        if not section_ids:
            return []
        stmt = select(SectionRow).where(SectionRow.id.in_(section_ids))
        rows = {r.id: r for r in (await self._session.execute(stmt)).scalars()}
        return [_row_to_section(rows[i]) for i in section_ids if i in rows]

    async def add(self, section: Section) -> None:
        async with writing(self._session):
            self._session.add(
                SectionRow(
                    id=section.id,
                    course_id=section.course_id,
                    name=section.name,
                    subsections=list(section.subsections),
                )
            )

    async def rename(self, section_id: UUID, name: str) -> Section | None:
        stmt = update(SectionRow).where(SectionRow.id == section_id).values(name=name)
        async with writing(self._session):
            result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_by_id(section_id)

    async def delete(self, section_id: UUID) -> bool:
        async with writing(self._session):
            result = await self._session.execute(
                delete(SectionRow).where(SectionRow.id == section_id)
            )
        return result.rowcount > 0

    async def add_subsection(self, section_id: UUID, subsection_id: UUID) -> None:
        await append_unique(
            self._session, SectionRow, section_id, "subsections", subsection_id
        )

    async def remove_subsection(self, section_id: UUID, subsection_id: UUID) -> None:
        await remove_value(
            self._session, SectionRow, section_id, "subsections", subsection_id
        )


class PgSubSectionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, subsection_id: UUID) -> SubSection | None:
        row = await self._session.get(
            SubSectionRow, subsection_id, populate_existing=True
        )
        return _row_to_subsection(row) if row is not None else None

    async def get_many(self, subsection_ids: tuple[UUID, ...]) -> list[SubSection]:
        if not subsection_ids:
            return []
        stmt = select(SubSectionRow).where(SubSectionRow.id.in_(subsection_ids))
        rows = {r.id: r for r in (await self._session.execute(stmt)).scalars()}
        return [_row_to_subsection(rows[i]) for i in subsection_ids if i in rows]

    async def add(self, subsection: SubSection) -> None:
        async with writing(self._session):
            self._session.add(
                SubSectionRow(
                    id=subsection.id,
                    section_id=subsection.section_id,
                    title=subsection.title,
                    description=subsection.description,
                    time_duration=subsection.time_duration,
                    video_url=subsection.video_url,
                )
            )

    async def delete(self, subsection_id: UUID) -> bool:
        async with writing(self._session):
            result = await self._session.execute(
                delete(SubSectionRow).where(SubSectionRow.id == subsection_id)
            )
        return result.rowcount > 0


def _row_to_section(row: SectionRow) -> Section:
    return Section(
        id=row.id,
        course_id=row.course_id,
        name=row.name,
        subsections=tuple(row.subsections or ()),
    )


def _row_to_subsection(row: SubSectionRow) -> SubSection:
    return SubSection(
        id=row.id,
        section_id=row.section_id,
        title=row.title,
        description=row.description or "",
        time_duration=row.time_duration,
        video_url=row.video_url,
    )
