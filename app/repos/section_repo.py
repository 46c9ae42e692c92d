from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.course import Section, SubSection


class SectionRepo(Protocol):
    async def get_by_id(self, section_id: UUID) -> Section | None: ...
    async def get_many(self, section_ids: tuple[UUID, ...]) -> list[Section]: ...
    async def add(self, section: Section) -> None: ...
    async def rename(self, section_id: UUID, name: str) -> Section | None: ...
    async def delete(self, section_id: UUID) -> bool: ...
    async def add_subsection(self, section_id: UUID, subsection_id: UUID) -> None: ...
    async def remove_subsection(self, section_id: UUID, subsection_id: UUID) -> None: ...


class SubSectionRepo(Protocol):
    async def get_by_id(self, subsection_id: UUID) -> SubSection | None: ...
    async def get_many(self, subsection_ids: tuple[UUID, ...]) -> list[SubSection]: ...
    async def add(self, subsection: SubSection) -> None: ...
    async def delete(self, subsection_id: UUID) -> bool: ...


class InMemorySectionRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Section] = {}

    async def get_by_id(self, section_id: UUID) -> Section | None:
        return self._by_id.get(section_id)

    async def get_many(self, section_ids: tuple[UUID, ...]) -> list[Section]:
        # Keep the caller's ordering; dangling ids are skipped
        return [self._by_id[i] for i in section_ids if i in self._by_id]

    async def add(self, section: Section) -> None:
        self._by_id[section.id] = section

    async def rename(self, section_id: UUID, name: str) -> Section | None:
        s = self._by_id.get(section_id)
        if s is None:
            return None
        updated = replace(s, name=name)
        self._by_id[section_id] = updated
        return updated

    async def delete(self, section_id: UUID) -> bool:
        return self._by_id.pop(section_id, None) is not None

    async def add_subsection(self, section_id: UUID, subsection_id: UUID) -> None:
        s = self._require(section_id)
        if subsection_id not in s.subsections:
            self._by_id[section_id] = replace(
                s, subsections=(*s.subsections, subsection_id)
            )

    async def remove_subsection(self, section_id: UUID, subsection_id: UUID) -> None:
        s = self._require(section_id)
        self._by_id[section_id] = replace(
            s, subsections=tuple(x for x in s.subsections if x != subsection_id)
        )

    def _require(self, section_id: UUID) -> Section:
        s = self._by_id.get(section_id)
        if s is None:
            raise KeyError("section not found")
        return s


class InMemorySubSectionRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, SubSection] = {}

    async def get_by_id(self, subsection_id: UUID) -> SubSection | None:
        return self._by_id.get(subsection_id)

    async def get_many(self, subsection_ids: tuple[UUID, ...]) -> list[SubSection]:
        return [self._by_id[i] for i in subsection_ids if i in self._by_id]

    async def add(self, subsection: SubSection) -> None:
        self._by_id[subsection.id] = subsection

    async def delete(self, subsection_id: UUID) -> bool:
        return self._by_id.pop(subsection_id, None) is not None
