"""Section and sub-section authoring for the owning instructor.

Every operation resolves the owning course first and returns the
refreshed course details so the editor can re-render in one round trip.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from app.core.errors import Forbidden, NotFound, ValidationError
from app.models.course import Course, Section, SubSection
from app.repos.registry import Repositories
from app.services.cascade import Saga
from app.services.course_service import CourseDetails, load_details, parse_uuid
from app.services.media_service import MediaIngestor, classify_file

logger = logging.getLogger(__name__)


async def _owned_course(repos: Repositories, course_id: UUID, caller_id: UUID) -> Course:
    course = await repos.courses.get_by_id(course_id)
    if course is None:
        raise NotFound("Course not found")
    if course.instructor_id != caller_id:
        raise Forbidden("Only the course instructor can change its content")
    return course


async def _owned_section(
    repos: Repositories, section_id: Any, caller_id: UUID
) -> tuple[Course, Section]:
    section = await repos.sections.get_by_id(parse_uuid(section_id, "section_id"))
    if section is None:
        raise NotFound("Section not found")
    return await _owned_course(repos, section.course_id, caller_id), section


async def _refreshed(repos: Repositories, course_id: UUID) -> CourseDetails:
    course = await repos.courses.get_by_id(course_id)
    if course is None:
        raise NotFound("Course not found")
    return await load_details(repos, course)


def _name(raw: Any, field: str = "name") -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("Missing required properties", field=field)
    return raw.strip()


async def create_section(
    repos: Repositories, *, course_id: Any, caller_id: UUID, name: Any
) -> CourseDetails:
    section_name = _name(name)
    course = await _owned_course(repos, parse_uuid(course_id, "course_id"), caller_id)

    section = Section.new(course_id=course.id, name=section_name)
    await repos.sections.add(section)
    await repos.courses.add_section(course.id, section.id)

    logger.info("Section created  course_id=%s section_id=%s", course.id, section.id)
    return await _refreshed(repos, course.id)


async def rename_section(
    repos: Repositories, *, section_id: Any, caller_id: UUID, name: Any
) -> CourseDetails:
    section_name = _name(name)
    course, section = await _owned_section(repos, section_id, caller_id)
    await repos.sections.rename(section.id, section_name)
    return await _refreshed(repos, course.id)


async def delete_section(
    repos: Repositories, *, section_id: Any, caller_id: UUID
) -> CourseDetails:
    course, section = await _owned_section(repos, section_id, caller_id)
    subsections = await repos.subsections.get_many(section.subsections)

    saga = Saga("delete_section")
    saga.add(
        "unlink from course",
        lambda: repos.courses.remove_section(course.id, section.id),
        compensate=lambda: repos.courses.add_section(course.id, section.id),
    )
    for sub in subsections:
        saga.add(
            f"delete subsection {sub.id}",
            lambda s=sub: repos.subsections.delete(s.id),
            compensate=lambda s=sub: repos.subsections.add(s),
        )
    saga.add("delete section", lambda: repos.sections.delete(section.id))
    await saga.run()

    logger.info(
        "Section deleted  course_id=%s section_id=%s subsections=%d",
        course.id,
        section.id,
        len(subsections),
    )
    return await _refreshed(repos, course.id)


async def create_subsection(
    repos: Repositories,
    media: MediaIngestor,
    *,
    section_id: Any,
    caller_id: UUID,
    title: Any,
    description: Any,
    time_duration: Any,
    video: Any,
) -> CourseDetails:
    sub_title = _name(title, "title")
    duration = str(time_duration).strip() if time_duration is not None else ""
    if not duration:
        raise ValidationError("Missing required properties", field="time_duration")
    if video is None:
        raise ValidationError("Video file is required", field="video")
    video_ref = classify_file(video)

    course, section = await _owned_section(repos, section_id, caller_id)

    asset = await media.ingest(video_ref)
    sub = SubSection.new(
        section_id=section.id,
        title=sub_title,
        description=(description or "").strip() if isinstance(description, str) else "",
        time_duration=duration,
        video_url=asset.secure_url,
    )
    await repos.subsections.add(sub)
    await repos.sections.add_subsection(section.id, sub.id)

    logger.info(
        "Subsection created  course_id=%s section_id=%s subsection_id=%s",
        course.id,
        section.id,
        sub.id,
    )
    return await _refreshed(repos, course.id)


async def delete_subsection(
    repos: Repositories, *, subsection_id: Any, caller_id: UUID
) -> CourseDetails:
    sub = await repos.subsections.get_by_id(parse_uuid(subsection_id, "subsection_id"))
    if sub is None:
        raise NotFound("SubSection not found")
    course, section = await _owned_section(repos, sub.section_id, caller_id)

    await repos.sections.remove_subsection(section.id, sub.id)
    await repos.subsections.delete(sub.id)
    return await _refreshed(repos, course.id)
