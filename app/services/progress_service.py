from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from app.core.errors import Conflict, Forbidden, NotFound, ValidationError
from app.models.progress import CourseProgress
from app.repos.registry import Repositories
from app.services.course_service import parse_uuid

logger = logging.getLogger(__name__)


async def mark_subsection_complete(
    repos: Repositories,
    *,
    course_id: Any,
    subsection_id: Any,
    user_id: UUID,
) -> CourseProgress:
    """Record that *user_id* finished a sub-section.

    The progress record is created on the first event.  Completing the same
    sub-section twice is a Conflict.
    """
    cid = parse_uuid(course_id, "course_id")
    sid = parse_uuid(subsection_id, "subsection_id")

    subsection = await repos.subsections.get_by_id(sid)
    if subsection is None:
        raise NotFound("Invalid subsection")
    course = await repos.courses.get_by_id(cid)
    if course is None:
        raise NotFound("Course not found")
    if subsection.section_id not in course.sections:
        raise ValidationError("Subsection does not belong to this course", field="subsection_id")
    if user_id not in course.students_enrolled:
        raise Forbidden("Student is not enrolled in the course")

    progress = await repos.progress.get(cid, user_id) or CourseProgress(cid, user_id)
    if progress.has_completed(sid):
        raise Conflict("Subsection already completed")

    updated = progress.with_completed(sid)
    await repos.progress.save(updated)
    logger.info(
        "Progress updated  course_id=%s user_id=%s completed=%d",
        cid,
        user_id,
        len(updated.completed_videos),
    )
    return updated
