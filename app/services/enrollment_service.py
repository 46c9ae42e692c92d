"""Enrollment and ratings.

A student is enrolled by two independent writes: the student id is added
to the course and the course id to the student.  Paid courses only get
here through payment verification; free published courses can be joined
directly.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from app.core.errors import Conflict, Forbidden, NotFound, ValidationError
from app.core.metrics import COURSE_OPERATIONS
from app.models.course import Course, RatingAndReview
from app.repos.registry import Repositories
from app.services.course_service import parse_uuid

logger = logging.getLogger(__name__)


async def enroll_student(repos: Repositories, *, course_id: UUID, user_id: UUID) -> Course:
    course = await repos.courses.get_by_id(course_id)
    if course is None:
        raise NotFound("Course not found")
    if user_id in course.students_enrolled:
        raise Conflict("Student is already enrolled")
    if await repos.users.get_by_id(user_id) is None:
        raise NotFound("User not found")

    await repos.courses.add_student(course.id, user_id)
    await repos.users.add_course(user_id, course.id)

    COURSE_OPERATIONS.labels(operation="enroll", outcome="ok").inc()
    logger.info(
        "Student enrolled  course_id=%s user_id=%s",
        course.id,
        user_id,
        extra={"course_id": str(course.id)},
    )
    enrolled = await repos.courses.get_by_id(course.id)
    return enrolled if enrolled is not None else course


async def enroll_free(repos: Repositories, *, course_id: Any, user_id: UUID) -> Course:
    cid = parse_uuid(course_id, "course_id")
    course = await repos.courses.get_by_id(cid)
    if course is None:
        raise NotFound("Course not found")
    if course.status != "Published":
        raise NotFound("Course not found")
    if not course.is_free:
        raise Forbidden("This course requires payment before enrollment")
    return await enroll_student(repos, course_id=cid, user_id=user_id)


def _parse_rating(raw: Any) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError("Rating must be a whole number from 1 to 5", field="rating") from None
    if not 1 <= value <= 5:
        raise ValidationError("Rating must be a whole number from 1 to 5", field="rating")
    return value


async def rate_course(
    repos: Repositories,
    *,
    course_id: Any,
    user_id: UUID,
    rating: Any,
    review: str = "",
) -> RatingAndReview:
    value = _parse_rating(rating)
    cid = parse_uuid(course_id, "course_id")
    course = await repos.courses.get_by_id(cid)
    if course is None:
        raise NotFound("Course not found")
    if user_id not in course.students_enrolled:
        raise Forbidden("Student is not enrolled in the course")
    if await repos.ratings.get_for_user(cid, user_id) is not None:
        raise Conflict("Course already reviewed by user")

    record = RatingAndReview.new(
        user_id=user_id, course_id=cid, rating=value, review=(review or "").strip()
    )
    try:
        await repos.ratings.add(record)
    except ValueError:
        raise Conflict("Course already reviewed by user") from None
    await repos.courses.add_rating(cid, record.id)

    logger.info("Course rated  course_id=%s user_id=%s rating=%d", cid, user_id, value)
    return record
