"""Course lifecycle: create, edit, read projections, and cascade delete.

Courses move between Draft and Published only when the owning instructor
asks for it; nothing here transitions status on its own.  Input arriving
from multipart forms is loosely typed (prices as strings, tags as JSON
array strings) and is normalised by the validators below before anything
is persisted.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from app.core.errors import Forbidden, NotFound, ValidationError
from app.core.metrics import BACKREF_FAILURES, COURSE_OPERATIONS
from app.models.category import Category
from app.models.course import COURSE_STATUSES, Course, RatingAndReview, Section, SubSection
from app.models.user import User
from app.repos.registry import Repositories
from app.services.cascade import Saga
from app.services.media_service import MediaIngestor, classify_file

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")


def parse_duration_seconds(raw: Any) -> int:
    """Leading integer of *raw* ("125.9" -> 125); anything else counts as 0."""
    if raw is None:
        return 0
    m = _INT_PREFIX.match(str(raw))
    return int(m.group(1)) if m else 0


def format_duration(total_seconds: int) -> str:
    hours, rest = divmod(max(total_seconds, 0), 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def total_duration(subsections: list[SubSection] | tuple[SubSection, ...]) -> str:
    return format_duration(sum(parse_duration_seconds(s.time_duration) for s in subsections))


# ---------------------------------------------------------------------------
# Field validators
# ---------------------------------------------------------------------------


def _text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required and cannot be empty", field=field)
    return value.strip()


def parse_price(raw: Any) -> float:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError("Course price is required", field="price")
    try:
        price = float(raw)
    except (TypeError, ValueError):
        price = math.nan
    if math.isnan(price) or math.isinf(price) or price < 0:
        raise ValidationError(
            "Price must be a valid number (0 or greater). Use 0 for free courses.",
            field="price",
        )
    return price


@dataclass(frozen=True)
class _ListField:
    field: str
    label: str
    singular: str


_TAGS = _ListField("tags", "Tags", "tag")
_INSTRUCTIONS = _ListField("instructions", "Instructions/Requirements", "requirement/instruction")


def _parse_list(raw: Any, spec: _ListField) -> tuple[str, ...]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError(f"{spec.label} field is required", field=spec.field)
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError(
                f"Invalid JSON format: {e.msg}", field=spec.field
            ) from None
    if not isinstance(raw, list | tuple):
        raise ValidationError(
            f"{spec.label.split('/')[0]} must be an array", field=spec.field
        )
    items = tuple(str(v).strip() for v in raw if str(v).strip())
    if not items:
        raise ValidationError(
            f"At least one {spec.singular} is required", field=spec.field
        )
    return items


def parse_tags(raw: Any) -> tuple[str, ...]:
    return _parse_list(raw, _TAGS)


def parse_instructions(raw: Any) -> tuple[str, ...]:
    return _parse_list(raw, _INSTRUCTIONS)


def parse_status(raw: Any, default: str | None = "Draft") -> str | None:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    if raw not in COURSE_STATUSES:
        raise ValidationError(
            "Status must be either 'Draft' or 'Published'", field="status"
        )
    return raw


def parse_uuid(raw: Any, field: str) -> UUID:
    if isinstance(raw, UUID):
        return raw
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError(f"{field} is required", field=field)
    try:
        return UUID(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{field} is not a valid id", field=field) from None


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CourseCreate:
    """Raw create input as it arrives from the form."""

    name: Any
    description: Any
    what_you_will_learn: Any
    price: Any
    category_id: Any
    tags: Any
    instructions: Any
    status: Any = None


@dataclass(frozen=True)
class CourseUpdate:
    """Allow-listed edit input.  A None field is left unchanged."""

    name: Any = None
    description: Any = None
    what_you_will_learn: Any = None
    price: Any = None
    category_id: Any = None
    tags: Any = None
    instructions: Any = None
    status: Any = None

    def changes(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.name is not None:
            out["name"] = _text(self.name, "name")
        if self.description is not None:
            out["description"] = _text(self.description, "description")
        if self.what_you_will_learn is not None:
            out["what_you_will_learn"] = _text(
                self.what_you_will_learn, "what_you_will_learn"
            )
        if self.price is not None:
            out["price"] = parse_price(self.price)
        if self.category_id is not None:
            out["category_id"] = parse_uuid(self.category_id, "category")
        if self.tags is not None:
            out["tags"] = parse_tags(self.tags)
        if self.instructions is not None:
            out["instructions"] = parse_instructions(self.instructions)
        if self.status is not None:
            status = parse_status(self.status, default=None)
            if status is not None:
                out["status"] = status
        return out


# ---------------------------------------------------------------------------
# Read projections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SectionContent:
    section: Section
    subsections: tuple[SubSection, ...]


@dataclass(frozen=True)
class CourseDetails:
    course: Course
    instructor: User | None
    category: Category | None
    ratings: tuple[RatingAndReview, ...]
    content: tuple[SectionContent, ...]
    total_duration: str
    completed_videos: tuple[UUID, ...] = ()


@dataclass(frozen=True)
class CourseSummary:
    course: Course
    instructor: User | None


async def load_details(repos: Repositories, course: Course) -> CourseDetails:
    """Populate instructor, category, ratings and section content."""
    sections = await repos.sections.get_many(course.sections)
    content: list[SectionContent] = []
    all_subs: list[SubSection] = []
    for section in sections:
        subs = await repos.subsections.get_many(section.subsections)
        content.append(SectionContent(section, tuple(subs)))
        all_subs.extend(subs)

    return CourseDetails(
        course=course,
        instructor=await repos.users.get_by_id(course.instructor_id),
        category=await repos.categories.get_by_id(course.category_id),
        ratings=tuple(await repos.ratings.get_many(course.ratings)),
        content=tuple(content),
        total_duration=total_duration(all_subs),
    )


async def _require_course(repos: Repositories, course_id: Any) -> Course:
    cid = parse_uuid(course_id, "course_id")
    course = await repos.courses.get_by_id(cid)
    if course is None:
        raise NotFound(f"Could not find course with id: {cid}")
    return course


async def get_course_details(repos: Repositories, course_id: Any) -> CourseDetails:
    return await load_details(repos, await _require_course(repos, course_id))


async def get_full_course_details(
    repos: Repositories, course_id: Any, user_id: UUID
) -> CourseDetails:
    course = await _require_course(repos, course_id)
    if user_id not in course.students_enrolled and user_id != course.instructor_id:
        raise Forbidden("Student is not enrolled in the course")
    details = await load_details(repos, course)
    progress = await repos.progress.get(course.id, user_id)
    completed = progress.completed_videos if progress is not None else ()
    return CourseDetails(
        course=details.course,
        instructor=details.instructor,
        category=details.category,
        ratings=details.ratings,
        content=details.content,
        total_duration=details.total_duration,
        completed_videos=completed,
    )


async def list_published_courses(repos: Repositories) -> list[CourseSummary]:
    out: list[CourseSummary] = []
    for course in await repos.courses.list_published():
        out.append(CourseSummary(course, await repos.users.get_by_id(course.instructor_id)))
    return out


async def list_instructor_courses(repos: Repositories, instructor_id: UUID) -> list[Course]:
    return await repos.courses.list_by_instructor(instructor_id)


# ---------------------------------------------------------------------------
# Create / edit
# ---------------------------------------------------------------------------


async def _link_backref(kind: str, coro: Any, course_id: UUID) -> None:
    """Run one back-reference write; failures are logged, never raised."""
    try:
        await coro
    except Exception:
        BACKREF_FAILURES.labels(target=kind).inc()
        logger.error(
            "Back-reference update failed  target=%s course_id=%s",
            kind,
            course_id,
            exc_info=True,
            extra={"course_id": str(course_id)},
        )


async def create_course(
    repos: Repositories,
    media: MediaIngestor,
    *,
    instructor_id: UUID,
    data: CourseCreate,
    thumbnail: Any,
) -> Course:
    if data.category_id is None or (
        isinstance(data.category_id, str) and not data.category_id.strip()
    ):
        raise ValidationError(
            "Course name, description, benefits, and category are required "
            "and cannot be empty",
            field="category",
        )
    name = _text(data.name, "name")
    description = _text(data.description, "description")
    learn = _text(data.what_you_will_learn, "what_you_will_learn")
    price = parse_price(data.price)
    if thumbnail is None:
        raise ValidationError("Course thumbnail image is required", field="thumbnail")
    thumb_ref = classify_file(thumbnail)
    tags = parse_tags(data.tags)
    instructions = parse_instructions(data.instructions)
    status = parse_status(data.status)
    category_id = parse_uuid(data.category_id, "category")

    instructor = await repos.users.get_by_id(instructor_id)
    if instructor is None:
        raise NotFound("User not found")
    if instructor.role != "Instructor":
        raise Forbidden("Only instructors can create courses")
    category = await repos.categories.get_by_id(category_id)
    if category is None:
        raise NotFound("Category not found")

    asset = await media.ingest(thumb_ref)

    course = Course.new(
        name=name,
        description=description,
        what_you_will_learn=learn,
        price=price,
        instructor_id=instructor.id,
        category_id=category.id,
        thumbnail=asset.secure_url,
        tags=tags,
        instructions=instructions,
        status=status,  # type: ignore[arg-type]
    )
    await repos.courses.add(course)

    await _link_backref(
        "instructor", repos.users.add_course(instructor.id, course.id), course.id
    )
    await _link_backref(
        "category", repos.categories.add_course(category.id, course.id), course.id
    )

    COURSE_OPERATIONS.labels(operation="create", outcome="ok").inc()
    logger.info(
        "Course created  course_id=%s instructor_id=%s status=%s",
        course.id,
        instructor.id,
        course.status,
        extra={"course_id": str(course.id)},
    )
    return course


def _require_owner(course: Course, caller_id: UUID, action: str) -> None:
    if course.instructor_id != caller_id:
        logger.warning(
            "Ownership check failed  course_id=%s caller=%s action=%s",
            course.id,
            caller_id,
            action,
        )
        raise Forbidden(
            f"You are not authorized to {action} this course. "
            f"Only the course instructor can {action} it."
        )


async def edit_course(
    repos: Repositories,
    media: MediaIngestor,
    *,
    course_id: Any,
    caller_id: UUID,
    update: CourseUpdate,
    thumbnail: Any = None,
) -> CourseDetails:
    course = await _require_course(repos, course_id)
    _require_owner(course, caller_id, "edit")

    changes = update.changes()
    new_category = changes.get("category_id")
    if new_category is not None and new_category != course.category_id:
        if await repos.categories.get_by_id(new_category) is None:
            raise NotFound("Category not found")
    else:
        changes.pop("category_id", None)

    thumb_ref = classify_file(thumbnail) if thumbnail is not None else None
    if changes.get("status") == "Published" and not (thumb_ref or course.thumbnail):
        raise ValidationError(
            "A course needs a thumbnail before it can be published", field="status"
        )

    if thumb_ref is not None:
        asset = await media.ingest(thumb_ref)
        changes["thumbnail"] = asset.secure_url

    updated = await repos.courses.update(course.id, changes)
    if updated is None:
        raise NotFound(f"Could not find course with id: {course.id}")

    if "category_id" in changes:
        await _link_backref(
            "category",
            repos.categories.remove_course(course.category_id, course.id),
            course.id,
        )
        await _link_backref(
            "category", repos.categories.add_course(updated.category_id, course.id), course.id
        )

    COURSE_OPERATIONS.labels(operation="edit", outcome="ok").inc()
    logger.info(
        "Course updated  course_id=%s fields=%s",
        course.id,
        sorted(changes),
        extra={"course_id": str(course.id)},
    )
    return await load_details(repos, updated)


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


async def _unlink(kind: str, coro: Any, owner_id: UUID, course_id: UUID) -> bool:
    """Back-reference removal where the owning record may already be gone.

    Returns False when there was nothing to unlink.
    """
    try:
        await coro
    except KeyError:
        logger.warning(
            "Dangling %s reference  id=%s course_id=%s", kind, owner_id, course_id
        )
        return False
    return True


def _add_unlink_step(
    saga: Saga,
    name: str,
    kind: str,
    owner_id: UUID,
    course_id: UUID,
    unlink: Callable[[], Awaitable[None]],
    relink: Callable[[], Awaitable[None]],
) -> None:
    """Add an unlink step whose compensation only relinks what it removed."""
    unlinked = False

    async def action() -> None:
        nonlocal unlinked
        unlinked = await _unlink(kind, unlink(), owner_id, course_id)

    async def compensate() -> None:
        if unlinked:
            await relink()

    saga.add(name, action, compensate=compensate)


async def delete_course(repos: Repositories, *, course_id: Any, caller_id: UUID) -> None:
    course = await _require_course(repos, course_id)
    _require_owner(course, caller_id, "delete")

    sections = await repos.sections.get_many(course.sections)
    subsections = {s.id: await repos.subsections.get_many(s.subsections) for s in sections}
    progress = await repos.progress.list_for_course(course.id)
    ratings = await repos.ratings.get_many(course.ratings)

    saga = Saga("delete_course")

    for student_id in course.students_enrolled:
        _add_unlink_step(
            saga,
            f"unenroll student {student_id}",
            "student",
            student_id,
            course.id,
            lambda sid=student_id: repos.users.remove_course(sid, course.id),
            lambda sid=student_id: repos.users.add_course(sid, course.id),
        )

    _add_unlink_step(
        saga,
        "unlink instructor",
        "instructor",
        course.instructor_id,
        course.id,
        lambda: repos.users.remove_course(course.instructor_id, course.id),
        lambda: repos.users.add_course(course.instructor_id, course.id),
    )
    _add_unlink_step(
        saga,
        "unlink category",
        "category",
        course.category_id,
        course.id,
        lambda: repos.categories.remove_course(course.category_id, course.id),
        lambda: repos.categories.add_course(course.category_id, course.id),
    )

    for section in sections:
        for sub in subsections[section.id]:
            saga.add(
                f"delete subsection {sub.id}",
                lambda s=sub: repos.subsections.delete(s.id),
                compensate=lambda s=sub: repos.subsections.add(s),
            )
        saga.add(
            f"delete section {section.id}",
            lambda s=section: repos.sections.delete(s.id),
            compensate=lambda s=section: repos.sections.add(s),
        )

    for record in progress:
        saga.add(
            f"delete progress {record.user_id}",
            lambda p=record: repos.progress.delete(p.course_id, p.user_id),
            compensate=lambda p=record: repos.progress.save(p),
        )
    for rating in ratings:
        saga.add(
            f"delete rating {rating.id}",
            lambda r=rating: repos.ratings.delete(r.id),
            compensate=lambda r=rating: repos.ratings.add(r),
        )

    saga.add("delete course", lambda: repos.courses.delete(course.id))

    try:
        await saga.run()
    except Exception:
        COURSE_OPERATIONS.labels(operation="delete", outcome="error").inc()
        raise

    COURSE_OPERATIONS.labels(operation="delete", outcome="ok").inc()
    logger.info(
        "Course deleted  course_id=%s sections=%d students=%d",
        course.id,
        len(sections),
        len(course.students_enrolled),
        extra={"course_id": str(course.id)},
    )
