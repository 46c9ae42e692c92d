from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

CourseStatus = Literal["Draft", "Published"]
COURSE_STATUSES: tuple[CourseStatus, ...] = ("Draft", "Published")


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class Course:
    """Aggregate root: owns its Sections (and through them, SubSections)."""

    id: UUID
    name: str
    description: str
    what_you_will_learn: str
    price: float
    instructor_id: UUID
    category_id: UUID
    thumbnail: str | None
    tags: tuple[str, ...] = ()
    instructions: tuple[str, ...] = ()
    status: CourseStatus = "Draft"
    sections: tuple[UUID, ...] = ()
    students_enrolled: tuple[UUID, ...] = ()
    ratings: tuple[UUID, ...] = ()
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def is_free(self) -> bool:
        return self.price == 0

    @staticmethod
    def new(
        *,
        name: str,
        description: str,
        what_you_will_learn: str,
        price: float,
        instructor_id: UUID,
        category_id: UUID,
        thumbnail: str,
        tags: tuple[str, ...],
        instructions: tuple[str, ...],
        status: CourseStatus = "Draft",
    ) -> Course:
        return Course(
            id=uuid4(),
            name=name,
            description=description,
            what_you_will_learn=what_you_will_learn,
            price=price,
            instructor_id=instructor_id,
            category_id=category_id,
            thumbnail=thumbnail,
            tags=tags,
            instructions=instructions,
            status=status,
        )


@dataclass(frozen=True, slots=True)
class Section:
    id: UUID
    course_id: UUID
    name: str
    subsections: tuple[UUID, ...] = ()

    @staticmethod
    def new(*, course_id: UUID, name: str) -> Section:
        return Section(id=uuid4(), course_id=course_id, name=name)


@dataclass(frozen=True, slots=True)
class SubSection:
    """Leaf content unit.  time_duration is seconds as reported at upload."""

    id: UUID
    section_id: UUID
    title: str
    description: str
    time_duration: str
    video_url: str

    @staticmethod
    def new(
        *,
        section_id: UUID,
        title: str,
        description: str,
        time_duration: str,
        video_url: str,
    ) -> SubSection:
        return SubSection(
            id=uuid4(),
            section_id=section_id,
            title=title,
            description=description,
            time_duration=time_duration,
            video_url=video_url,
        )


@dataclass(frozen=True, slots=True)
class RatingAndReview:
    id: UUID
    user_id: UUID
    course_id: UUID
    rating: int
    review: str = ""

    @staticmethod
    def new(*, user_id: UUID, course_id: UUID, rating: int, review: str = "") -> RatingAndReview:
        return RatingAndReview(
            id=uuid4(), user_id=user_id, course_id=course_id, rating=rating, review=review
        )
