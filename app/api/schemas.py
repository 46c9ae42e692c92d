"""Response schemas shared by the routers.

Domain dataclasses are projected into these pydantic models at the edge.
Routers use response_model_exclude_none, so a field left as None (for
example video_url on the public course view) is omitted from the JSON.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from app.models.category import Category
from app.models.course import Course, RatingAndReview, SubSection
from app.models.progress import CourseProgress
from app.models.user import User
from app.services.course_service import CourseDetails, CourseSummary, SectionContent


class ProfileOut(BaseModel):
    about: str | None = None
    contact_number: str | None = None
    gender: str | None = None
    date_of_birth: str | None = None


class UserOut(BaseModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    role: str
    courses: list[UUID] = []
    profile: ProfileOut | None = None

    @staticmethod
    def from_user(user: User, *, with_profile: bool = True) -> UserOut:
        return UserOut(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            courses=list(user.courses),
            profile=ProfileOut(
                about=user.profile.about,
                contact_number=user.profile.contact_number,
                gender=user.profile.gender,
                date_of_birth=user.profile.date_of_birth,
            )
            if with_profile
            else None,
        )


class CategoryOut(BaseModel):
    id: UUID
    name: str
    description: str
    courses: list[UUID] = []

    @staticmethod
    def from_category(c: Category) -> CategoryOut:
        return CategoryOut(
            id=c.id, name=c.name, description=c.description, courses=list(c.courses)
        )


class RatingOut(BaseModel):
    id: UUID
    user_id: UUID
    course_id: UUID
    rating: int
    review: str

    @staticmethod
    def from_rating(r: RatingAndReview) -> RatingOut:
        return RatingOut(
            id=r.id, user_id=r.user_id, course_id=r.course_id, rating=r.rating, review=r.review
        )


class SubSectionOut(BaseModel):
    id: UUID
    title: str
    description: str
    time_duration: str
    video_url: str | None = None

    @staticmethod
    def from_subsection(s: SubSection, *, include_video: bool) -> SubSectionOut:
        return SubSectionOut(
            id=s.id,
            title=s.title,
            description=s.description,
            time_duration=s.time_duration,
            video_url=s.video_url if include_video else None,
        )


class SectionOut(BaseModel):
    id: UUID
    name: str
    subsections: list[SubSectionOut]

    @staticmethod
    def from_content(c: SectionContent, *, include_video: bool) -> SectionOut:
        return SectionOut(
            id=c.section.id,
            name=c.section.name,
            subsections=[
                SubSectionOut.from_subsection(s, include_video=include_video)
                for s in c.subsections
            ],
        )


class CourseOut(BaseModel):
    id: UUID
    name: str
    description: str
    what_you_will_learn: str
    price: float
    status: str
    thumbnail: str | None = None
    tags: list[str]
    instructions: list[str]
    instructor_id: UUID
    category_id: UUID
    sections: list[UUID]
    students_enrolled: list[UUID]
    ratings: list[UUID]
    created_at: datetime

    @staticmethod
    def from_course(c: Course) -> CourseOut:
        return CourseOut(
            id=c.id,
            name=c.name,
            description=c.description,
            what_you_will_learn=c.what_you_will_learn,
            price=c.price,
            status=c.status,
            thumbnail=c.thumbnail,
            tags=list(c.tags),
            instructions=list(c.instructions),
            instructor_id=c.instructor_id,
            category_id=c.category_id,
            sections=list(c.sections),
            students_enrolled=list(c.students_enrolled),
            ratings=list(c.ratings),
            created_at=c.created_at,
        )


class CourseSummaryOut(BaseModel):
    id: UUID
    name: str
    price: float
    thumbnail: str | None = None
    instructor: UserOut | None = None
    ratings: list[UUID]
    students_enrolled: list[UUID]

    @staticmethod
    def from_summary(s: CourseSummary) -> CourseSummaryOut:
        return CourseSummaryOut(
            id=s.course.id,
            name=s.course.name,
            price=s.course.price,
            thumbnail=s.course.thumbnail,
            instructor=UserOut.from_user(s.instructor, with_profile=False)
            if s.instructor
            else None,
            ratings=list(s.course.ratings),
            students_enrolled=list(s.course.students_enrolled),
        )


class PopulatedCourseOut(BaseModel):
    id: UUID
    name: str
    description: str
    what_you_will_learn: str
    price: float
    status: str
    thumbnail: str | None = None
    tags: list[str]
    instructions: list[str]
    instructor: UserOut | None = None
    category: CategoryOut | None = None
    ratings: list[RatingOut]
    sections: list[SectionOut]
    students_enrolled: list[UUID]
    created_at: datetime


class CourseDetailsOut(BaseModel):
    course_details: PopulatedCourseOut
    total_duration: str
    completed_videos: list[UUID] | None = None

    @staticmethod
    def from_details(
        d: CourseDetails, *, include_video: bool, with_progress: bool = False
    ) -> CourseDetailsOut:
        c = d.course
        return CourseDetailsOut(
            course_details=PopulatedCourseOut(
                id=c.id,
                name=c.name,
                description=c.description,
                what_you_will_learn=c.what_you_will_learn,
                price=c.price,
                status=c.status,
                thumbnail=c.thumbnail,
                tags=list(c.tags),
                instructions=list(c.instructions),
                instructor=UserOut.from_user(d.instructor) if d.instructor else None,
                category=CategoryOut.from_category(d.category) if d.category else None,
                ratings=[RatingOut.from_rating(r) for r in d.ratings],
                sections=[
                    SectionOut.from_content(s, include_video=include_video)
                    for s in d.content
                ],
                students_enrolled=list(c.students_enrolled),
                created_at=c.created_at,
            ),
            total_duration=d.total_duration,
            completed_videos=list(d.completed_videos) if with_progress else None,
        )


class ProgressOut(BaseModel):
    course_id: UUID
    user_id: UUID
    completed_videos: list[UUID]

    @staticmethod
    def from_progress(p: CourseProgress) -> ProgressOut:
        return ProgressOut(
            course_id=p.course_id,
            user_id=p.user_id,
            completed_videos=list(p.completed_videos),
        )
