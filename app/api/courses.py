"""Course catalog and authoring endpoints.

Create and edit are multipart (the thumbnail travels with the fields);
everything else is JSON.  Form fields arrive as strings and are validated
by course_service, so missing or malformed values answer 400, not 422.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import AliasChoices, BaseModel, Field

from app.api.dependencies import CurrentIdentity, Media, Repos, require_role
from app.api.errors import Envelope
from app.api.schemas import (
    CourseDetailsOut,
    CourseOut,
    CourseSummaryOut,
    RatingOut,
)
from app.core import config
from app.core.config import MediaSettings
from app.models.identity import Identity
from app.services import course_service, enrollment_service
from app.services.course_service import CourseCreate, CourseUpdate
from app.services.media_service import FileRef, file_ref_from_upload

router = APIRouter(prefix="/v1/courses", tags=["courses"])

Instructor = Annotated[Identity, Depends(require_role("Instructor"))]
Student = Annotated[Identity, Depends(require_role("Student"))]

_DEFAULT_MEMORY_LIMIT = 1024 * 1024


def _memory_limit() -> int:
    media = config.SETTINGS.media
    if isinstance(media, MediaSettings):
        return media.memory_limit_bytes
    return _DEFAULT_MEMORY_LIMIT


async def upload_ref(upload: UploadFile | None) -> FileRef | None:
    if upload is None or not upload.filename:
        return None
    return await file_ref_from_upload(upload, _memory_limit())


class CourseIdIn(BaseModel):
    course_id: str | None = Field(
        default=None, validation_alias=AliasChoices("course_id", "courseId")
    )


class RatingIn(BaseModel):
    rating: int | str | None = None
    review: str = ""


# --- Authoring --------------------------------------------------------------


@router.post(
    "",
    response_model=Envelope[CourseOut],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_course(
    repos: Repos,
    media: Media,
    identity: Instructor,
    name: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    what_you_will_learn: Annotated[str | None, Form()] = None,
    price: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
    tags: Annotated[str | None, Form()] = None,
    instructions: Annotated[str | None, Form()] = None,
    course_status: Annotated[str | None, Form(alias="status")] = None,
    thumbnail: Annotated[UploadFile | None, File()] = None,
) -> Envelope[CourseOut]:
    course = await course_service.create_course(
        repos,
        media,
        instructor_id=identity.user_id,
        data=CourseCreate(
            name=name,
            description=description,
            what_you_will_learn=what_you_will_learn,
            price=price,
            category_id=category,
            tags=tags,
            instructions=instructions,
            status=course_status,
        ),
        thumbnail=await upload_ref(thumbnail),
    )
    return Envelope(message="Course Created Successfully", data=CourseOut.from_course(course))


@router.put(
    "/{course_id}",
    response_model=Envelope[CourseDetailsOut],
    response_model_exclude_none=True,
)
async def edit_course(
    course_id: str,
    repos: Repos,
    media: Media,
    identity: Instructor,
    name: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    what_you_will_learn: Annotated[str | None, Form()] = None,
    price: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
    tags: Annotated[str | None, Form()] = None,
    instructions: Annotated[str | None, Form()] = None,
    course_status: Annotated[str | None, Form(alias="status")] = None,
    thumbnail: Annotated[UploadFile | None, File()] = None,
) -> Envelope[CourseDetailsOut]:
    details = await course_service.edit_course(
        repos,
        media,
        course_id=course_id,
        caller_id=identity.user_id,
        update=CourseUpdate(
            name=name,
            description=description,
            what_you_will_learn=what_you_will_learn,
            price=price,
            category_id=category,
            tags=tags,
            instructions=instructions,
            status=course_status,
        ),
        thumbnail=await upload_ref(thumbnail),
    )
    return Envelope(
        message="Course updated successfully",
        data=CourseDetailsOut.from_details(details, include_video=True),
    )


@router.delete("/{course_id}", response_model=Envelope[None])
async def delete_course(
    course_id: str, repos: Repos, identity: Instructor
) -> Envelope[None]:
    await course_service.delete_course(
        repos, course_id=course_id, caller_id=identity.user_id
    )
    return Envelope(message="Course deleted successfully")


@router.get(
    "/instructor",
    response_model=Envelope[list[CourseOut]],
    response_model_exclude_none=True,
)
async def instructor_courses(repos: Repos, identity: Instructor) -> Envelope[list[CourseOut]]:
    courses = await course_service.list_instructor_courses(repos, identity.user_id)
    return Envelope(data=[CourseOut.from_course(c) for c in courses])


# --- Catalog ------------------------------------------------------------------


@router.get(
    "",
    response_model=Envelope[list[CourseSummaryOut]],
    response_model_exclude_none=True,
)
async def list_courses(repos: Repos) -> Envelope[list[CourseSummaryOut]]:
    summaries = await course_service.list_published_courses(repos)
    return Envelope(data=[CourseSummaryOut.from_summary(s) for s in summaries])


@router.post(
    "/details",
    response_model=Envelope[CourseDetailsOut],
    response_model_exclude_none=True,
)
async def course_details(payload: CourseIdIn, repos: Repos) -> Envelope[CourseDetailsOut]:
    details = await course_service.get_course_details(repos, payload.course_id)
    return Envelope(data=CourseDetailsOut.from_details(details, include_video=False))


@router.post(
    "/full-details",
    response_model=Envelope[CourseDetailsOut],
    response_model_exclude_none=True,
)
async def full_course_details(
    payload: CourseIdIn, repos: Repos, identity: CurrentIdentity
) -> Envelope[CourseDetailsOut]:
    details = await course_service.get_full_course_details(
        repos, payload.course_id, identity.user_id
    )
    return Envelope(
        data=CourseDetailsOut.from_details(details, include_video=True, with_progress=True)
    )


# --- Enrollment and ratings -------------------------------------------------


@router.post(
    "/{course_id}/enroll",
    response_model=Envelope[CourseOut],
    response_model_exclude_none=True,
)
async def enroll(course_id: str, repos: Repos, identity: Student) -> Envelope[CourseOut]:
    course = await enrollment_service.enroll_free(
        repos, course_id=course_id, user_id=identity.user_id
    )
    return Envelope(message="Enrolled successfully", data=CourseOut.from_course(course))


@router.post(
    "/{course_id}/ratings",
    response_model=Envelope[RatingOut],
    status_code=status.HTTP_201_CREATED,
)
async def rate(
    course_id: str, payload: RatingIn, repos: Repos, identity: Student
) -> Envelope[RatingOut]:
    record = await enrollment_service.rate_course(
        repos,
        course_id=course_id,
        user_id=identity.user_id,
        rating=payload.rating,
        review=payload.review,
    )
    return Envelope(message="Rating and Review created Successfully", data=RatingOut.from_rating(record))
