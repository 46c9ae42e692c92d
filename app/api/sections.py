from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import BaseModel

from app.api.courses import upload_ref
from app.api.dependencies import Media, Repos, require_role
from app.api.errors import Envelope
from app.api.schemas import CourseDetailsOut
from app.models.identity import Identity
from app.services import section_service

router = APIRouter(prefix="/v1", tags=["sections"])

Instructor = Annotated[Identity, Depends(require_role("Instructor"))]


class SectionIn(BaseModel):
    name: str | None = None


def _out(details, message: str | None = None) -> Envelope[CourseDetailsOut]:
    return Envelope(
        message=message,
        data=CourseDetailsOut.from_details(details, include_video=True),
    )


@router.post(
    "/courses/{course_id}/sections",
    response_model=Envelope[CourseDetailsOut],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_section(
    course_id: str, payload: SectionIn, repos: Repos, identity: Instructor
) -> Envelope[CourseDetailsOut]:
    details = await section_service.create_section(
        repos, course_id=course_id, caller_id=identity.user_id, name=payload.name
    )
    return _out(details, "Section created successfully")


@router.put(
    "/sections/{section_id}",
    response_model=Envelope[CourseDetailsOut],
    response_model_exclude_none=True,
)
async def rename_section(
    section_id: str, payload: SectionIn, repos: Repos, identity: Instructor
) -> Envelope[CourseDetailsOut]:
    details = await section_service.rename_section(
        repos, section_id=section_id, caller_id=identity.user_id, name=payload.name
    )
    return _out(details, "Section updated successfully")


@router.delete(
    "/sections/{section_id}",
    response_model=Envelope[CourseDetailsOut],
    response_model_exclude_none=True,
)
async def delete_section(
    section_id: str, repos: Repos, identity: Instructor
) -> Envelope[CourseDetailsOut]:
    details = await section_service.delete_section(
        repos, section_id=section_id, caller_id=identity.user_id
    )
    return _out(details, "Section deleted")


@router.post(
    "/sections/{section_id}/subsections",
    response_model=Envelope[CourseDetailsOut],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_subsection(
    section_id: str,
    repos: Repos,
    media: Media,
    identity: Instructor,
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    time_duration: Annotated[str | None, Form()] = None,
    video: Annotated[UploadFile | None, File()] = None,
) -> Envelope[CourseDetailsOut]:
    details = await section_service.create_subsection(
        repos,
        media,
        section_id=section_id,
        caller_id=identity.user_id,
        title=title,
        description=description,
        time_duration=time_duration,
        video=await upload_ref(video),
    )
    return _out(details, "SubSection created successfully")


@router.delete(
    "/subsections/{subsection_id}",
    response_model=Envelope[CourseDetailsOut],
    response_model_exclude_none=True,
)
async def delete_subsection(
    subsection_id: str, repos: Repos, identity: Instructor
) -> Envelope[CourseDetailsOut]:
    details = await section_service.delete_subsection(
        repos, subsection_id=subsection_id, caller_id=identity.user_id
    )
    return _out(details, "SubSection deleted successfully")
