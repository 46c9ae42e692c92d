"""Course progress endpoint.

A progress record is created on the first completion event for a
(course, user) pair; a missing record simply means nothing is done yet.
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import AliasChoices, BaseModel, Field

from app.api.dependencies import CurrentIdentity, Repos
from app.api.errors import Envelope
from app.api.schemas import ProgressOut
from app.services import progress_service

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class CompleteIn(BaseModel):
    course_id: str | None = Field(
        default=None, validation_alias=AliasChoices("course_id", "courseId")
    )
    subsection_id: str | None = Field(
        default=None, validation_alias=AliasChoices("subsection_id", "subsectionId")
    )


@router.post("/complete", response_model=Envelope[ProgressOut])
async def complete_subsection(
    payload: CompleteIn, repos: Repos, identity: CurrentIdentity
) -> Envelope[ProgressOut]:
    progress = await progress_service.mark_subsection_complete(
        repos,
        course_id=payload.course_id,
        subsection_id=payload.subsection_id,
        user_id=identity.user_id,
    )
    return Envelope(message="Course progress updated", data=ProgressOut.from_progress(progress))
