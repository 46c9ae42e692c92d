from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """Per-(course, user) record of completed sub-sections.

    Created lazily on the first progress event; a missing record means
    nothing has been completed yet.
    """

    course_id: UUID
    user_id: UUID
    completed_videos: tuple[UUID, ...] = ()

    def has_completed(self, subsection_id: UUID) -> bool:
        return subsection_id in self.completed_videos

    def with_completed(self, subsection_id: UUID) -> CourseProgress:
        if self.has_completed(subsection_id):
            return self
        return CourseProgress(
            course_id=self.course_id,
            user_id=self.user_id,
            completed_videos=(*self.completed_videos, subsection_id),
        )
