"""Repository bundle and the FastAPI dependency that provides it.

With DATABASE_URL configured every request gets PostgreSQL repositories
bound to one session.  Without it (APP_ENV=test) the process-wide
in-memory bundle is served; tests call reset_memory_repos() between runs.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.db import engine as db
from app.repos.category_repo import CategoryRepo, InMemoryCategoryRepo
from app.repos.course_repo import CourseRepo, InMemoryCourseRepo
from app.repos.pg_category_repo import PgCategoryRepo
from app.repos.pg_course_repo import PgCourseRepo
from app.repos.pg_progress_repo import PgProgressRepo
from app.repos.pg_rating_repo import PgRatingRepo
from app.repos.pg_section_repo import PgSectionRepo, PgSubSectionRepo
from app.repos.pg_user_repo import PgUserRepo
from app.repos.progress_repo import InMemoryProgressRepo, ProgressRepo
from app.repos.rating_repo import InMemoryRatingRepo, RatingRepo
from app.repos.section_repo import (
    InMemorySectionRepo,
    InMemorySubSectionRepo,
    SectionRepo,
    SubSectionRepo,
)
from app.repos.user_repo import InMemoryUserRepo, UserRepo


@dataclass(frozen=True)
class Repositories:
    users: UserRepo
    categories: CategoryRepo
    courses: CourseRepo
    sections: SectionRepo
    subsections: SubSectionRepo
    progress: ProgressRepo
    ratings: RatingRepo


def _new_memory_repos() -> Repositories:
    return Repositories(
        users=InMemoryUserRepo(),
        categories=InMemoryCategoryRepo(),
        courses=InMemoryCourseRepo(),
        sections=InMemorySectionRepo(),
        subsections=InMemorySubSectionRepo(),
        progress=InMemoryProgressRepo(),
        ratings=InMemoryRatingRepo(),
    )


_memory = _new_memory_repos()


def memory_repos() -> Repositories:
    return _memory


def reset_memory_repos() -> Repositories:
    global _memory
    _memory = _new_memory_repos()
    return _memory


def pg_repos(session: AsyncSession) -> Repositories:
    return Repositories(
        users=PgUserRepo(session),
        categories=PgCategoryRepo(session),
        courses=PgCourseRepo(session),
        sections=PgSectionRepo(session),
        subsections=PgSubSectionRepo(session),
        progress=PgProgressRepo(session),
        ratings=PgRatingRepo(session),
    )


async def get_repos() -> AsyncGenerator[Repositories, None]:
    if db.async_session_factory is None:
        yield _memory
        return
    async with db.async_session_factory() as session:
        try:
            yield pg_repos(session)
        except Exception:
            await session.rollback()
            raise
