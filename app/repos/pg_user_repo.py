"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import UserRow
from app.models.user import Profile, User
from app.repos.pg_common import append_unique, remove_value, writing


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        row = await self._session.get(UserRow, user_id, populate_existing=True)
        return _row_to_user(row) if row is not None else None

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(UserRow).where(UserRow.email == email.strip().lower())
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_user(row) if row is not None else None

    async def add(self, user: User) -> None:
        if await self.get_by_email(user.email) is not None:
            raise ValueError("email already exists")
        async with writing(self._session):
            self._session.add(
                UserRow(
                    id=user.id,
                    email=user.email,
                    password_hash=user.password_hash,
                    first_name=user.first_name,
                    last_name=user.last_name,
                    role=user.role,
                    courses=list(user.courses),
                    about=user.profile.about,
                    contact_number=user.profile.contact_number,
                    gender=user.profile.gender,
                    date_of_birth=user.profile.date_of_birth,
                    is_active=user.is_active,
                )
            )

    async def add_course(self, user_id: UUID, course_id: UUID) -> None:
        await append_unique(self._session, UserRow, user_id, "courses", course_id)

    async def remove_course(self, user_id: UUID, course_id: UUID) -> None:
        await remove_value(self._session, UserRow, user_id, "courses", course_id)


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        role=row.role,  # type: ignore[arg-type]
        courses=tuple(row.courses or ()),
        profile=Profile(
            about=row.about,
            contact_number=row.contact_number,
            gender=row.gender,
            date_of_birth=row.date_of_birth,
        ),
        is_active=row.is_active,
    )
