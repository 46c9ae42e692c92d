from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal
from uuid import UUID, uuid4

Role = Literal["Student", "Instructor", "Admin"]
ROLES: tuple[Role, ...] = ("Student", "Instructor", "Admin")


@dataclass(frozen=True, slots=True)
class Profile:
    about: str | None = None
    contact_number: str | None = None
    gender: str | None = None
    date_of_birth: str | None = None


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    password_hash: str
    first_name: str
    last_name: str
    role: Role
    # Back-reference: enrolled courses for students, authored ones for instructors
    courses: tuple[UUID, ...] = ()
    profile: Profile = field(default_factory=Profile)
    is_active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @staticmethod
    def new(
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: Role,
        profile: Profile | None = None,
    ) -> User:
        return User(
            id=uuid4(),
            email=email.strip().lower(),
            password_hash=password_hash,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            role=role,
            profile=profile or Profile(),
        )
