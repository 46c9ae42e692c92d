from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from app.models.user import Role


@dataclass(frozen=True, slots=True)
class Identity:
    """Caller identity resolved from a verified token.

    role is the snapshot taken when the token was minted; require_role()
    re-reads the persisted user before trusting it.
    """

    user_id: UUID
    role: Role
    email: str

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles
