from __future__ import annotations

import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from app.core.errors import Conflict, ValidationError
from app.models.user import Profile, Role, User
from app.repos.user_repo import UserRepo

logger = logging.getLogger(__name__)

# Argon2 hash strings encode parameters + salt
_ph = PasswordHasher()

MIN_PASSWORD_LENGTH = 8
SELF_SERVICE_ROLES: tuple[Role, ...] = ("Student", "Instructor")


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


# verify_password() must catch Argon2 exceptions and return False
def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


async def authenticate_user(repo: UserRepo, email: str, password: str) -> User | None:
    user = await repo.get_by_email(email)
    if user is None:
        return None
    if not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def register_user(
    repo: UserRepo,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: Role,
    allowed_roles: tuple[Role, ...] = SELF_SERVICE_ROLES,
) -> User:
    """Create an account.  Admins are only created by scripts/create_admin.py."""
    email = email.strip().lower()
    if not email or "@" not in email:
        raise ValidationError("A valid email is required", field="email")
    if not first_name.strip() or not last_name.strip():
        raise ValidationError("First and last name are required", field="first_name")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            field="password",
        )
    if role not in allowed_roles:
        raise ValidationError(
            f"role must be one of {', '.join(allowed_roles)}", field="role"
        )

    if await repo.get_by_email(email) is not None:
        raise Conflict("User already exists. Please sign in to continue.")

    user = User.new(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        profile=Profile(),
    )
    try:
        await repo.add(user)
    except ValueError:
        # Lost a race with a concurrent sign-up for the same email
        raise Conflict("User already exists. Please sign in to continue.") from None

    logger.info("User registered  user_id=%s role=%s", user.id, role)
    return user
