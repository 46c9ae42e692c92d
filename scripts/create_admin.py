#!/usr/bin/env python3
"""Create the Admin account (idempotent).

RUN:  DATABASE_URL=... python scripts/create_admin.py

Reads ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_FIRST_NAME and ADMIN_LAST_NAME.
Does nothing when an account with that email already exists.
"""

from __future__ import annotations

import asyncio
import os
import sys

from app.db import engine as db
from app.models.user import Profile, User
from app.repos.pg_user_repo import PgUserRepo
from app.repos.user_repo import UserRepo
from app.services.auth_service import hash_password


async def create_admin(
    repo: UserRepo,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
) -> bool:
    """Return True when an account was created, False when it already existed."""
    if await repo.get_by_email(email) is not None:
        return False
    await repo.add(
        User.new(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role="Admin",
            profile=Profile(about="Admin account"),
        )
    )
    return True


async def _main() -> int:
    if db.async_session_factory is None:
        print("DATABASE_URL is not set", file=sys.stderr)
        return 1

    email = os.environ.get("ADMIN_EMAIL", "admin@example.com").strip().lower()
    password = os.environ.get("ADMIN_PASSWORD", "")
    if not password:
        print("ADMIN_PASSWORD is not set", file=sys.stderr)
        return 1

    async with db.async_session_factory() as session:
        created = await create_admin(
            PgUserRepo(session),
            email=email,
            password=password,
            first_name=os.environ.get("ADMIN_FIRST_NAME", "Admin"),
            last_name=os.environ.get("ADMIN_LAST_NAME", "User"),
        )
    if db.engine is not None:
        await db.engine.dispose()

    if created:
        print(f"Admin user created: {email}")
        print("You can now log in at POST /v1/auth/login")
    else:
        print(f"Admin already exists: {email}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(_main()))
