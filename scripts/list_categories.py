#!/usr/bin/env python3
"""Print every category stored in the database.

RUN:  DATABASE_URL=... python scripts/list_categories.py
"""

from __future__ import annotations

import asyncio
import sys

from app.db import engine as db
from app.repos.pg_category_repo import PgCategoryRepo


async def _main() -> int:
    if db.async_session_factory is None:
        print("DATABASE_URL is not set", file=sys.stderr)
        return 1

    async with db.async_session_factory() as session:
        categories = await PgCategoryRepo(session).list_all()
    await db.engine.dispose()  # type: ignore[union-attr]

    if not categories:
        print("No categories found")
    for c in categories:
        print(f"{c.id}  {c.name:<20} courses={len(c.courses)}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(_main()))
