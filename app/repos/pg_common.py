"""Shared helpers for the PostgreSQL repositories.

Every mutation commits immediately.  Multi-entity operations (back-reference
updates, the course cascade) are therefore sequences of independently
committed single-row writes, and callers own the consistency story.

A failed write rolls the session back before the error propagates, so the
same session can still run the compensating writes of a cascade.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import func, literal, select, update
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.asyncio import AsyncSession

_UUID = UUID(as_uuid=True)


@asynccontextmanager
async def writing(session: AsyncSession) -> AsyncIterator[None]:
    """Commit the enclosed statements, or roll back and re-raise."""
    try:
        yield
        await session.commit()
    except Exception:
        await session.rollback()
        raise


async def _exists(session: AsyncSession, row_cls: Any, row_id: uuid.UUID) -> bool:
    stmt = select(row_cls.id).where(row_cls.id == row_id)
    return (await session.execute(stmt)).scalar_one_or_none() is not None


async def append_unique(
    session: AsyncSession,
    row_cls: Any,
    row_id: uuid.UUID,
    column: str,
    value: uuid.UUID,
) -> None:
    """array_append *value* to *column* unless already present.

    Raises KeyError when the row does not exist.
    """
    col = getattr(row_cls, column)
    stmt = (
        update(row_cls)
        .where(row_cls.id == row_id, ~col.contains([value]))
        .values({column: func.array_append(col, literal(value, _UUID))})
    )
    async with writing(session):
        result = await session.execute(stmt)
        if result.rowcount == 0 and not await _exists(session, row_cls, row_id):
            raise KeyError(f"{row_cls.__tablename__} row not found")


async def remove_value(
    session: AsyncSession,
    row_cls: Any,
    row_id: uuid.UUID,
    column: str,
    value: uuid.UUID,
) -> None:
    col = getattr(row_cls, column)
    stmt = (
        update(row_cls)
        .where(row_cls.id == row_id)
        .values({column: func.array_remove(col, literal(value, _UUID))})
    )
    async with writing(session):
        result = await session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError(f"{row_cls.__tablename__} row not found")
