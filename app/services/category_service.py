from __future__ import annotations

import logging

from app.core.errors import Conflict, ValidationError
from app.models.category import Category
from app.repos.category_repo import CategoryRepo

logger = logging.getLogger(__name__)


async def create_category(repo: CategoryRepo, *, name: str, description: str = "") -> Category:
    if not name or not name.strip():
        raise ValidationError("Category name is required", field="name")
    if await repo.get_by_name(name) is not None:
        raise Conflict(f"Category already exists: {name.strip()}")

    category = Category.new(name=name, description=description or "")
    try:
        await repo.add(category)
    except ValueError:
        raise Conflict(f"Category already exists: {category.name}") from None

    logger.info("Category created  category_id=%s name=%s", category.id, category.name)
    return category


async def list_categories(repo: CategoryRepo) -> list[Category]:
    return await repo.list_all()
