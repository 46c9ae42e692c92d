from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from app.api.dependencies import Repos, require_role
from app.api.errors import Envelope
from app.api.schemas import CategoryOut
from app.models.identity import Identity
from app.services import category_service

router = APIRouter(prefix="/v1/categories", tags=["categories"])


class CategoryIn(BaseModel):
    name: str
    description: str = ""


@router.post(
    "",
    response_model=Envelope[CategoryOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    payload: CategoryIn,
    repos: Repos,
    _admin: Annotated[Identity, Depends(require_role("Admin"))],
) -> Envelope[CategoryOut]:
    category = await category_service.create_category(
        repos.categories, name=payload.name, description=payload.description
    )
    return Envelope(
        message="Category Created Successfully",
        data=CategoryOut.from_category(category),
    )


@router.get("", response_model=Envelope[list[CategoryOut]])
async def list_categories(repos: Repos) -> Envelope[list[CategoryOut]]:
    categories = await category_service.list_categories(repos.categories)
    return Envelope(data=[CategoryOut.from_category(c) for c in categories])
