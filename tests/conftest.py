from __future__ import annotations

import asyncio
import os
from typing import Any

# Settings are read once at import; pin the test environment before app loads.
os.environ["APP_ENV"] = "test"
JWT_SECRET = "test-signing-secret-" + "0123456789abcdef" * 4
os.environ["JWT_SECRET"] = JWT_SECRET
for _name in (
    "DATABASE_URL",
    "MEDIA_BUCKET",
    "MEDIA_ACCESS_KEY_ID",
    "MEDIA_SECRET_ACCESS_KEY",
    "PAYMENT_KEY_ID",
    "PAYMENT_KEY_SECRET",
):
    os.environ.pop(_name, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.api.dependencies import get_media_ingestor  # noqa: E402
from app.main import app  # noqa: E402
from app.models.category import Category  # noqa: E402
from app.models.user import Role, User  # noqa: E402
from app.repos import registry  # noqa: E402
from app.repos.registry import Repositories  # noqa: E402
from app.services import token_service  # noqa: E402
from app.services.auth_service import hash_password  # noqa: E402
from app.services.media_service import (  # noqa: E402
    FileRef,
    MediaAsset,
    representation_of,
)

PASSWORD = "password123"
_PASSWORD_HASH = hash_password(PASSWORD)

PNG = ("thumb.png", b"\x89PNG\r\n\x1a\nfake-image", "image/png")
MP4 = ("lesson.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")


class FakeMediaIngestor:
    """Records every ingested ref and hands back a predictable URL."""

    def __init__(self) -> None:
        self.ingested: list[FileRef] = []

    async def ingest(self, ref: FileRef, *, folder: str | None = None) -> MediaAsset:
        self.ingested.append(ref)
        key = f"{folder or 'course-service'}/{len(self.ingested)}-{ref.filename}"
        return MediaAsset(
            secure_url=f"https://cdn.test/{key}",
            key=key,
            content_type=ref.content_type or "application/octet-stream",
            size=0,
        )

    @property
    def representations(self) -> list[str]:
        return [representation_of(r) for r in self.ingested]


@pytest.fixture(autouse=True)
def repos() -> Repositories:
    """Fresh in-memory repositories for every test."""
    return registry.reset_memory_repos()


@pytest.fixture(autouse=True)
def media() -> Any:
    fake = FakeMediaIngestor()
    app.dependency_overrides[get_media_ingestor] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------


def run(coro: Any) -> Any:
    return asyncio.run(coro)


def make_user(
    repos: Repositories,
    role: Role = "Student",
    *,
    email: str | None = None,
    first_name: str = "Test",
    last_name: str = "User",
) -> User:
    user = User.new(
        email=email or f"{role.lower()}-{os.urandom(4).hex()}@example.com",
        password_hash=_PASSWORD_HASH,
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    run(repos.users.add(user))
    return user


def make_category(repos: Repositories, name: str = "Web Development") -> Category:
    category = Category.new(name=name, description=f"{name} courses")
    run(repos.categories.add(category))
    return category


def mint_token(user: User) -> str:
    return token_service.create_access_token(user=user)


def auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(user)}"}


def course_form(category: Category, /, **overrides: Any) -> dict[str, Any]:
    form: dict[str, Any] = {
        "name": "Intro to Go",
        "description": "Learn Go from scratch",
        "what_you_will_learn": "Goroutines and channels",
        "price": "0",
        "category": str(category.id),
        "tags": '["free"]',
        "instructions": '["none"]',
    }
    form.update(overrides)
    return {k: v for k, v in form.items() if v is not None}


def create_course(
    client: TestClient,
    instructor: User,
    category: Category,
    **overrides: Any,
) -> dict[str, Any]:
    """Create a course through the API and return its JSON body."""
    resp = client.post(
        "/v1/courses",
        data=course_form(category, **overrides),
        files={"thumbnail": PNG},
        headers=auth(instructor),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def add_section(
    client: TestClient, instructor: User, course_id: str, name: str = "Basics"
) -> str:
    resp = client.post(
        f"/v1/courses/{course_id}/sections",
        json={"name": name},
        headers=auth(instructor),
    )
    assert resp.status_code == 201, resp.text
    sections = resp.json()["data"]["course_details"]["sections"]
    return next(s["id"] for s in sections if s["name"] == name)


def add_subsection(
    client: TestClient,
    instructor: User,
    section_id: str,
    *,
    title: str = "Hello",
    time_duration: str = "125",
) -> dict[str, Any]:
    resp = client.post(
        f"/v1/sections/{section_id}/subsections",
        data={"title": title, "description": "first lesson", "time_duration": time_duration},
        files={"video": MP4},
        headers=auth(instructor),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


# ---------------------------------------------------------------------------
# Common actors
# ---------------------------------------------------------------------------


@pytest.fixture
def instructor(repos: Repositories) -> User:
    return make_user(repos, "Instructor", email="instructor@example.com")


@pytest.fixture
def student(repos: Repositories) -> User:
    return make_user(repos, "Student", email="student@example.com")


@pytest.fixture
def admin(repos: Repositories) -> User:
    return make_user(repos, "Admin", email="admin@example.com")


@pytest.fixture
def category(repos: Repositories) -> Category:
    return make_category(repos)
