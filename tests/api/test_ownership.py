"""Ownership rules for course editing and deletion.

Only the instructor who created a course may change or delete it; the
role gate alone is not enough.
"""

from __future__ import annotations

from uuid import UUID

from fastapi.testclient import TestClient

from tests.conftest import (
    PNG,
    add_section,
    add_subsection,
    auth,
    create_course,
    make_category,
    make_user,
    run,
)

# ---- edit ----


def test_owner_can_edit(client: TestClient, instructor, category) -> None:
    course = create_course(client, instructor, category)
    resp = client.put(
        f"/v1/courses/{course['id']}",
        data={"name": "Intro to Go, 2nd edition", "price": "19.5"},
        headers=auth(instructor),
    )
    assert resp.status_code == 200
    details = resp.json()["data"]["course_details"]
    assert details["name"] == "Intro to Go, 2nd edition"
    assert details["price"] == 19.5
    assert details["tags"] == ["free"]


def test_non_owner_cannot_edit(client: TestClient, repos, instructor, category) -> None:
    course = create_course(client, instructor, category)
    intruder = make_user(repos, "Instructor")

    resp = client.put(
        f"/v1/courses/{course['id']}", data={"name": "Hijacked"}, headers=auth(intruder)
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == (
        "You are not authorized to edit this course. "
        "Only the course instructor can edit it."
    )
    stored = run(repos.courses.get_by_id(UUID(course["id"])))
    assert stored.name == "Intro to Go"


def test_edit_validates_fields(client: TestClient, instructor, category) -> None:
    course = create_course(client, instructor, category)
    resp = client.put(
        f"/v1/courses/{course['id']}", data={"price": "free"}, headers=auth(instructor)
    )
    assert resp.status_code == 400
    assert resp.json()["details"]["field"] == "price"


def test_edit_publishes_course(client: TestClient, instructor, category) -> None:
    course = create_course(client, instructor, category)
    resp = client.put(
        f"/v1/courses/{course['id']}", data={"status": "Published"}, headers=auth(instructor)
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["course_details"]["status"] == "Published"
    assert [c["id"] for c in client.get("/v1/courses").json()["data"]] == [course["id"]]


def test_edit_replaces_thumbnail(client: TestClient, instructor, category, media) -> None:
    course = create_course(client, instructor, category)
    resp = client.put(
        f"/v1/courses/{course['id']}",
        files={"thumbnail": PNG},
        headers=auth(instructor),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["course_details"]["thumbnail"] != course["thumbnail"]
    assert len(media.ingested) == 2


def test_edit_moves_category_backref(
    client: TestClient, repos, instructor, category
) -> None:
    course = create_course(client, instructor, category)
    design = make_category(repos, "Design")

    resp = client.put(
        f"/v1/courses/{course['id']}",
        data={"category": str(design.id)},
        headers=auth(instructor),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["course_details"]["category"]["name"] == "Design"

    course_id = UUID(course["id"])
    assert course_id not in run(repos.categories.get_by_id(category.id)).courses
    assert course_id in run(repos.categories.get_by_id(design.id)).courses


def test_edit_unknown_course(client: TestClient, instructor) -> None:
    resp = client.put(
        "/v1/courses/2b0d7b3e-0000-4000-8000-000000000000",
        data={"name": "x"},
        headers=auth(instructor),
    )
    assert resp.status_code == 404


# ---- delete ----


def test_non_owner_cannot_delete(client: TestClient, repos, instructor, category) -> None:
    course = create_course(client, instructor, category)
    intruder = make_user(repos, "Instructor")

    resp = client.delete(f"/v1/courses/{course['id']}", headers=auth(intruder))
    assert resp.status_code == 403
    assert run(repos.courses.get_by_id(UUID(course["id"]))) is not None


def test_delete_cascades(client: TestClient, repos, instructor, category, student) -> None:
    course = create_course(client, instructor, category, status="Published")
    course_id = UUID(course["id"])
    section_id = add_section(client, instructor, course["id"])
    sub = add_subsection(client, instructor, section_id)
    sub_id = sub["course_details"]["sections"][0]["subsections"][0]["id"]

    assert client.post(
        f"/v1/courses/{course['id']}/enroll", headers=auth(student)
    ).status_code == 200
    assert client.post(
        "/v1/progress/complete",
        json={"courseId": course["id"], "subsectionId": sub_id},
        headers=auth(student),
    ).status_code == 200
    assert client.post(
        f"/v1/courses/{course['id']}/ratings",
        json={"rating": 5, "review": "great"},
        headers=auth(student),
    ).status_code == 201

    resp = client.delete(f"/v1/courses/{course['id']}", headers=auth(instructor))
    assert resp.status_code == 200
    assert resp.json()["message"] == "Course deleted successfully"

    assert run(repos.courses.get_by_id(course_id)) is None
    assert run(repos.sections.get_by_id(UUID(section_id))) is None
    assert run(repos.subsections.get_by_id(UUID(sub_id))) is None
    assert run(repos.progress.get(course_id, student.id)) is None
    assert run(repos.ratings.get_for_user(course_id, student.id)) is None
    assert course_id not in run(repos.users.get_by_id(student.id)).courses
    assert course_id not in run(repos.users.get_by_id(instructor.id)).courses
    assert course_id not in run(repos.categories.get_by_id(category.id)).courses

    again = client.post("/v1/courses/details", json={"course_id": course["id"]})
    assert again.status_code == 404
