#!/usr/bin/env python3
"""Seed the category list through the running API.

RUN:  ADMIN_EMAIL=... ADMIN_PASSWORD=... python scripts/seed_categories.py

Logs in as the admin, then POSTs each category.  Categories that already
exist answer 409 and are reported as skipped.

Prerequisites:
  - The API must be running: uvicorn app.main:app --port 8000
  - The admin account must exist (scripts/create_admin.py)
"""

from __future__ import annotations

import os
import sys

import httpx

BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:8000")

CATEGORIES = [
    ("Web Development", "HTML, CSS, JavaScript and modern frameworks"),
    ("Data Science", "Statistics, Python, Pandas and Machine Learning"),
    ("Mobile Development", "Android and iOS app development"),
    ("Cloud & DevOps", "AWS, Docker, CI/CD and deployment"),
    ("AI & ML", "Deep Learning and AI-driven applications"),
    ("UI/UX Design", "Design systems, Figma and prototyping"),
    ("Cybersecurity", "Network security and ethical hacking"),
]


def seed(client: httpx.Client, email: str, password: str) -> dict[str, str]:
    """Create every category; returns name -> created|skipped|failed."""
    resp = client.post("/v1/auth/login", json={"email": email, "password": password})
    body = resp.json()
    if resp.status_code != 200 or not body.get("success"):
        raise RuntimeError(f"Login failed: {body.get('message', resp.status_code)}")
    token = body["data"]["token"]

    results: dict[str, str] = {}
    for name, description in CATEGORIES:
        r = client.post(
            "/v1/categories",
            json={"name": name, "description": description},
            headers={"Authorization": f"Bearer {token}"},
        )
        if r.status_code == 201:
            results[name] = "created"
        elif r.status_code == 409:
            results[name] = "skipped"
        else:
            results[name] = "failed"
    return results


def main() -> int:
    email = os.environ.get("ADMIN_EMAIL", "")
    password = os.environ.get("ADMIN_PASSWORD", "")
    if not email or not password:
        print("Set ADMIN_EMAIL and ADMIN_PASSWORD", file=sys.stderr)
        return 1

    with httpx.Client(base_url=BASE_URL, timeout=10) as client:
        try:
            results = seed(client, email, password)
        except (httpx.HTTPError, RuntimeError) as e:
            print(e, file=sys.stderr)
            return 1

    for name, outcome in results.items():
        print(f"  {name:<20} {outcome}")
    print("Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
