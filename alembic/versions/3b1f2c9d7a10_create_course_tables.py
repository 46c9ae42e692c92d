"""create course tables

Revision ID: 3b1f2c9d7a10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1f2c9d7a10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_UUID = postgresql.UUID(as_uuid=True)


def _uuid_array() -> postgresql.ARRAY:
    return postgresql.ARRAY(_UUID)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("courses", _uuid_array(), nullable=False, server_default="{}"),
        sa.Column("about", sa.Text(), nullable=True),
        sa.Column("contact_number", sa.String(length=32), nullable=True),
        sa.Column("gender", sa.String(length=32), nullable=True),
        sa.Column("date_of_birth", sa.String(length=32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "categories",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("courses", _uuid_array(), nullable=False, server_default="{}"),
    )
    op.create_table(
        "courses",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("name", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("what_you_will_learn", sa.Text(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("instructor_id", _UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("category_id", _UUID, sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("thumbnail", sa.Text(), nullable=True),
        sa.Column("tags", postgresql.ARRAY(sa.String()), nullable=False, server_default="{}"),
        sa.Column(
            "instructions", postgresql.ARRAY(sa.Text()), nullable=False, server_default="{}"
        ),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="Draft"),
        sa.Column("sections", _uuid_array(), nullable=False, server_default="{}"),
        sa.Column("students_enrolled", _uuid_array(), nullable=False, server_default="{}"),
        sa.Column("ratings", _uuid_array(), nullable=False, server_default="{}"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_courses_instructor_id", "courses", ["instructor_id"])
    op.create_index("ix_courses_status", "courses", ["status"])
    op.create_table(
        "sections",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("course_id", _UUID, nullable=False),
        sa.Column("name", sa.String(length=500), nullable=False),
        sa.Column("subsections", _uuid_array(), nullable=False, server_default="{}"),
    )
    op.create_table(
        "subsections",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("section_id", _UUID, nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("time_duration", sa.String(length=32), nullable=False, server_default="0"),
        sa.Column("video_url", sa.Text(), nullable=False),
    )
    op.create_table(
        "course_progress",
        sa.Column("course_id", _UUID, primary_key=True),
        sa.Column("user_id", _UUID, sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("completed_videos", _uuid_array(), nullable=False, server_default="{}"),
    )
    op.create_table(
        "ratings",
        sa.Column("id", _UUID, primary_key=True),
        sa.Column("course_id", _UUID, nullable=False),
        sa.Column("user_id", _UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("review", sa.Text(), nullable=False, server_default=""),
        sa.UniqueConstraint("course_id", "user_id"),
    )


def downgrade() -> None:
    op.drop_table("ratings")
    op.drop_table("course_progress")
    op.drop_table("subsections")
    op.drop_table("sections")
    op.drop_index("ix_courses_status", table_name="courses")
    op.drop_index("ix_courses_instructor_id", table_name="courses")
    op.drop_table("courses")
    op.drop_table("categories")
    op.drop_table("users")
