"""course_content_schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

Creates the six course content tables (courses, chapters, sections,
learnings, questions, answer_options) and their enum types.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUM_TYPES = {
    "question_type": (
        "mcq",
        "multi",
        "short_text",
        "long_text",
        "true_false",
        "ordering",
        "match",
    ),
    "question_difficulty": ("easy", "medium", "hard"),
    "learning_state": ("draft", "published"),
    "course_visibility": ("private", "unlisted", "public"),
    "course_status": ("draft", "published", "archived"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUM_TYPES[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=True,
        ),
    ]


def _child_table(
    name: str,
    pk: str,
    parent_table: str,
    parent_pk: str,
    unique_name: str,
    *columns: sa.Column,
) -> None:
    """Create a positioned child table keyed by (parent id, ix)."""
    op.create_table(
        name,
        sa.Column(pk, sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(parent_pk, sa.Integer(), nullable=False),
        sa.Column("ix", sa.Integer(), nullable=False),
        *columns,
        *_timestamps(),
        sa.CheckConstraint("ix >= 1", name=op.f(f"ck_{name}_ix_positive")),
        sa.ForeignKeyConstraint(
            [parent_pk],
            [f"{parent_table}.{parent_pk}"],
            name=op.f(f"fk_{name}_{parent_pk}_{parent_table}"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint(pk, name=op.f(f"pk_{name}")),
        sa.UniqueConstraint(parent_pk, "ix", name=unique_name),
    )


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUM_TYPES.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "courses",
        sa.Column("course_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("creator_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("language", sa.Text(), nullable=True),
        sa.Column(
            "tags",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default="[]",
            nullable=True,
        ),
        sa.Column("estimated_minutes", sa.Integer(), nullable=True),
        sa.Column("banner_url", sa.Text(), nullable=True),
        sa.Column("banner_alt", sa.Text(), nullable=True),
        sa.Column("icon_url", sa.Text(), nullable=True),
        sa.Column("icon_alt", sa.Text(), nullable=True),
        sa.Column("visibility", _enum("course_visibility"), nullable=False),
        sa.Column("status", _enum("course_status"), nullable=False),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("course_id", name=op.f("pk_courses")),
        sa.UniqueConstraint("slug", name="courses_slug_unique"),
    )
    op.create_index("idx_courses_creator_id", "courses", ["creator_id"], unique=False)

    _child_table(
        "chapters",
        "chapter_id",
        "courses",
        "course_id",
        "chapters_course_ix_unique",
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
    )
    _child_table(
        "sections",
        "section_id",
        "chapters",
        "chapter_id",
        "sections_chapter_ix_unique",
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("learning_count", sa.Integer(), server_default="0", nullable=False),
    )
    _child_table(
        "learnings",
        "learning_id",
        "sections",
        "section_id",
        "learnings_section_ix_unique",
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("min_questions", sa.Integer(), server_default="2", nullable=False),
        sa.Column("max_questions", sa.Integer(), server_default="10", nullable=False),
        sa.Column(
            "quick_replies",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default="[]",
            nullable=True,
        ),
        sa.Column(
            "state", _enum("learning_state"), server_default="draft", nullable=False
        ),
        sa.CheckConstraint(
            "min_questions >= 2 AND max_questions <= 10 AND min_questions <= max_questions",
            name=op.f("ck_learnings_question_bounds"),
        ),
    )
    _child_table(
        "questions",
        "question_id",
        "learnings",
        "learning_id",
        "questions_learning_ix_unique",
        sa.Column("type", _enum("question_type"), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("difficulty", _enum("question_difficulty"), nullable=True),
        sa.Column("rationale", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    )
    _child_table(
        "answer_options",
        "answer_option_id",
        "questions",
        "question_id",
        "answer_options_question_ix_unique",
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("feedback", sa.Text(), nullable=True),
    )


def downgrade() -> None:
    for table in (
        "answer_options",
        "questions",
        "learnings",
        "sections",
        "chapters",
    ):
        op.drop_table(table)
    op.drop_index("idx_courses_creator_id", table_name="courses")
    op.drop_table("courses")

    bind = op.get_bind()
    for name in reversed(list(ENUM_TYPES)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
