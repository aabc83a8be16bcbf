"""SQLAlchemy Core table definitions for the course content schema."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP

from .enums import (
    course_status_enum,
    course_visibility_enum,
    difficulty_enum,
    learning_state_enum,
    question_type_enum,
)

# Naming convention for constraints (helps Alembic generate better names)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=convention)


# =====================================================
# 1. COURSES
# =====================================================
# creator_id / category_id are resolved upstream - no FK to those tables here
courses = Table(
    "courses",
    metadata,
    Column("course_id", Integer, primary_key=True, autoincrement=True),
    Column("creator_id", Integer, nullable=False),
    Column("category_id", Integer, nullable=False),
    Column("slug", Text, nullable=False),
    Column("title", Text, nullable=False),
    Column("summary", Text),
    Column("language", Text),
    Column("tags", JSONB, server_default="[]"),
    Column("estimated_minutes", Integer),
    Column("banner_url", Text),
    Column("banner_alt", Text),
    Column("icon_url", Text),
    Column("icon_alt", Text),
    Column("visibility", course_visibility_enum, nullable=False),
    Column("status", course_status_enum, nullable=False),
    Column("version", Integer, nullable=False, server_default="1"),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    UniqueConstraint("slug", name="courses_slug_unique"),
    Index("idx_courses_creator_id", "creator_id"),
)


# =====================================================
# 2. CHAPTERS
# =====================================================
chapters = Table(
    "chapters",
    metadata,
    Column("chapter_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "course_id",
        Integer,
        ForeignKey("courses.course_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("ix", Integer, nullable=False),
    Column("title", Text, nullable=False),
    Column("summary", Text, nullable=False),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    UniqueConstraint("course_id", "ix", name="chapters_course_ix_unique"),
    CheckConstraint("ix >= 1", name="ix_positive"),
)


# =====================================================
# 3. SECTIONS
# =====================================================
sections = Table(
    "sections",
    metadata,
    Column("section_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "chapter_id",
        Integer,
        ForeignKey("chapters.chapter_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("ix", Integer, nullable=False),
    Column("title", Text, nullable=False),
    Column("summary", Text, nullable=False),
    # Denormalized; recomputed from the written learnings on every ingest
    Column("learning_count", Integer, nullable=False, server_default="0"),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    UniqueConstraint("chapter_id", "ix", name="sections_chapter_ix_unique"),
    CheckConstraint("ix >= 1", name="ix_positive"),
)


# =====================================================
# 4. LEARNINGS
# =====================================================
learnings = Table(
    "learnings",
    metadata,
    Column("learning_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "section_id",
        Integer,
        ForeignKey("sections.section_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("ix", Integer, nullable=False),
    Column("title", Text, nullable=False),
    Column("body", Text, nullable=False),
    Column("min_questions", Integer, nullable=False, server_default="2"),
    Column("max_questions", Integer, nullable=False, server_default="10"),
    Column("quick_replies", JSONB, server_default="[]"),
    Column("state", learning_state_enum, nullable=False, server_default="draft"),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    UniqueConstraint("section_id", "ix", name="learnings_section_ix_unique"),
    CheckConstraint("ix >= 1", name="ix_positive"),
    CheckConstraint(
        "min_questions >= 2 AND max_questions <= 10 AND min_questions <= max_questions",
        name="question_bounds",
    ),
)


# =====================================================
# 5. QUESTIONS
# =====================================================
questions = Table(
    "questions",
    metadata,
    Column("question_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "learning_id",
        Integer,
        ForeignKey("learnings.learning_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("ix", Integer, nullable=False),
    Column("type", question_type_enum, nullable=False),
    Column("prompt", Text, nullable=False),
    Column("difficulty", difficulty_enum),
    Column("rationale", Text),
    Column("metadata", JSONB),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    UniqueConstraint("learning_id", "ix", name="questions_learning_ix_unique"),
    CheckConstraint("ix >= 1", name="ix_positive"),
)


# =====================================================
# 6. ANSWER_OPTIONS
# =====================================================
answer_options = Table(
    "answer_options",
    metadata,
    Column("answer_option_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "question_id",
        Integer,
        ForeignKey("questions.question_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("ix", Integer, nullable=False),
    Column("content", Text, nullable=False),
    Column("is_correct", Boolean, nullable=False, server_default="false"),
    Column("feedback", Text),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    Column("updated_at", TIMESTAMP(timezone=True), server_default=func.now()),
    UniqueConstraint("question_id", "ix", name="answer_options_question_ix_unique"),
    CheckConstraint("ix >= 1", name="ix_positive"),
)
