"""Enum definitions shared by the content tree and the database schema."""

import enum

from sqlalchemy import Enum as SQLEnum


# =====================================================
# Python Enum Classes
# =====================================================


class QuestionType(str, enum.Enum):
    mcq = "mcq"
    multi = "multi"
    short_text = "short_text"
    long_text = "long_text"
    true_false = "true_false"
    ordering = "ordering"
    match = "match"


class Difficulty(str, enum.Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class LearningState(str, enum.Enum):
    draft = "draft"
    published = "published"


class CourseVisibility(str, enum.Enum):
    private = "private"
    unlisted = "unlisted"
    public = "public"


class CourseStatus(str, enum.Enum):
    draft = "draft"
    published = "published"
    archived = "archived"


class Severity(str, enum.Enum):
    blocking = "blocking"
    warning = "warning"


class ViolationKind(str, enum.Enum):
    NonContiguousIndex = "NonContiguousIndex"
    QuestionCountOutOfBounds = "QuestionCountOutOfBounds"
    CorrectnessRuleViolated = "CorrectnessRuleViolated"
    MissingFeedback = "MissingFeedback"
    IncompleteChapter = "IncompleteChapter"
    DanglingChapter = "DanglingChapter"
    InvalidURL = "InvalidURL"
    DuplicateSlug = "DuplicateSlug"
    MissingField = "MissingField"
    InvalidValue = "InvalidValue"
    InvalidQuestionBounds = "InvalidQuestionBounds"
    RequiresAuthoring = "RequiresAuthoring"


WARNING_KINDS = frozenset({ViolationKind.MissingFeedback})

# Question types whose answer options are choices with a correct subset
CHOICE_QUESTION_TYPES = frozenset(
    {QuestionType.mcq, QuestionType.multi, QuestionType.true_false}
)


# =====================================================
# SQLAlchemy Enum Types
# Created by the initial content migration
# =====================================================

question_type_enum = SQLEnum(
    QuestionType, name="question_type", create_type=False, native_enum=True
)
difficulty_enum = SQLEnum(
    Difficulty, name="question_difficulty", create_type=False, native_enum=True
)
learning_state_enum = SQLEnum(
    LearningState, name="learning_state", create_type=False, native_enum=True
)
course_visibility_enum = SQLEnum(
    CourseVisibility, name="course_visibility", create_type=False, native_enum=True
)
course_status_enum = SQLEnum(
    CourseStatus, name="course_status", create_type=False, native_enum=True
)
