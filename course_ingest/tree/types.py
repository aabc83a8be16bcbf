# course_ingest/tree/types.py
"""Typed in-memory content tree built from the source documents.

Course -> Chapter -> Section -> Learning -> Question -> AnswerOption.

Every child carries ``ix`` (its 1-based position among siblings, as authored)
and ``order`` (its 0-based position in the source document list). Values
that could not be coerced during assembly are kept raw so the validator can
report them instead of the assembler guessing.
"""

from dataclasses import dataclass, field
from typing import Any

from course_ingest.enums import (
    CourseStatus,
    CourseVisibility,
    Difficulty,
    LearningState,
    QuestionType,
)

DEFAULT_MIN_QUESTIONS = 2
DEFAULT_MAX_QUESTIONS = 10

# Positions from the root: () is the course, (2,) chapter 2, (2, 1) its section 1...
NodePath = tuple[Any, ...]

PATH_LABELS = ("chapter", "section", "learning", "question", "answer")


def format_path(path: NodePath) -> str:
    """Render a node path like 'course/chapter-1/section-2/learning-1'."""
    parts = ["course"]
    for label, ix in zip(PATH_LABELS, path):
        parts.append(f"{label}-{ix}")
    return "/".join(parts)


@dataclass
class ImageRef:
    """Banner or icon reference."""

    url: str | None
    alt: str | None = None


@dataclass
class AnswerOption:
    ix: int | None
    content: str | None
    is_correct: bool = False
    feedback: str | None = None
    order: int = 0


@dataclass
class Question:
    ix: int | None
    type: QuestionType | str | None
    prompt: str | None
    difficulty: Difficulty | str | None = None
    rationale: str | None = None
    metadata: dict[str, Any] | None = None
    answers: list[AnswerOption] = field(default_factory=list)
    order: int = 0

    @property
    def children(self) -> list[AnswerOption]:
        return self.answers


@dataclass
class Learning:
    ix: int | None
    title: str | None
    body: str | None
    min_questions: int | Any = DEFAULT_MIN_QUESTIONS
    max_questions: int | Any = DEFAULT_MAX_QUESTIONS
    quick_replies: list[str] | None = field(default_factory=list)
    state: LearningState | str | None = LearningState.draft
    questions: list[Question] = field(default_factory=list)
    order: int = 0

    @property
    def children(self) -> list[Question]:
        return self.questions


@dataclass
class Section:
    ix: int | None
    title: str | None
    summary: str | None
    learnings: list[Learning] = field(default_factory=list)
    order: int = 0

    @property
    def children(self) -> list[Learning]:
        return self.learnings


@dataclass
class Chapter:
    ix: int | None
    title: str | None
    summary: str | None
    sections: list[Section] = field(default_factory=list)
    is_stub: bool = False  # Outline-only: no chapter document was found
    order: int = 0

    @property
    def children(self) -> list[Section]:
        return self.sections


@dataclass
class DanglingChapter:
    """A chapter document whose folder number matches no outline chapter."""

    folder_number: int
    source: str
    title: str | None = None


@dataclass
class Course:
    creator_id: int
    category_id: int
    title: str | None
    slug: str | None
    summary: str | None = None
    language: str | None = None
    tags: list[str] = field(default_factory=list)
    estimated_minutes: int | None = None
    banner: ImageRef | None = None
    icon: ImageRef | None = None
    visibility: CourseVisibility | str | None = None
    status: CourseStatus | str | None = None
    version: int | None = None
    chapters: list[Chapter] = field(default_factory=list)
    dangling_chapters: list[DanglingChapter] = field(default_factory=list)

    @property
    def children(self) -> list[Chapter]:
        return self.chapters

    def get_chapter(self, ix: int) -> Chapter | None:
        for chapter in self.chapters:
            if chapter.ix == ix:
                return chapter
        return None
