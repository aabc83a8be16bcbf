# course_ingest/tree/validator.py
"""
Validate an assembled course tree against its structural invariants.

The validator is a pure function of the tree: it never mutates nodes and
never stops at the first problem, so one pass yields every violation the
patch engine has to deal with.

Usage:
    from course_ingest.tree.validator import validate_tree

    violations = validate_tree(course, taken_slugs={"other-course"})
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Collection, Iterable
from urllib.parse import urlparse

from course_ingest.enums import (
    CHOICE_QUESTION_TYPES,
    WARNING_KINDS,
    CourseStatus,
    CourseVisibility,
    Difficulty,
    LearningState,
    QuestionType,
    Severity,
    ViolationKind,
)

from .types import (
    DEFAULT_MAX_QUESTIONS,
    DEFAULT_MIN_QUESTIONS,
    AnswerOption,
    Chapter,
    Course,
    ImageRef,
    Learning,
    NodePath,
    Question,
    Section,
    format_path,
)

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

ALLOWED_URL_SCHEMES = {"http", "https"}


@dataclass
class Violation:
    """A single problem found in the tree, addressed to one node."""

    kind: ViolationKind
    path: NodePath
    detail: str
    field_name: str | None = None
    target: Any = field(default=None, repr=False, compare=False)

    @property
    def severity(self) -> Severity:
        if self.kind in WARNING_KINDS:
            return Severity.warning
        return Severity.blocking

    @property
    def location(self) -> str:
        return format_path(self.path)

    @property
    def chapter_ix(self) -> Any:
        """Chapter position this violation belongs to, or None for course level."""
        return self.path[0] if self.path else None

    def blocks(self, strict: bool = False) -> bool:
        return self.severity == Severity.blocking or strict

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "path": self.location,
            "field": self.field_name,
            "detail": self.detail,
        }

    def __str__(self) -> str:
        return f"{self.location}: [{self.kind.value}] {self.detail}"


def blocking_violations(
    violations: Iterable[Violation], strict: bool = False
) -> list[Violation]:
    """Violations that prevent persistence under the given strictness."""
    return [v for v in violations if v.blocks(strict)]


def group_by_chapter(violations: Iterable[Violation]) -> dict[Any, list[Violation]]:
    """Group violations by chapter position; course-level ones under None."""
    grouped: dict[Any, list[Violation]] = {}
    for violation in violations:
        grouped.setdefault(violation.chapter_ix, []).append(violation)
    return grouped


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_position(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require(
    out: list[Violation], node: Any, path: NodePath, label: str, *names: str
) -> None:
    for name in names:
        if _is_blank(getattr(node, name)):
            out.append(
                Violation(
                    ViolationKind.MissingField,
                    path,
                    f"{label} is missing required field '{name}'",
                    field_name=name,
                    target=node,
                )
            )


def _check_enum(
    out: list[Violation],
    node: Any,
    path: NodePath,
    name: str,
    enum_cls: type,
    required: bool = True,
) -> None:
    value = getattr(node, name)
    if value is None:
        if required:
            out.append(
                Violation(
                    ViolationKind.MissingField,
                    path,
                    f"missing required field '{name}'",
                    field_name=name,
                    target=node,
                )
            )
        return
    if not isinstance(value, enum_cls):
        allowed = ", ".join(e.value for e in enum_cls)
        out.append(
            Violation(
                ViolationKind.InvalidValue,
                path,
                f"'{name}' is {value!r}; expected one of: {allowed}",
                field_name=name,
                target=node,
            )
        )


def _check_contiguity(
    out: list[Violation], parent: Any, path: NodePath, child_label: str
) -> None:
    """Children's ix values must be exactly 1..n in some order."""
    children = parent.children
    positions = [child.ix for child in children]
    expected = list(range(1, len(children) + 1))

    if all(_is_position(p) for p in positions) and sorted(positions) == expected:
        return

    out.append(
        Violation(
            ViolationKind.NonContiguousIndex,
            path,
            f"{child_label} positions are {positions}; expected a permutation of "
            f"1..{len(children)}",
            field_name="ix",
            target=parent,
        )
    )


def _check_url(
    out: list[Violation], course: Course, name: str, image: ImageRef | None
) -> None:
    if image is None:
        return
    url = image.url or ""
    parsed = urlparse(url)
    if parsed.scheme in ALLOWED_URL_SCHEMES and parsed.netloc:
        return
    out.append(
        Violation(
            ViolationKind.InvalidURL,
            (),
            f"{name} URL {url!r} is not a well-formed http(s) URL",
            field_name=name,
            target=course,
        )
    )


def _check_course(
    out: list[Violation], course: Course, taken_slugs: Collection[str]
) -> None:
    _require(out, course, (), "Course", "title", "slug")

    if not _is_blank(course.slug):
        if not SLUG_PATTERN.match(course.slug):
            out.append(
                Violation(
                    ViolationKind.InvalidValue,
                    (),
                    f"slug {course.slug!r} must be lowercase words joined by hyphens",
                    field_name="slug",
                    target=course,
                )
            )
        elif course.slug in taken_slugs:
            out.append(
                Violation(
                    ViolationKind.DuplicateSlug,
                    (),
                    f"slug {course.slug!r} is already used by another course",
                    field_name="slug",
                    target=course,
                )
            )

    _check_enum(out, course, (), "visibility", CourseVisibility)
    _check_enum(out, course, (), "status", CourseStatus)

    if course.version is None:
        _require(out, course, (), "Course", "version")
    elif not _is_position(course.version) or course.version < 1:
        out.append(
            Violation(
                ViolationKind.InvalidValue,
                (),
                f"version must be a positive integer, got {course.version!r}",
                field_name="version",
                target=course,
            )
        )

    if course.estimated_minutes is not None and not _is_position(
        course.estimated_minutes
    ):
        out.append(
            Violation(
                ViolationKind.InvalidValue,
                (),
                f"estimated_minutes must be an integer, got {course.estimated_minutes!r}",
                field_name="estimated_minutes",
                target=course,
            )
        )

    _check_url(out, course, "banner", course.banner)
    _check_url(out, course, "icon", course.icon)


def _question_bounds(learning: Learning) -> tuple[int, int] | None:
    """Return (min, max) if both bounds are usable integers, else None."""
    low, high = learning.min_questions, learning.max_questions
    if not (_is_position(low) and _is_position(high)):
        return None
    if low < DEFAULT_MIN_QUESTIONS or high > DEFAULT_MAX_QUESTIONS or low > high:
        return None
    return low, high


def _check_answer(
    out: list[Violation], question: Question, answer: AnswerOption, path: NodePath
) -> None:
    _require(out, answer, path, "Answer option", "content")

    if (
        isinstance(question.type, QuestionType)
        and question.type in CHOICE_QUESTION_TYPES
        and not answer.is_correct
        and _is_blank(answer.feedback)
    ):
        out.append(
            Violation(
                ViolationKind.MissingFeedback,
                path,
                "incorrect option has no feedback for the learner",
                field_name="feedback",
                target=answer,
            )
        )


def _check_correctness(
    out: list[Violation], question: Question, path: NodePath
) -> None:
    # Unknown types are reported by _check_enum
    if not isinstance(question.type, QuestionType):
        return

    correct = sum(1 for a in question.answers if a.is_correct)

    if question.type in (QuestionType.mcq, QuestionType.true_false):
        if correct != 1:
            out.append(
                Violation(
                    ViolationKind.CorrectnessRuleViolated,
                    path,
                    f"{question.type.value} question needs exactly one correct "
                    f"option, found {correct}",
                    target=question,
                )
            )
    elif question.type == QuestionType.multi:
        if correct < 1:
            out.append(
                Violation(
                    ViolationKind.CorrectnessRuleViolated,
                    path,
                    "multi question needs at least one correct option, found 0",
                    target=question,
                )
            )


def _check_question(out: list[Violation], question: Question, path: NodePath) -> None:
    _check_enum(out, question, path, "type", QuestionType)
    _require(out, question, path, "Question", "prompt")
    _check_enum(out, question, path, "difficulty", Difficulty, required=False)

    _check_contiguity(out, question, path, "Answer option")
    _check_correctness(out, question, path)
    for answer in question.answers:
        _check_answer(out, question, answer, path + (answer.ix,))


def _check_learning(out: list[Violation], learning: Learning, path: NodePath) -> None:
    _require(out, learning, path, "Learning", "title", "body")

    if learning.quick_replies is None:
        _require(out, learning, path, "Learning", "quick_replies")
    _check_enum(out, learning, path, "state", LearningState)

    bounds = _question_bounds(learning)
    if bounds is None:
        out.append(
            Violation(
                ViolationKind.InvalidQuestionBounds,
                path,
                f"question bounds {learning.min_questions!r}..{learning.max_questions!r} "
                f"must satisfy {DEFAULT_MIN_QUESTIONS} <= min <= max <= "
                f"{DEFAULT_MAX_QUESTIONS}",
                target=learning,
            )
        )
        bounds = (DEFAULT_MIN_QUESTIONS, DEFAULT_MAX_QUESTIONS)

    low, high = bounds
    count = len(learning.questions)
    if not low <= count <= high:
        out.append(
            Violation(
                ViolationKind.QuestionCountOutOfBounds,
                path,
                f"has {count} question(s); expected between {low} and {high}",
                target=learning,
            )
        )

    _check_contiguity(out, learning, path, "Question")
    for question in learning.questions:
        _check_question(out, question, path + (question.ix,))


def _check_section(out: list[Violation], section: Section, path: NodePath) -> None:
    _require(out, section, path, "Section", "title", "summary")
    _check_contiguity(out, section, path, "Learning")
    for learning in section.learnings:
        _check_learning(out, learning, path + (learning.ix,))


def _check_chapter(out: list[Violation], chapter: Chapter, path: NodePath) -> None:
    if chapter.is_stub:
        out.append(
            Violation(
                ViolationKind.IncompleteChapter,
                path,
                "chapter is declared in the outline but has no chapter document",
                target=chapter,
            )
        )
    _require(out, chapter, path, "Chapter", "title", "summary")
    _check_contiguity(out, chapter, path, "Section")
    for section in chapter.sections:
        _check_section(out, section, path + (section.ix,))


def validate_tree(
    course: Course, *, taken_slugs: Collection[str] = ()
) -> list[Violation]:
    """
    Check every structural invariant of a course tree.

    Args:
        course: Assembled (and possibly patched) course
        taken_slugs: Slugs already owned by other courses in storage

    Returns:
        All violations in depth-first order; empty when the tree is valid
    """
    out: list[Violation] = []

    _check_course(out, course, taken_slugs)
    _check_contiguity(out, course, (), "Chapter")

    # Course level: folder numbers are not chapter positions
    for dangling in course.dangling_chapters:
        out.append(
            Violation(
                ViolationKind.DanglingChapter,
                (),
                f"chapter document {dangling.source} has no matching outline "
                f"chapter {dangling.folder_number}",
                target=dangling,
            )
        )

    for chapter in course.chapters:
        _check_chapter(out, chapter, (chapter.ix,))

    return out
