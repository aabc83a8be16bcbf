# course_ingest/tree/patcher.py
"""Apply deterministic, content-neutral fixes to a course tree.

Only corrections that don't require a content decision are applied here:
renumbering positions, defaulting fields that have a safe default, clamping
question bounds and filling placeholder feedback. Everything else comes back
in PatchResult.remaining as a RequiresAuthoring violation for the content
producer. The caller re-validates after patching.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from course_ingest.enums import (
    CourseStatus,
    CourseVisibility,
    LearningState,
    ViolationKind,
)

from .types import (
    DEFAULT_MAX_QUESTIONS,
    DEFAULT_MIN_QUESTIONS,
    AnswerOption,
    Course,
    Learning,
    NodePath,
    format_path,
)
from .validator import Violation

logger = logging.getLogger(__name__)

PLACEHOLDER_FEEDBACK = "Not quite. Review this learning and try again."

# (node type, field) -> default applied when the field is missing
FIELD_DEFAULTS: dict[tuple[type, str], Callable[[], Any]] = {
    (Course, "visibility"): lambda: CourseVisibility.private,
    (Course, "status"): lambda: CourseStatus.draft,
    (Course, "version"): lambda: 1,
    (Learning, "state"): lambda: LearningState.draft,
    (Learning, "quick_replies"): list,
}


@dataclass
class AppliedPatch:
    path: NodePath
    kind: ViolationKind
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": format_path(self.path),
            "kind": self.kind.value,
            "description": self.description,
        }

    def __str__(self) -> str:
        return f"{format_path(self.path)}: {self.description}"


@dataclass
class PatchResult:
    course: Course
    applied: list[AppliedPatch] = field(default_factory=list)
    remaining: list[Violation] = field(default_factory=list)


def _position_key(child: Any) -> tuple[int, int, int]:
    """Sort by prior ix, then document order; unusable positions sort last."""
    ix = child.ix
    if isinstance(ix, int) and not isinstance(ix, bool):
        return (0, ix, child.order)
    return (1, 0, child.order)


def renumber_children(parent: Any) -> list[tuple[Any, int]]:
    """
    Renumber a node's children to 1..n by their existing relative order.

    Sorts the children list in place. Returns (old ix, new ix) pairs for
    children whose position changed.
    """
    children = parent.children
    children.sort(key=_position_key)

    changes = []
    for new_ix, child in enumerate(children, 1):
        if child.ix != new_ix:
            changes.append((child.ix, new_ix))
            child.ix = new_ix
    return changes


def _requires_authoring(violation: Violation) -> Violation:
    return Violation(
        ViolationKind.RequiresAuthoring,
        violation.path,
        f"{violation.kind.value}: {violation.detail}",
        field_name=violation.field_name,
        target=violation.target,
    )


def _patch_missing_field(violation: Violation) -> str | None:
    node = violation.target
    default = FIELD_DEFAULTS.get((type(node), violation.field_name))
    if default is None:
        return None
    value = default()
    setattr(node, violation.field_name, value)
    shown = getattr(value, "value", value)
    return f"defaulted {violation.field_name} to {shown!r}"


def _patch_question_bounds(violation: Violation) -> str | None:
    learning: Learning = violation.target
    low, high = learning.min_questions, learning.max_questions
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in (low, high)):
        return None

    new_low = max(low, DEFAULT_MIN_QUESTIONS)
    new_high = min(high, DEFAULT_MAX_QUESTIONS)
    if new_low > new_high:
        return None

    learning.min_questions = new_low
    learning.max_questions = new_high
    return f"clamped question bounds {low}..{high} to {new_low}..{new_high}"


def _patch_missing_feedback(violation: Violation) -> str | None:
    answer: AnswerOption = violation.target
    answer.feedback = PLACEHOLDER_FEEDBACK
    return "added placeholder feedback"


def _patch_non_contiguous(violation: Violation) -> str | None:
    changes = renumber_children(violation.target)
    moves = ", ".join(f"{old!r}->{new}" for old, new in changes)
    return f"renumbered children ({moves})" if moves else "re-sorted children"


PATCHERS: dict[ViolationKind, Callable[[Violation], str | None]] = {
    ViolationKind.NonContiguousIndex: _patch_non_contiguous,
    ViolationKind.MissingField: _patch_missing_field,
    ViolationKind.InvalidQuestionBounds: _patch_question_bounds,
    ViolationKind.MissingFeedback: _patch_missing_feedback,
}


def patch_tree(
    course: Course, violations: list[Violation], *, fill_feedback: bool = True
) -> PatchResult:
    """
    Apply every safe automatic fix for the given violations.

    Args:
        course: The tree the violations were computed on (mutated in place)
        violations: Output of validate_tree for that tree
        fill_feedback: Synthesize placeholder feedback for MissingFeedback
            warnings; when False they are left untouched and unreported here

    Returns:
        PatchResult with the fixes applied and the violations left for
        authoring, each wrapped as RequiresAuthoring
    """
    result = PatchResult(course=course)

    # Positions move last; recorded paths refer to the tree as validated
    ordered = sorted(
        violations, key=lambda v: v.kind == ViolationKind.NonContiguousIndex
    )

    for violation in ordered:
        if violation.kind == ViolationKind.MissingFeedback and not fill_feedback:
            continue
        patcher = PATCHERS.get(violation.kind)
        description = patcher(violation) if patcher else None

        if description is None:
            result.remaining.append(_requires_authoring(violation))
            continue

        result.applied.append(AppliedPatch(violation.path, violation.kind, description))
        logger.debug(f"Patched {violation.location}: {description}")

    if result.applied:
        logger.info(
            f"Applied {len(result.applied)} patch(es); "
            f"{len(result.remaining)} violation(s) require authoring"
        )
    return result


def requires_authoring(
    violations: list[Violation], *, strict: bool = False
) -> list[Violation]:
    """Wrap the blocking violations left after patching as RequiresAuthoring."""
    return [_requires_authoring(v) for v in violations if v.blocks(strict)]
