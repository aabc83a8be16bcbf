"""
Ingestion entry point: load -> assemble -> validate/patch -> persist.

Load errors propagate before anything is written. Structural problems are
collected into the report; chapters with blocking violations are held back
while the rest are persisted, and course-level blocking violations hold
back everything. Storage errors are recorded in the report too.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import sentry_sdk

from course_ingest import config
from course_ingest.enums import ViolationKind
from course_ingest.persistence import (
    ChapterFailure,
    ContentStore,
    SqlContentStore,
    write_course,
)
from course_ingest.tree import (
    AppliedPatch,
    Course,
    DocumentNames,
    Violation,
    assemble_tree,
    blocking_violations,
    group_by_chapter,
    load_document_set,
    patch_tree,
    requires_authoring,
    validate_tree,
)
from course_ingest.tree.patcher import PATCHERS

logger = logging.getLogger(__name__)


@dataclass
class IngestReport:
    """Structured outcome of one ingestion run, produced even on partial failure."""

    course_slug: str | None
    strict: bool
    dry_run: bool = False
    chapters: list[Any] = field(default_factory=list)
    violations: list[Violation] = field(default_factory=list)
    patches: list[AppliedPatch] = field(default_factory=list)
    requires_authoring: list[Violation] = field(default_factory=list)
    course_id: int | None = None
    committed_chapters: list[int] = field(default_factory=list)
    blocked_chapters: list[Any] = field(default_factory=list)
    failures: list[ChapterFailure] = field(default_factory=list)
    not_attempted: list[int] = field(default_factory=list)
    # Storage error outside any chapter transaction (slug lookup, course row)
    error: str | None = None

    @property
    def blocking(self) -> list[Violation]:
        return blocking_violations(self.violations, self.strict)

    @property
    def warnings(self) -> list[Violation]:
        return [v for v in self.violations if not v.blocks(self.strict)]

    @property
    def ok(self) -> bool:
        if self.blocking or self.failures or self.error:
            return False
        if self.dry_run:
            return True
        return sorted(self.committed_chapters) == sorted(self.chapters)

    def violations_by_chapter(self) -> dict[Any, list[Violation]]:
        return group_by_chapter(self.violations)

    def to_dict(self) -> dict[str, Any]:
        return {
            "course": self.course_slug,
            "ok": self.ok,
            "strict": self.strict,
            "dry_run": self.dry_run,
            "course_id": self.course_id,
            "violations": [v.to_dict() for v in self.violations],
            "patches": [p.to_dict() for p in self.patches],
            "requires_authoring": [v.to_dict() for v in self.requires_authoring],
            "committed_chapters": self.committed_chapters,
            "blocked_chapters": self.blocked_chapters,
            "failures": [f.to_dict() for f in self.failures],
            "not_attempted": self.not_attempted,
            "error": self.error,
        }


def _has_patchable(violations: list[Violation], fill_feedback: bool) -> bool:
    for violation in violations:
        if violation.kind not in PATCHERS:
            continue
        if violation.kind == ViolationKind.MissingFeedback and not fill_feedback:
            continue
        return True
    return False


def validate_and_patch(
    course: Course,
    *,
    taken_slugs: set[str],
    strict: bool,
    max_rounds: int,
    fill_feedback: bool | None = None,
) -> tuple[list[Violation], list[AppliedPatch]]:
    """
    Run validate -> patch until nothing patchable is left or rounds run out.

    Placeholder feedback is only synthesized when fill_feedback is set,
    which defaults to strict: in report-only mode missing feedback stays a
    warning, and a strict run with fill_feedback=False blocks on it.

    Returns:
        (final violations, patches applied across all rounds)
    """
    fill_feedback = strict if fill_feedback is None else fill_feedback
    applied: list[AppliedPatch] = []

    for round_number in range(1, max_rounds + 1):
        violations = validate_tree(course, taken_slugs=taken_slugs)
        if not _has_patchable(violations, fill_feedback=fill_feedback):
            break

        result = patch_tree(course, violations, fill_feedback=fill_feedback)
        applied.extend(result.applied)
        logger.info(
            f"Patch round {round_number}: {len(result.applied)} applied, "
            f"{len(result.remaining)} need authoring"
        )
        if not result.applied:
            break

    return validate_tree(course, taken_slugs=taken_slugs), applied


def _record_storage_error(
    report: IngestReport, what: str, error: Exception, chapters: list[int]
) -> IngestReport:
    logger.error(
        f"{what} failed for {report.course_slug!r}; nothing persisted",
        exc_info=error,
    )
    sentry_sdk.capture_exception(error)
    report.error = f"{what}: {type(error).__name__}: {error}"
    report.not_attempted = list(chapters)
    return report


async def run_ingestion(
    root: Path | str,
    *,
    creator_id: int,
    category_id: int,
    strict: bool | None = None,
    store: ContentStore | None = None,
    dry_run: bool = False,
    max_patch_rounds: int | None = None,
    max_workers: int | None = None,
    names: DocumentNames | None = None,
    fill_feedback: bool | None = None,
) -> IngestReport:
    """
    Ingest one course document set.

    Args:
        root: Directory holding the outline, metadata and chapter documents
        creator_id: Resolved creator identity
        category_id: Resolved category identity
        strict: Whether warnings block persistence (default: INGEST_STRICT)
        store: Storage collaborator (default: SqlContentStore)
        dry_run: Validate and patch only; nothing is written
        max_patch_rounds: Bound on validate/patch rounds (default: config)
        max_workers: Chapters written concurrently (default: config)
        names: Document file stems (default: outline/metadata/chapter)
        fill_feedback: Synthesize placeholder feedback in strict mode
            (default: INGEST_PLACEHOLDER_FEEDBACK); ignored when not strict

    Returns:
        IngestReport describing violations, patches and committed chapters.
        Storage errors are recorded in it rather than raised.

    Raises:
        DocumentLoadError: If a document is missing or malformed
    """
    strict = config.is_strict() if strict is None else strict
    if fill_feedback is None:
        fill_feedback = config.fills_placeholder_feedback()
    max_patch_rounds = max_patch_rounds or config.get_max_patch_rounds()
    max_workers = max_workers or config.get_max_workers()

    documents = load_document_set(root, names)
    course = assemble_tree(documents, creator_id=creator_id, category_id=category_id)

    if store is None and not dry_run:
        store = SqlContentStore()

    taken_slugs: set[str] = set()
    lookup_error: Exception | None = None
    if store is not None and course.slug:
        try:
            owner = await store.find_course_creator(course.slug)
        except Exception as e:
            lookup_error = e
        else:
            if owner is not None and owner != creator_id:
                taken_slugs.add(course.slug)

    violations, patches = validate_and_patch(
        course,
        taken_slugs=taken_slugs,
        strict=strict,
        max_rounds=max_patch_rounds,
        fill_feedback=strict and fill_feedback,
    )

    report = IngestReport(
        course_slug=course.slug,
        strict=strict,
        dry_run=dry_run,
        chapters=[chapter.ix for chapter in course.chapters],
        violations=violations,
        patches=patches,
        requires_authoring=requires_authoring(violations, strict=strict),
    )

    for violation in report.warnings:
        logger.warning(f"{violation}")

    blocking = report.blocking
    if any(v.chapter_ix is None for v in blocking):
        logger.error(
            f"Course {course.slug!r} has course-level blocking violations; "
            "nothing will be persisted"
        )
        report.blocked_chapters = list(report.chapters)
        writable = []
    else:
        blocked = {v.chapter_ix for v in blocking}
        report.blocked_chapters = sorted(blocked)
        writable = [ix for ix in report.chapters if ix not in blocked]
        for ix in report.blocked_chapters:
            logger.warning(f"Chapter {ix} of {course.slug!r} held back for authoring")

    if lookup_error is not None:
        # Ownership of the slug is unknown, so nothing may be written
        return _record_storage_error(report, "Slug lookup", lookup_error, writable)

    if dry_run or not writable:
        return report

    try:
        result = await write_course(
            store, course, chapters=writable, max_workers=max_workers
        )
    except Exception as e:
        return _record_storage_error(report, "Course write", e, writable)

    report.course_id = result.course_id
    report.committed_chapters = result.committed
    report.failures = result.failures
    report.not_attempted = result.not_attempted

    logger.info(
        f"Ingested {course.slug!r}: {len(result.committed)} chapter(s) committed, "
        f"{len(report.blocked_chapters)} held back, {len(result.failures)} failed"
    )
    return report
