# course_ingest/tree/assembler.py
"""Merge the outline, metadata and chapter documents into one typed tree.

The outline proposes structure; chapter documents carry the detail. Which
document a field comes from is decided by FIELD_PRECEDENCE alone, so the
merge rules can be read in one place. The assembler never raises for
content problems: unknown values stay raw and orphaned chapter documents
are recorded on the course, leaving the reporting to the validator.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Iterable

from course_ingest.enums import (
    CourseStatus,
    CourseVisibility,
    Difficulty,
    LearningState,
    QuestionType,
)

from .loader import ChapterDocument, DocumentSet
from .types import (
    DEFAULT_MAX_QUESTIONS,
    DEFAULT_MIN_QUESTIONS,
    AnswerOption,
    Chapter,
    Course,
    DanglingChapter,
    ImageRef,
    Learning,
    Question,
    Section,
)

logger = logging.getLogger(__name__)


class Source(str, enum.Enum):
    METADATA = "metadata"  # finalized course fields
    OUTLINE = "outline"  # proposed structure
    DETAIL = "detail"  # chapter document
    FOLDER = "folder"  # chapter folder number


# (node kind, field) -> sources in order of precedence; first non-empty wins.
# Position always comes from the deepest source; titles and summaries from
# the outline, which owns the structure it proposed.
FIELD_PRECEDENCE: dict[tuple[str, str], tuple[Source, ...]] = {
    ("course", "title"): (Source.METADATA, Source.OUTLINE),
    ("course", "summary"): (Source.METADATA, Source.OUTLINE),
    ("course", "language"): (Source.METADATA, Source.OUTLINE),
    ("chapter", "ix"): (Source.DETAIL, Source.FOLDER, Source.OUTLINE),
    ("chapter", "title"): (Source.OUTLINE, Source.DETAIL),
    ("chapter", "summary"): (Source.OUTLINE, Source.DETAIL),
    ("section", "ix"): (Source.DETAIL, Source.OUTLINE),
    ("section", "title"): (Source.OUTLINE, Source.DETAIL),
    ("section", "summary"): (Source.OUTLINE, Source.DETAIL),
}

# Accepted spellings per field; authoring tools disagree on case
KEY_ALIASES: dict[str, tuple[str, ...]] = {
    "min_questions": ("min_questions", "minQuestions"),
    "max_questions": ("max_questions", "maxQuestions"),
    "quick_replies": ("quick_replies", "quickReplies"),
    "is_correct": ("is_correct", "isCorrect", "correct"),
    "estimated_minutes": ("estimated_minutes", "estimatedMinutes"),
    "answers": ("answers", "options", "answer_options", "answerOptions"),
    "body": ("body", "content", "text"),
    "prompt": ("prompt", "question"),
    "state": ("state", "status"),
}


def resolve_field(
    kind: str, field_name: str, candidates: dict[Source, Any], default: Any = None
) -> Any:
    """Pick a field value from per-source candidates using FIELD_PRECEDENCE."""
    for source in FIELD_PRECEDENCE[(kind, field_name)]:
        value = candidates.get(source)
        if value is not None and value != "":
            return value
    return default


def _get(data: dict[str, Any] | None, name: str, default: Any = None) -> Any:
    if not data:
        return default
    for key in KEY_ALIASES.get(name, (name,)):
        if key in data:
            return data[key]
    return default


def _as_mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _coerce_int(value: Any) -> Any:
    """Coerce ints and numeric strings; anything else is returned unchanged."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return value


def _coerce_enum(enum_cls: type[enum.Enum], value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return value


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "y")
    return bool(value)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip()
    return str(value)


def _image(value: Any) -> ImageRef | None:
    if value is None:
        return None
    if isinstance(value, str):
        return ImageRef(url=value.strip())
    data = _as_mapping(value)
    return ImageRef(url=_text(data.get("url")), alt=_text(data.get("alt")))


# --- Leaf-first builders for chapter document content ---


def _build_answer(data: dict[str, Any], order: int) -> AnswerOption:
    return AnswerOption(
        ix=_coerce_int(data.get("ix", order + 1)),
        content=_text(_get(data, "content", data.get("text"))),
        is_correct=_coerce_bool(_get(data, "is_correct", False)),
        feedback=_text(data.get("feedback")) or None,
        order=order,
    )


def _build_question(data: dict[str, Any], order: int) -> Question:
    answers = [
        _build_answer(_as_mapping(a), i)
        for i, a in enumerate(_as_list(_get(data, "answers")))
    ]
    metadata = data.get("metadata")
    return Question(
        ix=_coerce_int(data.get("ix", order + 1)),
        type=_coerce_enum(QuestionType, data.get("type")),
        prompt=_text(_get(data, "prompt")),
        difficulty=_coerce_enum(Difficulty, data.get("difficulty")),
        rationale=_text(data.get("rationale")),
        metadata=metadata if isinstance(metadata, dict) else None,
        answers=answers,
        order=order,
    )


def _build_learning(data: dict[str, Any], order: int) -> Learning:
    questions = [
        _build_question(_as_mapping(q), i)
        for i, q in enumerate(_as_list(data.get("questions")))
    ]
    quick_replies = _get(data, "quick_replies")
    if isinstance(quick_replies, list):
        quick_replies = [_text(r) for r in quick_replies if r is not None]
    return Learning(
        ix=_coerce_int(data.get("ix", order + 1)),
        title=_text(data.get("title")),
        body=_text(_get(data, "body")),
        min_questions=_coerce_int(_get(data, "min_questions", DEFAULT_MIN_QUESTIONS)),
        max_questions=_coerce_int(_get(data, "max_questions", DEFAULT_MAX_QUESTIONS)),
        quick_replies=quick_replies,
        state=_coerce_enum(LearningState, _get(data, "state")),
        questions=questions,
        order=order,
    )


def _take_match(
    candidates: list[tuple[Any, dict[str, Any]]], key: Any
) -> dict[str, Any] | None:
    """Remove and return the first candidate whose key matches."""
    for i, (candidate_key, data) in enumerate(candidates):
        if candidate_key == key:
            del candidates[i]
            return data
    return None


def _build_sections(
    outline_sections: list[Any], detail_sections: list[Any]
) -> list[Section]:
    """Merge outline sections with chapter document sections, matched by ix."""
    outline_items = [
        (_coerce_int(_as_mapping(s).get("ix", i + 1)), _as_mapping(s))
        for i, s in enumerate(outline_sections)
    ]
    detail_items = [
        (_coerce_int(_as_mapping(s).get("ix", i + 1)), _as_mapping(s))
        for i, s in enumerate(detail_sections)
    ]

    merged: list[tuple[dict[str, Any], dict[str, Any] | None]] = []
    for key, outline in outline_items:
        merged.append((outline, _take_match(detail_items, key)))
    # Sections only the chapter document knows about
    for _, detail in detail_items:
        merged.append(({}, detail))

    sections = []
    for order, (outline, detail) in enumerate(merged):
        detail = detail or {}
        outline_ix = _coerce_int(outline.get("ix", order + 1)) if outline else None
        sections.append(
            Section(
                ix=resolve_field(
                    "section",
                    "ix",
                    {
                        Source.DETAIL: _coerce_int(detail.get("ix")),
                        Source.OUTLINE: outline_ix,
                    },
                    default=order + 1,
                ),
                title=_text(
                    resolve_field(
                        "section",
                        "title",
                        {
                            Source.OUTLINE: _text(outline.get("title")),
                            Source.DETAIL: _text(detail.get("title")),
                        },
                    )
                ),
                summary=_text(
                    resolve_field(
                        "section",
                        "summary",
                        {
                            Source.OUTLINE: _text(outline.get("summary")),
                            Source.DETAIL: _text(detail.get("summary")),
                        },
                    )
                ),
                learnings=[
                    _build_learning(_as_mapping(item), i)
                    for i, item in enumerate(_as_list(detail.get("learnings")))
                ],
                order=order,
            )
        )
    return sections


def _chapter_detail(document: ChapterDocument) -> tuple[dict[str, Any], list[Any]]:
    """Split a chapter document into its header and section list.

    Both a flat document and one nesting the header under 'chapter' are accepted.
    """
    data = document.data
    header = _as_mapping(data.get("chapter")) or data
    sections = _as_list(data.get("sections")) or _as_list(header.get("sections"))
    return header, sections


def _build_chapter(
    outline: dict[str, Any],
    outline_ix: Any,
    document: ChapterDocument | None,
    order: int,
) -> Chapter:
    header, detail_sections = _chapter_detail(document) if document else ({}, [])

    return Chapter(
        ix=resolve_field(
            "chapter",
            "ix",
            {
                Source.DETAIL: _coerce_int(header.get("ix")),
                Source.FOLDER: document.folder_number if document else None,
                Source.OUTLINE: outline_ix,
            },
        ),
        title=_text(
            resolve_field(
                "chapter",
                "title",
                {
                    Source.OUTLINE: _text(outline.get("title")),
                    Source.DETAIL: _text(header.get("title")),
                },
            )
        ),
        summary=_text(
            resolve_field(
                "chapter",
                "summary",
                {
                    Source.OUTLINE: _text(outline.get("summary")),
                    Source.DETAIL: _text(header.get("summary")),
                },
            )
        ),
        sections=_build_sections(_as_list(outline.get("sections")), detail_sections),
        is_stub=document is None,
        order=order,
    )


def _outline_chapters(outline: dict[str, Any]) -> Iterable[tuple[Any, dict[str, Any]]]:
    for i, item in enumerate(_as_list(outline.get("chapters"))):
        data = _as_mapping(item)
        yield _coerce_int(data.get("ix", i + 1)), data


def assemble_tree(
    documents: DocumentSet, *, creator_id: int, category_id: int
) -> Course:
    """
    Build the typed course tree from a loaded document set.

    Args:
        documents: Output of load_document_set
        creator_id: Resolved creator identity (opaque)
        category_id: Resolved category identity (opaque)

    Returns:
        Course with chapters in outline order; chapter documents with no
        outline counterpart are listed in Course.dangling_chapters
    """
    metadata = documents.metadata
    outline = documents.outline
    proposal = _as_mapping(outline.get("course")) or outline

    remaining = dict(documents.chapters)
    chapters = []
    for order, (outline_ix, outline_chapter) in enumerate(_outline_chapters(outline)):
        document = remaining.pop(outline_ix, None) if isinstance(outline_ix, int) else None
        chapters.append(_build_chapter(outline_chapter, outline_ix, document, order))

    dangling = []
    for number, document in sorted(remaining.items()):
        header, _ = _chapter_detail(document)
        dangling.append(
            DanglingChapter(
                folder_number=number,
                source=str(document.path),
                title=_text(header.get("title")),
            )
        )
        logger.warning(
            f"Chapter document {document.path} has no matching outline chapter {number}"
        )

    tags = _get(metadata, "tags", [])
    course = Course(
        creator_id=creator_id,
        category_id=category_id,
        title=_text(
            resolve_field(
                "course",
                "title",
                {
                    Source.METADATA: _text(metadata.get("title")),
                    Source.OUTLINE: _text(proposal.get("title")),
                },
            )
        ),
        slug=_text(metadata.get("slug")),
        summary=_text(
            resolve_field(
                "course",
                "summary",
                {
                    Source.METADATA: _text(metadata.get("summary")),
                    Source.OUTLINE: _text(proposal.get("summary")),
                },
            )
        ),
        language=_text(
            resolve_field(
                "course",
                "language",
                {
                    Source.METADATA: _text(metadata.get("language")),
                    Source.OUTLINE: _text(proposal.get("language")),
                },
            )
        ),
        tags=[_text(t) for t in tags] if isinstance(tags, list) else [],
        estimated_minutes=_coerce_int(_get(metadata, "estimated_minutes")),
        banner=_image(metadata.get("banner")),
        icon=_image(metadata.get("icon")),
        visibility=_coerce_enum(CourseVisibility, metadata.get("visibility")),
        status=_coerce_enum(CourseStatus, metadata.get("status")),
        version=_coerce_int(metadata.get("version")),
        chapters=chapters,
        dangling_chapters=dangling,
    )

    logger.info(
        f"Assembled course {course.slug!r}: {len(chapters)} chapter(s), "
        f"{sum(1 for c in chapters if c.is_stub)} stub(s), "
        f"{len(dangling)} dangling"
    )
    return course
