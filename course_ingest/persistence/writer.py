# course_ingest/persistence/writer.py
"""Write a validated course tree into storage, one chapter per transaction."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Collection

import sentry_sdk

from course_ingest.tree.types import (
    AnswerOption,
    Chapter,
    Course,
    Learning,
    Question,
    Section,
)

from .store import ContentStore, ContentTransaction

logger = logging.getLogger(__name__)


@dataclass
class ChapterFailure:
    """A chapter whose transaction was rolled back."""

    ix: int
    error: Exception

    def to_dict(self) -> dict[str, Any]:
        return {"chapter": self.ix, "error": f"{type(self.error).__name__}: {self.error}"}


@dataclass
class WriteResult:
    course_id: int | None = None
    committed: list[int] = field(default_factory=list)
    failures: list[ChapterFailure] = field(default_factory=list)
    not_attempted: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures and not self.not_attempted


def _by_position(nodes: list) -> list:
    return sorted(nodes, key=lambda node: node.ix)


def _course_values(course: Course) -> dict[str, Any]:
    return {
        "creator_id": course.creator_id,
        "category_id": course.category_id,
        "slug": course.slug,
        "title": course.title,
        "summary": course.summary,
        "language": course.language,
        "tags": list(course.tags),
        "estimated_minutes": course.estimated_minutes,
        "banner_url": course.banner.url if course.banner else None,
        "banner_alt": course.banner.alt if course.banner else None,
        "icon_url": course.icon.url if course.icon else None,
        "icon_alt": course.icon.alt if course.icon else None,
        "visibility": course.visibility,
        "status": course.status,
        "version": course.version,
    }


def _chapter_values(chapter: Chapter) -> dict[str, Any]:
    return {"title": chapter.title, "summary": chapter.summary}


def _section_values(section: Section) -> dict[str, Any]:
    return {"title": section.title, "summary": section.summary}


def _learning_values(learning: Learning) -> dict[str, Any]:
    return {
        "title": learning.title,
        "body": learning.body,
        "min_questions": learning.min_questions,
        "max_questions": learning.max_questions,
        "quick_replies": list(learning.quick_replies or []),
        "state": learning.state,
    }


def _question_values(question: Question) -> dict[str, Any]:
    return {
        "type": question.type,
        "prompt": question.prompt,
        "difficulty": question.difficulty,
        "rationale": question.rationale,
        "metadata": question.metadata,
    }


def _answer_values(answer: AnswerOption) -> dict[str, Any]:
    return {
        "content": answer.content,
        "is_correct": answer.is_correct,
        "feedback": answer.feedback,
    }


async def _write_chapter(
    txn: ContentTransaction, course_id: int, chapter: Chapter
) -> None:
    """Write one chapter subtree parent-before-child."""
    chapter_id = await txn.upsert_chapter(
        course_id, chapter.ix, _chapter_values(chapter)
    )

    for section in _by_position(chapter.sections):
        section_id = await txn.upsert_section(
            chapter_id, section.ix, _section_values(section)
        )

        for learning in _by_position(section.learnings):
            learning_id = await txn.upsert_learning(
                section_id, learning.ix, _learning_values(learning)
            )

            for question in _by_position(learning.questions):
                question_id = await txn.upsert_question(
                    learning_id, question.ix, _question_values(question)
                )

                for answer in _by_position(question.answers):
                    await txn.upsert_answer_option(
                        question_id, answer.ix, _answer_values(answer)
                    )

        # Exact count of the written children, never an increment
        await txn.set_learning_count(section_id, len(section.learnings))


async def write_course(
    store: ContentStore,
    course: Course,
    *,
    chapters: Collection[int] | None = None,
    max_workers: int = 1,
    should_continue: Callable[[], bool] | None = None,
) -> WriteResult:
    """
    Persist a course tree that has no blocking violations.

    The course row is written first in its own transaction. Each chapter is
    then written in its own transaction; a failing chapter is rolled back,
    reported, and stops any further chapters from starting. Chapters already
    committed stay committed.

    Args:
        store: Storage collaborator
        course: Validated course tree
        chapters: Chapter positions to write (default: all)
        max_workers: Chapters written concurrently (1 = sequential)
        should_continue: Checked before each chapter; returning False
            stops the run between chapters

    Returns:
        WriteResult with the committed, failed and skipped chapter positions
    """
    if not course.slug:
        raise ValueError("Cannot persist a course without a slug")

    result = WriteResult()

    async with store.transaction() as txn:
        result.course_id = await txn.upsert_course(_course_values(course))
    logger.info(f"Wrote course {course.slug!r} (id {result.course_id})")

    selected = [
        chapter
        for chapter in _by_position(course.chapters)
        if chapters is None or chapter.ix in chapters
    ]
    stop = asyncio.Event()

    async def write_one(chapter: Chapter) -> bool:
        if stop.is_set():
            return False
        if should_continue is not None and not should_continue():
            logger.warning(f"Stopping before chapter {chapter.ix}: run cancelled")
            stop.set()
            return False

        try:
            async with store.transaction() as txn:
                await _write_chapter(txn, result.course_id, chapter)
        except Exception as e:
            stop.set()
            logger.exception(
                f"Chapter {chapter.ix} of {course.slug!r} failed and was rolled back"
            )
            sentry_sdk.capture_exception(e)
            result.failures.append(ChapterFailure(chapter.ix, e))
            return False

        result.committed.append(chapter.ix)
        logger.info(
            f"Committed chapter {chapter.ix} of {course.slug!r} "
            f"({len(chapter.sections)} section(s))"
        )
        return True

    if max_workers <= 1:
        for chapter in selected:
            if not await write_one(chapter):
                break
    else:
        semaphore = asyncio.Semaphore(max_workers)

        async def bounded(chapter: Chapter) -> bool:
            async with semaphore:
                return await write_one(chapter)

        await asyncio.gather(*(bounded(chapter) for chapter in selected))
        result.committed.sort()

    done = set(result.committed) | {f.ix for f in result.failures}
    result.not_attempted = [c.ix for c in selected if c.ix not in done]
    return result
