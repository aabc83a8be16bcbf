# course_ingest/persistence/store.py
"""Storage surface used by the persistence writer.

Every write is an upsert by natural key - (parent id, ix) for tree nodes,
slug for courses - so writing the same tree twice updates rows in place.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator, Protocol

from sqlalchemy import Table, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from course_ingest.database import get_engine
from course_ingest.tables import (
    answer_options,
    chapters,
    courses,
    learnings,
    questions,
    sections,
)


class ContentTransaction(Protocol):
    """Writes that commit or roll back together."""

    async def upsert_course(self, values: dict[str, Any]) -> int: ...

    async def upsert_chapter(
        self, course_id: int, ix: int, values: dict[str, Any]
    ) -> int: ...

    async def upsert_section(
        self, chapter_id: int, ix: int, values: dict[str, Any]
    ) -> int: ...

    async def upsert_learning(
        self, section_id: int, ix: int, values: dict[str, Any]
    ) -> int: ...

    async def upsert_question(
        self, learning_id: int, ix: int, values: dict[str, Any]
    ) -> int: ...

    async def upsert_answer_option(
        self, question_id: int, ix: int, values: dict[str, Any]
    ) -> int: ...

    async def set_learning_count(self, section_id: int, count: int) -> None: ...


class ContentStore(Protocol):
    async def find_course_creator(self, slug: str) -> int | None:
        """Creator of the stored course with this slug, or None if there is none."""
        ...

    def transaction(self) -> AsyncContextManager[ContentTransaction]: ...


# =====================================================
# SQL implementation
# =====================================================


def build_upsert(
    table: Table, key_columns: tuple[str, ...], values: dict[str, Any]
):
    """
    Build INSERT ... ON CONFLICT (natural key) DO UPDATE ... RETURNING <pk>.

    Every non-key column in values is overwritten and updated_at is bumped.
    """
    stmt = pg_insert(table).values(**values)
    set_ = {
        name: stmt.excluded[name] for name in values if name not in key_columns
    }
    set_["updated_at"] = func.now()
    primary_key = list(table.primary_key.columns)[0]
    return stmt.on_conflict_do_update(
        index_elements=list(key_columns), set_=set_
    ).returning(primary_key)


class SqlContentTransaction:
    """ContentTransaction over one open AsyncConnection transaction."""

    def __init__(self, conn: AsyncConnection):
        self.conn = conn

    async def _upsert(
        self, table: Table, key_columns: tuple[str, ...], values: dict[str, Any]
    ) -> int:
        result = await self.conn.execute(build_upsert(table, key_columns, values))
        return result.scalar_one()

    async def upsert_course(self, values: dict[str, Any]) -> int:
        return await self._upsert(courses, ("slug",), values)

    async def upsert_chapter(
        self, course_id: int, ix: int, values: dict[str, Any]
    ) -> int:
        return await self._upsert(
            chapters, ("course_id", "ix"), {**values, "course_id": course_id, "ix": ix}
        )

    async def upsert_section(
        self, chapter_id: int, ix: int, values: dict[str, Any]
    ) -> int:
        return await self._upsert(
            sections, ("chapter_id", "ix"), {**values, "chapter_id": chapter_id, "ix": ix}
        )

    async def upsert_learning(
        self, section_id: int, ix: int, values: dict[str, Any]
    ) -> int:
        return await self._upsert(
            learnings,
            ("section_id", "ix"),
            {**values, "section_id": section_id, "ix": ix},
        )

    async def upsert_question(
        self, learning_id: int, ix: int, values: dict[str, Any]
    ) -> int:
        return await self._upsert(
            questions,
            ("learning_id", "ix"),
            {**values, "learning_id": learning_id, "ix": ix},
        )

    async def upsert_answer_option(
        self, question_id: int, ix: int, values: dict[str, Any]
    ) -> int:
        return await self._upsert(
            answer_options,
            ("question_id", "ix"),
            {**values, "question_id": question_id, "ix": ix},
        )

    async def set_learning_count(self, section_id: int, count: int) -> None:
        await self.conn.execute(
            update(sections)
            .where(sections.c.section_id == section_id)
            .values(learning_count=count, updated_at=func.now())
        )


class SqlContentStore:
    """ContentStore backed by the PostgreSQL schema in course_ingest.tables."""

    def __init__(self, engine: AsyncEngine | None = None):
        self._engine = engine

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = get_engine()
        return self._engine

    async def find_course_creator(self, slug: str) -> int | None:
        async with self.engine.connect() as conn:
            result = await conn.execute(
                select(courses.c.creator_id).where(courses.c.slug == slug)
            )
            return result.scalar_one_or_none()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlContentTransaction]:
        """One engine.begin() block: commits on success, rolls back on exception."""
        async with self.engine.begin() as conn:
            yield SqlContentTransaction(conn)
