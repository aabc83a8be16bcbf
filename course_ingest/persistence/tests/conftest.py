"""Pytest fixtures for database-backed persistence tests."""

from contextlib import asynccontextmanager

import pytest_asyncio
from dotenv import load_dotenv
from sqlalchemy import select

from course_ingest.persistence.store import SqlContentTransaction
from course_ingest.tables import courses


class ConnectionStore:
    """
    ContentStore bound to one connection; each transaction is a savepoint.

    Lets the writer commit and roll back chapters inside a test transaction
    that is itself rolled back afterwards.
    """

    def __init__(self, conn):
        self.conn = conn

    async def find_course_creator(self, slug):
        result = await self.conn.execute(
            select(courses.c.creator_id).where(courses.c.slug == slug)
        )
        return result.scalar_one_or_none()

    @asynccontextmanager
    async def transaction(self):
        async with self.conn.begin_nested():
            yield SqlContentTransaction(self.conn)


@pytest_asyncio.fixture
async def db_conn():
    """
    Provide a DB connection that rolls back after each test.

    Requires a migrated schema (alembic upgrade head).
    """
    load_dotenv(".env.local")

    from course_ingest.database import close_engine, get_engine

    engine = get_engine()

    async with engine.connect() as conn:
        txn = await conn.begin()
        try:
            yield conn
        finally:
            await txn.rollback()

    await close_engine()


@pytest_asyncio.fixture
async def db_store(db_conn):
    return ConnectionStore(db_conn)
