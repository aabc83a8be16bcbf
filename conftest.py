"""Root pytest configuration."""

from pathlib import Path

import pytest
from dotenv import load_dotenv

# DATABASE_URL for the optional PostgreSQL tests comes from here
_root = Path(__file__).parent
load_dotenv(_root / ".env")
load_dotenv(_root / ".env.local", override=True)


@pytest.fixture(scope="session")
def event_loop_policy():
    """Use default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()


@pytest.fixture
def course_root(tmp_path):
    """A valid one-chapter course document set on disk."""
    from course_ingest.tests.factories import chapter_doc, write_document_set

    return write_document_set(tmp_path, chapters={"01": chapter_doc(1)})


@pytest.fixture(autouse=True)
def _ingest_settings(monkeypatch):
    """Keep a developer's INGEST_* overrides out of test runs."""
    for name in (
        "INGEST_STRICT",
        "INGEST_PLACEHOLDER_FEEDBACK",
        "INGEST_MAX_WORKERS",
        "INGEST_MAX_PATCH_ROUNDS",
    ):
        monkeypatch.delenv(name, raising=False)
