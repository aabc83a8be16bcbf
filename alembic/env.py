"""Migrations for the course content tables (course down to answer_option)."""

import os
import sys
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import create_engine, pool

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

load_dotenv(".env")
load_dotenv(".env.local", override=True)

from course_ingest.database import get_sync_database_url
from course_ingest.tables import metadata

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def _configure_and_run(**options) -> None:
    # Content tables live in the default schema only
    context.configure(target_metadata=metadata, include_schemas=False, **options)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emit the migration SQL for review instead of applying it."""
    _configure_and_run(
        url=get_sync_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )


def run_migrations_online() -> None:
    engine = create_engine(get_sync_database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        _configure_and_run(connection=connection, compare_type=True)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
