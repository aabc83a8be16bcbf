"""
Database safety checks for scripts.

Ensures ingestion only runs against known databases, with explicit
protection against accidentally writing to a blocked one.
"""

import os
import sys

# Patterns that indicate a local database (any dev machine)
LOCAL_PATTERNS = [
    "localhost",
    "127.0.0.1",
    "host.docker.internal",
    "0.0.0.0",
    "::1",
]


def _identifiers(env_name: str) -> list[str]:
    """Comma-separated database identifiers from an env var."""
    raw = os.environ.get(env_name, "")
    return [part.strip() for part in raw.split(",") if part.strip()]


def check_database_safety() -> str:
    """
    Check that we're connected to an allowed database.

    Allowed remote databases are listed in INGEST_ALLOWED_DBS and blocked
    ones in INGEST_BLOCKED_DBS (substrings of DATABASE_URL).

    Returns the environment name ("local" or the matched identifier).
    Exits with error if blocked or unknown.
    """
    db_url = os.environ.get("DATABASE_URL", "")

    if not db_url:
        print("ERROR: DATABASE_URL not set")
        sys.exit(1)

    # Check for blocked databases first
    for identifier in _identifiers("INGEST_BLOCKED_DBS"):
        if identifier in db_url:
            print(f"ERROR: This script cannot run on {identifier}!")
            print("This database is explicitly blocked for safety.")
            sys.exit(1)

    # Check for local databases
    for pattern in LOCAL_PATTERNS:
        if pattern in db_url:
            print("Database: local")
            return "local"

    # Check for allowed remote databases
    for identifier in _identifiers("INGEST_ALLOWED_DBS"):
        if identifier in db_url:
            print(f"Database: {identifier}")
            return identifier

    # Unknown database
    print("ERROR: Unknown database URL")
    print("This script only runs against whitelisted databases.")
    print("Add the database identifier to INGEST_ALLOWED_DBS if this is intentional.")
    sys.exit(1)
