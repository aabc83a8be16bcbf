"""
Centralized configuration for course content ingestion.

Values come from the environment; entry points load .env / .env.local
with python-dotenv before anything here is read.
"""

import os

DEFAULT_MAX_WORKERS = 1
DEFAULT_MAX_PATCH_ROUNDS = 3


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("true", "1", "yes")


def is_strict() -> bool:
    """Check whether warning-level violations block persistence (INGEST_STRICT)."""
    return _env_flag("INGEST_STRICT")


def fills_placeholder_feedback() -> bool:
    """
    Check whether strict runs synthesize placeholder feedback.

    INGEST_PLACEHOLDER_FEEDBACK defaults to true. Set it to false to make
    strict runs hold back chapters with missing feedback instead.
    """
    return os.getenv("INGEST_PLACEHOLDER_FEEDBACK", "true").lower() in (
        "true",
        "1",
        "yes",
    )


def get_max_workers() -> int:
    """Get the number of chapters that may be written concurrently."""
    return max(1, int(os.getenv("INGEST_MAX_WORKERS", str(DEFAULT_MAX_WORKERS))))


def get_max_patch_rounds() -> int:
    """Get the upper bound on validate/patch iterations before giving up."""
    return max(
        1, int(os.getenv("INGEST_MAX_PATCH_ROUNDS", str(DEFAULT_MAX_PATCH_ROUNDS)))
    )


# Format: (name, description, required_for_dry_run)
REQUIRED_ENV_VARS = [
    ("DATABASE_URL", "PostgreSQL connection string", False),
]


def check_required_env_vars(dry_run: bool = False) -> tuple[bool, list[str]]:
    """
    Check that required environment variables are set.

    Returns:
        (all_ok, errors): Tuple of success flag and list of error messages
    """
    errors = []

    for name, description, required_for_dry_run in REQUIRED_ENV_VARS:
        if dry_run and not required_for_dry_run:
            continue
        if not os.environ.get(name):
            errors.append(f"  ✗ {name}: Not set ({description})")

    return not errors, errors
