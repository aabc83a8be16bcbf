#!/usr/bin/env python
"""
Ingest one authored course document set into the database.

Run locally:  python scripts/ingest_course.py content/intro-to-rust --creator-id 7 --category-id 3
Dry run:      python scripts/ingest_course.py content/intro-to-rust --creator-id 7 --category-id 3 --dry-run

Exit codes:
  0  every chapter validated and committed (or validated, with --dry-run)
  1  blocking violations remain or a write to storage failed
  2  a document is missing or malformed
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import sentry_sdk
from dotenv import load_dotenv

load_dotenv(".env")
load_dotenv(".env.local", override=True)

from course_ingest.config import check_required_env_vars
from course_ingest.database import close_engine
from course_ingest.pipeline import IngestReport, run_ingestion
from course_ingest.tree import DocumentLoadError


def print_report(report: IngestReport) -> None:
    """Print a human-readable summary of an ingestion run."""
    status = "OK" if report.ok else "FAILED"
    print(f"Course: {report.course_slug}  [{status}]")

    if report.patches:
        print(f"\nPatches applied ({len(report.patches)}):")
        for patch in report.patches:
            print(f"  - {patch}")

    if report.requires_authoring:
        print(f"\nRequires authoring ({len(report.requires_authoring)}):")
        for violation in report.requires_authoring:
            print(f"  - {violation}")

    grouped = report.violations_by_chapter()
    if grouped:
        print(f"\nViolations ({len(report.violations)}):")
        for chapter_ix, violations in grouped.items():
            label = "course" if chapter_ix is None else f"chapter {chapter_ix}"
            print(f"  {label}:")
            for violation in violations:
                marker = "✗" if violation.blocks(report.strict) else "⚠"
                print(f"    {marker} {violation}")

    if not report.dry_run:
        print(f"\nCommitted chapters: {report.committed_chapters or 'none'}")
    if report.blocked_chapters:
        print(f"Held back for authoring: {report.blocked_chapters}")
    for failure in report.failures:
        print(f"Failed: chapter {failure.ix}: {failure.error}")
    if report.not_attempted:
        print(f"Not attempted: {report.not_attempted}")
    if report.error:
        print(f"ERROR: {report.error}")


async def ingest(args: argparse.Namespace) -> int:
    try:
        report = await run_ingestion(
            args.root,
            creator_id=args.creator_id,
            category_id=args.category_id,
            strict=args.strict or None,
            fill_feedback=False if args.no_placeholder_feedback else None,
            dry_run=args.dry_run,
            max_workers=args.workers,
        )
    except DocumentLoadError as e:
        print(f"ERROR: {e}")
        return 2
    finally:
        await close_engine()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)
    return 0 if report.ok else 1


def main():
    parser = argparse.ArgumentParser(description="Ingest a course document set")
    parser.add_argument(
        "root",
        type=Path,
        help="Directory with outline, metadata and chapter documents",
    )
    parser.add_argument(
        "--creator-id",
        type=int,
        required=True,
        help="Resolved creator (user) id",
    )
    parser.add_argument(
        "--category-id",
        type=int,
        required=True,
        help="Resolved catalog category id",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help=(
            "Treat warnings (e.g. missing feedback) as blocking (default: INGEST_STRICT). "
            "Missing feedback is filled with a placeholder unless "
            "--no-placeholder-feedback is given"
        ),
    )
    parser.add_argument(
        "--no-placeholder-feedback",
        action="store_true",
        help=(
            "With --strict, hold back chapters with missing feedback instead of "
            "filling a placeholder (default: INGEST_PLACEHOLDER_FEEDBACK)"
        ),
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Chapters to write concurrently (default: INGEST_MAX_WORKERS or 1)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and patch only, don't touch the database",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if os.environ.get("SENTRY_DSN"):
        sentry_sdk.init(dsn=os.environ["SENTRY_DSN"])

    ok, errors = check_required_env_vars(dry_run=args.dry_run)
    if not ok:
        print("ERROR: missing required environment variables:")
        for error in errors:
            print(error)
        sys.exit(1)

    if not args.dry_run:
        from db_safety import check_database_safety

        check_database_safety()

    sys.exit(asyncio.run(ingest(args)))


if __name__ == "__main__":
    main()
