# course_ingest/tree/loader.py
"""Discover and parse the document set for one course.

Expected layout under the course root:

    outline.yaml          # proposed chapters/sections, no learnings
    metadata.yaml         # finalized course fields
    01-intro/chapter.yaml # detailed chapter 1 (optional per chapter)
    02/chapter.yaml       # detailed chapter 2
    ...

Documents may be YAML (.yaml/.yml) or JSON (.json). The loader only checks
that each document is well-formed and is a mapping; cross-document
consistency is the assembler's and validator's job.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSIONS = (".yaml", ".yml", ".json")

# Chapter folders start with their chapter number: "01", "3-basics", "07_review"
CHAPTER_FOLDER_PATTERN = re.compile(r"^(\d+)(?:[-_ .].*)?$")


class DocumentLoadError(Exception):
    """Base class for errors that abort ingestion before anything is persisted."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(message)


class MissingDocument(DocumentLoadError):
    """Raised when the outline or metadata document is absent."""

    def __init__(self, path: Path, what: str):
        self.what = what
        super().__init__(path, f"Missing {what} document: {path}")


class MalformedDocument(DocumentLoadError):
    """Raised when a document is not well-formed structured data."""

    def __init__(
        self,
        path: Path,
        problem: str,
        line: int | None = None,
        column: int | None = None,
    ):
        self.problem = problem
        self.line = line
        self.column = column
        location = f"{path}"
        if line is not None:
            location += f":{line}"
            if column is not None:
                location += f":{column}"
        super().__init__(path, f"Malformed document {location}: {problem}")


@dataclass
class DocumentNames:
    """File stems of the documents that make up one course."""

    outline: str = "outline"
    metadata: str = "metadata"
    chapter: str = "chapter"


@dataclass
class ChapterDocument:
    folder_number: int
    path: Path
    data: dict[str, Any]


@dataclass
class DocumentSet:
    root: Path
    outline: dict[str, Any]
    outline_path: Path
    metadata: dict[str, Any]
    metadata_path: Path
    chapters: dict[int, ChapterDocument] = field(default_factory=dict)


def _find_document(directory: Path, stem: str) -> Path | None:
    """Find '<stem>.<ext>' in a directory, trying extensions in order."""
    for ext in DOCUMENT_EXTENSIONS:
        candidate = directory / f"{stem}{ext}"
        if candidate.is_file():
            return candidate
    return None


def parse_document(path: Path) -> dict[str, Any]:
    """
    Parse one document into an untyped mapping.

    Args:
        path: Path to a .yaml, .yml or .json file

    Returns:
        The top-level mapping (empty dict for an empty YAML file)

    Raises:
        MalformedDocument: If the file can't be parsed or isn't a mapping
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise MalformedDocument(
            path, f"not valid UTF-8 at byte {e.start}: {e.reason}"
        ) from e

    if path.suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedDocument(path, e.msg, line=e.lineno, column=e.colno) from e
    else:
        try:
            data = yaml.safe_load(text)
        except yaml.MarkedYAMLError as e:
            mark = e.problem_mark
            raise MalformedDocument(
                path,
                e.problem or str(e),
                line=mark.line + 1 if mark else None,
                column=mark.column + 1 if mark else None,
            ) from e
        except yaml.YAMLError as e:
            raise MalformedDocument(path, str(e)) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedDocument(
            path, f"top level must be a mapping, got {type(data).__name__}"
        )

    logger.debug(f"Parsed {path} ({len(data)} top-level keys)")
    return data


def _load_chapter_documents(
    root: Path, names: DocumentNames
) -> dict[int, ChapterDocument]:
    chapters: dict[int, ChapterDocument] = {}

    for folder in sorted(p for p in root.iterdir() if p.is_dir()):
        match = CHAPTER_FOLDER_PATTERN.match(folder.name)
        if not match:
            continue

        path = _find_document(folder, names.chapter)
        if path is None:
            logger.debug(f"Chapter folder {folder.name} has no {names.chapter} document")
            continue

        number = int(match.group(1))
        if number in chapters:
            raise MalformedDocument(
                path,
                f"chapter number {number} already provided by {chapters[number].path}",
            )

        chapters[number] = ChapterDocument(
            folder_number=number, path=path, data=parse_document(path)
        )

    return chapters


def load_document_set(
    root: Path | str, names: DocumentNames | None = None
) -> DocumentSet:
    """
    Load the outline, metadata and chapter documents for one course.

    Raises:
        MissingDocument: If the root, outline or metadata is absent
        MalformedDocument: If any document is not well-formed
    """
    root = Path(root)
    names = names or DocumentNames()

    if not root.is_dir():
        raise MissingDocument(root, "course root")

    outline_path = _find_document(root, names.outline)
    if outline_path is None:
        raise MissingDocument(root / f"{names.outline}.yaml", "outline")

    metadata_path = _find_document(root, names.metadata)
    if metadata_path is None:
        raise MissingDocument(root / f"{names.metadata}.yaml", "metadata")

    documents = DocumentSet(
        root=root,
        outline=parse_document(outline_path),
        outline_path=outline_path,
        metadata=parse_document(metadata_path),
        metadata_path=metadata_path,
        chapters=_load_chapter_documents(root, names),
    )

    logger.info(
        f"Loaded document set from {root}: "
        f"{len(documents.chapters)} chapter document(s)"
    )
    return documents
