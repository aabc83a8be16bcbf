"""
Course content ingestion - load, validate, patch and persist authored course trees.
Can be driven by the ingest script or imported by any other interface.
"""

# Content tree
from .tree import (
    load_document_set, assemble_tree, validate_tree, patch_tree,
    DocumentLoadError, MissingDocument, MalformedDocument,
    Violation, PatchResult, AppliedPatch,
)

# Persistence
from .persistence import write_course, SqlContentStore, WriteResult, ChapterFailure

# Database (SQLAlchemy)
from .database import get_engine, close_engine, is_configured

# Pipeline
from .pipeline import run_ingestion, IngestReport

__all__ = [
    # Content tree
    'load_document_set', 'assemble_tree', 'validate_tree', 'patch_tree',
    'DocumentLoadError', 'MissingDocument', 'MalformedDocument',
    'Violation', 'PatchResult', 'AppliedPatch',
    # Persistence
    'write_course', 'SqlContentStore', 'WriteResult', 'ChapterFailure',
    # Database
    'get_engine', 'close_engine', 'is_configured',
    # Pipeline
    'run_ingestion', 'IngestReport',
]
