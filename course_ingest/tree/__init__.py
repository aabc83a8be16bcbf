"""Content tree: load, assemble, validate and patch course documents."""

from .types import (
    Course,
    Chapter,
    Section,
    Learning,
    Question,
    AnswerOption,
    ImageRef,
    DanglingChapter,
    format_path,
)
from .loader import (
    load_document_set,
    DocumentSet,
    DocumentNames,
    DocumentLoadError,
    MissingDocument,
    MalformedDocument,
)
from .assembler import assemble_tree, FIELD_PRECEDENCE, Source
from .validator import (
    validate_tree,
    blocking_violations,
    group_by_chapter,
    Violation,
)
from .patcher import (
    patch_tree,
    requires_authoring,
    PatchResult,
    AppliedPatch,
    PLACEHOLDER_FEEDBACK,
)
