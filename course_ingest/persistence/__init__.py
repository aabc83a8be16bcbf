"""Persistence of validated course trees."""

from .store import ContentStore, ContentTransaction, SqlContentStore
from .writer import write_course, WriteResult, ChapterFailure
