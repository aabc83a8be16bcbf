"""Tests for the document set loader."""

import json

import pytest

from course_ingest.tree.loader import (
    DocumentLoadError,
    DocumentNames,
    MalformedDocument,
    MissingDocument,
    load_document_set,
    parse_document,
)
from course_ingest.tests.factories import (
    chapter_doc,
    outline_doc,
    write_document_set,
    write_yaml,
)


class TestLoadDocumentSet:
    """Tests for load_document_set()."""

    def test_loads_outline_metadata_and_chapters(self, tmp_path):
        """Should parse every document and key chapters by folder number."""
        write_document_set(
            tmp_path,
            outline=outline_doc(n_chapters=2),
            chapters={"01-basics": chapter_doc(1), "02": chapter_doc(2)},
        )

        documents = load_document_set(tmp_path)

        assert documents.outline["chapters"][0]["title"] == "Chapter 1"
        assert documents.metadata["slug"] == "intro-course"
        assert sorted(documents.chapters) == [1, 2]
        assert documents.chapters[1].path == tmp_path / "01-basics" / "chapter.yaml"

    def test_chapter_documents_are_optional(self, tmp_path):
        """A course with no chapter documents still loads."""
        write_document_set(tmp_path, outline=outline_doc(n_chapters=3))

        documents = load_document_set(tmp_path)

        assert documents.chapters == {}

    def test_ignores_folders_without_number_or_document(self, tmp_path):
        """Non-numbered folders and numbered folders with no chapter file are skipped."""
        write_document_set(tmp_path, chapters={"assets": chapter_doc(1)})
        (tmp_path / "03").mkdir()

        documents = load_document_set(tmp_path)

        assert documents.chapters == {}

    def test_missing_outline_raises(self, tmp_path):
        """Should raise MissingDocument when the outline is absent."""
        write_document_set(tmp_path)
        (tmp_path / "outline.yaml").unlink()

        with pytest.raises(MissingDocument) as exc_info:
            load_document_set(tmp_path)

        assert exc_info.value.what == "outline"

    def test_missing_metadata_raises(self, tmp_path):
        """Should raise MissingDocument when the metadata is absent."""
        write_document_set(tmp_path)
        (tmp_path / "metadata.yaml").unlink()

        with pytest.raises(MissingDocument) as exc_info:
            load_document_set(tmp_path)

        assert exc_info.value.what == "metadata"

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(MissingDocument):
            load_document_set(tmp_path / "nope")

    def test_malformed_chapter_document_reports_file(self, tmp_path):
        """A broken chapter document fails the whole load, naming the file."""
        write_document_set(tmp_path)
        bad = tmp_path / "01" / "chapter.yaml"
        bad.parent.mkdir()
        bad.write_text("title: ok\nsections: [unclosed\n")

        with pytest.raises(MalformedDocument) as exc_info:
            load_document_set(tmp_path)

        assert exc_info.value.path == bad
        assert exc_info.value.line is not None

    def test_duplicate_chapter_numbers_raise(self, tmp_path):
        """Two folders claiming the same chapter number are ambiguous."""
        write_document_set(
            tmp_path, chapters={"01-a": chapter_doc(1), "1-b": chapter_doc(1)}
        )

        with pytest.raises(MalformedDocument) as exc_info:
            load_document_set(tmp_path)

        assert "already provided" in exc_info.value.problem

    def test_custom_document_names(self, tmp_path):
        """DocumentNames changes the stems the loader looks for."""
        write_yaml(tmp_path / "plan.yaml", outline_doc())
        write_yaml(tmp_path / "course.yaml", {"slug": "x"})
        write_yaml(tmp_path / "01" / "merged.yaml", chapter_doc(1))

        documents = load_document_set(
            tmp_path, DocumentNames(outline="plan", metadata="course", chapter="merged")
        )

        assert documents.metadata == {"slug": "x"}
        assert list(documents.chapters) == [1]


class TestParseDocument:
    """Tests for parse_document()."""

    def test_parses_json(self, tmp_path):
        path = tmp_path / "outline.json"
        path.write_text(json.dumps({"chapters": []}))

        assert parse_document(path) == {"chapters": []}

    def test_json_error_has_position(self, tmp_path):
        """JSON errors carry 1-based line and column."""
        path = tmp_path / "outline.json"
        path.write_text('{\n  "chapters": [,]\n}')

        with pytest.raises(MalformedDocument) as exc_info:
            parse_document(path)

        assert exc_info.value.line == 2
        assert exc_info.value.column is not None
        assert "outline.json:2:" in str(exc_info.value)

    def test_yaml_error_has_position(self, tmp_path):
        path = tmp_path / "metadata.yaml"
        path.write_text("title: ok\n  bad: indent\n")

        with pytest.raises(MalformedDocument) as exc_info:
            parse_document(path)

        assert exc_info.value.line == 2

    def test_invalid_utf8_is_malformed(self, tmp_path):
        """Undecodable bytes are reported like any other malformed document."""
        path = tmp_path / "chapter.yaml"
        path.write_bytes(b"title: \xff\xfe bad\n")

        with pytest.raises(MalformedDocument) as exc_info:
            parse_document(path)

        assert "not valid UTF-8 at byte 7" in exc_info.value.problem

    def test_invalid_utf8_chapter_fails_load(self, tmp_path):
        write_document_set(tmp_path)
        bad = tmp_path / "01" / "chapter.yaml"
        bad.parent.mkdir()
        bad.write_bytes(b"title: \xff\xfe bad\n")

        with pytest.raises(DocumentLoadError) as exc_info:
            load_document_set(tmp_path)

        assert exc_info.value.path == bad

    def test_empty_yaml_is_empty_mapping(self, tmp_path):
        path = tmp_path / "metadata.yaml"
        path.write_text("")

        assert parse_document(path) == {}

    def test_non_mapping_top_level_rejected(self, tmp_path):
        """A list at the top level is well-formed YAML but not a document."""
        path = tmp_path / "outline.yaml"
        path.write_text("- one\n- two\n")

        with pytest.raises(MalformedDocument) as exc_info:
            parse_document(path)

        assert "mapping" in exc_info.value.problem
