"""Tests for merging documents into a typed course tree."""

from course_ingest.enums import (
    CourseVisibility,
    Difficulty,
    LearningState,
    QuestionType,
    ViolationKind,
)
from course_ingest.tree.assembler import (
    FIELD_PRECEDENCE,
    Source,
    assemble_tree,
    resolve_field,
)
from course_ingest.tree.loader import load_document_set
from course_ingest.tree.validator import validate_tree
from course_ingest.tests.factories import (
    chapter_doc,
    metadata_doc,
    outline_doc,
    write_document_set,
)


def _assemble(tmp_path, **docs):
    write_document_set(tmp_path, **docs)
    return assemble_tree(load_document_set(tmp_path), creator_id=7, category_id=3)


class TestResolveField:
    """Tests for the precedence table lookup."""

    def test_first_non_empty_source_wins(self):
        value = resolve_field(
            "chapter", "title", {Source.OUTLINE: "", Source.DETAIL: "Detail"}
        )
        assert value == "Detail"

    def test_default_when_no_source_has_value(self):
        assert resolve_field("section", "ix", {}, default=4) == 4

    def test_positions_prefer_deepest_source(self):
        """ix comes from the chapter document before the outline."""
        assert FIELD_PRECEDENCE[("chapter", "ix")][0] == Source.DETAIL
        assert FIELD_PRECEDENCE[("section", "ix")] == (Source.DETAIL, Source.OUTLINE)

    def test_outline_owns_chapter_titles(self):
        assert FIELD_PRECEDENCE[("chapter", "title")][0] == Source.OUTLINE


class TestAssembleTree:
    """Tests for assemble_tree()."""

    def test_builds_full_tree(self, tmp_path):
        course = _assemble(tmp_path, chapters={"01": chapter_doc(1)})

        assert course.creator_id == 7
        assert course.category_id == 3
        assert course.slug == "intro-course"
        assert course.visibility == CourseVisibility.private
        assert course.banner.url == "https://cdn.example.com/banner.png"

        chapter = course.chapters[0]
        assert chapter.is_stub is False
        learning = chapter.sections[0].learnings[0]
        assert learning.min_questions == 2
        assert learning.max_questions == 10
        assert learning.quick_replies == ["Explain again"]
        assert learning.state == LearningState.draft

        question = learning.questions[0]
        assert question.type == QuestionType.mcq
        assert [a.is_correct for a in question.answers] == [True, False]
        assert question.answers[1].feedback == "Not quite."

    def test_metadata_title_beats_outline_proposal(self, tmp_path):
        course = _assemble(tmp_path, metadata=metadata_doc(title="Final Title"))
        assert course.title == "Final Title"

    def test_outline_title_used_when_metadata_silent(self, tmp_path):
        metadata = metadata_doc()
        del metadata["title"]
        course = _assemble(tmp_path, metadata=metadata)
        assert course.title == "Proposed Title"

    def test_outline_summary_wins_over_chapter_document(self, tmp_path):
        """Outline is authoritative for chapter title/summary when both exist."""
        course = _assemble(tmp_path, chapters={"01": chapter_doc(1)})
        assert course.chapters[0].summary == "Outline summary 1."

    def test_chapter_document_fills_missing_outline_fields(self, tmp_path):
        outline = outline_doc()
        del outline["chapters"][0]["summary"]
        course = _assemble(tmp_path, outline=outline, chapters={"01": chapter_doc(1)})
        assert course.chapters[0].summary == "Detailed summary 1."

    def test_chapter_document_ix_wins_over_folder(self, tmp_path):
        """The chapter document's own ix is the deepest position source."""
        course = _assemble(tmp_path, chapters={"01": chapter_doc(ix=5)})
        assert course.chapters[0].ix == 5

    def test_folder_number_used_when_document_has_no_ix(self, tmp_path):
        doc = chapter_doc(1)
        del doc["ix"]
        course = _assemble(tmp_path, chapters={"01": doc})
        assert course.chapters[0].ix == 1

    def test_outline_chapter_without_document_is_stub(self, tmp_path):
        course = _assemble(
            tmp_path, outline=outline_doc(n_chapters=2), chapters={"01": chapter_doc(1)}
        )

        stub = course.chapters[1]
        assert stub.is_stub is True
        assert stub.title == "Chapter 2"
        assert [s.learnings for s in stub.sections] == [[]]

    def test_orphan_chapter_document_is_dangling(self, tmp_path):
        """A chapter folder with no outline chapter is recorded, not dropped."""
        course = _assemble(
            tmp_path, chapters={"01": chapter_doc(1), "04": chapter_doc(4)}
        )

        assert len(course.chapters) == 1
        assert len(course.dangling_chapters) == 1
        assert course.dangling_chapters[0].folder_number == 4
        assert course.dangling_chapters[0].title == "Chapter 4"

    def test_sections_matched_by_ix_not_list_position(self, tmp_path):
        doc = chapter_doc(1, n_sections=2)
        doc["sections"].reverse()
        course = _assemble(
            tmp_path, outline=outline_doc(n_sections=2), chapters={"01": doc}
        )

        sections = course.chapters[0].sections
        assert [s.ix for s in sections] == [1, 2]
        assert [s.title for s in sections] == ["Section 1.1", "Section 1.2"]
        assert all(len(s.learnings) == 1 for s in sections)

    def test_detail_only_sections_are_appended(self, tmp_path):
        course = _assemble(
            tmp_path,
            outline=outline_doc(n_sections=1),
            chapters={"01": chapter_doc(1, n_sections=2)},
        )

        sections = course.chapters[0].sections
        assert len(sections) == 2
        assert sections[1].ix == 2
        assert sections[1].title == "Section 1.2"

    def test_snake_case_and_camel_case_keys(self, tmp_path):
        doc = chapter_doc(1)
        learning = doc["sections"][0]["learnings"][0]
        learning["min_questions"] = learning.pop("minQuestions")
        learning["maxQuestions"] = 4
        answer = learning["questions"][0]["answers"][0]
        answer["isCorrect"] = answer.pop("is_correct")

        course = _assemble(tmp_path, chapters={"01": doc})

        built = course.chapters[0].sections[0].learnings[0]
        assert (built.min_questions, built.max_questions) == (2, 4)
        assert built.questions[0].answers[0].is_correct is True

    def test_unknown_values_are_kept_raw(self, tmp_path):
        """The assembler doesn't guess; the validator reports raw values."""
        doc = chapter_doc(1)
        question = doc["sections"][0]["learnings"][0]["questions"][0]
        question["type"] = "essay"
        question["difficulty"] = "HARD"

        course = _assemble(tmp_path, chapters={"01": doc})

        built = course.chapters[0].sections[0].learnings[0].questions[0]
        assert built.type == "essay"
        assert built.difficulty == Difficulty.hard

    def test_list_question_type_is_reported_not_raised(self, tmp_path):
        doc = chapter_doc(1)
        doc["sections"][0]["learnings"][0]["questions"][0]["type"] = ["mcq"]

        course = _assemble(tmp_path, chapters={"01": doc})
        violations = validate_tree(course)

        assert [(v.kind, v.field_name, v.path) for v in violations] == [
            (ViolationKind.InvalidValue, "type", (1, 1, 1, 1))
        ]

    def test_missing_optional_lifecycle_fields_left_empty(self, tmp_path):
        metadata = metadata_doc()
        del metadata["visibility"]
        doc = chapter_doc(1)
        del doc["sections"][0]["learnings"][0]["state"]

        course = _assemble(tmp_path, metadata=metadata, chapters={"01": doc})

        assert course.visibility is None
        assert course.chapters[0].sections[0].learnings[0].state is None

    def test_numeric_string_positions_are_coerced(self, tmp_path):
        doc = chapter_doc(1)
        doc["sections"][0]["learnings"][0]["ix"] = "1"
        course = _assemble(tmp_path, chapters={"01": doc})
        assert course.chapters[0].sections[0].learnings[0].ix == 1

    def test_document_order_recorded(self, tmp_path):
        course = _assemble(
            tmp_path, chapters={"01": chapter_doc(1, n_learnings=3)}
        )
        learnings = course.chapters[0].sections[0].learnings
        assert [learning.order for learning in learnings] == [0, 1, 2]
