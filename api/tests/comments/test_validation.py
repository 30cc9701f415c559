"""Tests for comment submission validation."""

from dataclasses import replace
from uuid import uuid4

import pytest

from lawcomments.comments.exceptions import CommentValidationError
from lawcomments.comments.schemas import CommentSubmissionRequest
from lawcomments.comments.validation import CommentSubmissionValidator


@pytest.fixture
def validator() -> CommentSubmissionValidator:
    return CommentSubmissionValidator()


def submission(**overrides) -> dict:
    data = {"paragraph_id": 3, "display_name": "Dana", "content": "טקסט תקין"}
    data.update(overrides)
    return data


def field_errors(validator, raw, document) -> dict[str, list[str]]:
    with pytest.raises(CommentValidationError) as exc_info:
        validator.validate(raw, document)
    return exc_info.value.field_errors


class TestValidSubmission:
    """Tests for submissions that pass validation."""

    def test_returns_parsed_request_bound_to_document(self, validator, law_document):
        request = validator.validate(submission(), law_document)

        assert isinstance(request, CommentSubmissionRequest)
        assert request.document_id == law_document.document_id
        assert request.paragraph_id == 3
        assert request.display_name == "Dana"

    def test_matching_document_id_is_accepted(self, validator, law_document):
        raw = submission(document_id=str(law_document.document_id))

        request = validator.validate(raw, law_document)

        assert request.document_id == law_document.document_id

    def test_whitespace_is_stripped(self, validator, law_document):
        request = validator.validate(
            submission(display_name="  דנה כהן ", content="  טקסט תקין  "), law_document
        )

        assert request.display_name == "דנה כהן"
        assert request.content == "טקסט תקין"

    def test_numeric_string_paragraph_is_coerced(self, validator, law_document):
        request = validator.validate(submission(paragraph_id="2"), law_document)

        assert request.paragraph_id == 2

    @pytest.mark.parametrize("name", ["Dana", "דנה", "O'Brien", "Jean-Luc", "דנה Cohen"])
    def test_allowed_display_names(self, validator, law_document, name):
        validator.validate(submission(display_name=name), law_document)

    def test_content_at_minimum_length(self, validator, law_document):
        validator.validate(submission(content="abcde"), law_document)

    def test_content_at_maximum_length(self, validator, law_document):
        validator.validate(submission(content="א" * 5000), law_document)

    def test_accepts_prebuilt_request(self, validator, law_document):
        raw = CommentSubmissionRequest(paragraph_id=1, display_name="Dana", content="טקסט תקין")

        request = validator.validate(raw, law_document)

        assert request.paragraph_id == 1


class TestShapeErrors:
    """Tests for missing or malformed fields."""

    def test_missing_fields_are_all_reported(self, validator, law_document):
        errors = field_errors(validator, {}, law_document)

        assert set(errors) == {"paragraph_id", "display_name", "content"}
        assert errors["content"] == ["תוכן התגובה נדרש"]

    def test_non_integer_paragraph(self, validator, law_document):
        errors = field_errors(validator, submission(paragraph_id="abc"), law_document)

        assert errors == {"paragraph_id": ["מספר הפסקה חייב להיות מספר שלם"]}

    def test_malformed_document_id(self, validator, law_document):
        errors = field_errors(validator, submission(document_id="not-a-uuid"), law_document)

        assert "document_id" in errors

    @pytest.mark.parametrize("raw", [None, "text", ["list"]])
    def test_non_mapping_input(self, validator, law_document, raw):
        errors = field_errors(validator, raw, law_document)

        assert errors == {"__root__": ["נתונים לא תקינים"]}


class TestBounds:
    """Tests for content and display name bounds."""

    def test_content_too_short(self, validator, law_document):
        errors = field_errors(validator, submission(content="abcd"), law_document)

        assert errors == {"content": ["תגובה חייבת להכיל לפחות 5 תווים"]}

    def test_content_too_long(self, validator, law_document):
        errors = field_errors(validator, submission(content="א" * 5001), law_document)

        assert errors == {"content": ["תגובה ארוכה מדי (מקסימום 5000 תווים)"]}

    def test_blank_display_name(self, validator, law_document):
        errors = field_errors(validator, submission(display_name="   "), law_document)

        assert errors == {"display_name": ["שם נדרש"]}

    def test_display_name_too_long(self, validator, law_document):
        errors = field_errors(validator, submission(display_name="a" * 101), law_document)

        assert errors["display_name"] == ["שם ארוך מדי (מקסימום 100 תווים)"]

    @pytest.mark.parametrize("name", ["Dana123", "<b>Dana</b>", "Dana!"])
    def test_display_name_characters(self, validator, law_document, name):
        errors = field_errors(validator, submission(display_name=name), law_document)

        assert "display_name" in errors

    def test_every_violation_is_reported_together(self, validator, law_document):
        raw = submission(display_name="x1", content="abc", paragraph_id=99)

        errors = field_errors(validator, raw, law_document)

        assert set(errors) == {"content", "display_name", "paragraph_id"}

    def test_custom_bounds(self, law_document):
        validator = CommentSubmissionValidator(min_content_length=10, max_display_name_length=3)

        errors = field_errors(
            validator, submission(display_name="Dana", content="short"), law_document
        )

        assert set(errors) == {"content", "display_name"}


class TestDocumentChecks:
    """Tests for checks against the active document."""

    def test_no_active_document(self, validator):
        errors = field_errors(validator, submission(), None)

        assert errors == {"document_id": ["אין מסמך חוק פעיל להגבה"]}

    def test_inactive_document(self, validator, law_document):
        inactive = replace(law_document, is_active=False)

        errors = field_errors(validator, submission(), inactive)

        assert "document_id" in errors

    def test_other_document_id(self, validator, law_document):
        errors = field_errors(validator, submission(document_id=str(uuid4())), law_document)

        assert errors == {"document_id": ["המסמך שנבחר אינו המסמך הפעיל"]}

    @pytest.mark.parametrize("paragraph_id", [0, 6, 99, -1])
    def test_unknown_paragraph(self, validator, law_document, paragraph_id):
        errors = field_errors(
            validator, submission(paragraph_id=paragraph_id), law_document
        )

        assert errors == {"paragraph_id": ["הפסקה שנבחרה לא נמצאה"]}
