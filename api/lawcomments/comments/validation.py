"""Validation layer for public comment submissions.

Checks the raw submission's shape, the content and display name bounds, and
that the target paragraph belongs to the active document. Every violation is
collected and reported at once; nothing is applied on failure.
"""

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from lawcomments.documents.models import LawDocument

from .exceptions import CommentValidationError
from .schemas import CommentSubmissionRequest


if TYPE_CHECKING:
    from lawcomments.config.settings import Settings


# Hebrew and Latin letters, spaces, hyphens and apostrophes
NAME_PATTERN = re.compile(r"^[\u0590-\u05FFa-zA-Z\s'\-]+$")

SHAPE_MESSAGES = {
    "document_id": "מזהה המסמך לא תקין",
    "paragraph_id": "מספר הפסקה חייב להיות מספר שלם",
    "display_name": "שם לא תקין",
    "content": "תוכן התגובה לא תקין",
}

REQUIRED_MESSAGES = {
    "paragraph_id": "מספר הפסקה נדרש",
    "display_name": "שם נדרש",
    "content": "תוכן התגובה נדרש",
}


def _shape_errors(error: ValidationError) -> dict[str, list[str]]:
    field_errors: dict[str, list[str]] = {}
    for item in error.errors():
        loc = item.get("loc") or ("__root__",)
        name = str(loc[0])
        if item.get("type") == "missing":
            message = REQUIRED_MESSAGES.get(name, "שדה חובה")
        else:
            message = SHAPE_MESSAGES.get(name, "ערך לא תקין")
        field_errors.setdefault(name, []).append(message)
    return field_errors


class CommentSubmissionValidator:
    """Validates raw submissions against bounds and the active document."""

    def __init__(
        self,
        min_content_length: int = 5,
        max_content_length: int = 5000,
        max_display_name_length: int = 100,
    ):
        self.min_content_length = min_content_length
        self.max_content_length = max_content_length
        self.max_display_name_length = max_display_name_length

    @classmethod
    def from_settings(cls, settings: "Settings") -> "CommentSubmissionValidator":
        return cls(
            min_content_length=settings.min_content_length,
            max_content_length=settings.max_content_length,
            max_display_name_length=settings.max_display_name_length,
        )

    def parse(
        self, raw: CommentSubmissionRequest | Mapping[str, Any]
    ) -> CommentSubmissionRequest:
        """Coerce raw input into a submission request.

        Raises:
            CommentValidationError: If required fields are missing or malformed
        """
        if isinstance(raw, CommentSubmissionRequest):
            return raw
        if not isinstance(raw, Mapping):
            raise CommentValidationError({"__root__": ["נתונים לא תקינים"]})
        try:
            return CommentSubmissionRequest.model_validate(raw)
        except ValidationError as e:
            raise CommentValidationError(_shape_errors(e)) from e

    def content_errors(self, content: str) -> list[str]:
        """Bounds violations for (trimmed) comment content."""
        length = len(content.strip())
        if length < self.min_content_length:
            return [f"תגובה חייבת להכיל לפחות {self.min_content_length} תווים"]
        if length > self.max_content_length:
            return [f"תגובה ארוכה מדי (מקסימום {self.max_content_length} תווים)"]
        return []

    def display_name_errors(self, display_name: str) -> list[str]:
        name = display_name.strip()
        if not name:
            return ["שם נדרש"]
        errors = []
        if len(name) > self.max_display_name_length:
            errors.append(
                f"שם ארוך מדי (מקסימום {self.max_display_name_length} תווים)"
            )
        if not NAME_PATTERN.match(name):
            errors.append(
                "שם יכול להכיל רק אותיות בעברית או אנגלית, רווחים, מקפים וגרשיים"
            )
        return errors

    def document_errors(
        self, request: CommentSubmissionRequest, document: LawDocument | None
    ) -> dict[str, list[str]]:
        if document is None or not document.is_active:
            return {"document_id": ["אין מסמך חוק פעיל להגבה"]}
        if request.document_id is not None and request.document_id != document.document_id:
            return {"document_id": ["המסמך שנבחר אינו המסמך הפעיל"]}
        if not document.has_paragraph(request.paragraph_id):
            return {"paragraph_id": ["הפסקה שנבחרה לא נמצאה"]}
        return {}

    def validate(
        self,
        raw: CommentSubmissionRequest | Mapping[str, Any],
        document: LawDocument | None,
    ) -> CommentSubmissionRequest:
        """Validate a submission against bounds and the active document.

        Returns:
            The parsed request, with document_id filled in from the document

        Raises:
            CommentValidationError: With every field-level violation found
        """
        request = self.parse(raw)

        field_errors: dict[str, list[str]] = {
            "content": self.content_errors(request.content),
            "display_name": self.display_name_errors(request.display_name),
            **self.document_errors(request, document),
        }
        field_errors = {name: errors for name, errors in field_errors.items() if errors}

        if field_errors:
            raise CommentValidationError(field_errors)

        return request.model_copy(update={"document_id": document.document_id})
