"""The published law document that comments are attached to."""

from .models import DOCUMENTS_TABLES_CQL, LawDocument, LawParagraph
from .service import DocumentService


__all__ = [
    "DOCUMENTS_TABLES_CQL",
    "DocumentService",
    "LawDocument",
    "LawParagraph",
]
