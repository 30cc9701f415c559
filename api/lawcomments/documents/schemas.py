"""Pydantic schemas for the public law document view."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .models import LawDocument


class ParagraphResponse(BaseModel):
    """Paragraph with the number of approved comments on it."""

    paragraph_id: int
    order_index: int
    section_title: str | None
    content: str
    comment_count: int = Field(0, description="Approved comments only")


class LawDocumentResponse(BaseModel):
    """Active law document as shown to the public."""

    document_id: UUID
    title: str
    description: str | None
    version: str
    published_at: datetime | None
    paragraphs: list[ParagraphResponse]

    @classmethod
    def from_document(
        cls, document: LawDocument, approved_counts: dict[int, int]
    ) -> "LawDocumentResponse":
        return cls(
            document_id=document.document_id,
            title=document.title,
            description=document.description,
            version=document.version,
            published_at=document.published_at,
            paragraphs=[
                ParagraphResponse(
                    paragraph_id=p.paragraph_id,
                    order_index=p.order_index,
                    section_title=p.section_title,
                    content=p.content,
                    comment_count=approved_counts.get(p.paragraph_id, 0),
                )
                for p in document.paragraphs
            ],
        )
