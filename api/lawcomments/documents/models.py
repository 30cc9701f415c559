"""Database models for the published law document.

Cassandra table definitions for:
- Law documents: title, version and the active flag
- Law paragraphs: the ordered, addressable units citizens comment on

Documents are authored elsewhere; this service only reads them.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

LAW_DOCUMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.law_documents (
    document_id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    version TEXT,
    is_active BOOLEAN,
    published_at TIMESTAMP
)
"""

# Lets the active document be found without a full scan
LAW_DOCUMENTS_ACTIVE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS law_documents_active_idx
ON {keyspace}.law_documents (is_active)
"""

# Paragraphs partitioned by document, clustered in reading order
LAW_PARAGRAPHS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.law_paragraphs (
    document_id UUID,
    order_index INT,
    paragraph_id INT,
    section_title TEXT,
    content TEXT,
    PRIMARY KEY ((document_id), order_index, paragraph_id)
) WITH CLUSTERING ORDER BY (order_index ASC, paragraph_id ASC)
"""

DOCUMENTS_TABLES_CQL = [
    LAW_DOCUMENTS_TABLE_CQL,
    LAW_DOCUMENTS_ACTIVE_INDEX_CQL,
    LAW_PARAGRAPHS_TABLE_CQL,
]


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps returned by the driver."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class LawParagraph:
    """One addressable paragraph of a law document."""

    paragraph_id: int
    document_id: UUID
    order_index: int
    section_title: str | None
    content: str

    @classmethod
    def from_row(cls, row: Any) -> "LawParagraph":
        """Create LawParagraph from Cassandra row."""
        return cls(
            paragraph_id=row.paragraph_id,
            document_id=row.document_id,
            order_index=row.order_index,
            section_title=row.section_title,
            content=row.content or "",
        )


@dataclass
class LawDocument:
    """Law document with its paragraphs in reading order."""

    document_id: UUID
    title: str
    description: str | None
    version: str
    is_active: bool
    published_at: datetime | None
    paragraphs: list[LawParagraph] = field(default_factory=list)

    @classmethod
    def from_row(
        cls, row: Any, paragraphs: list[LawParagraph] | None = None
    ) -> "LawDocument":
        """Create LawDocument from Cassandra row."""
        return cls(
            document_id=row.document_id,
            title=row.title or "",
            description=row.description,
            version=row.version or "",
            is_active=bool(row.is_active),
            published_at=as_utc(row.published_at),
            paragraphs=sorted(
                paragraphs or [], key=lambda p: (p.order_index, p.paragraph_id)
            ),
        )

    @property
    def paragraph_ids(self) -> set[int]:
        return {p.paragraph_id for p in self.paragraphs}

    def has_paragraph(self, paragraph_id: int) -> bool:
        """Check that the paragraph belongs to this document."""
        return paragraph_id in self.paragraph_ids
