"""Read access to the currently active law document."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from lawcomments.core.logging import get_logger

from .models import LawDocument, LawParagraph


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)


class DocumentService:
    """Looks up the single active document and its paragraph set."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._get_active_documents = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.law_documents
            WHERE is_active = true
        """)

        self._get_paragraphs = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.law_paragraphs
            WHERE document_id = ?
        """)

    async def get_active_document(self) -> LawDocument | None:
        """Return the active document with its paragraphs, or None.

        At most one document is expected to be active. If storage ever holds
        more, the most recently published one wins and the anomaly is logged.
        """
        rows = list(await self.session.aexecute(self._get_active_documents))
        if not rows:
            return None

        candidates = [LawDocument.from_row(row) for row in rows]
        if len(candidates) > 1:
            logger.warning(
                "multiple_active_documents",
                document_ids=[str(d.document_id) for d in candidates],
            )
        document = max(candidates, key=lambda d: d.published_at or _EPOCH)

        paragraph_rows = await self.session.aexecute(
            self._get_paragraphs, [document.document_id]
        )
        document.paragraphs = sorted(
            (LawParagraph.from_row(row) for row in paragraph_rows),
            key=lambda p: (p.order_index, p.paragraph_id),
        )
        return document
