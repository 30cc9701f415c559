"""Moderation store: law comments persisted in Cassandra.

All comments of a document share one partition, so listing, filtering and
statistics read that partition and work on it in memory through the pure
helpers below. Writes go to the main table, the id lookup and the
per-submitter history table.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from lawcomments.core.logging import get_logger
from lawcomments.documents.models import as_utc

from .exceptions import (
    CommentConflictError,
    CommentError,
    CommentNotFoundError,
    CommentStorageError,
    CommentValidationError,
)
from .models import (
    Comment,
    CommentState,
    CommentStats,
    ModerationDecision,
    ParagraphStats,
    PriorSubmission,
)
from .schemas import CommentFilters, decode_anchor, encode_anchor


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)


@dataclass
class CommentPage:
    """One page of filtered comments plus the anchor that keeps pages stable."""

    items: list[Comment]
    total: int
    page: int
    page_size: int
    anchor: str | None


@dataclass
class ModerationOutcome:
    """Comment after a moderation action; changed is False for a no-op."""

    comment: Comment
    changed: bool


@dataclass
class BulkModerationItem:
    """Per-id result of a bulk moderation."""

    comment_id: UUID
    success: bool
    changed: bool = False
    error_code: str | None = None
    error: str | None = None
    document_id: UUID | None = None


# ==============================================================================
# Pure helpers
# ==============================================================================


def matches_filters(comment: Comment, filters: CommentFilters) -> bool:
    """Check a comment against state, paragraph, date range and search."""
    if filters.state is not None and comment.state != filters.state:
        return False
    if filters.paragraph_id is not None and comment.paragraph_id != filters.paragraph_id:
        return False
    if filters.date_from is not None and comment.submitted_at < as_utc(filters.date_from):
        return False
    if filters.date_to is not None and comment.submitted_at > as_utc(filters.date_to):
        return False
    if filters.search:
        needle = filters.search.casefold()
        haystacks = (comment.display_name.casefold(), comment.content.casefold())
        if not any(needle in haystack for haystack in haystacks):
            return False
    return True


def paginate_comments(
    comments: Iterable[Comment],
    filters: CommentFilters,
    page: int,
    page_size: int,
    anchor: str | None = None,
) -> CommentPage:
    """Filter, order and slice comments.

    Without an anchor, the newest matching comment becomes the anchor of the
    returned page. With one, comments submitted after it are excluded, so
    rows inserted between page requests never shift later pages.

    Raises:
        CommentValidationError: If the anchor is malformed
    """
    matching = [c for c in comments if matches_filters(c, filters)]

    if anchor:
        try:
            submitted_at, comment_id = decode_anchor(anchor)
        except ValueError as e:
            raise CommentValidationError({"anchor": ["עוגן עימוד לא תקין"]}) from e
        anchor_key = (as_utc(submitted_at), comment_id)
        matching = [c for c in matching if c.sort_key <= anchor_key]
    elif matching:
        anchor_key = max(c.sort_key for c in matching)
        anchor = encode_anchor(*anchor_key)

    matching.sort(key=lambda c: c.sort_key, reverse=filters.order == "desc")

    start = (page - 1) * page_size
    return CommentPage(
        items=matching[start : start + page_size],
        total=len(matching),
        page=page,
        page_size=page_size,
        anchor=anchor,
    )


def summarize_comments(comments: Iterable[Comment]) -> CommentStats:
    """Counts by state, overall and per paragraph (busiest paragraphs first)."""
    stats = CommentStats()
    per_paragraph: dict[int, ParagraphStats] = {}

    for comment in comments:
        paragraph = per_paragraph.setdefault(
            comment.paragraph_id, ParagraphStats(paragraph_id=comment.paragraph_id)
        )
        for bucket in (stats, paragraph):
            bucket.total += 1
            if comment.state == CommentState.PENDING:
                bucket.pending += 1
            elif comment.state == CommentState.APPROVED:
                bucket.approved += 1
            else:
                bucket.rejected += 1

    stats.by_paragraph = sorted(
        per_paragraph.values(), key=lambda p: (-p.total, p.paragraph_id)
    )
    return stats


# ==============================================================================
# Store
# ==============================================================================


class ModerationStore:
    """CRUD over law comments, restricted by the moderation state machine."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        history_ttl_seconds: int = 24 * 60 * 60,
    ):
        """Initialize with Cassandra session.

        Args:
            session: Cassandra session with aexecute()
            keyspace: Keyspace holding the comment tables
            history_ttl_seconds: Lifetime of per-submitter history rows
        """
        self.session = session
        self.keyspace = keyspace
        self.history_ttl_seconds = max(1, history_ttl_seconds)
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_lookup = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.law_comment_lookup
            (comment_id, document_id, submitted_at)
            VALUES (?, ?, ?)
            IF NOT EXISTS
        """)

        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.law_comments
            (document_id, submitted_at, comment_id, paragraph_id, display_name,
             content, submitter_address, user_agent, state, moderated_by,
             moderated_at, rejection_reason, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_by_submitter = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.law_comments_by_submitter
            (submitter_address, paragraph_id, submitted_at, comment_id, content)
            VALUES (?, ?, ?, ?, ?)
            USING TTL ?
        """)

        self._get_lookup = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.law_comment_lookup
            WHERE comment_id = ?
        """)

        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.law_comments
            WHERE document_id = ? AND submitted_at = ? AND comment_id = ?
        """)

        self._get_comments_by_document = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.law_comments
            WHERE document_id = ?
        """)

        self._get_recent_by_submitter = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.law_comments_by_submitter
            WHERE submitter_address = ? AND paragraph_id = ? AND submitted_at >= ?
        """)

        self._update_moderation = self.session.prepare(f"""
            UPDATE {self.keyspace}.law_comments
            SET state = ?, moderated_by = ?, moderated_at = ?,
                rejection_reason = ?, updated_at = ?
            WHERE document_id = ? AND submitted_at = ? AND comment_id = ?
        """)

        self._delete_comment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.law_comments
            WHERE document_id = ? AND submitted_at = ? AND comment_id = ?
        """)

        self._delete_lookup = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.law_comment_lookup
            WHERE comment_id = ?
        """)

        self._delete_by_submitter = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.law_comments_by_submitter
            WHERE submitter_address = ? AND paragraph_id = ?
            AND submitted_at = ? AND comment_id = ?
        """)

    async def _execute(self, operation: str, statement: Any, params: list | None = None):
        """Run a statement, wrapping driver failures as CommentStorageError."""
        try:
            return await self.session.aexecute(statement, params)
        except CommentError:
            raise
        except Exception as e:
            logger.exception(
                "comment_storage_failed",
                operation=operation,
                error_type=type(e).__name__,
            )
            raise CommentStorageError from e

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def submit(self, comment: Comment) -> Comment:
        """Insert a new comment.

        Raises:
            CommentConflictError: If a comment with the same id exists
            CommentStorageError: On persistence failure
        """
        result = await self._execute(
            "submit",
            self._insert_lookup,
            [comment.comment_id, comment.document_id, comment.submitted_at],
        )
        if not getattr(result, "was_applied", True):
            raise CommentConflictError

        try:
            await self._execute(
                "submit",
                self._insert_comment,
                [
                    comment.document_id,
                    comment.submitted_at,
                    comment.comment_id,
                    comment.paragraph_id,
                    comment.display_name,
                    comment.content,
                    comment.submitter_address,
                    comment.user_agent,
                    comment.state.value,
                    comment.moderated_by,
                    comment.moderated_at,
                    comment.rejection_reason,
                    comment.updated_at,
                ],
            )
            await self._execute(
                "submit",
                self._insert_by_submitter,
                [
                    comment.submitter_address,
                    comment.paragraph_id,
                    comment.submitted_at,
                    comment.comment_id,
                    comment.content,
                    self.history_ttl_seconds,
                ],
            )
        except CommentStorageError:
            await self._discard_submission(comment)
            raise
        return comment

    async def _discard_submission(self, comment: Comment) -> None:
        """Remove whatever a failed submit already wrote.

        Deleting a row that was never written is harmless, so every table is
        cleared. Cleanup failures are logged and never mask the original error.
        """
        statements = [
            (
                self._delete_comment,
                [comment.document_id, comment.submitted_at, comment.comment_id],
            ),
            (
                self._delete_by_submitter,
                [
                    comment.submitter_address,
                    comment.paragraph_id,
                    comment.submitted_at,
                    comment.comment_id,
                ],
            ),
            (self._delete_lookup, [comment.comment_id]),
        ]
        for statement, params in statements:
            try:
                await self.session.aexecute(statement, params)
            except Exception as e:
                logger.warning(
                    "comment_submit_cleanup_failed",
                    comment_id=str(comment.comment_id),
                    error_type=type(e).__name__,
                )

    async def moderate(
        self,
        comment_id: UUID,
        decision: ModerationDecision,
        moderator: str,
        reason: str | None = None,
    ) -> ModerationOutcome:
        """Apply a moderation decision to one comment.

        Pending -> Approved | Rejected and Approved <-> Rejected are allowed;
        a decision matching the current state is a no-op unless it is a
        rejection carrying a new reason.

        Raises:
            CommentNotFoundError: If the comment does not exist
            CommentStorageError: On persistence failure
        """
        comment = await self.get(comment_id)
        changed = comment.apply_decision(decision, moderator, reason)
        if changed:
            await self._execute(
                "moderate",
                self._update_moderation,
                [
                    comment.state.value,
                    comment.moderated_by,
                    comment.moderated_at,
                    comment.rejection_reason,
                    comment.updated_at,
                    comment.document_id,
                    comment.submitted_at,
                    comment.comment_id,
                ],
            )
        return ModerationOutcome(comment=comment, changed=changed)

    async def bulk_moderate(
        self,
        comment_ids: Iterable[UUID],
        decision: ModerationDecision,
        moderator: str,
        reason: str | None = None,
    ) -> list[BulkModerationItem]:
        """Apply one decision to many comments, each independently.

        Repeated ids are processed once. A failing id is reported in its
        own result and never affects the others.
        """
        results = []
        for comment_id in dict.fromkeys(comment_ids):
            try:
                outcome = await self.moderate(comment_id, decision, moderator, reason)
            except CommentError as e:
                results.append(
                    BulkModerationItem(
                        comment_id=comment_id,
                        success=False,
                        error_code=e.code,
                        error=e.message,
                    )
                )
            else:
                results.append(
                    BulkModerationItem(
                        comment_id=comment_id,
                        success=True,
                        changed=outcome.changed,
                        document_id=outcome.comment.document_id,
                    )
                )
        return results

    async def delete(self, comment_id: UUID) -> Comment:
        """Hard-delete a comment from every table.

        Raises:
            CommentNotFoundError: If the comment does not exist
        """
        comment = await self.get(comment_id)
        await self._execute(
            "delete",
            self._delete_comment,
            [comment.document_id, comment.submitted_at, comment.comment_id],
        )
        await self._execute(
            "delete",
            self._delete_by_submitter,
            [
                comment.submitter_address,
                comment.paragraph_id,
                comment.submitted_at,
                comment.comment_id,
            ],
        )
        await self._execute("delete", self._delete_lookup, [comment.comment_id])
        return comment

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get(self, comment_id: UUID) -> Comment:
        """Fetch one comment by id.

        Raises:
            CommentNotFoundError: If the comment does not exist
        """
        lookup = (await self._execute("get", self._get_lookup, [comment_id])).one()
        if lookup is None:
            raise CommentNotFoundError

        row = (
            await self._execute(
                "get",
                self._get_comment,
                [lookup.document_id, lookup.submitted_at, comment_id],
            )
        ).one()
        if row is None:
            raise CommentNotFoundError
        return Comment.from_row(row)

    async def list_all(self, document_id: UUID) -> list[Comment]:
        """Every comment of a document, newest first."""
        rows = await self._execute(
            "list", self._get_comments_by_document, [document_id]
        )
        return [Comment.from_row(row) for row in rows]

    async def list_filtered(
        self,
        document_id: UUID,
        filters: CommentFilters,
        page: int = 1,
        page_size: int = 50,
        anchor: str | None = None,
    ) -> CommentPage:
        """Filtered, ordered page of a document's comments with the total count."""
        return paginate_comments(
            await self.list_all(document_id), filters, page, page_size, anchor
        )

    async def approved_for_paragraph(
        self, document_id: UUID, paragraph_id: int, limit: int
    ) -> list[Comment]:
        """Newest approved comments on one paragraph."""
        page = paginate_comments(
            await self.list_all(document_id),
            CommentFilters(state=CommentState.APPROVED, paragraph_id=paragraph_id),
            page=1,
            page_size=limit,
        )
        return page.items

    async def approved_counts(self, document_id: UUID) -> dict[int, int]:
        """Approved comment count per paragraph."""
        stats = summarize_comments(await self.list_all(document_id))
        return {p.paragraph_id: p.approved for p in stats.by_paragraph if p.approved}

    async def stats(self, document_id: UUID) -> CommentStats:
        """Counts by state and per paragraph, from current data."""
        return summarize_comments(await self.list_all(document_id))

    async def recent_by_submitter(
        self, submitter_address: str, paragraph_id: int, since: datetime
    ) -> list[PriorSubmission]:
        """The submitter's comments on a paragraph since a point in time."""
        rows = await self._execute(
            "recent_by_submitter",
            self._get_recent_by_submitter,
            [submitter_address, paragraph_id, since],
        )
        return [PriorSubmission.from_row(row) for row in rows]
