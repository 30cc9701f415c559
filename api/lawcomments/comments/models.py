"""Database models for law paragraph comments.

Cassandra table definitions for:
- Comments: main table, one partition per law document
- Comment lookup: comment_id -> primary key of the main row
- Comments by submitter: recent history per (address, paragraph) for
  duplicate detection, expiring with the lookback window

Moderation state machine:
- New comments start Pending (or Rejected when flagged as spam)
- Pending -> Approved | Rejected
- Approved <-> Rejected
- Nothing ever returns to Pending: ModerationDecision has no such member
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from lawcomments.documents.models import as_utc


class CommentState(str, Enum):
    """Moderation state of a comment."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ModerationDecision(str, Enum):
    """Target state of a moderation action."""

    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def state(self) -> CommentState:
        return CommentState(self.value)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Main comments table
# Partition by document (a single active document at a time)
# Clustering by submission time for newest-first admin listings
LAW_COMMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.law_comments (
    document_id UUID,
    submitted_at TIMESTAMP,
    comment_id UUID,
    paragraph_id INT,
    display_name TEXT,
    content TEXT,
    submitter_address TEXT,
    user_agent TEXT,
    state TEXT,
    moderated_by TEXT,
    moderated_at TIMESTAMP,
    rejection_reason TEXT,
    updated_at TIMESTAMP,
    PRIMARY KEY ((document_id), submitted_at, comment_id)
) WITH CLUSTERING ORDER BY (submitted_at DESC, comment_id DESC)
"""

# O(1) lookup of the main row's clustering key by comment id
LAW_COMMENT_LOOKUP_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.law_comment_lookup (
    comment_id UUID PRIMARY KEY,
    document_id UUID,
    submitted_at TIMESTAMP
)
"""

# Recent submissions per submitter and paragraph (rows written with a TTL)
LAW_COMMENTS_BY_SUBMITTER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.law_comments_by_submitter (
    submitter_address TEXT,
    paragraph_id INT,
    submitted_at TIMESTAMP,
    comment_id UUID,
    content TEXT,
    PRIMARY KEY ((submitter_address, paragraph_id), submitted_at, comment_id)
) WITH CLUSTERING ORDER BY (submitted_at DESC, comment_id DESC)
"""

COMMENTS_TABLES_CQL = [
    LAW_COMMENTS_TABLE_CQL,
    LAW_COMMENT_LOOKUP_TABLE_CQL,
    LAW_COMMENTS_BY_SUBMITTER_TABLE_CQL,
]

# Shared rate-limit and history key for requests without a resolvable address
UNKNOWN_SUBMITTER = "unknown"


def utc_now() -> datetime:
    """Current UTC time truncated to Cassandra's millisecond precision."""
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Comment:
    """Comment on a law paragraph with its moderation metadata."""

    comment_id: UUID
    document_id: UUID
    paragraph_id: int
    display_name: str
    content: str
    submitter_address: str
    user_agent: str | None
    submitted_at: datetime
    state: CommentState
    moderated_by: str | None = None
    moderated_at: datetime | None = None
    rejection_reason: str | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from Cassandra row."""
        submitted_at = as_utc(row.submitted_at)
        return cls(
            comment_id=row.comment_id,
            document_id=row.document_id,
            paragraph_id=row.paragraph_id,
            display_name=row.display_name or "",
            content=row.content or "",
            submitter_address=row.submitter_address or UNKNOWN_SUBMITTER,
            user_agent=row.user_agent,
            submitted_at=submitted_at,
            state=CommentState(row.state),
            moderated_by=row.moderated_by,
            moderated_at=as_utc(row.moderated_at),
            rejection_reason=row.rejection_reason,
            updated_at=as_utc(row.updated_at) or submitted_at,
        )

    @property
    def is_public(self) -> bool:
        """Only approved comments are visible to the public."""
        return self.state == CommentState.APPROVED

    @property
    def sort_key(self) -> tuple[datetime, UUID]:
        return (self.submitted_at, self.comment_id)

    def apply_decision(
        self,
        decision: ModerationDecision,
        moderator: str,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> bool:
        """Move the comment to the decided state.

        Returns False, leaving the comment untouched, when it already holds
        that state. Rejecting an already rejected comment with a new reason
        records the reason and the moderator. Approving clears any previous
        rejection reason.
        """
        target = decision.state
        new_reason = (
            target == CommentState.REJECTED
            and bool(reason)
            and reason != self.rejection_reason
        )
        if self.state == target and not new_reason:
            return False

        now = now or utc_now()
        self.state = target
        self.moderated_by = moderator
        self.moderated_at = now
        self.updated_at = now
        self.rejection_reason = reason if target == CommentState.REJECTED else None
        return True


@dataclass
class PriorSubmission:
    """A submitter's earlier comment, as used by duplicate detection."""

    paragraph_id: int
    content: str
    submitted_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "PriorSubmission":
        return cls(
            paragraph_id=row.paragraph_id,
            content=row.content or "",
            submitted_at=as_utc(row.submitted_at),
        )


@dataclass
class ParagraphStats:
    """Comment counts for one paragraph."""

    paragraph_id: int
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0


@dataclass
class CommentStats:
    """Counts by moderation state, overall and per paragraph."""

    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    by_paragraph: list[ParagraphStats] = field(default_factory=list)


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_comment(
    document_id: UUID,
    paragraph_id: int,
    display_name: str,
    content: str,
    submitter_address: str | None,
    user_agent: str | None = None,
    state: CommentState = CommentState.PENDING,
    rejection_reason: str | None = None,
) -> Comment:
    """Create a new comment with default values."""
    now = utc_now()
    return Comment(
        comment_id=uuid4(),
        document_id=document_id,
        paragraph_id=paragraph_id,
        display_name=display_name,
        content=content,
        submitter_address=submitter_address or UNKNOWN_SUBMITTER,
        user_agent=user_agent,
        submitted_at=now,
        state=state,
        rejection_reason=rejection_reason,
        updated_at=now,
    )
