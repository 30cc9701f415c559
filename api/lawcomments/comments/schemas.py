"""Pydantic schemas for law comments.

Request/Response models for:
- Public submission and the public-safe comment projection
- Admin listing filters, moderation and bulk moderation
- Moderation statistics
- Pagination anchors
"""

import base64
import json
import math
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import (
    Comment,
    CommentState,
    CommentStats,
    ModerationDecision,
)


MAX_SEARCH_LENGTH = 500


# ==============================================================================
# Request Schemas
# ==============================================================================


class CommentSubmissionRequest(BaseModel):
    """Raw public submission. Bounds are enforced by the validation layer."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    document_id: UUID | None = None
    paragraph_id: int
    display_name: str
    content: str


class ModerateCommentRequest(BaseModel):
    """Request to approve or reject a single comment."""

    decision: ModerationDecision
    reason: str | None = Field(None, description="Rejection reason")

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str | None) -> str | None:
        """Strip whitespace; blank reasons become None."""
        if v is None:
            return None
        return v.strip() or None


class BulkModerateRequest(ModerateCommentRequest):
    """Request to apply one decision to many comments."""

    comment_ids: list[UUID] = Field(..., min_length=1)


class CommentFilters(BaseModel):
    """Admin listing filters."""

    state: CommentState | None = None
    paragraph_id: int | None = Field(None, gt=0)
    date_from: datetime | None = None
    date_to: datetime | None = None
    search: str | None = Field(None, max_length=MAX_SEARCH_LENGTH)
    order: Literal["desc", "asc"] = "desc"

    @field_validator("search")
    @classmethod
    def validate_search(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    @model_validator(mode="after")
    def validate_date_range(self) -> "CommentFilters":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            msg = "תאריך התחלה חייב להיות לפני תאריך הסיום"
            raise ValueError(msg)
        return self


# ==============================================================================
# Response Schemas
# ==============================================================================


class PublicComment(BaseModel):
    """Public-safe projection: no address, user agent or moderation data."""

    comment_id: UUID
    paragraph_id: int
    display_name: str
    content: str
    submitted_at: datetime

    @classmethod
    def from_comment(cls, comment: Comment) -> "PublicComment":
        return cls(
            comment_id=comment.comment_id,
            paragraph_id=comment.paragraph_id,
            display_name=comment.display_name,
            content=comment.content,
            submitted_at=comment.submitted_at,
        )


class AdminComment(BaseModel):
    """Full comment as shown to moderators."""

    comment_id: UUID
    document_id: UUID
    paragraph_id: int
    display_name: str
    content: str
    submitter_address: str
    user_agent: str | None
    submitted_at: datetime
    state: CommentState
    moderated_by: str | None
    moderated_at: datetime | None
    rejection_reason: str | None
    updated_at: datetime | None

    @classmethod
    def from_comment(cls, comment: Comment) -> "AdminComment":
        return cls(
            comment_id=comment.comment_id,
            document_id=comment.document_id,
            paragraph_id=comment.paragraph_id,
            display_name=comment.display_name,
            content=comment.content,
            submitter_address=comment.submitter_address,
            user_agent=comment.user_agent,
            submitted_at=comment.submitted_at,
            state=comment.state,
            moderated_by=comment.moderated_by,
            moderated_at=comment.moderated_at,
            rejection_reason=comment.rejection_reason,
            updated_at=comment.updated_at,
        )


class ActionResponse(BaseModel):
    """Uniform result of a public action. Never carries internal details."""

    success: bool
    message: str | None = None
    data: PublicComment | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = None
    retry_after: int | None = None


class CommentPageResponse(BaseModel):
    """One page of the admin listing."""

    items: list[AdminComment]
    total: int
    page: int
    page_size: int
    total_pages: int
    anchor: str | None = Field(
        None, description="Pass back to keep later pages stable while new comments arrive"
    )


class ModerationResponse(BaseModel):
    comment: AdminComment
    changed: bool
    message: str


class BulkModerationItemResponse(BaseModel):
    comment_id: UUID
    success: bool
    changed: bool = False
    error_code: str | None = None
    error: str | None = None


class BulkModerationResponse(BaseModel):
    results: list[BulkModerationItemResponse]
    succeeded: int
    failed: int


class ParagraphStatsResponse(BaseModel):
    paragraph_id: int
    total: int
    pending: int
    approved: int
    rejected: int


class CommentStatsResponse(BaseModel):
    """Counts by moderation state, overall and per paragraph."""

    total: int
    pending: int
    approved: int
    rejected: int
    by_paragraph: list[ParagraphStatsResponse]

    @classmethod
    def from_stats(cls, stats: CommentStats) -> "CommentStatsResponse":
        return cls(
            total=stats.total,
            pending=stats.pending,
            approved=stats.approved,
            rejected=stats.rejected,
            by_paragraph=[
                ParagraphStatsResponse(
                    paragraph_id=p.paragraph_id,
                    total=p.total,
                    pending=p.pending,
                    approved=p.approved,
                    rejected=p.rejected,
                )
                for p in stats.by_paragraph
            ],
        )


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if page_size > 0 else 0


# ==============================================================================
# Pagination anchor
# ==============================================================================


def encode_anchor(submitted_at: datetime, comment_id: UUID) -> str:
    """Encode pagination anchor."""
    data: dict[str, Any] = {
        "submitted_at": submitted_at.isoformat(),
        "comment_id": str(comment_id),
    }
    return base64.urlsafe_b64encode(json.dumps(data).encode()).decode()


def decode_anchor(anchor: str) -> tuple[datetime, UUID]:
    """Decode pagination anchor.

    Raises:
        ValueError: If the anchor is malformed
    """
    try:
        data = json.loads(base64.urlsafe_b64decode(anchor.encode()).decode())
        return (
            datetime.fromisoformat(data["submitted_at"]),
            UUID(data["comment_id"]),
        )
    except (KeyError, TypeError, UnicodeDecodeError, json.JSONDecodeError) as e:
        msg = "Invalid pagination anchor"
        raise ValueError(msg) from e
