"""Comment intake and moderation service layer.

Orchestrates:
- Public submission: validation, rate limiting, abuse detection,
  sanitization, persistence and view revalidation
- Admin moderation: listing, single and bulk decisions, stats and deletion
- Public reads: the active law document and approved comments
"""

from typing import TYPE_CHECKING
from uuid import UUID

from lawcomments.config.settings import Settings, get_settings
from lawcomments.core.logging import get_logger
from lawcomments.core.redis import stats_cache_key, view_cache_key
from lawcomments.documents.schemas import LawDocumentResponse

from .abuse import AbuseDetector
from .exceptions import (
    CommentError,
    CommentNotFoundError,
    CommentStorageError,
    CommentUnauthorizedError,
    CommentValidationError,
    DuplicateCommentError,
    RateLimitedError,
)
from .models import (
    UNKNOWN_SUBMITTER,
    Comment,
    CommentState,
    ModerationDecision,
    create_comment,
    utc_now,
)
from .rate_limiter import FixedWindowRateLimiter
from .revalidation import ADMIN_COMMENTS_VIEW, LAW_DOCUMENT_VIEW, ViewRevalidator
from .sanitizer import sanitize_content
from .schemas import (
    ActionResponse,
    CommentFilters,
    CommentStatsResponse,
    PublicComment,
)
from .store import BulkModerationItem, CommentPage, ModerationOutcome, ModerationStore
from .validation import CommentSubmissionValidator


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from lawcomments.auth.schemas import AdminIdentity
    from lawcomments.documents.service import DocumentService


logger = get_logger(__name__)

SUBMITTED_MESSAGE = "התגובה נשלחה בהצלחה! היא תופיע לאחר אישור המנהל."
SUBMISSION_FAILED_MESSAGE = "שגיאה בשליחת התגובה. אנא נסה שוב."
APPROVED_MESSAGE = "התגובה אושרה בהצלחה"
REJECTED_MESSAGE = "התגובה נדחתה"
UNCHANGED_MESSAGE = "התגובה כבר נמצאת במצב המבוקש"


class ModerationService:
    """Public submission pipeline plus authorization-gated admin operations."""

    def __init__(
        self,
        store: ModerationStore,
        documents: "DocumentService",
        rate_limiter: FixedWindowRateLimiter,
        detector: AbuseDetector,
        validator: CommentSubmissionValidator,
        revalidator: ViewRevalidator | None = None,
        redis: "Redis | None" = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.documents = documents
        self.rate_limiter = rate_limiter
        self.detector = detector
        self.validator = validator
        self.revalidator = revalidator or ViewRevalidator()
        self.redis = redis
        self.settings = settings or get_settings()

    # ==========================================================================
    # Public submission
    # ==========================================================================

    async def submit_comment(
        self,
        raw: object,
        submitter_address: str | None,
        user_agent: str | None = None,
    ) -> ActionResponse:
        """Submit a comment from the public site.

        Never raises: every failure is reported through the uniform
        ActionResponse, and storage or unexpected errors carry only a
        generic message.
        """
        try:
            comment = await self._submit(raw, submitter_address, user_agent)
        except CommentValidationError as e:
            return ActionResponse(
                success=False, error=e.message, error_code=e.code, errors=e.field_errors
            )
        except RateLimitedError as e:
            return ActionResponse(
                success=False,
                error=e.message,
                error_code=e.code,
                retry_after=e.retry_after,
            )
        except CommentStorageError as e:
            return ActionResponse(
                success=False, error=SUBMISSION_FAILED_MESSAGE, error_code=e.code
            )
        except CommentError as e:
            return ActionResponse(success=False, error=e.message, error_code=e.code)
        except Exception:
            logger.exception(
                "comment_submission_failed",
                submitter_address=submitter_address,
            )
            return ActionResponse(
                success=False,
                error=SUBMISSION_FAILED_MESSAGE,
                error_code="internal_error",
            )

        return ActionResponse(
            success=True,
            message=SUBMITTED_MESSAGE,
            data=PublicComment.from_comment(comment),
        )

    async def _submit(
        self,
        raw: object,
        submitter_address: str | None,
        user_agent: str | None,
    ) -> Comment:
        document = await self.documents.get_active_document()
        request = self.validator.validate(raw, document)
        address = submitter_address or UNKNOWN_SUBMITTER

        limit = self.rate_limiter.check(address)
        if not limit.allowed:
            logger.warning(
                "rate_limit_exceeded",
                submitter_address=address,
                limit=limit.limit,
                reset_at=limit.reset_at.isoformat(),
            )
            raise RateLimitedError(limit.reset_at, limit.limit)

        now = utc_now()
        history = await self.store.recent_by_submitter(
            address, request.paragraph_id, now - self.detector.lookback
        )
        verdict = self.detector.evaluate(
            request.paragraph_id,
            request.content,
            history,
            display_name=request.display_name,
            now=now,
        )
        if verdict.is_duplicate:
            logger.info(
                "comment_duplicate_rejected",
                submitter_address=address,
                paragraph_id=request.paragraph_id,
            )
            raise DuplicateCommentError

        content = sanitize_content(request.content)
        content_errors = self.validator.content_errors(content)
        if content_errors:
            raise CommentValidationError({"content": content_errors})

        comment = create_comment(
            document_id=document.document_id,
            paragraph_id=request.paragraph_id,
            display_name=request.display_name,
            content=content,
            submitter_address=address,
            user_agent=user_agent,
            state=CommentState.REJECTED if verdict.is_spam else CommentState.PENDING,
            rejection_reason=verdict.rejection_reason,
        )
        await self.store.submit(comment)

        if verdict.is_spam:
            logger.warning(
                "comment_spam_rejected",
                comment_id=str(comment.comment_id),
                submitter_address=address,
                spam_score=verdict.spam_score,
                signals=[signal.name for signal in verdict.signals],
            )
        else:
            logger.info(
                "comment_submitted",
                comment_id=str(comment.comment_id),
                paragraph_id=comment.paragraph_id,
                submitter_address=address,
                remaining=limit.remaining,
            )

        await self._after_write(comment.document_id)
        return comment

    # ==========================================================================
    # Public reads
    # ==========================================================================

    async def get_law_document(self) -> LawDocumentResponse | None:
        """Active document with approved comment counts, served from cache."""
        key = view_cache_key(LAW_DOCUMENT_VIEW)
        cached = await self._cache_get(key)
        if cached:
            return LawDocumentResponse.model_validate_json(cached)

        document = await self.documents.get_active_document()
        if document is None:
            return None

        counts = await self.store.approved_counts(document.document_id)
        response = LawDocumentResponse.from_document(document, counts)
        await self._cache_set(
            key, self.settings.view_cache_ttl_seconds, response.model_dump_json()
        )
        return response

    async def get_paragraph_comments(
        self, paragraph_id: int, limit: int | None = None
    ) -> list[PublicComment]:
        """Approved comments on one paragraph of the active document, newest first.

        Raises:
            CommentNotFoundError: If there is no such paragraph
        """
        document = await self.documents.get_active_document()
        if document is None or not document.has_paragraph(paragraph_id):
            raise CommentNotFoundError("הפסקה לא נמצאה")

        limit = min(
            max(1, limit or self.settings.public_comments_limit),
            self.settings.public_comments_limit,
        )
        comments = await self.store.approved_for_paragraph(
            document.document_id, paragraph_id, limit
        )
        return [PublicComment.from_comment(c) for c in comments]

    # ==========================================================================
    # Admin operations
    # ==========================================================================

    @staticmethod
    def _require_admin(admin: "AdminIdentity | None") -> "AdminIdentity":
        if admin is None:
            raise CommentUnauthorizedError
        return admin

    def _check_reason(self, reason: str | None) -> None:
        max_length = self.settings.max_rejection_reason_length
        if reason and len(reason) > max_length:
            raise CommentValidationError(
                {"reason": [f"סיבת הדחייה ארוכה מדי (מקסימום {max_length} תווים)"]}
            )

    async def admin_list_comments(
        self,
        admin: "AdminIdentity | None",
        filters: CommentFilters | None = None,
        page: int = 1,
        page_size: int | None = None,
        anchor: str | None = None,
    ) -> CommentPage:
        """Filtered, paginated comments of the active document.

        Raises:
            CommentUnauthorizedError: If no admin identity is present
            CommentValidationError: If the anchor is malformed
        """
        self._require_admin(admin)
        filters = filters or CommentFilters()
        page = max(1, page)
        page_size = min(
            max(1, page_size or self.settings.default_page_size),
            self.settings.max_page_size,
        )

        document = await self.documents.get_active_document()
        if document is None:
            return CommentPage(items=[], total=0, page=page, page_size=page_size, anchor=None)

        return await self.store.list_filtered(
            document.document_id, filters, page, page_size, anchor
        )

    async def admin_moderate(
        self,
        admin: "AdminIdentity | None",
        comment_id: UUID,
        decision: ModerationDecision,
        reason: str | None = None,
    ) -> ModerationOutcome:
        """Approve or reject one comment.

        Raises:
            CommentUnauthorizedError: If no admin identity is present
            CommentNotFoundError: If the comment does not exist
        """
        admin = self._require_admin(admin)
        self._check_reason(reason)

        outcome = await self.store.moderate(comment_id, decision, admin.display, reason)
        if outcome.changed:
            logger.info(
                "comment_moderated",
                comment_id=str(comment_id),
                state=outcome.comment.state.value,
                moderator=admin.id,
            )
            await self._after_write(outcome.comment.document_id)
        return outcome

    async def admin_bulk_moderate(
        self,
        admin: "AdminIdentity | None",
        comment_ids: list[UUID],
        decision: ModerationDecision,
        reason: str | None = None,
    ) -> list[BulkModerationItem]:
        """Apply one decision to many comments, reporting per-id results.

        Raises:
            CommentUnauthorizedError: If no admin identity is present
            CommentValidationError: If too many ids are given
        """
        admin = self._require_admin(admin)
        self._check_reason(reason)

        max_ids = self.settings.bulk_moderation_max_ids
        if len(set(comment_ids)) > max_ids:
            raise CommentValidationError(
                {"comment_ids": [f"ניתן לטפל בעד {max_ids} תגובות בפעולה אחת"]}
            )

        results = await self.store.bulk_moderate(
            comment_ids, decision, admin.display, reason
        )
        succeeded = sum(1 for r in results if r.success)
        logger.info(
            "comments_bulk_moderated",
            decision=decision.value,
            requested=len(results),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            moderator=admin.id,
        )

        changed_documents = {r.document_id for r in results if r.changed and r.document_id}
        for document_id in changed_documents:
            await self._after_write(document_id)
        return results

    async def admin_stats(self, admin: "AdminIdentity | None") -> CommentStatsResponse:
        """Moderation counts for the active document.

        Raises:
            CommentUnauthorizedError: If no admin identity is present
        """
        self._require_admin(admin)

        document = await self.documents.get_active_document()
        if document is None:
            return CommentStatsResponse(
                total=0, pending=0, approved=0, rejected=0, by_paragraph=[]
            )

        key = stats_cache_key(str(document.document_id))
        cached = await self._cache_get(key)
        if cached:
            return CommentStatsResponse.model_validate_json(cached)

        response = CommentStatsResponse.from_stats(
            await self.store.stats(document.document_id)
        )
        await self._cache_set(
            key, self.settings.stats_cache_ttl_seconds, response.model_dump_json()
        )
        return response

    async def admin_delete_comment(
        self, admin: "AdminIdentity | None", comment_id: UUID
    ) -> Comment:
        """Permanently delete a comment.

        Raises:
            CommentUnauthorizedError: If no admin identity is present
            CommentNotFoundError: If the comment does not exist
        """
        admin = self._require_admin(admin)
        comment = await self.store.delete(comment_id)
        logger.info(
            "comment_deleted",
            comment_id=str(comment_id),
            state=comment.state.value,
            moderator=admin.id,
        )
        await self._after_write(comment.document_id)
        return comment

    # ==========================================================================
    # Cache and revalidation
    # ==========================================================================

    async def _after_write(self, document_id: UUID) -> None:
        """Drop cached stats and revalidate affected views.

        Failures are logged and never fail the write that triggered them.
        """
        if self.redis:
            try:
                await self.redis.delete(stats_cache_key(str(document_id)))
            except Exception as e:
                logger.warning(
                    "stats_cache_invalidation_failed",
                    document_id=str(document_id),
                    error=str(e),
                )

        for path in (LAW_DOCUMENT_VIEW, ADMIN_COMMENTS_VIEW):
            try:
                await self.revalidator.revalidate(path)
            except Exception as e:
                logger.warning("view_revalidation_failed", path=path, error=str(e))

    async def _cache_get(self, key: str) -> str | None:
        if not self.redis:
            return None
        try:
            return await self.redis.get(key)
        except Exception as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None

    async def _cache_set(self, key: str, ttl: int, value: str) -> None:
        if not self.redis:
            return
        try:
            await self.redis.setex(key, ttl, value)
        except Exception as e:
            logger.warning("cache_write_failed", key=key, error=str(e))
