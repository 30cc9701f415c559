"""Fixtures for the comment pipeline tests."""

import time
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from lawcomments.comments.abuse import AbuseDetector
from lawcomments.comments.exceptions import CommentConflictError, CommentNotFoundError
from lawcomments.comments.models import Comment, ModerationDecision, PriorSubmission
from lawcomments.comments.rate_limiter import FixedWindowRateLimiter
from lawcomments.comments.service import ModerationService
from lawcomments.comments.store import (
    BulkModerationItem,
    ModerationOutcome,
    paginate_comments,
    summarize_comments,
)
from lawcomments.comments.validation import CommentSubmissionValidator
from lawcomments.config.settings import Settings
from lawcomments.documents.models import LawDocument, LawParagraph


class FakeClock:
    """Controllable clock in seconds since the epoch."""

    def __init__(self, start: float | None = None):
        self.now = time.time() if start is None else start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryModerationStore:
    """Moderation store double keeping comments in a dict."""

    def __init__(self):
        self.comments: dict[UUID, Comment] = {}

    async def submit(self, comment: Comment) -> Comment:
        if comment.comment_id in self.comments:
            raise CommentConflictError
        self.comments[comment.comment_id] = comment
        return comment

    async def get(self, comment_id: UUID) -> Comment:
        if comment_id not in self.comments:
            raise CommentNotFoundError
        return self.comments[comment_id]

    async def moderate(
        self,
        comment_id: UUID,
        decision: ModerationDecision,
        moderator: str,
        reason: str | None = None,
    ) -> ModerationOutcome:
        comment = await self.get(comment_id)
        changed = comment.apply_decision(decision, moderator, reason)
        return ModerationOutcome(comment=comment, changed=changed)

    async def bulk_moderate(self, comment_ids, decision, moderator, reason=None):
        results = []
        for comment_id in dict.fromkeys(comment_ids):
            try:
                outcome = await self.moderate(comment_id, decision, moderator, reason)
            except CommentNotFoundError as e:
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
        comment = await self.get(comment_id)
        del self.comments[comment_id]
        return comment

    async def list_filtered(self, document_id, filters, page=1, page_size=50, anchor=None):
        comments = [c for c in self.comments.values() if c.document_id == document_id]
        return paginate_comments(comments, filters, page, page_size, anchor)

    async def approved_for_paragraph(self, document_id, paragraph_id, limit):
        approved = sorted(
            (
                c
                for c in self.comments.values()
                if c.document_id == document_id
                and c.paragraph_id == paragraph_id
                and c.is_public
            ),
            key=lambda c: c.sort_key,
            reverse=True,
        )
        return approved[:limit]

    async def approved_counts(self, document_id):
        stats = summarize_comments(
            c for c in self.comments.values() if c.document_id == document_id
        )
        return {p.paragraph_id: p.approved for p in stats.by_paragraph if p.approved}

    async def stats(self, document_id):
        return summarize_comments(
            c for c in self.comments.values() if c.document_id == document_id
        )

    async def recent_by_submitter(self, submitter_address, paragraph_id, since):
        return [
            PriorSubmission(c.paragraph_id, c.content, c.submitted_at)
            for c in self.comments.values()
            if c.submitter_address == submitter_address
            and c.paragraph_id == paragraph_id
            and c.submitted_at >= since
        ]


class FakeDocumentService:
    """Serves a fixed active document."""

    def __init__(self, document: LawDocument | None):
        self.document = document

    async def get_active_document(self) -> LawDocument | None:
        return self.document


class RecordingRevalidator:
    """Records revalidated paths."""

    def __init__(self):
        self.paths: list[str] = []

    async def revalidate(self, path: str) -> None:
        self.paths.append(path)


@pytest.fixture
def document_id() -> UUID:
    return uuid4()


@pytest.fixture
def law_document(document_id: UUID) -> LawDocument:
    """Active document with paragraphs 1-5."""
    return LawDocument(
        document_id=document_id,
        title="הצעת חוק לדוגמה",
        description=None,
        version="1.0",
        is_active=True,
        published_at=datetime(2024, 1, 1, tzinfo=UTC),
        paragraphs=[
            LawParagraph(
                paragraph_id=i,
                document_id=document_id,
                order_index=i,
                section_title=f"סעיף {i}",
                content=f"תוכן סעיף {i}",
            )
            for i in range(1, 6)
        ],
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="testing",
        rate_limit_max_per_window=5,
        rate_limit_window_ms=60 * 60 * 1000,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryModerationStore:
    return InMemoryModerationStore()


@pytest.fixture
def revalidator() -> RecordingRevalidator:
    return RecordingRevalidator()


@pytest.fixture
def moderation_service(
    store: InMemoryModerationStore,
    law_document: LawDocument,
    revalidator: RecordingRevalidator,
    test_settings: Settings,
    clock: FakeClock,
) -> ModerationService:
    """ModerationService over in-memory collaborators, without Redis."""
    return ModerationService(
        store=store,
        documents=FakeDocumentService(law_document),
        rate_limiter=FixedWindowRateLimiter(
            max_per_window=test_settings.rate_limit_max_per_window,
            window_ms=test_settings.rate_limit_window_ms,
            clock=clock,
        ),
        detector=AbuseDetector(lookback=timedelta(hours=24)),
        validator=CommentSubmissionValidator.from_settings(test_settings),
        revalidator=revalidator,
        redis=None,
        settings=test_settings,
    )


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Mock Redis client with an empty cache."""
    redis_mock = AsyncMock()
    redis_mock.get = AsyncMock(return_value=None)
    return redis_mock
