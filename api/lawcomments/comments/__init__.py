"""Law paragraph comments module.

Provides the comment intake and moderation pipeline:
- Validation, sanitization and abuse detection of public submissions
- Fixed-window rate limiting per submitter address
- Moderation state machine (pending, approved, rejected)

Note: Routers are not exported here to avoid circular imports.
Import directly from lawcomments.comments.router when needed.
"""

from .models import (
    COMMENTS_TABLES_CQL,
    Comment,
    CommentState,
    CommentStats,
    ModerationDecision,
)
from .service import ModerationService
from .store import ModerationStore


__all__ = [
    "COMMENTS_TABLES_CQL",
    "Comment",
    "CommentState",
    "CommentStats",
    "ModerationDecision",
    "ModerationService",
    "ModerationStore",
]
