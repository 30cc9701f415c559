"""Errors raised by the comment intake and moderation pipeline.

Every error carries a stable ``code`` (used to pick the HTTP status and the
public response's ``error_code``) and a user-facing Hebrew message.
"""

import math
from datetime import UTC, datetime


class CommentError(Exception):
    """Base comment error."""

    def __init__(self, message: str, code: str = "comment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CommentValidationError(CommentError):
    """Submission or admin request failed validation."""

    def __init__(
        self,
        field_errors: dict[str, list[str]] | None = None,
        message: str = "נתונים לא תקינים",
    ):
        super().__init__(message, "validation_error")
        self.field_errors = field_errors or {}


class RateLimitedError(CommentError):
    """Too many submissions from one address in the current window."""

    def __init__(self, reset_at: datetime, limit: int, now: datetime | None = None):
        now = now or datetime.now(UTC)
        self.reset_at = reset_at
        self.limit = limit
        self.retry_after = max(1, math.ceil((reset_at - now).total_seconds()))
        super().__init__(
            format_rate_limit_message(self.retry_after, limit), "rate_limited"
        )


class DuplicateCommentError(CommentError):
    """Same submitter already sent equivalent content for this paragraph."""

    def __init__(
        self,
        message: str = "שלחת תגובה דומה לאחרונה. נסה שוב מאוחר יותר או כתוב תגובה שונה.",
    ):
        super().__init__(message, "duplicate")


class CommentUnauthorizedError(CommentError):
    """Caller is not an authenticated administrator."""

    def __init__(self, message: str = "נדרשת הזדהות כמנהל"):
        super().__init__(message, "unauthorized")


class CommentNotFoundError(CommentError):
    """Comment not found."""

    def __init__(self, message: str = "התגובה לא נמצאה"):
        super().__init__(message, "comment_not_found")


class CommentConflictError(CommentError):
    """A comment with the same identifier already exists."""

    def __init__(self, message: str = "תגובה עם מזהה זה כבר קיימת"):
        super().__init__(message, "conflict")


class CommentStorageError(CommentError):
    """Persistence layer failure. Details stay in server logs."""

    def __init__(self, message: str = "שגיאה בשמירת הנתונים. אנא נסה שוב."):
        super().__init__(message, "storage_error")


def format_rate_limit_message(retry_after_seconds: int, limit: int) -> str:
    """Hebrew message telling the submitter when they may comment again."""
    prefix = f"חרגת ממספר התגובות המותר ({limit} תגובות)."
    minutes = math.ceil(retry_after_seconds / 60)
    if minutes <= 1:
        return f"{prefix} נסה שוב בעוד דקה."
    if minutes < 60:
        return f"{prefix} נסה שוב בעוד {minutes} דקות."
    hours = math.ceil(minutes / 60)
    return f"{prefix} נסה שוב בעוד {hours} שעות."
