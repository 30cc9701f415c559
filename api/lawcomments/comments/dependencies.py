"""FastAPI dependencies for law comments.

Provides dependency injection for:
- Moderation service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .exceptions import CommentError, CommentValidationError, RateLimitedError
from .service import ModerationService


async def get_moderation_service(request: Request) -> ModerationService:
    """Get moderation service from app state.

    Args:
        request: FastAPI request

    Returns:
        ModerationService instance
    """
    app_state = request.app.state
    if not hasattr(app_state, "moderation_service") or not app_state.moderation_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="שירות התגובות אינו זמין",
        )
    return app_state.moderation_service


# Type alias for dependency injection
ModerationServiceDep = Annotated[ModerationService, Depends(get_moderation_service)]


STATUS_BY_CODE = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "rate_limited": status.HTTP_429_TOO_MANY_REQUESTS,
    "duplicate": status.HTTP_409_CONFLICT,
    "unauthorized": status.HTTP_401_UNAUTHORIZED,
    "comment_not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "storage_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def handle_comment_error(error: CommentError) -> HTTPException:
    """Convert comment errors to HTTP exceptions.

    Args:
        error: Comment error

    Returns:
        HTTPException with appropriate status code
    """
    status_code = STATUS_BY_CODE.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    detail: str | dict = error.message
    if isinstance(error, CommentValidationError) and error.field_errors:
        detail = {"message": error.message, "errors": error.field_errors}

    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    elif isinstance(error, RateLimitedError):
        headers = {"Retry-After": str(error.retry_after)}

    return HTTPException(status_code=status_code, detail=detail, headers=headers)
