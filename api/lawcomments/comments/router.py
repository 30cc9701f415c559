"""Law comment API endpoints.

Provides routes for:
- Public comment submission
- Admin moderation: listing, single and bulk decisions, stats, deletion
"""

import json
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from fastapi import APIRouter, Query, Request, Response, status
from pydantic import ValidationError

from lawcomments.auth.dependencies import ClientInfo, OptionalAdmin

from .dependencies import STATUS_BY_CODE, ModerationServiceDep, handle_comment_error
from .exceptions import CommentError, CommentValidationError
from .models import CommentState, ModerationDecision
from .schemas import (
    ActionResponse,
    AdminComment,
    BulkModerateRequest,
    BulkModerationItemResponse,
    BulkModerationResponse,
    CommentFilters,
    CommentPageResponse,
    CommentStatsResponse,
    CommentSubmissionRequest,
    MessageResponse,
    ModerateCommentRequest,
    ModerationResponse,
    total_pages,
)
from .service import APPROVED_MESSAGE, REJECTED_MESSAGE, UNCHANGED_MESSAGE


router = APIRouter(prefix="/v1/law-comments", tags=["law-comments"])
admin_router = APIRouter(prefix="/v1/admin/law-comments", tags=["admin-law-comments"])

INVALID_JSON_MESSAGE = "גוף הבקשה אינו JSON תקין"


# ==============================================================================
# Public
# ==============================================================================


@router.post(
    "",
    response_model=ActionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit comment",
    openapi_extra={
        "requestBody": {
            "content": {
                "application/json": {
                    "schema": CommentSubmissionRequest.model_json_schema()
                }
            },
            "required": True,
        }
    },
)
async def submit_comment(
    request: Request,
    response: Response,
    service: ModerationServiceDep,
    client_info: ClientInfo,
) -> ActionResponse:
    """Submit a comment on a paragraph of the active law document.

    The body is parsed here and validated by the service so that every
    failure, undecodable JSON included, comes back in the same shape. New
    comments wait for moderation before they are shown publicly.
    """
    user_agent, ip_address = client_info
    body = await request.body()

    try:
        payload = json.loads(body) if body else None
    except ValueError:
        error = CommentValidationError({"__root__": [INVALID_JSON_MESSAGE]})
        result = ActionResponse(
            success=False,
            error=error.message,
            error_code=error.code,
            errors=error.field_errors,
        )
    else:
        result = await service.submit_comment(payload, ip_address, user_agent)

    if not result.success:
        response.status_code = STATUS_BY_CODE.get(
            result.error_code or "", status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        if result.retry_after is not None:
            response.headers["Retry-After"] = str(result.retry_after)

    return result


# ==============================================================================
# Admin
# ==============================================================================


def _build_filters(**values: Any) -> CommentFilters:
    try:
        return CommentFilters(**values)
    except ValidationError as e:
        field_errors: dict[str, list[str]] = {}
        for item in e.errors():
            name = str(item["loc"][0]) if item.get("loc") else "date_to"
            field_errors.setdefault(name, []).append(item.get("msg", "ערך לא תקין"))
        raise CommentValidationError(field_errors) from e


@admin_router.get(
    "",
    response_model=CommentPageResponse,
    summary="List comments for moderation",
)
async def list_comments(
    service: ModerationServiceDep,
    admin: OptionalAdmin,
    state: CommentState | None = None,
    paragraph_id: int | None = Query(default=None, ge=1),
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    search: str | None = Query(default=None, max_length=500),
    order: Literal["desc", "asc"] = "desc",
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1),
    anchor: str | None = None,
) -> CommentPageResponse:
    """List comments of the active document, newest first by default.

    Pass back the returned anchor when requesting further pages so that
    comments submitted in the meantime do not shift them.
    """
    try:
        filters = _build_filters(
            state=state,
            paragraph_id=paragraph_id,
            date_from=date_from,
            date_to=date_to,
            search=search,
            order=order,
        )
        result = await service.admin_list_comments(
            admin, filters, page=page, page_size=page_size, anchor=anchor
        )
    except CommentError as e:
        raise handle_comment_error(e) from e

    return CommentPageResponse(
        items=[AdminComment.from_comment(c) for c in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=total_pages(result.total, result.page_size),
        anchor=result.anchor,
    )


@admin_router.get(
    "/stats",
    response_model=CommentStatsResponse,
    summary="Get moderation statistics",
)
async def get_stats(
    service: ModerationServiceDep,
    admin: OptionalAdmin,
) -> CommentStatsResponse:
    """Counts by moderation state, overall and per paragraph."""
    try:
        return await service.admin_stats(admin)
    except CommentError as e:
        raise handle_comment_error(e) from e


@admin_router.post(
    "/bulk-moderate",
    response_model=BulkModerationResponse,
    summary="Moderate many comments",
)
async def bulk_moderate(
    data: BulkModerateRequest,
    service: ModerationServiceDep,
    admin: OptionalAdmin,
) -> BulkModerationResponse:
    """Apply one decision to many comments.

    Each id is processed on its own; failures are reported per id and do
    not affect the others.
    """
    try:
        results = await service.admin_bulk_moderate(
            admin, data.comment_ids, data.decision, data.reason
        )
    except CommentError as e:
        raise handle_comment_error(e) from e

    items = [
        BulkModerationItemResponse(
            comment_id=r.comment_id,
            success=r.success,
            changed=r.changed,
            error_code=r.error_code,
            error=r.error,
        )
        for r in results
    ]
    succeeded = sum(1 for item in items if item.success)
    return BulkModerationResponse(
        results=items, succeeded=succeeded, failed=len(items) - succeeded
    )


@admin_router.post(
    "/{comment_id}/moderate",
    response_model=ModerationResponse,
    summary="Moderate comment",
)
async def moderate_comment(
    comment_id: UUID,
    data: ModerateCommentRequest,
    service: ModerationServiceDep,
    admin: OptionalAdmin,
) -> ModerationResponse:
    """Approve or reject a comment. Approved and rejected comments may be
    moderated again; no decision returns a comment to pending.
    """
    try:
        outcome = await service.admin_moderate(
            admin, comment_id, data.decision, data.reason
        )
    except CommentError as e:
        raise handle_comment_error(e) from e

    if not outcome.changed:
        message = UNCHANGED_MESSAGE
    elif data.decision == ModerationDecision.APPROVED:
        message = APPROVED_MESSAGE
    else:
        message = REJECTED_MESSAGE

    return ModerationResponse(
        comment=AdminComment.from_comment(outcome.comment),
        changed=outcome.changed,
        message=message,
    )


@admin_router.delete(
    "/{comment_id}",
    response_model=MessageResponse,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: UUID,
    service: ModerationServiceDep,
    admin: OptionalAdmin,
) -> MessageResponse:
    """Permanently delete a comment."""
    try:
        await service.admin_delete_comment(admin, comment_id)
    except CommentError as e:
        raise handle_comment_error(e) from e

    return MessageResponse(message="התגובה נמחקה")
