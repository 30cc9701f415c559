"""Public law document endpoints."""

from fastapi import APIRouter, HTTPException, Query, status

from lawcomments.comments.dependencies import ModerationServiceDep, handle_comment_error
from lawcomments.comments.exceptions import CommentError
from lawcomments.comments.schemas import PublicComment

from .schemas import LawDocumentResponse


router = APIRouter(prefix="/v1/law-document", tags=["law-document"])


@router.get(
    "",
    response_model=LawDocumentResponse,
    summary="Get active law document",
)
async def get_law_document(service: ModerationServiceDep) -> LawDocumentResponse:
    """Active document, its paragraphs in order and approved comment counts."""
    document = await service.get_law_document()
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="אין מסמך חוק פעיל",
        )
    return document


@router.get(
    "/paragraphs/{paragraph_id}/comments",
    response_model=list[PublicComment],
    summary="List approved paragraph comments",
)
async def list_paragraph_comments(
    paragraph_id: int,
    service: ModerationServiceDep,
    limit: int | None = Query(default=None, ge=1, le=100),
) -> list[PublicComment]:
    """Approved comments on a paragraph, newest first."""
    try:
        return await service.get_paragraph_comments(paragraph_id, limit)
    except CommentError as e:
        raise handle_comment_error(e) from e
