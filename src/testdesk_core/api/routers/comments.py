"""API endpoints for threaded comments on test cases."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from testdesk_core import crud, models, schemas
from testdesk_core.crud import CommentRuleError, PermissionDeniedError

from ...database import get_db
from ..dependencies import get_current_user

logger = logging.getLogger("testdesk-core.comments")

router = APIRouter(tags=["comments"])


@router.post("", response_model=schemas.CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    comment: schemas.CommentCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Comment on a test case, or reply to a top-level comment.

    Replies are one level deep: ``parent_id`` must name a top-level comment
    on the same test case.
    """
    try:
        return crud.create_comment(db, comment, author_id=current_user.id)
    except LookupError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except CommentRuleError as e:
        logger.warning(f"Rejected comment from {current_user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.get("/{comment_id}", response_model=schemas.CommentResponse)
async def get_comment(comment_id: int, db: Session = Depends(get_db)):
    comment = crud.get_comment(db, comment_id)
    if not comment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Comment not found: {comment_id}",
        )
    return comment


@router.get("/{comment_id}/replies", response_model=list[schemas.CommentResponse])
async def get_comment_replies(comment_id: int, db: Session = Depends(get_db)):
    if not crud.get_comment(db, comment_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Comment not found: {comment_id}",
        )
    return crud.list_comment_replies(db, comment_id)


@router.patch("/{comment_id}", response_model=schemas.CommentResponse)
async def update_comment(
    comment_id: int,
    comment_update: schemas.CommentUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Edit a comment. Only its author may do so."""
    try:
        updated = crud.update_comment(db, comment_id, comment_update, user_id=current_user.id)
    except PermissionDeniedError as e:
        logger.warning(str(e))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Comment not found: {comment_id}",
        )
    return updated


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Delete a comment and its replies. Only its author may do so."""
    try:
        deleted = crud.delete_comment(db, comment_id, user_id=current_user.id)
    except PermissionDeniedError as e:
        logger.warning(str(e))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Comment not found: {comment_id}",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
