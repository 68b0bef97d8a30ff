"""API endpoints for failure tracking (the failure board)."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from testdesk_core import crud, models, schemas

from ...database import get_db
from ..dependencies import get_current_user_optional

logger = logging.getLogger("testdesk-core.failures")

router = APIRouter(tags=["failures"])


@router.post("", response_model=schemas.FailureResponse, status_code=status.HTTP_201_CREATED)
async def create_failure(
    failure: schemas.FailureCreate,
    db: Session = Depends(get_db),
    current_user: Optional[models.User] = Depends(get_current_user_optional),
):
    try:
        return crud.create_failure(db, failure, user_id=current_user.id if current_user else None)
    except Exception as e:
        logger.error(f"Failed to create failure: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create failure",
        )


@router.get("", response_model=list[schemas.FailureResponse])
async def list_failures(
    status_filter: Optional[models.FailureStatus] = Query(None, alias="status", description="Filter by board column"),
    assigned_to: Optional[str] = Query(None, description="Filter by assignee user id"),
    db: Session = Depends(get_db),
):
    """
    List failures, most recently updated first.

    Without filters every failure is returned, which is what the board
    loads before partitioning cards into columns.
    """
    return crud.list_failures(db, status=status_filter, assigned_to_id=assigned_to)


@router.get("/{failure_id}", response_model=schemas.FailureResponse)
async def get_failure(failure_id: int, db: Session = Depends(get_db)):
    failure = crud.get_failure(db, failure_id)
    if not failure:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Failure not found: {failure_id}",
        )
    return failure


@router.patch("/{failure_id}", response_model=schemas.FailureResponse)
async def update_failure(
    failure_id: int,
    failure_update: schemas.FailureUpdate,
    db: Session = Depends(get_db),
):
    """Partially update a failure. Board moves send only ``status``."""
    updated = crud.update_failure(db, failure_id, failure_update)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Failure not found: {failure_id}",
        )
    return updated


@router.delete("/{failure_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_failure(failure_id: int, db: Session = Depends(get_db)):
    if not crud.delete_failure(db, failure_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Failure not found: {failure_id}",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
