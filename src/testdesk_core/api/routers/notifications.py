"""API endpoints for the current user's notifications."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from testdesk_core import crud, models, schemas

from ...database import get_db
from ..dependencies import get_current_user

logger = logging.getLogger("testdesk-core.notifications")

router = APIRouter(tags=["notifications"])


@router.get("", response_model=list[schemas.NotificationResponse])
async def list_notifications(
    read: Optional[bool] = Query(None, description="Filter by read state"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """The current user's notifications, newest first."""
    return crud.list_notifications(db, current_user.id, read=read)


@router.post("/read-all")
async def mark_all_read(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    updated = crud.mark_all_notifications_read(db, current_user.id)
    return {"updated": updated}


@router.post("/{notification_id}/read", response_model=schemas.NotificationResponse)
async def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    notification = crud.mark_notification_read(db, notification_id, current_user.id)
    if not notification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Notification not found: {notification_id}",
        )
    return notification
