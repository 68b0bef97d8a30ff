"""Request identity dependencies.

Authentication happens in front of the API; the authenticated user id
arrives in the ``X-User-Id`` header.
"""
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .. import crud, models
from ..database import get_db

logger = logging.getLogger("testdesk-core.auth")


def get_current_user_optional(
    x_user_id: Optional[str] = Header(None, description="Authenticated user id"),
    db: Session = Depends(get_db),
) -> Optional[models.User]:
    """Resolve the calling user, registering the id on first sight. None when anonymous."""
    if not x_user_id or not x_user_id.strip():
        return None
    return crud.get_or_create_user(db, x_user_id.strip())


def get_current_user(
    user: Optional[models.User] = Depends(get_current_user_optional),
) -> models.User:
    if user is None:
        logger.warning("Rejected anonymous request to an authenticated endpoint")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user
