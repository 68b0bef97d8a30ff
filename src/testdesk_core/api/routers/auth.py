"""Current user endpoint."""
from fastapi import APIRouter, Depends

from testdesk_core import models, schemas

from ..dependencies import get_current_user

router = APIRouter(tags=["auth"])


@router.get("/user", response_model=schemas.UserResponse)
async def get_user(current_user: models.User = Depends(get_current_user)):
    """Return the authenticated user, or 401 when the request carries no identity."""
    return current_user
