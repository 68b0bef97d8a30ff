"""API endpoints for individual test results."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from testdesk_core import crud, models, schemas

from ...database import get_db
from ..dependencies import get_current_user_optional

logger = logging.getLogger("testdesk-core.test_results")

router = APIRouter(tags=["test-results"])


@router.post("", response_model=schemas.TestResultResponse, status_code=status.HTTP_201_CREATED)
async def create_test_result(
    test_result: schemas.TestResultCreate,
    db: Session = Depends(get_db),
    current_user: Optional[models.User] = Depends(get_current_user_optional),
):
    """Record a test result inside an existing run."""
    try:
        return crud.create_test_result(db, test_result, user_id=current_user.id if current_user else None)
    except ValueError as e:
        logger.warning(f"Rejected test result: {e}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.get("/{test_result_id}", response_model=schemas.TestResultResponse)
async def get_test_result(test_result_id: int, db: Session = Depends(get_db)):
    test_result = crud.get_test_result(db, test_result_id)
    if not test_result:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Test result not found: {test_result_id}",
        )
    return test_result
