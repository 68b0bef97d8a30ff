"""API endpoints for test runs."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from testdesk_core import crud, models, schemas

from ...database import get_db
from ..dependencies import get_current_user_optional

logger = logging.getLogger("testdesk-core.test_runs")

router = APIRouter(tags=["test-runs"])


def _get_run_or_404(db: Session, test_run_id: int) -> models.TestRun:
    test_run = crud.get_test_run(db, test_run_id)
    if not test_run:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Test run not found: {test_run_id}",
        )
    return test_run


@router.post("", response_model=schemas.TestRunResponse, status_code=status.HTTP_201_CREATED)
async def create_test_run(
    test_run: schemas.TestRunCreate,
    db: Session = Depends(get_db),
    current_user: Optional[models.User] = Depends(get_current_user_optional),
):
    """
    Record a new test run.

    Automated uploads usually send the counters and the raw JUnit XML in
    ``xml_data``; manual sessions start empty and are updated as they go.
    """
    try:
        return crud.create_test_run(db, test_run, user_id=current_user.id if current_user else None)
    except Exception as e:
        logger.error(f"Failed to create test run: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create test run",
        )


@router.get("", response_model=list[schemas.TestRunResponse])
async def list_test_runs(
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of runs"),
    db: Session = Depends(get_db),
):
    """List test runs, newest first."""
    return crud.list_test_runs(db, limit=limit)


@router.get("/{test_run_id}", response_model=schemas.TestRunResponse)
async def get_test_run(test_run_id: int, db: Session = Depends(get_db)):
    return _get_run_or_404(db, test_run_id)


@router.patch("/{test_run_id}", response_model=schemas.TestRunResponse)
async def update_test_run(
    test_run_id: int,
    test_run_update: schemas.TestRunUpdate,
    db: Session = Depends(get_db),
):
    """Partially update a test run (typically status, end time and counters)."""
    updated = crud.update_test_run(db, test_run_id, test_run_update)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Test run not found: {test_run_id}",
        )
    return updated


@router.delete("/{test_run_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_test_run(test_run_id: int, db: Session = Depends(get_db)):
    """Delete a test run and all of its results."""
    if not crud.delete_test_run(db, test_run_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Test run not found: {test_run_id}",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{test_run_id}/results", response_model=list[schemas.TestResultResponse])
async def get_test_run_results(test_run_id: int, db: Session = Depends(get_db)):
    _get_run_or_404(db, test_run_id)
    return crud.get_test_run_results(db, test_run_id)
