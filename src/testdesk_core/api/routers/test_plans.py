"""API endpoints for test plans.

Plans are never deleted; they are archived through ``status``.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from testdesk_core import crud, models, schemas

from ...database import get_db
from ..dependencies import get_current_user_optional

logger = logging.getLogger("testdesk-core.test_plans")

router = APIRouter(tags=["test-plans"])


def _get_plan_or_404(db: Session, test_plan_id: int) -> models.TestPlan:
    test_plan = crud.get_test_plan(db, test_plan_id)
    if not test_plan:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Test plan not found: {test_plan_id}",
        )
    return test_plan


@router.post("", response_model=schemas.TestPlanResponse, status_code=status.HTTP_201_CREATED)
async def create_test_plan(
    test_plan: schemas.TestPlanCreate,
    db: Session = Depends(get_db),
    current_user: Optional[models.User] = Depends(get_current_user_optional),
):
    try:
        return crud.create_test_plan(db, test_plan, user_id=current_user.id if current_user else None)
    except Exception as e:
        logger.error(f"Failed to create test plan: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create test plan",
        )


@router.get("", response_model=list[schemas.TestPlanResponse])
async def list_test_plans(
    status_filter: Optional[models.TestPlanStatus] = Query(None, alias="status", description="Filter by status"),
    db: Session = Depends(get_db),
):
    return crud.list_test_plans(db, status=status_filter)


@router.get("/{test_plan_id}", response_model=schemas.TestPlanResponse)
async def get_test_plan(test_plan_id: int, db: Session = Depends(get_db)):
    return _get_plan_or_404(db, test_plan_id)


@router.patch("/{test_plan_id}", response_model=schemas.TestPlanResponse)
async def update_test_plan(
    test_plan_id: int,
    test_plan_update: schemas.TestPlanUpdate,
    db: Session = Depends(get_db),
):
    updated = crud.update_test_plan(db, test_plan_id, test_plan_update)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Test plan not found: {test_plan_id}",
        )
    return updated


@router.get("/{test_plan_id}/test-cases", response_model=list[schemas.PlanTestCaseResponse])
async def get_plan_test_cases(test_plan_id: int, db: Session = Depends(get_db)):
    """Test cases of a plan in plan order, with their execution state."""
    _get_plan_or_404(db, test_plan_id)
    return crud.get_plan_test_cases(db, test_plan_id)


@router.post("/{test_plan_id}/test-cases", status_code=status.HTTP_204_NO_CONTENT)
async def add_plan_test_cases(
    test_plan_id: int,
    request: schemas.TestCaseIdList,
    db: Session = Depends(get_db),
):
    _get_plan_or_404(db, test_plan_id)
    try:
        crud.add_test_cases_to_plan(db, test_plan_id, request.test_case_ids)
    except ValueError as e:
        logger.warning(f"Cannot add test cases to plan {test_plan_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{test_plan_id}/test-cases", status_code=status.HTTP_204_NO_CONTENT)
async def remove_plan_test_cases(
    test_plan_id: int,
    request: schemas.TestCaseIdList,
    db: Session = Depends(get_db),
):
    _get_plan_or_404(db, test_plan_id)
    crud.remove_test_cases_from_plan(db, test_plan_id, request.test_case_ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
