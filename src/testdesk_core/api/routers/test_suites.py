"""API endpoints for test suites and suite membership."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from testdesk_core import crud, models, schemas

from ...database import get_db
from ..dependencies import get_current_user_optional

logger = logging.getLogger("testdesk-core.test_suites")

router = APIRouter(tags=["test-suites"])


def _get_suite_or_404(db: Session, test_suite_id: int) -> models.TestSuite:
    test_suite = crud.get_test_suite(db, test_suite_id)
    if not test_suite:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Test suite not found: {test_suite_id}",
        )
    return test_suite


@router.post("", response_model=schemas.TestSuiteResponse, status_code=status.HTTP_201_CREATED)
async def create_test_suite(
    test_suite: schemas.TestSuiteCreate,
    db: Session = Depends(get_db),
    current_user: Optional[models.User] = Depends(get_current_user_optional),
):
    try:
        return crud.create_test_suite(db, test_suite, user_id=current_user.id if current_user else None)
    except ValueError as e:
        logger.warning(f"Invalid test suite: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


@router.get("", response_model=list[schemas.TestSuiteResponse])
async def list_test_suites(
    parent_id: Optional[int] = Query(None, description="List children of this suite (root suites when omitted)"),
    db: Session = Depends(get_db),
):
    return crud.list_test_suites(db, parent_id=parent_id)


@router.get("/{test_suite_id}", response_model=schemas.TestSuiteResponse)
async def get_test_suite(test_suite_id: int, db: Session = Depends(get_db)):
    return _get_suite_or_404(db, test_suite_id)


@router.patch("/{test_suite_id}", response_model=schemas.TestSuiteResponse)
async def update_test_suite(
    test_suite_id: int,
    test_suite_update: schemas.TestSuiteUpdate,
    db: Session = Depends(get_db),
):
    try:
        updated = crud.update_test_suite(db, test_suite_id, test_suite_update)
    except ValueError as e:
        logger.warning(f"Invalid test suite update: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Test suite not found: {test_suite_id}",
        )
    return updated


@router.delete("/{test_suite_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_test_suite(test_suite_id: int, db: Session = Depends(get_db)):
    if not crud.delete_test_suite(db, test_suite_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Test suite not found: {test_suite_id}",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{test_suite_id}/test-cases", response_model=list[schemas.TestCaseResponse])
async def get_suite_test_cases(test_suite_id: int, db: Session = Depends(get_db)):
    """Test cases of a suite in suite order."""
    _get_suite_or_404(db, test_suite_id)
    return crud.get_suite_test_cases(db, test_suite_id)


@router.post("/{test_suite_id}/test-cases", status_code=status.HTTP_204_NO_CONTENT)
async def add_suite_test_cases(
    test_suite_id: int,
    request: schemas.TestCaseIdList,
    db: Session = Depends(get_db),
):
    """Append test cases to a suite. Cases already in the suite are left where they are."""
    _get_suite_or_404(db, test_suite_id)
    try:
        crud.add_test_cases_to_suite(db, test_suite_id, request.test_case_ids)
    except ValueError as e:
        logger.warning(f"Cannot add test cases to suite {test_suite_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{test_suite_id}/test-cases", status_code=status.HTTP_204_NO_CONTENT)
async def remove_suite_test_cases(
    test_suite_id: int,
    request: schemas.TestCaseIdList,
    db: Session = Depends(get_db),
):
    _get_suite_or_404(db, test_suite_id)
    crud.remove_test_cases_from_suite(db, test_suite_id, request.test_case_ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
