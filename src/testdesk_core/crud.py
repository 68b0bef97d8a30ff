"""CRUD operations for the Resource Store."""
import logging
from typing import Any, Optional

from sqlalchemy import or_, func, select
from sqlalchemy.orm import Session

from . import models, schemas
from .models import utcnow

logger = logging.getLogger("testdesk-core.crud")


class CommentRuleError(ValueError):
    """Raised when a comment violates the threading rules."""
    pass


class PermissionDeniedError(Exception):
    """Raised when a user acts on a resource they do not own."""
    pass


def _column_values(data: dict[str, Any], renames: Optional[dict[str, str]] = None) -> dict[str, Any]:
    """
    Translate schema field names to ORM attribute names.

    ``metadata`` is stored under ``meta`` on every model; ``renames`` covers
    model specific cases such as ``type`` -> ``run_type``.
    """
    renames = {"metadata": "meta", **(renames or {})}
    return {renames.get(key, key): value for key, value in data.items()}


def _apply_update(db_obj, update_data: dict[str, Any]) -> None:
    columns = db_obj.__mapper__.columns
    for field, value in update_data.items():
        # An explicit null for a required column leaves it unchanged
        if value is None and field in columns and not columns[field].nullable:
            continue
        setattr(db_obj, field, value)
    db_obj.updated_at = utcnow()


# ============================================================================
# Users
# ============================================================================

def get_user(db: Session, user_id: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_or_create_user(db: Session, user_id: str) -> models.User:
    """
    Return the user row for an identity, creating it on first sight.

    Authentication happens upstream; the store only needs the row so that
    authorship columns can reference it.
    """
    user = get_user(db, user_id)
    if user:
        return user

    user = models.User(id=user_id)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user_id}")
    return user


# ============================================================================
# Test Runs
# ============================================================================

_TEST_RUN_RENAMES = {"type": "run_type"}


def create_test_run(
    db: Session,
    test_run: schemas.TestRunCreate,
    user_id: Optional[str] = None,
) -> models.TestRun:
    db_run = models.TestRun(
        **_column_values(test_run.model_dump(), _TEST_RUN_RENAMES),
        created_by_id=user_id,
    )
    db.add(db_run)
    db.commit()
    db.refresh(db_run)
    logger.info(f"Created test run {db_run.id}: {db_run.name}")
    return db_run


def get_test_run(db: Session, test_run_id: int) -> Optional[models.TestRun]:
    return db.query(models.TestRun).filter(models.TestRun.id == test_run_id).first()


def list_test_runs(db: Session, limit: int = 100) -> list[models.TestRun]:
    """List test runs, newest first."""
    return (
        db.query(models.TestRun)
        .order_by(models.TestRun.created_at.desc(), models.TestRun.id.desc())
        .limit(limit)
        .all()
    )


def update_test_run(
    db: Session,
    test_run_id: int,
    test_run_update: schemas.TestRunUpdate,
) -> Optional[models.TestRun]:
    db_run = get_test_run(db, test_run_id)
    if not db_run:
        return None

    _apply_update(db_run, _column_values(test_run_update.model_dump(exclude_unset=True), _TEST_RUN_RENAMES))
    db.commit()
    db.refresh(db_run)
    logger.info(f"Updated test run {test_run_id}")
    return db_run


def delete_test_run(db: Session, test_run_id: int) -> bool:
    """Delete a test run together with its results."""
    db_run = get_test_run(db, test_run_id)
    if not db_run:
        return False

    db.delete(db_run)
    db.commit()
    logger.info(f"Deleted test run {test_run_id}")
    return True


def get_test_run_results(db: Session, test_run_id: int) -> list[models.TestResult]:
    return (
        db.query(models.TestResult)
        .filter(models.TestResult.test_run_id == test_run_id)
        .order_by(models.TestResult.created_at, models.TestResult.id)
        .all()
    )


# ============================================================================
# Test Cases
# ============================================================================

_TEST_CASE_RENAMES = {"type": "test_type"}


def create_test_case(
    db: Session,
    test_case: schemas.TestCaseCreate,
    user_id: Optional[str] = None,
) -> models.TestCase:
    db_case = models.TestCase(
        **_column_values(test_case.model_dump(), _TEST_CASE_RENAMES),
        created_by_id=user_id,
    )
    db.add(db_case)
    db.commit()
    db.refresh(db_case)
    logger.info(f"Created test case {db_case.id}: {db_case.name}")
    return db_case


def get_test_case(db: Session, test_case_id: int) -> Optional[models.TestCase]:
    return db.query(models.TestCase).filter(models.TestCase.id == test_case_id).first()


def list_test_cases(
    db: Session,
    test_type: Optional[models.TestCaseType] = None,
    search: Optional[str] = None,
    limit: int = 100,
) -> list[models.TestCase]:
    """
    List test cases, most recently updated first.

    Args:
        db: Database session
        test_type: Only return test cases of this type
        search: Case-insensitive substring matched against name and description
        limit: Maximum number of rows

    Returns:
        List of test cases
    """
    query = db.query(models.TestCase)

    if test_type:
        query = query.filter(models.TestCase.test_type == test_type)

    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(
            or_(
                func.lower(models.TestCase.name).like(pattern),
                func.lower(models.TestCase.description).like(pattern),
            )
        )

    return (
        query.order_by(models.TestCase.updated_at.desc(), models.TestCase.id.desc())
        .limit(limit)
        .all()
    )


def update_test_case(
    db: Session,
    test_case_id: int,
    test_case_update: schemas.TestCaseUpdate,
) -> Optional[models.TestCase]:
    db_case = get_test_case(db, test_case_id)
    if not db_case:
        return None

    update_data = _column_values(test_case_update.model_dump(exclude_unset=True), _TEST_CASE_RENAMES)
    _apply_update(db_case, update_data)
    db.commit()
    db.refresh(db_case)
    logger.info(f"Updated test case {test_case_id} fields: {sorted(update_data)}")
    return db_case


def delete_test_case(db: Session, test_case_id: int) -> bool:
    """Delete a test case; its comments go with it."""
    db_case = get_test_case(db, test_case_id)
    if not db_case:
        return False

    db.execute(
        models.test_suite_test_cases.delete().where(
            models.test_suite_test_cases.c.test_case_id == test_case_id
        )
    )
    db.query(models.TestPlanTestCase).filter(
        models.TestPlanTestCase.test_case_id == test_case_id
    ).delete(synchronize_session=False)
    db.delete(db_case)
    db.commit()
    logger.info(f"Deleted test case {test_case_id}")
    return True


def get_test_case_results(db: Session, test_case_id: int, limit: int = 50) -> list[models.TestResult]:
    """Execution history of a test case, newest first."""
    return (
        db.query(models.TestResult)
        .filter(models.TestResult.test_case_id == test_case_id)
        .order_by(models.TestResult.created_at.desc(), models.TestResult.id.desc())
        .limit(limit)
        .all()
    )


# ============================================================================
# Test Results
# ============================================================================

def create_test_result(
    db: Session,
    test_result: schemas.TestResultCreate,
    user_id: Optional[str] = None,
) -> models.TestResult:
    """
    Record the outcome of a test.

    Raises:
        ValueError: If the referenced test run or test case does not exist
    """
    if not get_test_run(db, test_result.test_run_id):
        raise ValueError(f"Test run not found: {test_result.test_run_id}")
    if test_result.test_case_id is not None and not get_test_case(db, test_result.test_case_id):
        raise ValueError(f"Test case not found: {test_result.test_case_id}")

    db_result = models.TestResult(
        **_column_values(test_result.model_dump()),
        executed_by_id=user_id,
    )
    db.add(db_result)
    db.commit()
    db.refresh(db_result)
    logger.info(f"Recorded result {db_result.id} ({db_result.status.value}) for run {db_result.test_run_id}")
    return db_result


def get_test_result(db: Session, test_result_id: int) -> Optional[models.TestResult]:
    return db.query(models.TestResult).filter(models.TestResult.id == test_result_id).first()


# ============================================================================
# Failures
# ============================================================================

def create_failure(
    db: Session,
    failure: schemas.FailureCreate,
    user_id: Optional[str] = None,
) -> models.FailureTracking:
    db_failure = models.FailureTracking(**failure.model_dump(), created_by_id=user_id)
    db.add(db_failure)
    db.commit()
    db.refresh(db_failure)
    logger.info(f"Created failure {db_failure.id}: {db_failure.name}")
    return db_failure


def get_failure(db: Session, failure_id: int) -> Optional[models.FailureTracking]:
    return db.query(models.FailureTracking).filter(models.FailureTracking.id == failure_id).first()


def list_failures(
    db: Session,
    status: Optional[models.FailureStatus] = None,
    assigned_to_id: Optional[str] = None,
) -> list[models.FailureTracking]:
    """List failures, most recently updated first. Without filters all rows are returned."""
    query = db.query(models.FailureTracking)

    if status:
        query = query.filter(models.FailureTracking.status == status)
    if assigned_to_id:
        query = query.filter(models.FailureTracking.assigned_to_id == assigned_to_id)

    return query.order_by(
        models.FailureTracking.updated_at.desc(), models.FailureTracking.id.desc()
    ).all()


def update_failure(
    db: Session,
    failure_id: int,
    failure_update: schemas.FailureUpdate,
) -> Optional[models.FailureTracking]:
    db_failure = get_failure(db, failure_id)
    if not db_failure:
        return None

    update_data = failure_update.model_dump(exclude_unset=True)
    old_status = db_failure.status
    _apply_update(db_failure, update_data)
    db.commit()
    db.refresh(db_failure)

    if "status" in update_data and old_status != db_failure.status:
        logger.info(f"Failure {failure_id} moved {old_status.value} -> {db_failure.status.value}")
    else:
        logger.info(f"Updated failure {failure_id}")
    return db_failure


def delete_failure(db: Session, failure_id: int) -> bool:
    db_failure = get_failure(db, failure_id)
    if not db_failure:
        return False

    db.delete(db_failure)
    db.commit()
    logger.info(f"Deleted failure {failure_id}")
    return True


# ============================================================================
# Test Suites
# ============================================================================

def create_test_suite(
    db: Session,
    test_suite: schemas.TestSuiteCreate,
    user_id: Optional[str] = None,
) -> models.TestSuite:
    """
    Create a test suite.

    Raises:
        ValueError: If ``parent_id`` references a missing suite
    """
    if test_suite.parent_id is not None and not get_test_suite(db, test_suite.parent_id):
        raise ValueError(f"Parent suite not found: {test_suite.parent_id}")

    db_suite = models.TestSuite(**test_suite.model_dump(), created_by_id=user_id)
    db.add(db_suite)
    db.commit()
    db.refresh(db_suite)
    logger.info(f"Created test suite {db_suite.id}: {db_suite.name}")
    return db_suite


def get_test_suite(db: Session, test_suite_id: int) -> Optional[models.TestSuite]:
    return db.query(models.TestSuite).filter(models.TestSuite.id == test_suite_id).first()


def list_test_suites(db: Session, parent_id: Optional[int] = None) -> list[models.TestSuite]:
    """
    List suites one level of the hierarchy at a time.

    Without ``parent_id`` the root suites are returned.
    """
    query = db.query(models.TestSuite)
    if parent_id is None:
        query = query.filter(models.TestSuite.parent_id.is_(None))
    else:
        query = query.filter(models.TestSuite.parent_id == parent_id)
    return query.order_by(models.TestSuite.name, models.TestSuite.id).all()


def update_test_suite(
    db: Session,
    test_suite_id: int,
    test_suite_update: schemas.TestSuiteUpdate,
) -> Optional[models.TestSuite]:
    db_suite = get_test_suite(db, test_suite_id)
    if not db_suite:
        return None

    update_data = test_suite_update.model_dump(exclude_unset=True)
    parent_id = update_data.get("parent_id")
    if parent_id is not None:
        if parent_id == test_suite_id:
            raise ValueError("A test suite cannot be its own parent")
        if not get_test_suite(db, parent_id):
            raise ValueError(f"Parent suite not found: {parent_id}")

    _apply_update(db_suite, update_data)
    db.commit()
    db.refresh(db_suite)
    logger.info(f"Updated test suite {test_suite_id}")
    return db_suite


def delete_test_suite(db: Session, test_suite_id: int) -> bool:
    db_suite = get_test_suite(db, test_suite_id)
    if not db_suite:
        return False

    db.execute(
        models.test_suite_test_cases.delete().where(
            models.test_suite_test_cases.c.test_suite_id == test_suite_id
        )
    )
    db.delete(db_suite)
    db.commit()
    logger.info(f"Deleted test suite {test_suite_id}")
    return True


def _missing_test_case_ids(db: Session, test_case_ids: list[int]) -> list[int]:
    found = {
        row[0]
        for row in db.query(models.TestCase.id).filter(models.TestCase.id.in_(test_case_ids)).all()
    }
    return [case_id for case_id in test_case_ids if case_id not in found]


def add_test_cases_to_suite(db: Session, test_suite_id: int, test_case_ids: list[int]) -> None:
    """
    Append test cases to a suite. Cases already in the suite are skipped.

    Raises:
        ValueError: If any of the test cases does not exist
    """
    missing = _missing_test_case_ids(db, test_case_ids)
    if missing:
        raise ValueError(f"Test cases not found: {missing}")

    table = models.test_suite_test_cases
    existing = {
        row[0]
        for row in db.execute(
            select(table.c.test_case_id).where(table.c.test_suite_id == test_suite_id)
        ).all()
    }
    max_position = db.execute(
        select(func.max(table.c.position)).where(table.c.test_suite_id == test_suite_id)
    ).scalar()
    position = (max_position or 0) + 1

    added = 0
    for case_id in dict.fromkeys(test_case_ids):
        if case_id in existing:
            continue
        db.execute(table.insert().values(test_suite_id=test_suite_id, test_case_id=case_id, position=position))
        position += 1
        added += 1

    db.commit()
    logger.info(f"Added {added} test case(s) to suite {test_suite_id}")


def remove_test_cases_from_suite(db: Session, test_suite_id: int, test_case_ids: list[int]) -> None:
    table = models.test_suite_test_cases
    db.execute(
        table.delete().where(
            table.c.test_suite_id == test_suite_id,
            table.c.test_case_id.in_(test_case_ids),
        )
    )
    db.commit()
    logger.info(f"Removed test cases {test_case_ids} from suite {test_suite_id}")


def get_suite_test_cases(db: Session, test_suite_id: int) -> list[models.TestCase]:
    table = models.test_suite_test_cases
    return (
        db.query(models.TestCase)
        .join(table, table.c.test_case_id == models.TestCase.id)
        .filter(table.c.test_suite_id == test_suite_id)
        .order_by(table.c.position)
        .all()
    )


# ============================================================================
# Test Plans
# ============================================================================

def create_test_plan(
    db: Session,
    test_plan: schemas.TestPlanCreate,
    user_id: Optional[str] = None,
) -> models.TestPlan:
    db_plan = models.TestPlan(**test_plan.model_dump(), created_by_id=user_id)
    db.add(db_plan)
    db.commit()
    db.refresh(db_plan)
    logger.info(f"Created test plan {db_plan.id}: {db_plan.name}")
    return db_plan


def get_test_plan(db: Session, test_plan_id: int) -> Optional[models.TestPlan]:
    return db.query(models.TestPlan).filter(models.TestPlan.id == test_plan_id).first()


def list_test_plans(db: Session, status: Optional[models.TestPlanStatus] = None) -> list[models.TestPlan]:
    query = db.query(models.TestPlan)
    if status:
        query = query.filter(models.TestPlan.status == status)
    return query.order_by(models.TestPlan.updated_at.desc(), models.TestPlan.id.desc()).all()


def update_test_plan(
    db: Session,
    test_plan_id: int,
    test_plan_update: schemas.TestPlanUpdate,
) -> Optional[models.TestPlan]:
    db_plan = get_test_plan(db, test_plan_id)
    if not db_plan:
        return None

    _apply_update(db_plan, test_plan_update.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(db_plan)
    logger.info(f"Updated test plan {test_plan_id}")
    return db_plan


def add_test_cases_to_plan(db: Session, test_plan_id: int, test_case_ids: list[int]) -> None:
    """
    Append test cases to a plan with status ``not-run``. Existing members are skipped.

    Raises:
        ValueError: If any of the test cases does not exist
    """
    missing = _missing_test_case_ids(db, test_case_ids)
    if missing:
        raise ValueError(f"Test cases not found: {missing}")

    members = (
        db.query(models.TestPlanTestCase)
        .filter(models.TestPlanTestCase.test_plan_id == test_plan_id)
        .all()
    )
    existing = {member.test_case_id for member in members}
    position = max((m.position or 0 for m in members), default=0) + 1

    for case_id in dict.fromkeys(test_case_ids):
        if case_id in existing:
            continue
        db.add(models.TestPlanTestCase(test_plan_id=test_plan_id, test_case_id=case_id, position=position))
        position += 1

    db.commit()
    logger.info(f"Added test cases {test_case_ids} to plan {test_plan_id}")


def remove_test_cases_from_plan(db: Session, test_plan_id: int, test_case_ids: list[int]) -> None:
    db.query(models.TestPlanTestCase).filter(
        models.TestPlanTestCase.test_plan_id == test_plan_id,
        models.TestPlanTestCase.test_case_id.in_(test_case_ids),
    ).delete(synchronize_session=False)
    db.commit()
    logger.info(f"Removed test cases {test_case_ids} from plan {test_plan_id}")


def get_plan_test_cases(db: Session, test_plan_id: int) -> list[models.TestPlanTestCase]:
    return (
        db.query(models.TestPlanTestCase)
        .filter(models.TestPlanTestCase.test_plan_id == test_plan_id)
        .order_by(models.TestPlanTestCase.position)
        .all()
    )


# ============================================================================
# Notifications
# ============================================================================

def create_notification(
    db: Session,
    user_id: str,
    title: str,
    content: Optional[str] = None,
    notification_type: models.NotificationType = models.NotificationType.INFO,
    link: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    commit: bool = True,
) -> models.Notification:
    notification = models.Notification(
        user_id=user_id,
        title=title,
        content=content,
        notification_type=notification_type,
        link=link,
        resource_type=resource_type,
        resource_id=resource_id,
    )
    db.add(notification)
    if commit:
        db.commit()
        db.refresh(notification)
    return notification


def list_notifications(
    db: Session,
    user_id: str,
    read: Optional[bool] = None,
) -> list[models.Notification]:
    query = db.query(models.Notification).filter(models.Notification.user_id == user_id)
    if read is not None:
        query = query.filter(models.Notification.read == read)
    return query.order_by(models.Notification.created_at.desc(), models.Notification.id.desc()).all()


def mark_notification_read(db: Session, notification_id: int, user_id: str) -> Optional[models.Notification]:
    """Mark one of the user's notifications as read. Returns None if it is not theirs."""
    notification = (
        db.query(models.Notification)
        .filter(models.Notification.id == notification_id, models.Notification.user_id == user_id)
        .first()
    )
    if not notification:
        return None

    notification.read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_notifications_read(db: Session, user_id: str) -> int:
    updated = (
        db.query(models.Notification)
        .filter(models.Notification.user_id == user_id, models.Notification.read.is_(False))
        .update({models.Notification.read: True}, synchronize_session=False)
    )
    db.commit()
    logger.info(f"Marked {updated} notification(s) read for user {user_id}")
    return updated


# ============================================================================
# Comments
# ============================================================================

def get_comment(db: Session, comment_id: int) -> Optional[models.Comment]:
    return db.query(models.Comment).filter(models.Comment.id == comment_id).first()


def list_test_case_comments(db: Session, test_case_id: int) -> list[models.Comment]:
    """
    All comments on a test case as a flat list (top-level comments and replies).

    Threading happens on the client from ``parent_id``.
    """
    return (
        db.query(models.Comment)
        .filter(models.Comment.test_case_id == test_case_id)
        .order_by(models.Comment.created_at, models.Comment.id)
        .all()
    )


def list_comment_replies(db: Session, comment_id: int) -> list[models.Comment]:
    return (
        db.query(models.Comment)
        .filter(models.Comment.parent_id == comment_id)
        .order_by(models.Comment.created_at, models.Comment.id)
        .all()
    )


def create_comment(
    db: Session,
    comment: schemas.CommentCreate,
    author_id: str,
) -> models.Comment:
    """
    Create a comment or a reply.

    Replies are one level deep: the parent must exist, be top-level and sit
    on the same test case. Replying to another user's comment notifies them.

    Args:
        db: Database session
        comment: Comment data
        author_id: ID of the commenting user

    Returns:
        Created comment

    Raises:
        LookupError: If the test case does not exist
        CommentRuleError: If the parent violates the threading rules
    """
    if not get_test_case(db, comment.test_case_id):
        raise LookupError(f"Test case not found: {comment.test_case_id}")

    parent = None
    if comment.parent_id is not None:
        parent = get_comment(db, comment.parent_id)
        if not parent:
            raise CommentRuleError(f"Parent comment not found: {comment.parent_id}")
        if parent.test_case_id != comment.test_case_id:
            raise CommentRuleError(
                f"Parent comment {parent.id} belongs to test case {parent.test_case_id}, "
                f"not {comment.test_case_id}"
            )
        if parent.parent_id is not None:
            raise CommentRuleError(f"Cannot reply to reply {parent.id}; reply to comment {parent.parent_id} instead")

    db_comment = models.Comment(
        content=comment.content.strip(),
        test_case_id=comment.test_case_id,
        parent_id=comment.parent_id,
        author_id=author_id,
    )
    db.add(db_comment)
    db.flush()

    if parent is not None and parent.author_id != author_id:
        create_notification(
            db,
            user_id=parent.author_id,
            title="New reply to your comment",
            content=db_comment.content[:200],
            link=f"/test-cases/{comment.test_case_id}",
            resource_type="comment",
            resource_id=str(db_comment.id),
            commit=False,
        )

    db.commit()
    db.refresh(db_comment)
    logger.info(
        f"User {author_id} added comment {db_comment.id} on test case {db_comment.test_case_id}"
        + (f" (reply to {parent.id})" if parent is not None else "")
    )
    return db_comment


def update_comment(
    db: Session,
    comment_id: int,
    comment_update: schemas.CommentUpdate,
    user_id: str,
) -> Optional[models.Comment]:
    """
    Edit a comment's content. Only the author may do so.

    Raises:
        PermissionDeniedError: If ``user_id`` is not the author
    """
    db_comment = get_comment(db, comment_id)
    if not db_comment:
        return None
    if db_comment.author_id != user_id:
        raise PermissionDeniedError(f"Only the author can edit comment {comment_id}")

    _apply_update(db_comment, {"content": comment_update.content.strip()})
    db.commit()
    db.refresh(db_comment)
    logger.info(f"User {user_id} edited comment {comment_id}")
    return db_comment


def delete_comment(db: Session, comment_id: int, user_id: str) -> bool:
    """
    Delete a comment and its direct replies in one transaction.

    Raises:
        PermissionDeniedError: If ``user_id`` is not the author
    """
    db_comment = get_comment(db, comment_id)
    if not db_comment:
        return False
    if db_comment.author_id != user_id:
        raise PermissionDeniedError(f"Only the author can delete comment {comment_id}")

    replies = (
        db.query(models.Comment)
        .filter(models.Comment.parent_id == comment_id)
        .delete(synchronize_session=False)
    )
    db.delete(db_comment)
    db.commit()
    logger.info(f"User {user_id} deleted comment {comment_id} and {replies} repl{'y' if replies == 1 else 'ies'}")
    return True
