"""Pydantic schemas for request/response validation."""
from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .models import (
    TestRunStatus,
    TestRunType,
    TestCaseType,
    TestCaseStatus,
    AutomationStatus,
    Priority,
    TestResultStatus,
    FailureStatus,
    TestPlanStatus,
    PlanCaseStatus,
    NotificationType,
)

# ORM models keep the "metadata" column under the ``meta`` attribute
# (``metadata`` is reserved by SQLAlchemy's declarative base).
_METADATA_ALIAS = AliasChoices("meta", "metadata")


# User Schemas

class UserResponse(BaseModel):
    """Schema for the current user."""

    id: str
    role: str
    email: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    preferences: Optional[dict] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Test Run Schemas

class TestRunCreate(BaseModel):
    """Schema for creating a test run."""

    name: str = Field(..., min_length=1, max_length=255)
    status: TestRunStatus = TestRunStatus.IN_PROGRESS
    type: TestRunType = TestRunType.AUTOMATED
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    environment: Optional[str] = Field(None, max_length=100)
    branch: Optional[str] = Field(None, max_length=255)
    build_number: Optional[str] = Field(None, max_length=100)
    metadata: Optional[dict[str, Any]] = None
    total_tests: Optional[int] = Field(None, ge=0)
    passed_tests: Optional[int] = Field(None, ge=0)
    failed_tests: Optional[int] = Field(None, ge=0)
    skipped_tests: Optional[int] = Field(None, ge=0)
    execution_time: Optional[int] = Field(None, ge=0, description="Execution time in milliseconds")
    xml_data: Optional[str] = Field(None, description="Raw JUnit XML as uploaded")


class TestRunUpdate(BaseModel):
    """Schema for partially updating a test run."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[TestRunStatus] = None
    type: Optional[TestRunType] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    environment: Optional[str] = Field(None, max_length=100)
    branch: Optional[str] = Field(None, max_length=255)
    build_number: Optional[str] = Field(None, max_length=100)
    metadata: Optional[dict[str, Any]] = None
    total_tests: Optional[int] = Field(None, ge=0)
    passed_tests: Optional[int] = Field(None, ge=0)
    failed_tests: Optional[int] = Field(None, ge=0)
    skipped_tests: Optional[int] = Field(None, ge=0)
    execution_time: Optional[int] = Field(None, ge=0)
    xml_data: Optional[str] = None


class TestRunResponse(BaseModel):
    """Schema for test run response."""

    id: int
    name: str
    status: TestRunStatus
    type: TestRunType = Field(validation_alias=AliasChoices("run_type", "type"))
    created_by_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    environment: Optional[str] = None
    branch: Optional[str] = None
    build_number: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias=_METADATA_ALIAS)
    total_tests: Optional[int] = None
    passed_tests: Optional[int] = None
    failed_tests: Optional[int] = None
    skipped_tests: Optional[int] = None
    execution_time: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# Test Case Schemas

class TestCaseCreate(BaseModel):
    """Schema for creating a test case."""

    name: str = Field(..., min_length=1, max_length=255)
    class_name: Optional[str] = Field(None, max_length=255)
    metadata: Optional[dict[str, Any]] = None
    type: TestCaseType = TestCaseType.AUTOMATED
    status: TestCaseStatus = TestCaseStatus.ACTIVE
    priority: Optional[Priority] = None
    assigned_to_id: Optional[str] = None
    description: Optional[str] = None
    preconditions: Optional[str] = None
    steps: Optional[str] = None
    expected_results: Optional[str] = None
    actual_results: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)
    test_suite_id: Optional[int] = None
    automation_status: AutomationStatus = AutomationStatus.NOT_AUTOMATED
    automation_script: Optional[str] = None
    estimated_duration: Optional[int] = Field(None, gt=0, description="Estimated duration in minutes")
    custom_fields: Optional[dict[str, Any]] = None


class TestCaseUpdate(BaseModel):
    """Schema for partially updating a test case (only provided fields change)."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    class_name: Optional[str] = Field(None, max_length=255)
    metadata: Optional[dict[str, Any]] = None
    type: Optional[TestCaseType] = None
    status: Optional[TestCaseStatus] = None
    priority: Optional[Priority] = None
    assigned_to_id: Optional[str] = None
    description: Optional[str] = None
    preconditions: Optional[str] = None
    steps: Optional[str] = None
    expected_results: Optional[str] = None
    actual_results: Optional[str] = None
    tags: Optional[list[str]] = None
    attachments: Optional[list[str]] = None
    test_suite_id: Optional[int] = None
    automation_status: Optional[AutomationStatus] = None
    automation_script: Optional[str] = None
    estimated_duration: Optional[int] = Field(None, gt=0)
    custom_fields: Optional[dict[str, Any]] = None


class TestCaseResponse(BaseModel):
    """Schema for test case response."""

    id: int
    name: str
    class_name: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias=_METADATA_ALIAS)
    type: TestCaseType = Field(validation_alias=AliasChoices("test_type", "type"))
    status: TestCaseStatus
    priority: Optional[Priority] = None
    created_by_id: Optional[str] = None
    assigned_to_id: Optional[str] = None
    description: Optional[str] = None
    preconditions: Optional[str] = None
    steps: Optional[str] = None
    expected_results: Optional[str] = None
    actual_results: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)
    test_suite_id: Optional[int] = None
    automation_status: AutomationStatus
    automation_script: Optional[str] = None
    estimated_duration: Optional[int] = None
    custom_fields: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# Test Result Schemas

class TestResultCreate(BaseModel):
    """Schema for recording a test result."""

    name: str = Field(..., min_length=1, max_length=255)
    status: TestResultStatus
    test_run_id: int
    test_case_id: Optional[int] = None
    execution_time: Optional[int] = Field(None, ge=0)
    error_message: Optional[str] = None
    error_type: Optional[str] = None
    stack_trace: Optional[str] = None
    std_out: Optional[str] = None
    std_err: Optional[str] = None
    attachments: list[str] = Field(default_factory=list)
    metadata: Optional[dict[str, Any]] = None


class TestResultResponse(BaseModel):
    """Schema for test result response."""

    id: int
    name: str
    status: TestResultStatus
    test_run_id: int
    test_case_id: Optional[int] = None
    executed_by_id: Optional[str] = None
    execution_time: Optional[int] = None
    error_message: Optional[str] = None
    error_type: Optional[str] = None
    stack_trace: Optional[str] = None
    std_out: Optional[str] = None
    std_err: Optional[str] = None
    attachments: list[str] = Field(default_factory=list)
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias=_METADATA_ALIAS)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# Failure Tracking Schemas

class FailureCreate(BaseModel):
    """Schema for creating a tracked failure."""

    name: str = Field(..., min_length=1, max_length=255)
    status: FailureStatus = FailureStatus.NEW
    priority: Priority = Priority.MEDIUM
    test_result_id: Optional[int] = None
    test_case_id: Optional[int] = None
    assigned_to_id: Optional[str] = None
    description: Optional[str] = None
    root_cause: Optional[str] = None
    resolution: Optional[str] = None
    external_reference_id: Optional[str] = Field(None, max_length=255)
    external_reference_url: Optional[str] = Field(None, max_length=500)
    due_date: Optional[datetime] = None
    custom_fields: Optional[dict[str, Any]] = None


class FailureUpdate(BaseModel):
    """Schema for partially updating a failure.

    Dragging a card on the failure board sends ``{"status": ...}`` only.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[FailureStatus] = None
    priority: Optional[Priority] = None
    test_result_id: Optional[int] = None
    test_case_id: Optional[int] = None
    assigned_to_id: Optional[str] = None
    description: Optional[str] = None
    root_cause: Optional[str] = None
    resolution: Optional[str] = None
    external_reference_id: Optional[str] = Field(None, max_length=255)
    external_reference_url: Optional[str] = Field(None, max_length=500)
    due_date: Optional[datetime] = None
    custom_fields: Optional[dict[str, Any]] = None


class FailureResponse(BaseModel):
    """Schema for failure response."""

    id: int
    name: str
    status: FailureStatus
    priority: Priority
    test_result_id: Optional[int] = None
    test_case_id: Optional[int] = None
    assigned_to_id: Optional[str] = None
    created_by_id: Optional[str] = None
    description: Optional[str] = None
    root_cause: Optional[str] = None
    resolution: Optional[str] = None
    external_reference_id: Optional[str] = None
    external_reference_url: Optional[str] = None
    due_date: Optional[datetime] = None
    custom_fields: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# Test Suite Schemas

class TestSuiteCreate(BaseModel):
    """Schema for creating a test suite."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    parent_id: Optional[int] = Field(None, gt=0)


class TestSuiteUpdate(BaseModel):
    """Schema for partially updating a test suite."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    parent_id: Optional[int] = Field(None, gt=0)


class TestSuiteResponse(BaseModel):
    """Schema for test suite response."""

    id: int
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TestCaseIdList(BaseModel):
    """Schema for adding/removing test cases to/from a suite or plan."""

    test_case_ids: list[int] = Field(..., description="Test case IDs")


# Test Plan Schemas

class TestPlanCreate(BaseModel):
    """Schema for creating a test plan."""

    name: str = Field(..., min_length=1, max_length=255)
    status: TestPlanStatus = TestPlanStatus.DRAFT
    assigned_to_id: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    progress: int = Field(0, ge=0, le=100)
    custom_fields: Optional[dict[str, Any]] = None


class TestPlanUpdate(BaseModel):
    """Schema for partially updating a test plan."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[TestPlanStatus] = None
    assigned_to_id: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    custom_fields: Optional[dict[str, Any]] = None


class TestPlanResponse(BaseModel):
    """Schema for test plan response."""

    id: int
    name: str
    status: TestPlanStatus
    created_by_id: Optional[str] = None
    assigned_to_id: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    progress: int
    custom_fields: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class PlanTestCaseResponse(BaseModel):
    """A test case inside a plan together with its execution state."""

    test_case: TestCaseResponse
    position: Optional[int] = None
    status: PlanCaseStatus
    assigned_to_id: Optional[str] = None
    executed_by_id: Optional[str] = None
    executed_at: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# Notification Schemas

class NotificationResponse(BaseModel):
    """Schema for notification response."""

    id: int
    user_id: str
    title: str
    content: Optional[str] = None
    type: NotificationType = Field(validation_alias=AliasChoices("notification_type", "type"))
    read: bool
    link: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# Comment Schemas

class CommentCreate(BaseModel):
    """Schema for creating a comment or a reply.

    A reply sets ``parent_id`` to a top-level comment on the same test case.
    """

    content: str = Field(..., min_length=1)
    test_case_id: int = Field(..., gt=0)
    parent_id: Optional[int] = Field(None, gt=0)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Comment content cannot be blank")
        return value


class CommentUpdate(BaseModel):
    """Schema for editing a comment's content."""

    content: str = Field(..., min_length=1)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Comment content cannot be blank")
        return value


class CommentResponse(BaseModel):
    """Schema for comment response (flat; replies carry ``parent_id``)."""

    id: int
    content: str
    author_id: str
    test_case_id: int
    parent_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
