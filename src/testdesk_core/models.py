"""SQLAlchemy database models."""
from datetime import datetime, timezone
import enum

from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    DateTime,
    ForeignKey,
    Enum,
    Boolean,
    JSON,
    CheckConstraint,
    Table,
)
from sqlalchemy.orm import relationship, declarative_base

# Base class for all models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp used for all audit columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enum_values(enum_cls):
    # Persist enum values ("in-progress") rather than member names (IN_PROGRESS)
    return [e.value for e in enum_cls]


class TestRunStatus(str, enum.Enum):
    """Test run lifecycle status."""

    QUEUED = "queued"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TestRunType(str, enum.Enum):
    """How the tests of a run were executed."""

    AUTOMATED = "automated"
    MANUAL = "manual"
    MIXED = "mixed"


class TestCaseType(str, enum.Enum):
    """Test case type."""

    AUTOMATED = "automated"
    MANUAL = "manual"
    API = "api"
    PERFORMANCE = "performance"
    SECURITY = "security"


class TestCaseStatus(str, enum.Enum):
    """Test case lifecycle status (columns of the test case board)."""

    DRAFT = "draft"
    ACTIVE = "active"
    DEPRECATED = "deprecated"
    ARCHIVED = "archived"


class AutomationStatus(str, enum.Enum):
    """Automation progress of a test case."""

    NOT_AUTOMATED = "not-automated"
    IN_PROGRESS = "in-progress"
    AUTOMATED = "automated"


class Priority(str, enum.Enum):
    """Priority shared by test cases and failures."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TestResultStatus(str, enum.Enum):
    """Outcome of a single executed test."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    BLOCKED = "blocked"
    NOT_RUN = "not-run"


class FailureStatus(str, enum.Enum):
    """Failure tracking status (columns of the failure board)."""

    NEW = "new"
    IN_PROGRESS = "in-progress"
    BLOCKED = "blocked"
    RESOLVED = "resolved"


class TestPlanStatus(str, enum.Enum):
    """Test plan lifecycle status."""

    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class PlanCaseStatus(str, enum.Enum):
    """Execution status of a test case inside a plan."""

    NOT_RUN = "not-run"
    IN_PROGRESS = "in-progress"
    PASSED = "passed"
    FAILED = "failed"
    BLOCKED = "blocked"


class NotificationType(str, enum.Enum):
    """Notification severity."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


# Association table for suite membership (ordered)
test_suite_test_cases = Table(
    "test_suite_test_cases",
    Base.metadata,
    Column("test_suite_id", Integer, ForeignKey("test_suites.id", ondelete="CASCADE"), primary_key=True),
    Column("test_case_id", Integer, ForeignKey("test_cases.id", ondelete="CASCADE"), primary_key=True),
    Column("position", Integer, nullable=True),
)


class User(Base):
    """
    User known to the Resource Store.

    Authentication is handled upstream; a row is upserted the first time an
    identity is seen on a request.
    """

    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    role = Column(String(50), nullable=False, default="user")
    email = Column(String(255), unique=True, nullable=True)
    username = Column(String(100), unique=True, nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    preferences = Column(JSON, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<User {self.id}>"


class TestRun(Base):
    """A batch execution of tests (automated upload or manual session)."""

    __tablename__ = "test_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    status = Column(Enum(TestRunStatus, values_callable=_enum_values), nullable=False, default=TestRunStatus.IN_PROGRESS, index=True)
    run_type = Column("type", Enum(TestRunType, values_callable=_enum_values), nullable=False, default=TestRunType.AUTOMATED)
    created_by_id = Column(String(255), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    start_time = Column(DateTime, nullable=True, default=utcnow)
    end_time = Column(DateTime, nullable=True)
    environment = Column(String(100), nullable=True)
    branch = Column(String(255), nullable=True)
    build_number = Column(String(100), nullable=True)
    meta = Column("metadata", JSON, nullable=True)
    total_tests = Column(Integer, nullable=True)
    passed_tests = Column(Integer, nullable=True)
    failed_tests = Column(Integer, nullable=True)
    skipped_tests = Column(Integer, nullable=True)
    execution_time = Column(Integer, nullable=True)  # milliseconds
    xml_data = Column(Text, nullable=True)  # raw JUnit XML as uploaded

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    results = relationship("TestResult", back_populates="test_run", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<TestRun {self.id}: {self.name[:30]}>"


class TestCase(Base):
    """A manual or automated test case."""

    __tablename__ = "test_cases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    class_name = Column(String(255), nullable=True)
    meta = Column("metadata", JSON, nullable=True)
    test_type = Column("type", Enum(TestCaseType, values_callable=_enum_values), nullable=False, default=TestCaseType.AUTOMATED, index=True)
    status = Column(Enum(TestCaseStatus, values_callable=_enum_values), nullable=False, default=TestCaseStatus.ACTIVE, index=True)
    priority = Column(Enum(Priority, values_callable=_enum_values), nullable=True)
    created_by_id = Column(String(255), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_to_id = Column(String(255), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    description = Column(Text, nullable=True)
    preconditions = Column(Text, nullable=True)
    steps = Column(Text, nullable=True)
    expected_results = Column(Text, nullable=True)
    actual_results = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    attachments = Column(JSON, nullable=False, default=list)
    test_suite_id = Column(Integer, ForeignKey("test_suites.id", ondelete="SET NULL"), nullable=True)
    automation_status = Column(
        Enum(AutomationStatus, values_callable=_enum_values),
        nullable=False,
        default=AutomationStatus.NOT_AUTOMATED,
    )
    automation_script = Column(Text, nullable=True)
    estimated_duration = Column(Integer, nullable=True)  # minutes
    custom_fields = Column(JSON, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow, index=True)

    comments = relationship("Comment", back_populates="test_case", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("estimated_duration IS NULL OR estimated_duration > 0", name="positive_estimated_duration"),
    )

    def __repr__(self) -> str:
        return f"<TestCase {self.id}: {self.name[:30]}>"


class TestResult(Base):
    """Outcome of one test inside a run."""

    __tablename__ = "test_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    status = Column(Enum(TestResultStatus, values_callable=_enum_values), nullable=False, index=True)
    test_run_id = Column(Integer, ForeignKey("test_runs.id", ondelete="CASCADE"), nullable=False, index=True)
    test_case_id = Column(Integer, ForeignKey("test_cases.id", ondelete="SET NULL"), nullable=True, index=True)
    executed_by_id = Column(String(255), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    execution_time = Column(Integer, nullable=True)  # milliseconds
    error_message = Column(Text, nullable=True)
    error_type = Column(String(255), nullable=True)
    stack_trace = Column(Text, nullable=True)
    std_out = Column(Text, nullable=True)
    std_err = Column(Text, nullable=True)
    attachments = Column(JSON, nullable=False, default=list)
    meta = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    test_run = relationship("TestRun", back_populates="results")

    def __repr__(self) -> str:
        return f"<TestResult {self.id}: {self.status.value}>"


class FailureTracking(Base):
    """
    A tracked failure shown as a card on the failure board.

    ``status`` is the id of the board column the card occupies.
    """

    __tablename__ = "failure_tracking"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    status = Column(Enum(FailureStatus, values_callable=_enum_values), nullable=False, default=FailureStatus.NEW, index=True)
    priority = Column(Enum(Priority, values_callable=_enum_values), nullable=False, default=Priority.MEDIUM, index=True)
    test_result_id = Column(Integer, ForeignKey("test_results.id", ondelete="SET NULL"), nullable=True)
    test_case_id = Column(Integer, ForeignKey("test_cases.id", ondelete="SET NULL"), nullable=True)
    assigned_to_id = Column(String(255), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by_id = Column(String(255), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    description = Column(Text, nullable=True)
    root_cause = Column(Text, nullable=True)
    resolution = Column(Text, nullable=True)
    external_reference_id = Column(String(255), nullable=True)  # external issue tracker key
    external_reference_url = Column(String(500), nullable=True)
    due_date = Column(DateTime, nullable=True)
    custom_fields = Column(JSON, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<FailureTracking {self.id}: {self.status.value} - {self.name[:30]}>"


class TestSuite(Base):
    """Folder-like grouping of test cases; suites nest through ``parent_id``."""

    __tablename__ = "test_suites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    parent_id = Column(Integer, ForeignKey("test_suites.id", ondelete="CASCADE"), nullable=True, index=True)
    created_by_id = Column(String(255), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<TestSuite {self.id}: {self.name[:30]}>"


class TestPlan(Base):
    """Manual execution plan over a set of test cases."""

    __tablename__ = "test_plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    status = Column(Enum(TestPlanStatus, values_callable=_enum_values), nullable=False, default=TestPlanStatus.DRAFT, index=True)
    created_by_id = Column(String(255), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    assigned_to_id = Column(String(255), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    progress = Column(Integer, nullable=False, default=0)  # percentage of executed cases
    custom_fields = Column(JSON, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="valid_progress"),
    )

    def __repr__(self) -> str:
        return f"<TestPlan {self.id}: {self.status.value} - {self.name[:30]}>"


class TestPlanTestCase(Base):
    """Membership of a test case in a plan, with its execution state."""

    __tablename__ = "test_plan_test_cases"

    test_plan_id = Column(Integer, ForeignKey("test_plans.id", ondelete="CASCADE"), primary_key=True)
    test_case_id = Column(Integer, ForeignKey("test_cases.id", ondelete="CASCADE"), primary_key=True)
    position = Column(Integer, nullable=True)
    status = Column(Enum(PlanCaseStatus, values_callable=_enum_values), nullable=False, default=PlanCaseStatus.NOT_RUN)
    assigned_to_id = Column(String(255), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    executed_by_id = Column(String(255), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    executed_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    test_case = relationship("TestCase")

    def __repr__(self) -> str:
        return f"<TestPlanTestCase plan={self.test_plan_id} case={self.test_case_id}>"


class Notification(Base):
    """In-app notification addressed to one user."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)
    notification_type = Column("type", Enum(NotificationType, values_callable=_enum_values), nullable=False, default=NotificationType.INFO)
    read = Column(Boolean, nullable=False, default=False, index=True)
    link = Column(String(500), nullable=True)
    resource_type = Column(String(50), nullable=True)
    resource_id = Column(String(50), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<Notification {self.id} -> {self.user_id}: {self.title[:30]}>"


class Comment(Base):
    """
    Collaborative note attached to a test case.

    Replies reference a top-level comment through ``parent_id``. The column
    is self-referencing so storage could nest arbitrarily, but the API only
    accepts one level of replies.
    """

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    content = Column(Text, nullable=False)
    author_id = Column(String(255), ForeignKey("users.id"), nullable=False, index=True)
    test_case_id = Column(Integer, ForeignKey("test_cases.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    test_case = relationship("TestCase", back_populates="comments")
    author = relationship("User")

    def __repr__(self) -> str:
        return f"<Comment {self.id} on test case {self.test_case_id}>"
