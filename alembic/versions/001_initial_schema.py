"""Initial schema: test management tables, comments and notifications.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PRIORITY_VALUES = ('low', 'medium', 'high', 'critical')


def _timestamps(updated: bool = True) -> list:
    columns = [sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now())]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()))
    return columns


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(255), primary_key=True),
        sa.Column('role', sa.String(50), nullable=False, server_default='user'),
        sa.Column('email', sa.String(255), unique=True),
        sa.Column('username', sa.String(100), unique=True),
        sa.Column('first_name', sa.String(100)),
        sa.Column('last_name', sa.String(100)),
        sa.Column('preferences', sa.JSON),
        *_timestamps(),
    )

    op.create_table(
        'test_suites',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('parent_id', sa.Integer, sa.ForeignKey('test_suites.id', ondelete='CASCADE')),
        sa.Column('created_by_id', sa.String(255), sa.ForeignKey('users.id', ondelete='SET NULL')),
        *_timestamps(),
    )
    op.create_index('ix_test_suites_parent_id', 'test_suites', ['parent_id'])

    op.create_table(
        'test_cases',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('class_name', sa.String(255)),
        sa.Column('metadata', sa.JSON),
        sa.Column('type', sa.Enum('automated', 'manual', 'api', 'performance', 'security', name='testcasetype'), nullable=False, server_default='automated'),
        sa.Column('status', sa.Enum('draft', 'active', 'deprecated', 'archived', name='testcasestatus'), nullable=False, server_default='active'),
        sa.Column('priority', sa.Enum(*PRIORITY_VALUES, name='priority')),
        sa.Column('created_by_id', sa.String(255), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('assigned_to_id', sa.String(255), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('description', sa.Text),
        sa.Column('preconditions', sa.Text),
        sa.Column('steps', sa.Text),
        sa.Column('expected_results', sa.Text),
        sa.Column('actual_results', sa.Text),
        sa.Column('tags', sa.JSON, nullable=False),
        sa.Column('attachments', sa.JSON, nullable=False),
        sa.Column('test_suite_id', sa.Integer, sa.ForeignKey('test_suites.id', ondelete='SET NULL')),
        sa.Column('automation_status', sa.Enum('not-automated', 'in-progress', 'automated', name='automationstatus'), nullable=False, server_default='not-automated'),
        sa.Column('automation_script', sa.Text),
        sa.Column('estimated_duration', sa.Integer),
        sa.Column('custom_fields', sa.JSON),
        *_timestamps(),
        sa.CheckConstraint('estimated_duration IS NULL OR estimated_duration > 0', name='positive_estimated_duration'),
    )
    op.create_index('ix_test_cases_type', 'test_cases', ['type'])
    op.create_index('ix_test_cases_status', 'test_cases', ['status'])
    op.create_index('ix_test_cases_assigned_to_id', 'test_cases', ['assigned_to_id'])
    op.create_index('ix_test_cases_created_at', 'test_cases', ['created_at'])
    op.create_index('ix_test_cases_updated_at', 'test_cases', ['updated_at'])

    op.create_table(
        'test_suite_test_cases',
        sa.Column('test_suite_id', sa.Integer, sa.ForeignKey('test_suites.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('test_case_id', sa.Integer, sa.ForeignKey('test_cases.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('position', sa.Integer),
    )

    op.create_table(
        'test_runs',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.Enum('queued', 'in-progress', 'completed', 'failed', 'cancelled', name='testrunstatus'), nullable=False, server_default='in-progress'),
        sa.Column('type', sa.Enum('automated', 'manual', 'mixed', name='testruntype'), nullable=False, server_default='automated'),
        sa.Column('created_by_id', sa.String(255), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('start_time', sa.DateTime),
        sa.Column('end_time', sa.DateTime),
        sa.Column('environment', sa.String(100)),
        sa.Column('branch', sa.String(255)),
        sa.Column('build_number', sa.String(100)),
        sa.Column('metadata', sa.JSON),
        sa.Column('total_tests', sa.Integer),
        sa.Column('passed_tests', sa.Integer),
        sa.Column('failed_tests', sa.Integer),
        sa.Column('skipped_tests', sa.Integer),
        sa.Column('execution_time', sa.Integer),
        sa.Column('xml_data', sa.Text),
        *_timestamps(),
    )
    op.create_index('ix_test_runs_status', 'test_runs', ['status'])
    op.create_index('ix_test_runs_created_at', 'test_runs', ['created_at'])

    op.create_table(
        'test_results',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.Enum('passed', 'failed', 'skipped', 'blocked', 'not-run', name='testresultstatus'), nullable=False),
        sa.Column('test_run_id', sa.Integer, sa.ForeignKey('test_runs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('test_case_id', sa.Integer, sa.ForeignKey('test_cases.id', ondelete='SET NULL')),
        sa.Column('executed_by_id', sa.String(255), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('execution_time', sa.Integer),
        sa.Column('error_message', sa.Text),
        sa.Column('error_type', sa.String(255)),
        sa.Column('stack_trace', sa.Text),
        sa.Column('std_out', sa.Text),
        sa.Column('std_err', sa.Text),
        sa.Column('attachments', sa.JSON, nullable=False),
        sa.Column('metadata', sa.JSON),
        *_timestamps(),
    )
    op.create_index('ix_test_results_status', 'test_results', ['status'])
    op.create_index('ix_test_results_test_run_id', 'test_results', ['test_run_id'])
    op.create_index('ix_test_results_test_case_id', 'test_results', ['test_case_id'])
    op.create_index('ix_test_results_created_at', 'test_results', ['created_at'])

    op.create_table(
        'failure_tracking',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.Enum('new', 'in-progress', 'blocked', 'resolved', name='failurestatus'), nullable=False, server_default='new'),
        # Type already created with test_cases
        sa.Column('priority', postgresql.ENUM(*PRIORITY_VALUES, name='priority', create_type=False), nullable=False, server_default='medium'),
        sa.Column('test_result_id', sa.Integer, sa.ForeignKey('test_results.id', ondelete='SET NULL')),
        sa.Column('test_case_id', sa.Integer, sa.ForeignKey('test_cases.id', ondelete='SET NULL')),
        sa.Column('assigned_to_id', sa.String(255), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('created_by_id', sa.String(255), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('description', sa.Text),
        sa.Column('root_cause', sa.Text),
        sa.Column('resolution', sa.Text),
        sa.Column('external_reference_id', sa.String(255)),
        sa.Column('external_reference_url', sa.String(500)),
        sa.Column('due_date', sa.DateTime),
        sa.Column('custom_fields', sa.JSON),
        *_timestamps(),
    )
    op.create_index('ix_failure_tracking_status', 'failure_tracking', ['status'])
    op.create_index('ix_failure_tracking_priority', 'failure_tracking', ['priority'])
    op.create_index('ix_failure_tracking_assigned_to_id', 'failure_tracking', ['assigned_to_id'])
    op.create_index('ix_failure_tracking_created_at', 'failure_tracking', ['created_at'])
    op.create_index('ix_failure_tracking_updated_at', 'failure_tracking', ['updated_at'])

    op.create_table(
        'test_plans',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.Enum('draft', 'active', 'completed', 'archived', name='testplanstatus'), nullable=False, server_default='draft'),
        sa.Column('created_by_id', sa.String(255), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('assigned_to_id', sa.String(255), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('description', sa.Text),
        sa.Column('start_date', sa.DateTime),
        sa.Column('end_date', sa.DateTime),
        sa.Column('progress', sa.Integer, nullable=False, server_default='0'),
        sa.Column('custom_fields', sa.JSON),
        *_timestamps(),
        sa.CheckConstraint('progress >= 0 AND progress <= 100', name='valid_progress'),
    )
    op.create_index('ix_test_plans_status', 'test_plans', ['status'])

    op.create_table(
        'test_plan_test_cases',
        sa.Column('test_plan_id', sa.Integer, sa.ForeignKey('test_plans.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('test_case_id', sa.Integer, sa.ForeignKey('test_cases.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('position', sa.Integer),
        sa.Column('status', sa.Enum('not-run', 'in-progress', 'passed', 'failed', 'blocked', name='plancasestatus'), nullable=False, server_default='not-run'),
        sa.Column('assigned_to_id', sa.String(255), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('executed_by_id', sa.String(255), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('executed_at', sa.DateTime),
        sa.Column('notes', sa.Text),
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(255), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content', sa.Text),
        sa.Column('type', sa.Enum('info', 'warning', 'error', 'success', name='notificationtype'), nullable=False, server_default='info'),
        sa.Column('read', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('link', sa.String(500)),
        sa.Column('resource_type', sa.String(50)),
        sa.Column('resource_id', sa.String(50)),
        *_timestamps(updated=False),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_read', 'notifications', ['read'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    # Replies point at a top-level comment on the same test case
    op.create_table(
        'comments',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('author_id', sa.String(255), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('test_case_id', sa.Integer, sa.ForeignKey('test_cases.id', ondelete='CASCADE'), nullable=False),
        sa.Column('parent_id', sa.Integer, sa.ForeignKey('comments.id', ondelete='CASCADE')),
        *_timestamps(),
    )
    op.create_index('ix_comments_author_id', 'comments', ['author_id'])
    op.create_index('ix_comments_test_case_id', 'comments', ['test_case_id'])
    op.create_index('ix_comments_parent_id', 'comments', ['parent_id'])
    op.create_index('ix_comments_created_at', 'comments', ['created_at'])


def downgrade() -> None:
    op.drop_table('comments')
    op.drop_table('notifications')
    op.drop_table('test_plan_test_cases')
    op.drop_table('test_plans')
    op.drop_table('failure_tracking')
    op.drop_table('test_results')
    op.drop_table('test_runs')
    op.drop_table('test_suite_test_cases')
    op.drop_table('test_cases')
    op.drop_table('test_suites')
    op.drop_table('users')

    for enum_name in (
        'notificationtype', 'plancasestatus', 'testplanstatus', 'failurestatus',
        'testresultstatus', 'testruntype', 'testrunstatus', 'automationstatus',
        'testcasestatus', 'testcasetype', 'priority',
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
