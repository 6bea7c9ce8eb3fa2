"""Initial schema - all tables

Revision ID: 001
Revises:
Create Date: 2025-01-01 00:00:00.000000

This migration creates all tables for StaffDesk:
- employees: directory rows with role and reporting lines
- request_types: catalog of request kinds
- requests: the approval workflow records
- timesheet_tasks / timesheet_entries: weekly task hours
- leave_balances: yearly entitlements
- audit_log: change tracking
- user_sessions: API sessions
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from staffdesk.config import get_settings

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Get schema from config
settings = get_settings()
SCHEMA = settings.db_schema  # None for the default schema

LIVE_WEEK = sa.text("week_start_date IS NOT NULL AND status NOT IN ('CANCELLED', 'REJECTED')")


def _ref(target: str) -> str:
    return f'{SCHEMA}.{target}' if SCHEMA else target


def upgrade() -> None:
    if SCHEMA and op.get_bind().dialect.name == 'mssql':
        op.execute(f"IF NOT EXISTS (SELECT * FROM sys.schemas WHERE name = '{SCHEMA}') EXEC('CREATE SCHEMA {SCHEMA}')")

    op.create_table(
        'employees',
        sa.Column('employee_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='employee'),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        sa.Column('hr_id', sa.Integer(), nullable=True),
        sa.Column('department_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['manager_id'], [_ref('employees.employee_id')], name='fk_employees_manager'),
        sa.ForeignKeyConstraint(['hr_id'], [_ref('employees.employee_id')], name='fk_employees_hr'),
        sa.PrimaryKeyConstraint('employee_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_employees_username', 'employees', ['username'], unique=True, schema=SCHEMA)
    op.create_index('ix_employees_manager_id', 'employees', ['manager_id'], schema=SCHEMA)
    op.create_index('ix_employees_department_id', 'employees', ['department_id'], schema=SCHEMA)

    op.create_table(
        'request_types',
        sa.Column('request_type_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False, server_default='other'),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('requires_approval', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('request_type_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_request_types_code', 'request_types', ['code'], unique=True, schema=SCHEMA)

    op.create_table(
        'requests',
        sa.Column('request_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('request_type_id', sa.Integer(), nullable=False),
        sa.Column('requester_id', sa.Integer(), nullable=False),
        sa.Column('approver_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('requested_at', sa.DateTime(), nullable=False),
        sa.Column('effective_from', sa.Date(), nullable=True),
        sa.Column('effective_to', sa.Date(), nullable=True),
        sa.Column('week_start_date', sa.Date(), nullable=True),
        sa.Column('reason', sa.String(length=1000), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('approval_comment', sa.String(length=1000), nullable=True),
        sa.Column('rejection_reason', sa.String(length=1000), nullable=True),
        sa.Column('decided_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(
            ['request_type_id'], [_ref('request_types.request_type_id')],
            name='fk_requests_request_type', ondelete='RESTRICT',
        ),
        sa.ForeignKeyConstraint(['requester_id'], [_ref('employees.employee_id')], name='fk_requests_requester'),
        sa.ForeignKeyConstraint(['approver_id'], [_ref('employees.employee_id')], name='fk_requests_approver'),
        sa.PrimaryKeyConstraint('request_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_requests_request_type_id', 'requests', ['request_type_id'], schema=SCHEMA)
    op.create_index('ix_requests_requester_id', 'requests', ['requester_id'], schema=SCHEMA)
    op.create_index('ix_requests_requester_status', 'requests', ['requester_id', 'status'], schema=SCHEMA)
    op.create_index('ix_requests_status_created', 'requests', ['status', 'created_at'], schema=SCHEMA)
    # One live weekly timesheet per employee
    op.create_index(
        'uq_requests_requester_week', 'requests', ['requester_id', 'week_start_date'],
        unique=True,
        schema=SCHEMA,
        sqlite_where=LIVE_WEEK,
        postgresql_where=LIVE_WEEK,
        mssql_where=LIVE_WEEK,
    )

    op.create_table(
        'timesheet_tasks',
        sa.Column('task_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('task_code', sa.String(length=30), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('task_type', sa.String(length=20), nullable=False, server_default='project'),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('task_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_timesheet_tasks_task_code', 'timesheet_tasks', ['task_code'], unique=True, schema=SCHEMA)

    op.create_table(
        'timesheet_entries',
        sa.Column('entry_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('request_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('task_id', sa.Integer(), nullable=False),
        sa.Column('entry_type', sa.String(length=20), nullable=False, server_default='project'),
        sa.Column('week_start_date', sa.Date(), nullable=False),
        sa.Column('week_end_date', sa.Date(), nullable=False),
        sa.Column('hours', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(
            ['request_id'], [_ref('requests.request_id')],
            name='fk_timesheet_entries_request', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(['employee_id'], [_ref('employees.employee_id')], name='fk_timesheet_entries_employee'),
        sa.ForeignKeyConstraint(['task_id'], [_ref('timesheet_tasks.task_id')], name='fk_timesheet_entries_task'),
        sa.UniqueConstraint('employee_id', 'task_id', 'week_start_date', name='uq_timesheet_entries_employee_task_week'),
        sa.CheckConstraint('hours >= 0 AND hours <= 168', name='ck_timesheet_entries_hours'),
        sa.PrimaryKeyConstraint('entry_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_timesheet_entries_request_id', 'timesheet_entries', ['request_id'], schema=SCHEMA)
    op.create_index('ix_timesheet_entries_task_id', 'timesheet_entries', ['task_id'], schema=SCHEMA)
    op.create_index('ix_timesheet_entries_employee_week', 'timesheet_entries', ['employee_id', 'week_start_date'], schema=SCHEMA)

    op.create_table(
        'leave_balances',
        sa.Column('balance_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('balance_type', sa.String(length=30), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('total', sa.Numeric(precision=6, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['employee_id'], [_ref('employees.employee_id')], name='fk_leave_balances_employee'),
        sa.UniqueConstraint('employee_id', 'balance_type', 'year', name='uq_leave_balances_employee_type_year'),
        sa.PrimaryKeyConstraint('balance_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_leave_balances_employee_id', 'leave_balances', ['employee_id'], schema=SCHEMA)

    op.create_table(
        'audit_log',
        sa.Column('audit_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('table_name', sa.String(length=100), nullable=False),
        sa.Column('record_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('changed_fields', sa.String(length=500), nullable=True),
        sa.Column('old_values', sa.Text(), nullable=True),
        sa.Column('new_values', sa.Text(), nullable=True),
        sa.Column('performed_by', sa.Integer(), nullable=False),
        sa.Column('performed_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('context', sa.String(length=200), nullable=True),
        sa.ForeignKeyConstraint(['performed_by'], [_ref('employees.employee_id')], name='fk_audit_log_performed_by'),
        sa.PrimaryKeyConstraint('audit_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_audit_log_table_name', 'audit_log', ['table_name'], schema=SCHEMA)
    op.create_index('ix_audit_log_record_id', 'audit_log', ['record_id'], schema=SCHEMA)
    op.create_index('ix_audit_log_performed_by', 'audit_log', ['performed_by'], schema=SCHEMA)
    op.create_index('ix_audit_log_performed_at', 'audit_log', ['performed_at'], schema=SCHEMA)

    op.create_table(
        'user_sessions',
        sa.Column('session_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('session_token', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_activity_at', sa.DateTime(), nullable=True),
        sa.Column('logged_out_at', sa.DateTime(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['employee_id'], [_ref('employees.employee_id')], name='fk_user_sessions_employee'),
        sa.PrimaryKeyConstraint('session_id'),
        schema=SCHEMA,
    )
    op.create_index('ix_user_sessions_session_token', 'user_sessions', ['session_token'], unique=True, schema=SCHEMA)
    op.create_index('ix_user_sessions_employee_id', 'user_sessions', ['employee_id'], schema=SCHEMA)
    op.create_index('ix_user_sessions_employee_active', 'user_sessions', ['employee_id', 'is_active'], schema=SCHEMA)


def downgrade() -> None:
    op.drop_table('user_sessions', schema=SCHEMA)
    op.drop_table('audit_log', schema=SCHEMA)
    op.drop_table('leave_balances', schema=SCHEMA)
    op.drop_table('timesheet_entries', schema=SCHEMA)
    op.drop_table('timesheet_tasks', schema=SCHEMA)
    op.drop_table('requests', schema=SCHEMA)
    op.drop_table('request_types', schema=SCHEMA)
    op.drop_table('employees', schema=SCHEMA)
