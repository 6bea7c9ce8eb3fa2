"""Seed default data

Revision ID: 002
Revises: 001
Create Date: 2025-01-01 00:01:00.000000

This migration seeds:
- Admin user (for bootstrap)
- Request type catalog
- Timesheet task catalog
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.sql import table, column

from staffdesk.config import get_settings
from staffdesk.models.base import utcnow
from staffdesk.models.request_type import DEFAULT_REQUEST_TYPES
from staffdesk.models.timesheet import DEFAULT_TIMESHEET_TASKS

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

settings = get_settings()
SCHEMA = settings.db_schema


employees = table(
    'employees',
    column('employee_id', sa.Integer),
    column('username', sa.String),
    column('first_name', sa.String),
    column('last_name', sa.String),
    column('email', sa.String),
    column('role', sa.String),
    column('is_active', sa.Boolean),
    column('created_at', sa.DateTime),
    schema=SCHEMA,
)

request_types = table(
    'request_types',
    column('code', sa.String),
    column('name', sa.String),
    column('category', sa.String),
    column('description', sa.String),
    column('requires_approval', sa.Boolean),
    column('is_active', sa.Boolean),
    column('created_at', sa.DateTime),
    schema=SCHEMA,
)

timesheet_tasks = table(
    'timesheet_tasks',
    column('task_code', sa.String),
    column('name', sa.String),
    column('task_type', sa.String),
    column('description', sa.String),
    column('is_active', sa.Boolean),
    column('created_at', sa.DateTime),
    schema=SCHEMA,
)


def upgrade() -> None:
    now = utcnow()

    op.bulk_insert(
        employees,
        [
            {
                'username': 'admin',
                'first_name': 'System',
                'last_name': 'Administrator',
                'email': None,
                'role': 'admin',
                'is_active': True,
                'created_at': now,
            }
        ]
    )

    op.bulk_insert(
        request_types,
        [
            {**row, 'requires_approval': True, 'is_active': True, 'created_at': now}
            for row in DEFAULT_REQUEST_TYPES
        ]
    )

    op.bulk_insert(
        timesheet_tasks,
        [
            {**row, 'is_active': True, 'created_at': now}
            for row in DEFAULT_TIMESHEET_TASKS
        ]
    )


def downgrade() -> None:
    table_prefix = f"{SCHEMA}." if SCHEMA else ""
    op.execute(f"DELETE FROM {table_prefix}timesheet_tasks")
    op.execute(f"DELETE FROM {table_prefix}request_types")
    op.execute(f"DELETE FROM {table_prefix}employees WHERE username = 'admin'")
