"""Create tasks and task_permissions tables.

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from __future__ import annotations

import sqlalchemy as sa
import sqlmodel
from alembic import op

# revision identifiers, used by Alembic.
revision = "1a2b3c4d5e6f"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create task rows and per-user capability records."""
    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index(op.f("ix_tasks_created_by"), "tasks", ["created_by"], unique=False)

    # No foreign key on task_id; deleting a task leaves its permission rows.
    op.create_table(
        "task_permissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("can_edit", sa.Boolean(), nullable=False),
        sa.Column("can_read", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("task_id", "user_id", name="uq_task_permissions_task_user"),
    )
    op.create_index(
        op.f("ix_task_permissions_task_id"),
        "task_permissions",
        ["task_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_task_permissions_user_id"),
        "task_permissions",
        ["user_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop capability records and tasks."""
    op.drop_index(op.f("ix_task_permissions_user_id"), table_name="task_permissions")
    op.drop_index(op.f("ix_task_permissions_task_id"), table_name="task_permissions")
    op.drop_table("task_permissions")
    op.drop_index(op.f("ix_tasks_created_by"), table_name="tasks")
    op.drop_table("tasks")
