"""Per-(task, user) capability record gating task access."""

from __future__ import annotations

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class TaskPermission(SQLModel, table=True):
    """Capability flags for one user on one task.

    ``task_id`` is not a foreign key; deleting a task leaves its
    permission rows in place.
    """

    __tablename__ = "task_permissions"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (
        UniqueConstraint(
            "task_id",
            "user_id",
            name="uq_task_permissions_task_user",
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    task_id: int = Field(index=True)
    user_id: int = Field(index=True)
    can_edit: bool = Field(default=False)
    can_read: bool = Field(default=False)
