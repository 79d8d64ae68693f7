"""Task model representing a user-owned work item."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from app.core.time import utcnow

RUNTIME_ANNOTATION_TYPES = (date, datetime)


class Task(SQLModel, table=True):
    """Task row; ``created_by`` and ``created_at`` are fixed at creation."""

    __tablename__ = "tasks"  # pyright: ignore[reportAssignmentType]
    # Deleted ids are never reissued, so orphaned permission rows cannot attach to new tasks.
    __table_args__ = {"sqlite_autoincrement": True}

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(min_length=1)
    description: str = ""
    completed: bool = Field(default=False)
    created_by: int = Field(index=True)
    due_date: date
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
