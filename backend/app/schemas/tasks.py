"""Task API schemas for create, update, and read payloads."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import Field, field_validator
from sqlmodel import SQLModel

from app.core.time import to_date_only

RUNTIME_ANNOTATION_TYPES = (date, datetime)


class TaskWrite(SQLModel):
    """Fields a caller may set on create and replace on update."""

    title: str = Field(
        min_length=1,
        description="Short task title.",
        examples=["Write quarterly report"],
    )
    description: str = Field(
        description="Free-text task details.",
        examples=["Summarize Q4 metrics for the team sync."],
    )
    due_date: date = Field(
        description="Calendar due date; any time-of-day component is discarded.",
        examples=["2024-12-31"],
    )

    @field_validator("due_date", mode="before")
    @classmethod
    def _strip_time_of_day(cls, value: object) -> object:
        if isinstance(value, (date, str)):
            try:
                return to_date_only(value)
            except ValueError:
                return value
        return value


class TaskCreate(TaskWrite):
    """Payload for creating a task owned by the caller."""


class TaskUpdate(TaskWrite):
    """Payload replacing a task's title, description, and due date."""


class TaskRead(SQLModel):
    """Task payload returned by read endpoints."""

    id: int
    title: str
    description: str
    completed: bool
    created_by: int
    due_date: date
    created_at: datetime


class TaskResponse(SQLModel):
    """Envelope returned by every task endpoint."""

    message: str = Field(examples=["fetched"])
    tasks: list[TaskRead] = Field(default_factory=list)
