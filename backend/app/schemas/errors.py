"""Structured error payload schemas used by API responses."""

from __future__ import annotations

from pydantic import Field
from sqlmodel import SQLModel


class ErrorItem(SQLModel):
    """One taxonomy error rendered for clients."""

    code: int = Field(
        description="Stable numeric error code.",
        examples=[3001],
    )
    message: str = Field(
        description="Fixed human-readable message for the code.",
        examples=["task not found"],
    )
    description: str | None = Field(
        default=None,
        description="Context for this particular failure.",
        examples=["no task yet"],
    )


class ErrorResponse(SQLModel):
    """Top-level error envelope returned for every failed request."""

    message: str = Field(
        description="Operation-level summary of the failure.",
        examples=["failed to fetch task"],
    )
    errors: list[ErrorItem] = Field(default_factory=list)
    request_id: str | None = Field(
        default=None,
        description="Request correlation identifier injected by middleware.",
    )
