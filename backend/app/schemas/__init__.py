"""Public schema exports shared across API route modules."""

from app.schemas.errors import ErrorItem, ErrorResponse
from app.schemas.health import HealthStatusResponse
from app.schemas.tasks import TaskCreate, TaskRead, TaskResponse, TaskUpdate

__all__ = [
    "ErrorItem",
    "ErrorResponse",
    "HealthStatusResponse",
    "TaskCreate",
    "TaskRead",
    "TaskResponse",
    "TaskUpdate",
]
