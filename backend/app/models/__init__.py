"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from app.models.task_permissions import TaskPermission
from app.models.tasks import Task

__all__ = [
    "Task",
    "TaskPermission",
]
