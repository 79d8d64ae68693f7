"""Reusable FastAPI dependencies for identity and the task service.

Routers compose from these instead of constructing stores or coordinators
themselves, so every request gets one session shared by the service, both
stores, and the transaction coordinator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends

from app.core.auth import get_auth_context
from app.db.session import get_session
from app.db.task_permission_store import TaskPermissionStore
from app.db.task_store import TaskStore
from app.db.transaction import SessionTransactionCoordinator
from app.services.tasks import TaskService

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

AUTH_DEP = Depends(get_auth_context)
SESSION_DEP = Depends(get_session)


def get_task_service(session: AsyncSession = SESSION_DEP) -> TaskService:
    """Build a request-scoped task service bound to *session*."""
    return TaskService(
        tasks=TaskStore(session),
        permissions=TaskPermissionStore(session),
        transactions=SessionTransactionCoordinator(session),
    )


TASK_SERVICE_DEP = Depends(get_task_service)
