"""Task service: transactional create-with-grant and capability-gated access.

Access rules:

- reading a task requires a capability record with ``can_read`` or ``can_edit``;
- updating or deleting requires ``can_edit``; a read-only record is not enough;
- a user with no record gets ``PermissionNotFoundError``, a record with both
  flags false gets ``PermissionDeniedError``.

Errors raised by the stores are already classified and pass through unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from app.core.errors import PermissionDeniedError
from app.core.logging import get_logger
from app.core.time import to_date_only
from app.models.task_permissions import TaskPermission
from app.models.tasks import Task

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import date, datetime

    from app.db.transaction import TransactionCoordinator, UnitOfWork

logger = get_logger(__name__)


class TaskRepository(Protocol):
    async def create(self, uow: UnitOfWork | None, task: Task) -> int: ...

    async def fetch_by_ids(self, *task_ids: int) -> list[Task]: ...

    async def fetch_by_id(self, task_id: int) -> Task: ...

    async def update(self, task_id: int, fields: Mapping[str, object]) -> None: ...

    async def delete(self, task_id: int) -> None: ...


class TaskPermissionRepository(Protocol):
    async def grant_permission(
        self,
        uow: UnitOfWork | None,
        permission: TaskPermission,
    ) -> None: ...

    async def fetch_task_ids_for_user(
        self,
        user_id: int,
        *,
        can_edit: bool,
        can_read: bool,
    ) -> list[int]: ...

    async def fetch_permission(self, task_id: int, user_id: int) -> TaskPermission: ...


def can_read(permission: TaskPermission) -> bool:
    return permission.can_read or permission.can_edit


def can_edit(permission: TaskPermission) -> bool:
    return permission.can_edit


class TaskService:
    """Orchestrates the task and permission stores for one request."""

    def __init__(
        self,
        *,
        tasks: TaskRepository,
        permissions: TaskPermissionRepository,
        transactions: TransactionCoordinator,
    ) -> None:
        self._tasks = tasks
        self._permissions = permissions
        self._transactions = transactions

    async def create(
        self,
        *,
        title: str,
        description: str,
        user_id: int,
        due_date: date | datetime | str,
    ) -> None:
        """Insert a task and its creator's full capability record atomically."""
        task = Task(
            title=title,
            description=description,
            completed=False,
            created_by=user_id,
            due_date=to_date_only(due_date),
        )

        async def _create_with_grant(uow: UnitOfWork) -> int:
            task_id = await self._tasks.create(uow, task)
            await self._permissions.grant_permission(
                uow,
                TaskPermission(task_id=task_id, user_id=user_id, can_edit=True, can_read=True),
            )
            return task_id

        task_id = await self._transactions.run(_create_with_grant)
        logger.info("task.create.committed task_id=%s user_id=%s", task_id, user_id)

    async def fetch_all_for_user(self, user_id: int) -> list[Task]:
        task_ids = await self._permissions.fetch_task_ids_for_user(
            user_id,
            can_edit=True,
            can_read=True,
        )
        if not task_ids:
            return []
        tasks = await self._tasks.fetch_by_ids(*task_ids)
        logger.debug("task.fetch_all user_id=%s count=%s", user_id, len(tasks))
        return tasks

    async def fetch_by_id(self, *, task_id: int, user_id: int) -> Task:
        await self._require_access(task_id=task_id, user_id=user_id, write=False)
        return await self._tasks.fetch_by_id(task_id)

    async def update(
        self,
        *,
        task_id: int,
        user_id: int,
        title: str,
        description: str,
        due_date: date | datetime | str,
    ) -> None:
        await self._require_access(task_id=task_id, user_id=user_id, write=True)
        await self._tasks.update(
            task_id,
            {
                "title": title,
                "description": description,
                "due_date": to_date_only(due_date),
            },
        )
        logger.info("task.update task_id=%s user_id=%s", task_id, user_id)

    async def delete(self, *, task_id: int, user_id: int) -> None:
        """Delete a task; its permission records are left in place."""
        await self._require_access(task_id=task_id, user_id=user_id, write=True)
        await self._tasks.delete(task_id)
        logger.info("task.delete task_id=%s user_id=%s", task_id, user_id)

    async def _require_access(
        self,
        *,
        task_id: int,
        user_id: int,
        write: bool,
    ) -> TaskPermission:
        permission = await self._permissions.fetch_permission(task_id, user_id)
        allowed = can_edit(permission) if write else can_read(permission)
        if not allowed:
            action = "edit" if write else "read"
            logger.info(
                "task.access.denied task_id=%s user_id=%s action=%s",
                task_id,
                user_id,
                action,
            )
            raise PermissionDeniedError(
                f"user {user_id} cannot {action} task {task_id}",
            )
        return permission
