"""Persistence for per-(task, user) capability records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select

from app.core.errors import GrantPermissionFailedError, PermissionNotFoundError, QueryFailedError
from app.db.transaction import require_active
from app.models.task_permissions import TaskPermission

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.db.transaction import UnitOfWork


class TaskPermissionStore:
    """Insert-only grants plus capability lookups on ``task_permissions``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def grant_permission(self, uow: UnitOfWork | None, permission: TaskPermission) -> None:
        """Insert *permission* inside *uow*.

        Any insert failure, including a second record for the same
        ``(task_id, user_id)`` pair, is reported as ``GrantPermissionFailedError``.
        """
        session = require_active(uow, operation="permission grant")
        try:
            session.add(permission)
            await session.flush()
        except SQLAlchemyError as exc:
            raise GrantPermissionFailedError(
                f"task_id={permission.task_id} user_id={permission.user_id}",
            ) from exc

    async def fetch_task_ids_for_user(
        self,
        user_id: int,
        *,
        can_edit: bool,
        can_read: bool,
    ) -> list[int]:
        """Return ids of tasks whose record for *user_id* has exactly these flags."""
        # TODO: exact match excludes read-only grants from listings; confirm whether
        # "read or edit" was intended before adding non-owner grants.
        statement = (
            select(TaskPermission.task_id)
            .where(col(TaskPermission.user_id) == user_id)
            .where(col(TaskPermission.can_edit) == can_edit)
            .where(col(TaskPermission.can_read) == can_read)
            .order_by(col(TaskPermission.task_id))
        )
        try:
            task_ids = list(await self._session.exec(statement))
        except SQLAlchemyError as exc:
            raise QueryFailedError(f"failed to fetch task ids for user {user_id}") from exc
        if not task_ids:
            raise PermissionNotFoundError(f"user {user_id} has no matching task permissions")
        return task_ids

    async def fetch_permission(self, task_id: int, user_id: int) -> TaskPermission:
        statement = (
            select(TaskPermission)
            .where(col(TaskPermission.task_id) == task_id)
            .where(col(TaskPermission.user_id) == user_id)
        )
        try:
            permission = (await self._session.exec(statement)).first()
        except SQLAlchemyError as exc:
            raise QueryFailedError(
                f"failed to fetch permission for task {task_id} and user {user_id}",
            ) from exc
        if permission is None:
            raise PermissionNotFoundError(f"user {user_id} has no record for task {task_id}")
        return permission
