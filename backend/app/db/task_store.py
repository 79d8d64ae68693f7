"""Persistence for task rows.

This store is the only place raw SQLAlchemy failures on the ``tasks`` table
are classified: missing rows become ``TaskNotFoundError`` and every other
database error becomes ``QueryFailedError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select

from app.core.errors import QueryFailedError, TaskNotFoundError
from app.db.transaction import require_active, rollback_quietly
from app.models.tasks import Task

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.db.transaction import UnitOfWork

TASK_UPDATE_FIELDS = frozenset({"title", "description", "due_date"})


class TaskStore:
    """CRUD access to ``tasks`` bound to a request-scoped session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, uow: UnitOfWork | None, task: Task) -> int:
        """Insert *task* inside *uow* and return its generated id."""
        session = require_active(uow, operation="task create")
        try:
            session.add(task)
            await session.flush()
        except SQLAlchemyError as exc:
            raise QueryFailedError("failed to insert task") from exc
        if task.id is None:
            raise QueryFailedError("insert did not return a task id")
        return task.id

    async def fetch_by_ids(self, *task_ids: int) -> list[Task]:
        statement = select(Task).where(col(Task.id).in_(task_ids)).order_by(col(Task.id))
        try:
            tasks = list(await self._session.exec(statement))
        except SQLAlchemyError as exc:
            raise QueryFailedError("failed to fetch tasks") from exc
        if not tasks:
            raise TaskNotFoundError(f"no tasks match ids {list(task_ids)}")
        return tasks

    async def fetch_by_id(self, task_id: int) -> Task:
        statement = select(Task).where(col(Task.id) == task_id)
        try:
            task = (await self._session.exec(statement)).first()
        except SQLAlchemyError as exc:
            raise QueryFailedError(f"failed to fetch task {task_id}") from exc
        if task is None:
            raise TaskNotFoundError(f"task {task_id} does not exist")
        return task

    async def update(self, task_id: int, fields: Mapping[str, object]) -> None:
        """Apply the allow-listed subset of *fields* to a task and commit.

        Keys outside ``TASK_UPDATE_FIELDS`` are ignored, so ``completed``,
        ``created_by`` and ``created_at`` can never change here.
        """
        values = {key: value for key, value in fields.items() if key in TASK_UPDATE_FIELDS}
        task = await self._get(task_id)
        for key, value in values.items():
            setattr(task, key, value)
        try:
            self._session.add(task)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await rollback_quietly(self._session)
            raise QueryFailedError(f"failed to update task {task_id}") from exc

    async def delete(self, task_id: int) -> None:
        task = await self._get(task_id)
        try:
            await self._session.delete(task)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await rollback_quietly(self._session)
            raise QueryFailedError(f"failed to delete task {task_id}") from exc

    async def _get(self, task_id: int) -> Task:
        try:
            task = await self._session.get(Task, task_id)
        except SQLAlchemyError as exc:
            raise QueryFailedError(f"failed to load task {task_id}") from exc
        if task is None:
            raise TaskNotFoundError(f"task {task_id} does not exist")
        return task
