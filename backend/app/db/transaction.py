"""Unit-of-work coordination for writes that must commit or roll back together.

Store write methods that participate in a larger unit take a ``UnitOfWork``
argument instead of discovering a transaction from ambient state. Only a
``TransactionCoordinator`` creates units of work, and a unit is usable only
while its ``run`` call is in progress.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import QueryFailedError, TransactionNotFoundError
from app.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sqlmodel.ext.asyncio.session import AsyncSession

T = TypeVar("T")
logger = get_logger(__name__)


@dataclass(eq=False)
class UnitOfWork:
    """Live transactional handle handed to store writes by the coordinator."""

    session: AsyncSession
    active: bool = True


def require_active(uow: UnitOfWork | None, *, operation: str) -> AsyncSession:
    """Return the session of an active unit of work or raise ``TransactionNotFoundError``."""
    if uow is None or not uow.active:
        raise TransactionNotFoundError(f"{operation} requires an active unit of work")
    return uow.session


class TransactionCoordinator(Protocol):
    """Strategy for running a unit of work atomically."""

    async def run(self, unit: Callable[[UnitOfWork], Awaitable[T]]) -> T: ...


class SessionTransactionCoordinator:
    """Run units of work on one ``AsyncSession``, committing only on success.

    Any exception raised by the unit or by the commit rolls the session back
    and propagates unchanged; commit failures are reported as
    ``QueryFailedError``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def run(self, unit: Callable[[UnitOfWork], Awaitable[T]]) -> T:
        uow = UnitOfWork(session=self._session)
        try:
            result = await unit(uow)
            try:
                await self._session.commit()
            except SQLAlchemyError as exc:
                raise QueryFailedError("commit failed") from exc
        except BaseException as exc:
            uow.active = False
            await rollback_quietly(self._session)
            logger.info("db.transaction.rollback error_type=%s", type(exc).__name__)
            raise
        uow.active = False
        logger.debug("db.transaction.commit")
        return result


async def rollback_quietly(session: AsyncSession) -> None:
    """Roll *session* back, logging rather than raising a secondary failure."""
    try:
        await session.rollback()
    except SQLAlchemyError:
        logger.exception("db.transaction.rollback_failed")
