"""Async engine, request-scoped sessions, and schema bootstrap."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Any

from alembic.config import Config
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app import models as _models
from app.core.config import settings
from app.core.logging import get_logger
from app.db.transaction import rollback_quietly

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

# Import model modules so SQLModel metadata is fully registered at startup.
_MODEL_REGISTRY = _models
BACKEND_ROOT = Path(__file__).resolve().parents[2]
MIGRATIONS_DIR = BACKEND_ROOT / "migrations" / "versions"

logger = get_logger(__name__)


def _normalize_database_url(database_url: str) -> str:
    """Route plain PostgreSQL URLs through the async psycopg driver."""
    if "://" not in database_url:
        return database_url
    scheme, rest = database_url.split("://", 1)
    if scheme in {"postgresql", "postgres"}:
        return f"postgresql+psycopg://{rest}"
    return database_url


def _engine_options() -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True}
    if settings.database_isolation_level:
        options["isolation_level"] = settings.database_isolation_level
    return options


async_engine: AsyncEngine = create_async_engine(
    _normalize_database_url(settings.database_url),
    **_engine_options(),
)
async_session_maker = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def _alembic_config() -> Config:
    alembic_cfg = Config(str(BACKEND_ROOT / "alembic.ini"))
    alembic_cfg.attributes["configure_logger"] = False
    return alembic_cfg


def run_migrations() -> None:
    """Apply Alembic migrations to the latest revision."""
    from alembic import command

    logger.info("db.migrations.start")
    command.upgrade(_alembic_config(), "head")
    logger.info("db.migrations.complete")


async def init_db() -> None:
    """Create the task schema, through Alembic when auto-migrate is enabled."""
    if settings.db_auto_migrate and any(MIGRATIONS_DIR.glob("*.py")):
        await asyncio.to_thread(run_migrations)
        return
    if settings.db_auto_migrate:
        logger.warning("db.init.no_revisions falling back to create_all")
    async with async_engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("db.init.create_all tables=%s", len(SQLModel.metadata.tables))


async def dispose_engine() -> None:
    await async_engine.dispose()
    logger.info("db.engine.disposed")


async def ping(session: AsyncSession) -> bool:
    """Return True when *session* can reach the database."""
    try:
        await session.exec(text("SELECT 1"))  # type: ignore[call-overload]
    except SQLAlchemyError:
        logger.warning("db.ping.failed", exc_info=True)
        return False
    return True


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped session, discarding any transaction left open."""
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await rollback_quietly(session)
