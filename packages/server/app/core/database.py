"""
Database gateway: engine/pool ownership and transaction demarcation.

Managers receive a ``Database`` at construction and run each unit of work
through ``transaction()``. One pooled connection is checked out per
transaction and returned on exit, whether it committed or rolled back.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Optional, TypeVar, Union

import structlog
from sqlalchemy import Row, text
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import Executable
from sqlmodel import SQLModel

from app.core.config import Settings
from app.core.errors import ConflictError, InfrastructureError, ServiceError

log = structlog.get_logger()

T = TypeVar("T")
UnitOfWork = Callable[[AsyncSession], Awaitable[T]]
Statement = Union[str, Executable]


def _as_executable(statement: Statement) -> Executable:
    if isinstance(statement, str):
        return text(statement)
    return statement


def create_engine(settings: Settings) -> AsyncEngine:
    """Build the async engine; SQLite (tests, local dev) skips pool tuning."""
    url = settings.database_url
    kwargs: dict[str, Any] = {"echo": settings.debug}

    if url.startswith("sqlite"):
        if ":memory:" in url:
            # Every session must see the same in-memory database
            kwargs["poolclass"] = StaticPool
    else:
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_pre_ping=True,
        )
        if settings.db_isolation_level:
            kwargs["isolation_level"] = settings.db_isolation_level

    return create_async_engine(url, **kwargs)


class Database:
    """The only component that talks to the datastore."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(create_engine(settings))

    async def transaction(self, unit_of_work: UnitOfWork[T]) -> T:
        """Run ``unit_of_work`` in one transaction.

        Returning commits; raising rolls back and re-raises. Service failures
        pass through untouched, driver failures are re-raised as
        ``ConflictError`` (integrity violations) or ``InfrastructureError``.
        """
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    return await unit_of_work(session)
        except ServiceError as exc:
            log.debug("db.transaction_rolled_back", reason=exc.code)
            raise
        except IntegrityError as exc:
            log.warning("db.integrity_error", error=type(exc.orig).__name__)
            raise ConflictError("Operation conflicts with existing data") from exc
        except (SQLAlchemyError, OSError) as exc:
            log.error("db.transaction_failed", error=type(exc).__name__)
            raise InfrastructureError() from exc

    async def query(self, statement: Statement, params: Optional[dict] = None) -> list[Row]:
        """Execute one statement in its own transaction and return all rows."""

        async def _run(session: AsyncSession) -> list[Row]:
            result = await session.execute(_as_executable(statement), params)
            if isinstance(result, CursorResult) and not result.returns_rows:
                return []
            return list(result.all())

        return await self.transaction(_run)

    async def query_one(self, statement: Statement, params: Optional[dict] = None) -> Optional[Row]:
        rows = await self.query(statement, params)
        return rows[0] if rows else None

    async def scalars(self, statement: Executable) -> list[Any]:
        """Execute a single-entity select and return the entities."""

        async def _run(session: AsyncSession) -> list[Any]:
            result = await session.execute(statement)
            return list(result.scalars().all())

        return await self.transaction(_run)

    async def scalar(self, statement: Executable) -> Any:
        async def _run(session: AsyncSession) -> Any:
            result = await session.execute(statement)
            return result.scalars().first()

        return await self.transaction(_run)

    async def check_connection(self) -> dict:
        """Connectivity probe for health checks. Never raises."""
        try:
            row = await self.query_one("SELECT CURRENT_TIMESTAMP AS time")
        except InfrastructureError as exc:
            cause = exc.__cause__
            log.error("db.health_check_failed", error=type(cause).__name__ if cause else None)
            return {"status": "error", "error": exc.message}
        return {"status": "connected", "time": str(row.time) if row else None}

    async def create_all(self) -> None:
        """Create all tables (development and tests; use migrations in production)."""
        import app.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
