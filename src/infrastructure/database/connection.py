# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Async engine and session lifecycle.

The API process holds one engine, created by ``init_database`` during
startup and disposed by ``close_database``. PostgreSQL is reached through
asyncpg and tests use aiosqlite; both go through ``build_engine``.

Sessions never expire attributes on commit and never autoflush, so
services decide exactly when pending rows reach the database.
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import DatabaseSettings, Settings

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None

# Server-side connections are recycled before typical idle timeouts.
_POOL_RECYCLE_SECONDS = 1800


class DatabaseError(Exception):
    """The database is not configured or a statement failed.

    ``cause`` keeps the driver-level exception when there is one.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message if cause is None else f"{message}: {cause}")
        self.cause = cause


def build_engine(db_settings: "DatabaseSettings") -> AsyncEngine:
    options: dict[str, Any] = {"echo": db_settings.echo}
    if not db_settings.is_sqlite:
        # aiosqlite rejects pool sizing arguments.
        options.update(
            pool_size=db_settings.pool_size,
            max_overflow=db_settings.max_overflow,
            pool_pre_ping=True,
            pool_recycle=_POOL_RECYCLE_SECONDS,
        )
    return create_async_engine(db_settings.url, **options)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def init_database(settings: "Settings") -> None:
    """Create the process-wide engine and session factory.

    Raises:
        DatabaseError: The URL or driver options were rejected.
    """
    global _engine, _sessionmaker

    try:
        engine = build_engine(settings.database)
    except (SQLAlchemyError, ImportError) as e:
        raise DatabaseError("Cannot create database engine", e) from e
    _engine, _sessionmaker = engine, build_sessionmaker(engine)


async def close_database() -> None:
    global _engine, _sessionmaker

    engine, _engine, _sessionmaker = _engine, None, None
    if engine is not None:
        await engine.dispose()


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    if _sessionmaker is None:
        raise DatabaseError("Database is not initialized")
    return _sessionmaker


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Open a session for one request.

    Whatever is still pending when the block exits normally is committed.
    Any exception rolls back, and SQLAlchemy failures surface as
    DatabaseError so the API can answer 503.
    """
    async with get_sessionmaker()() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


async def check_database_connection() -> bool:
    if _engine is None:
        return False
    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        return False
    return True
