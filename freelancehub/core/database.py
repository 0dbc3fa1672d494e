"""Database engine, session lifecycle and transaction helpers."""

import asyncio
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Iterator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from freelancehub.core.config import Settings
from freelancehub.core.exceptions import InternalError, StorageUnavailable

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all models."""


def _connect_args(url: str, connect_timeout: int, command_timeout: int) -> dict:
    if url.startswith("postgresql+asyncpg"):
        return {"timeout": connect_timeout, "command_timeout": command_timeout}
    if url.startswith("sqlite"):
        # busy timeout: writers wait for each other instead of failing fast
        return {"timeout": connect_timeout}
    return {}


class Database:
    """Owns the async engine (and its connection pool) and the session factory.

    Constructed explicitly by the application lifespan, or by tests, and
    disposed of on shutdown.
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 5,
        pool_timeout: int = 30,
        connect_timeout: int = 10,
        command_timeout: int = 30,
        **engine_kwargs,
    ):
        self.url = url
        if "poolclass" not in engine_kwargs and not url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_pre_ping=True,
            )
        engine_kwargs.setdefault(
            "connect_args", _connect_args(url, connect_timeout, command_timeout)
        )
        self.engine = create_async_engine(url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False, autoflush=False
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.DATABASE_URL,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            connect_timeout=settings.DB_CONNECT_TIMEOUT,
            command_timeout=settings.DB_COMMAND_TIMEOUT,
        )

    async def create_all(self) -> None:
        """Create any missing tables."""
        # Register models on the metadata
        import freelancehub.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError, asyncio.TimeoutError, TimeoutError) as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session; closing it returns the connection to the pool."""
        async with self.session_factory() as session:
            yield session

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency for getting a request-scoped database session."""
    database: Database = request.app.state.db
    async with database.session() as session:
        yield session


@contextmanager
def translate_storage_errors(operation: str) -> Iterator[None]:
    """Map driver failures onto the service error taxonomy.

    ``IntegrityError`` passes through untouched: only the caller knows which
    constraint it was guarding and what that means.
    """
    try:
        yield
    except IntegrityError:
        raise
    except (OperationalError, PoolTimeoutError, asyncio.TimeoutError, TimeoutError) as exc:
        logger.error(f"Storage unavailable during {operation}: {exc}")
        raise StorageUnavailable() from exc
    except DBAPIError as exc:
        if exc.connection_invalidated:
            logger.error(f"Connection lost during {operation}: {exc}")
            raise StorageUnavailable() from exc
        logger.error(f"Database error during {operation}", exc_info=True)
        raise InternalError() from exc
    except SQLAlchemyError as exc:
        logger.error(f"Database error during {operation}", exc_info=True)
        raise InternalError() from exc


@asynccontextmanager
async def transaction(session: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """Run a unit of work: commit on success, roll back on any error."""
    try:
        with translate_storage_errors(operation):
            yield session
            await session.commit()
    except BaseException:
        await session.rollback()
        raise
