"""Database — explicit handle over an async engine and its session factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from prguard.exceptions import StorageError
from prguard.store.dialect import get_dialect

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///prguard.db"


class Database:
    """Owns the engine shared by every PRGuard store.

    Each call to :meth:`session` yields a fresh session that commits on
    clean exit and rolls back on error, so every store operation is
    atomic on its own. Driver errors surface as :class:`StorageError`.

    Usage::

        db = Database.from_url("sqlite+aiosqlite:///prguard.db")
        await db.create_tables()
        async with db.session() as session:
            ...
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._dialect = get_dialect(engine)
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_url(cls, url: str = DEFAULT_DATABASE_URL, *, echo: bool = False) -> Database:
        """Create a handle for *url* (any SQLAlchemy async URL)."""
        engine = create_async_engine(url, echo=echo)
        if engine.dialect.name == "sqlite":
            _enable_sqlite_pragmas(engine)
        return cls(engine)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def dialect(self) -> str:
        return self._dialect

    async def create_tables(self) -> None:
        """Create every PRGuard table that does not exist yet."""
        import prguard.models  # noqa: F401  (register tables on SQLModel.metadata)

        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to create tables: {exc}") from exc

    async def ping(self) -> bool:
        """Return True when the database answers a trivial query."""
        from sqlalchemy import text

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Database ping failed", exc_info=True)
            return False
        return True

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Yield a session, committing on success and rolling back on failure."""
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            raise StorageError(str(exc)) from exc
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def close(self) -> None:
        """Dispose of the engine's connection pool."""
        await self._engine.dispose()


def _enable_sqlite_pragmas(engine: AsyncEngine) -> None:
    """Use WAL and a busy timeout so concurrent events do not fail on lock contention."""
    from sqlalchemy import event

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragmas(dbapi_connection, _record):  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()
