"""Shared fixtures for PRGuard tests."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

import prguard.models  # noqa: F401  (register tables on SQLModel.metadata)
from prguard.rate_limit import RateLimiter
from prguard.store import AnalysisStore, Database, EmbeddingStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine


class FakeClock:
    """Settable clock for bucket rollover tests."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2025, 3, 14, 9, 30, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine with all tables created."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def database(async_engine: AsyncEngine) -> Database:
    return Database(async_engine)


@pytest.fixture
def embedding_store(database: Database) -> EmbeddingStore:
    return EmbeddingStore(database)


@pytest.fixture
def analysis_store(database: Database) -> AnalysisStore:
    return AnalysisStore(database)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(database: Database, clock: FakeClock) -> RateLimiter:
    return RateLimiter(database, clock=clock)
