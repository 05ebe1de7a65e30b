"""Tests for store/dialect.py — dialect detection, upsert and increment."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import select

from prguard.models import HourlyCallCount, ItemAnalysis
from prguard.store.dialect import _merge_mssql, get_dialect, increment, upsert


class TestGetDialect:
    async def test_sqlite_async(self):
        engine = create_async_engine("sqlite+aiosqlite://", echo=False)
        assert get_dialect(engine) == "sqlite"
        await engine.dispose()

    def test_sqlite_sync(self):
        from sqlmodel import create_engine

        engine = create_engine("sqlite://", echo=False)
        assert get_dialect(engine) == "sqlite"


NOW = datetime(2025, 1, 1, tzinfo=UTC)


def _analysis_values(**overrides):
    values = {
        "id": "row-1",
        "collection": "octo/widgets",
        "kind": "pr",
        "number": 1,
        "duplicates_json": "[]",
        "quality_score": 0.5,
        "recommendation": "review",
        "reasoning": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    return values


class TestUpsert:
    async def test_insert_then_replace(self, async_engine):
        factory = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
        keys = ["collection", "kind", "number"]
        async with factory() as session:
            await upsert(session, "sqlite", ItemAnalysis, _analysis_values(), keys)
            await upsert(
                session,
                "sqlite",
                ItemAnalysis,
                _analysis_values(id="row-2", quality_score=0.9, recommendation="approve"),
                keys,
                update_keys=["quality_score", "recommendation"],
            )
            await session.commit()

            rows = (await session.execute(select(ItemAnalysis))).scalars().all()

        assert len(rows) == 1
        assert rows[0].id == "row-1"
        assert rows[0].quality_score == 0.9
        assert rows[0].recommendation == "approve"

    async def test_mssql_uses_merge(self):
        session = AsyncMock()
        result = MagicMock(rowcount=1)
        session.execute = AsyncMock(return_value=result)

        rowcount = await upsert(
            session,
            "mssql",
            ItemAnalysis,
            _analysis_values(),
            ["collection", "kind", "number"],
            update_keys=["quality_score"],
        )

        assert rowcount == 1
        sql = str(session.execute.call_args[0][0])
        assert "MERGE INTO prguard_analyses" in sql
        assert "target.quality_score = :quality_score" in sql


class TestIncrement:
    async def test_creates_then_adds(self, async_engine):
        factory = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
        keys = {"collection": "octo/widgets", "hour": "2025-01-01T00"}
        async with factory() as session:
            for _ in range(3):
                await increment(session, "sqlite", HourlyCallCount, keys, "calls")
            await session.commit()
            row = (await session.execute(select(HourlyCallCount))).scalar_one()

        assert row.calls == 3

    async def test_mssql_increment_statement(self):
        session = AsyncMock()
        session.execute = AsyncMock(return_value=MagicMock(rowcount=1))

        await _merge_mssql(
            session,
            "prguard_hourly_calls",
            {"collection": "c", "hour": "h", "calls": 1},
            ["collection", "hour"],
            "target.calls = target.calls + 1",
        )

        sql = str(session.execute.call_args[0][0])
        assert "WITH (HOLDLOCK)" in sql
        assert "target.calls = target.calls + 1" in sql
