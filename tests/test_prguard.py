"""Tests for the PRGuard facade — wiring, dispatch and error accounting."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest

from prguard import (
    EventType,
    ItemEvent,
    ItemKey,
    ItemKind,
    PRGuard,
    StorageError,
    TriageConfig,
    TriageItem,
    TriageOutcome,
    TriageStatus,
)
from prguard.config import static_config_loader

if TYPE_CHECKING:
    from prguard.store import Database


class ConstantProvider:
    async def embed(self, text: str) -> list[float]:
        return [1.0, 0.0]


def _event(event_type: EventType, number: int = 1) -> ItemEvent:
    item = TriageItem(
        collection="octo/widgets",
        kind=ItemKind.ISSUE,
        number=number,
        title=f"Crash #{number}",
        author="erin",
    )
    return ItemEvent(event_type, item)


@pytest.fixture
def guard(database: Database) -> PRGuard:
    return PRGuard(
        database,
        embedding_provider=ConstantProvider(),
        config_loader=static_config_loader({}, TriageConfig()),
    )


class TestDispatch:
    async def test_opened_runs_pipeline(self, guard: PRGuard) -> None:
        outcome = await guard.dispatch(_event(EventType.OPENED))

        assert isinstance(outcome, TriageOutcome)
        assert outcome.status is TriageStatus.ANALYZED
        assert await guard.embeddings.get(ItemKey("octo/widgets", ItemKind.ISSUE, 1)) is not None
        assert guard.metrics.get("issues_analyzed_total") == 1

    async def test_edited_reanalyzes(self, guard: PRGuard) -> None:
        await guard.dispatch(_event(EventType.OPENED, 1))
        await guard.dispatch(_event(EventType.OPENED, 2))

        outcome = await guard.dispatch(_event(EventType.EDITED, 2))

        assert isinstance(outcome, TriageOutcome)
        assert [d.number for d in outcome.duplicates] == [1]

    async def test_closed_then_reopened(self, guard: PRGuard) -> None:
        await guard.dispatch(_event(EventType.OPENED))

        assert await guard.dispatch(_event(EventType.CLOSED)) is True
        assert await guard.embeddings.count(active_only=True) == 0

        outcome = await guard.dispatch(_event(EventType.REOPENED))
        assert isinstance(outcome, TriageOutcome)
        assert await guard.embeddings.count(active_only=True) == 1
        assert guard.metrics.get("reopens_total") == 1

    async def test_handler_failure_counted_not_raised(self, guard: PRGuard) -> None:
        guard.embeddings.upsert = AsyncMock(side_effect=StorageError("locked"))  # type: ignore[method-assign]

        assert await guard.dispatch(_event(EventType.OPENED)) is None
        assert guard.metrics.get("errors_total") == 1

    async def test_dispatch_after_close(self, guard: PRGuard) -> None:
        await guard.close()
        await guard.close()
        with pytest.raises(RuntimeError, match="closed"):
            await guard.dispatch(_event(EventType.OPENED))


class TestOpen:
    async def test_open_creates_tables(self) -> None:
        guard = await PRGuard.open("sqlite+aiosqlite://")
        try:
            assert guard.database.dialect == "sqlite"
            assert await guard.embeddings.count() == 0
            outcome = await guard.dispatch(_event(EventType.OPENED))
            assert isinstance(outcome, TriageOutcome)
            assert outcome.status is TriageStatus.DEGRADED
        finally:
            await guard.close()

    def test_wiring(self, guard: PRGuard, database: Database) -> None:
        assert guard.database is database
        assert guard.pipeline.metrics is guard.metrics
        assert guard.rate_limiter is not None
        assert guard.analyses is not None


class TestRepositoryKey:
    async def test_factory_builds_provider_for_configured_key(self, database: Database) -> None:
        built: list[str] = []

        def factory(api_key: str) -> ConstantProvider:
            built.append(api_key)
            return ConstantProvider()

        guard = PRGuard(
            database,
            config_loader=static_config_loader(
                {"octo/widgets": TriageConfig(openai_api_key="sk-widgets")}
            ),
            provider_factory=factory,
        )

        outcome = await guard.dispatch(_event(EventType.OPENED))

        assert isinstance(outcome, TriageOutcome)
        assert outcome.status is TriageStatus.ANALYZED
        assert built == ["sk-widgets"]
