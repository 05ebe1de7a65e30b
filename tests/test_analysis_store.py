"""Tests for store/analyses.py — full-replace upserts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlmodel import select

from prguard.models import ItemAnalysis
from prguard.types import AnalysisRecord, DuplicateMatch, ItemKey, ItemKind, Recommendation

if TYPE_CHECKING:
    from prguard.store import AnalysisStore, Database

REPO = "octo/widgets"
KEY = ItemKey(REPO, ItemKind.PULL_REQUEST, 10)


def _analysis(**kwargs) -> AnalysisRecord:
    return AnalysisRecord(collection=REPO, kind=ItemKind.PULL_REQUEST, number=10, **kwargs)


class TestAnalysisStore:
    async def test_get_missing_is_none(self, analysis_store: AnalysisStore) -> None:
        assert await analysis_store.get(KEY) is None
        assert await analysis_store.quality_score(KEY) is None

    async def test_round_trip(self, analysis_store: AnalysisStore) -> None:
        dup = DuplicateMatch(ItemKind.ISSUE, 4, 0.91, "Parser crash")
        await analysis_store.upsert(
            _analysis(
                duplicates=[dup],
                quality_score=0.8,
                recommendation=Recommendation.APPROVE,
                reasoning="No test changes detected",
            )
        )

        stored = await analysis_store.get(KEY)
        assert stored is not None
        assert stored.duplicates == [dup]
        assert stored.quality_score == 0.8
        assert stored.recommendation is Recommendation.APPROVE
        assert stored.reasoning == "No test changes detected"

    async def test_second_upsert_fully_replaces(
        self, analysis_store: AnalysisStore, database: Database
    ) -> None:
        await analysis_store.upsert(
            _analysis(
                duplicates=[DuplicateMatch(ItemKind.PULL_REQUEST, 3, 0.95, "Same fix")],
                quality_score=0.9,
                recommendation=Recommendation.APPROVE,
                reasoning="first",
            )
        )
        await analysis_store.upsert(_analysis(quality_score=0.3))

        async with database.session() as session:
            rows = (await session.execute(select(ItemAnalysis))).scalars().all()
        assert len(rows) == 1

        stored = await analysis_store.get(KEY)
        assert stored is not None
        assert stored.duplicates == []
        assert stored.quality_score == 0.3
        assert stored.recommendation is None
        assert stored.reasoning is None

    async def test_quality_score(self, analysis_store: AnalysisStore) -> None:
        await analysis_store.upsert(_analysis(quality_score=0.42))
        assert await analysis_store.quality_score(KEY) == 0.42

    async def test_unscored_issue(self, analysis_store: AnalysisStore) -> None:
        key = ItemKey(REPO, ItemKind.ISSUE, 10)
        await analysis_store.upsert(AnalysisRecord(collection=REPO, kind=ItemKind.ISSUE, number=10))

        stored = await analysis_store.get(key)
        assert stored is not None
        assert stored.quality_score is None
        assert await analysis_store.get(KEY) is None

    async def test_delete(self, analysis_store: AnalysisStore) -> None:
        await analysis_store.upsert(_analysis(quality_score=0.5))
        assert await analysis_store.delete(KEY) is True
        assert await analysis_store.get(KEY) is None
        assert await analysis_store.delete(KEY) is False

    async def test_duplicates_json_uses_type_key(
        self, analysis_store: AnalysisStore, database: Database
    ) -> None:
        await analysis_store.upsert(
            _analysis(duplicates=[DuplicateMatch(ItemKind.ISSUE, 4, 0.9, "t")])
        )
        async with database.session() as session:
            row = (await session.execute(select(ItemAnalysis))).scalar_one()
        assert '"type": "issue"' in row.duplicates_json
