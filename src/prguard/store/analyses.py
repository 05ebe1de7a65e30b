"""AnalysisStore — last-write-wins storage of triage outcomes."""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete
from sqlmodel import select

from prguard.models.analyses import ItemAnalysis
from prguard.store.dialect import upsert
from prguard.types import AnalysisRecord, DuplicateMatch, ItemKey, ItemKind, Recommendation

if TYPE_CHECKING:
    from prguard.store.database import Database

_CONFLICT_KEYS = ["collection", "kind", "number"]
_UPDATE_KEYS = ["duplicates_json", "quality_score", "recommendation", "reasoning", "updated_at"]


class AnalysisStore:
    """One analysis row per ``(collection, kind, number)``.

    :meth:`upsert` replaces every outcome field; a missing row means the
    item was never analyzed, which callers must not confuse with an
    analysis that found nothing.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def upsert(self, record: AnalysisRecord) -> None:
        """Insert or fully replace the analysis for *record*'s key."""
        now = datetime.now(UTC)
        values = {
            "id": str(uuid.uuid4()),
            "collection": record.collection,
            "kind": record.kind.value,
            "number": record.number,
            "duplicates_json": json.dumps([d.to_dict() for d in record.duplicates]),
            "quality_score": record.quality_score,
            "recommendation": (
                record.recommendation.value if record.recommendation is not None else None
            ),
            "reasoning": record.reasoning,
            "created_at": now,
            "updated_at": now,
        }
        async with self._db.session() as session:
            await upsert(
                session,
                self._db.dialect,
                ItemAnalysis,
                values,
                _CONFLICT_KEYS,
                update_keys=_UPDATE_KEYS,
            )

    async def get(self, key: ItemKey) -> AnalysisRecord | None:
        """Return the stored analysis for *key*, or None if never analyzed."""
        model = ItemAnalysis
        async with self._db.session() as session:
            result = await session.execute(
                select(model).where(
                    model.collection == key.collection,
                    model.kind == key.kind.value,
                    model.number == key.number,
                )
            )
            row = result.scalar_one_or_none()
        if row is None:
            return None
        return AnalysisRecord(
            collection=row.collection,
            kind=ItemKind(row.kind),
            number=row.number,
            duplicates=[DuplicateMatch.from_dict(d) for d in json.loads(row.duplicates_json or "[]")],
            quality_score=row.quality_score,
            recommendation=Recommendation(row.recommendation) if row.recommendation else None,
            reasoning=row.reasoning,
        )

    async def quality_score(self, key: ItemKey) -> float | None:
        """Return the persisted quality score for *key*, or None."""
        model = ItemAnalysis
        async with self._db.session() as session:
            result = await session.execute(
                select(model.quality_score).where(
                    model.collection == key.collection,
                    model.kind == key.kind.value,
                    model.number == key.number,
                )
            )
            row = result.first()
        return row[0] if row else None

    async def delete(self, key: ItemKey) -> bool:
        """Remove the analysis for *key*. Returns True if a row existed."""
        model = ItemAnalysis
        async with self._db.session() as session:
            result = await session.execute(
                delete(model).where(
                    model.collection == key.collection,  # type: ignore[arg-type]
                    model.kind == key.kind.value,  # type: ignore[arg-type]
                    model.number == key.number,  # type: ignore[arg-type]
                )
            )
        return bool(result.rowcount)
