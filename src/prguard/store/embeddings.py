"""EmbeddingStore — keyed vector storage with an active/inactive lifecycle."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, update
from sqlmodel import select

from prguard.models.embeddings import ItemEmbedding
from prguard.store.dialect import upsert
from prguard.types import EmbeddingRecord, EmbeddingState, ItemKey, ItemKind

if TYPE_CHECKING:
    from prguard.store.database import Database

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATE_LIMIT = 500
"""Most recent active rows considered per dedup pass."""

_CONFLICT_KEYS = ["collection", "kind", "number"]
_UPDATE_KEYS = ["title", "body", "diff_summary", "embedding_json", "state", "updated_at"]


class EmbeddingStore:
    """Stores one embedding row per ``(collection, kind, number)``.

    Rows move between two states:

    - ``upsert`` always leaves the row active and overwrites every text
      and vector field, whether the row was absent, active or inactive.
    - ``deactivate`` flips an active row to inactive (item closed).
    - ``reactivate`` flips an inactive row back to active (item reopened)
      and reports whether it did anything.

    Only active rows are returned by :meth:`list_active`, so closed items
    drop out of duplicate detection without losing their vectors.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def upsert(self, record: EmbeddingRecord) -> None:
        """Insert or fully overwrite the row for *record*, marking it active."""
        now = datetime.now(UTC)
        values = {
            "id": str(uuid.uuid4()),
            "collection": record.collection,
            "kind": record.kind.value,
            "number": record.number,
            "title": record.title,
            "body": record.body,
            "diff_summary": record.diff_summary,
            "embedding_json": json.dumps(record.embedding),
            "state": EmbeddingState.ACTIVE.value,
            "created_at": now,
            "updated_at": now,
        }
        async with self._db.session() as session:
            await upsert(
                session,
                self._db.dialect,
                ItemEmbedding,
                values,
                _CONFLICT_KEYS,
                update_keys=_UPDATE_KEYS,
            )

    async def get(self, key: ItemKey) -> EmbeddingRecord | None:
        """Return the row for *key* in any state, or None if absent."""
        async with self._db.session() as session:
            result = await session.execute(
                select(ItemEmbedding).where(*_key_filter(key))
            )
            row = result.scalar_one_or_none()
        return _to_record(row) if row is not None else None

    async def list_active(
        self, collection: str, limit: int = DEFAULT_CANDIDATE_LIMIT
    ) -> list[EmbeddingRecord]:
        """Return active rows of *collection*, most recently written first."""
        model = ItemEmbedding
        async with self._db.session() as session:
            result = await session.execute(
                select(model)
                .where(
                    model.collection == collection,
                    model.state == EmbeddingState.ACTIVE.value,
                )
                .order_by(model.updated_at.desc())  # type: ignore[union-attr]
                .limit(limit)
            )
            rows = result.scalars().all()
        return [_to_record(row) for row in rows]

    async def deactivate(self, key: ItemKey) -> bool:
        """Soft-delete the row for *key*. Returns True if an active row was flipped."""
        return await self._transition(key, EmbeddingState.ACTIVE, EmbeddingState.INACTIVE)

    async def reactivate(self, key: ItemKey) -> bool:
        """Restore a soft-deleted row.

        Returns True only when an inactive row was flipped; an absent or
        already-active row is left alone and yields False.
        """
        return await self._transition(key, EmbeddingState.INACTIVE, EmbeddingState.ACTIVE)

    async def count(self, collection: str | None = None, *, active_only: bool = False) -> int:
        """Count rows, optionally scoped to *collection* and to active rows."""
        model = ItemEmbedding
        conditions = []
        if collection is not None:
            conditions.append(model.collection == collection)
        if active_only:
            conditions.append(model.state == EmbeddingState.ACTIVE.value)
        async with self._db.session() as session:
            result = await session.execute(
                select(func.count()).select_from(model).where(*conditions)
            )
            return int(result.scalar_one())

    async def _transition(
        self, key: ItemKey, source: EmbeddingState, target: EmbeddingState
    ) -> bool:
        model = ItemEmbedding
        async with self._db.session() as session:
            result = await session.execute(
                update(model)
                .where(*_key_filter(key), model.state == source.value)
                .values(state=target.value)
            )
        changed = bool(result.rowcount)
        if changed:
            logger.debug("Embedding %s: %s -> %s", key, source.value, target.value)
        return changed


def _key_filter(key: ItemKey) -> list:
    model = ItemEmbedding
    return [
        model.collection == key.collection,
        model.kind == key.kind.value,
        model.number == key.number,
    ]


def _to_record(row: ItemEmbedding) -> EmbeddingRecord:
    return EmbeddingRecord(
        collection=row.collection,
        kind=ItemKind(row.kind),
        number=row.number,
        title=row.title,
        body=row.body or "",
        diff_summary=row.diff_summary or "",
        embedding=[float(x) for x in json.loads(row.embedding_json or "[]")],
        state=EmbeddingState(row.state),
    )
