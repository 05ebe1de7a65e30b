"""ItemEmbedding model — one embedded work item per (collection, kind, number)."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


class ItemEmbedding(SQLModel, table=True):
    """Embedded text and vector for a pull request or issue.

    The vector is stored as a JSON-encoded list in ``embedding_json``;
    encoding and decoding happen in :class:`~prguard.store.embeddings.EmbeddingStore`.
    ``state`` holds an :class:`~prguard.types.EmbeddingState` value.
    """

    __tablename__ = "prguard_embeddings"
    __table_args__ = (
        UniqueConstraint("collection", "kind", "number", name="uq_prguard_embeddings_item"),
        Index("ix_prguard_embeddings_collection_state", "collection", "state"),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    collection: str = Field(index=True)
    kind: str
    number: int
    title: str = Field(default="")
    body: str = Field(default="", sa_type=Text)
    diff_summary: str = Field(default="", sa_type=Text)
    embedding_json: str = Field(default="[]", sa_type=Text)
    state: str = Field(default="active")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
