"""ItemAnalysis model — last triage outcome per work item."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


class ItemAnalysis(SQLModel, table=True):
    """Persisted triage outcome.

    Rows are only ever fully replaced. ``duplicates_json`` holds a JSON
    list of ``{"type", "number", "similarity", "title"}`` objects.
    """

    __tablename__ = "prguard_analyses"
    __table_args__ = (
        UniqueConstraint("collection", "kind", "number", name="uq_prguard_analyses_item"),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    collection: str = Field(index=True)
    kind: str
    number: int
    duplicates_json: str = Field(default="[]", sa_type=Text)
    quality_score: float | None = Field(default=None)
    recommendation: str | None = Field(default=None)
    reasoning: str | None = Field(default=None, sa_type=Text)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
