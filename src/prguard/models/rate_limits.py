"""Rate-limit counter models — fixed UTC hour and day buckets."""

from __future__ import annotations

from sqlmodel import Field, SQLModel


class HourlyCallCount(SQLModel, table=True):
    """Provider calls per collection per UTC hour (``YYYY-MM-DDTHH``)."""

    __tablename__ = "prguard_hourly_calls"

    collection: str = Field(primary_key=True)
    hour: str = Field(primary_key=True)
    calls: int = Field(default=0)


class DailyAnalysisCount(SQLModel, table=True):
    """Completed analyses per tenant per UTC date (``YYYY-MM-DD``)."""

    __tablename__ = "prguard_daily_analyses"

    tenant: str = Field(primary_key=True)
    day: str = Field(primary_key=True)
    count: int = Field(default=0)
