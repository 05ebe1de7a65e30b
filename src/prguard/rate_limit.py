"""RateLimiter — hourly per-collection call budget and daily per-tenant analysis budget."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlmodel import select

from prguard.models.rate_limits import DailyAnalysisCount, HourlyCallCount
from prguard.store.dialect import increment
from prguard.types import RateLimitResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from prguard.store.database import Database

logger = logging.getLogger(__name__)

OPENAI_BUDGET_PER_HOUR = 60
"""Default provider calls admitted per collection per UTC hour."""

DEFAULT_DAILY_LIMIT = 50
"""Default analyses admitted per tenant per UTC day."""


def hour_bucket(now: datetime) -> str:
    """Return the UTC hour bucket for *now* (``YYYY-MM-DDTHH``)."""
    return _as_utc(now).strftime("%Y-%m-%dT%H")


def day_bucket(now: datetime) -> str:
    """Return the UTC date bucket for *now* (``YYYY-MM-DD``)."""
    return _as_utc(now).strftime("%Y-%m-%d")


def _as_utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now.astimezone(UTC)


class RateLimiter:
    """Two independent budgets backed by counter tables.

    The hourly collection budget is check-and-consume in one step: every
    call increments the counter for the current hour, including calls
    that are refused. Buckets are fixed calendar hours, so a burst that
    straddles an hour boundary can see up to twice the budget.

    The daily tenant budget is split into :meth:`check_tenant_budget`
    (read-only) and :meth:`increment_tenant_budget`, called only after an
    analysis completes. Two concurrent events for the same tenant can
    both pass the check before either increments.
    """

    def __init__(
        self,
        database: Database,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._db = database
        self._clock = clock or (lambda: datetime.now(UTC))

    async def check_collection_budget(
        self, collection: str, budget: int = OPENAI_BUDGET_PER_HOUR
    ) -> bool:
        """Consume one call from *collection*'s hourly budget.

        Returns True if the post-increment count is within *budget*.
        """
        hour = hour_bucket(self._clock())
        model = HourlyCallCount
        async with self._db.session() as session:
            await increment(
                session,
                self._db.dialect,
                model,
                {"collection": collection, "hour": hour},
                "calls",
            )
            result = await session.execute(
                select(model.calls).where(
                    model.collection == collection,
                    model.hour == hour,
                )
            )
            calls = int(result.scalar_one())

        allowed = calls <= budget
        if not allowed:
            logger.debug("Hourly budget spent for %s (%d/%d in %s)", collection, calls, budget, hour)
        return allowed

    async def check_tenant_budget(
        self, tenant: str, limit: int = DEFAULT_DAILY_LIMIT
    ) -> RateLimitResult:
        """Report today's usage for *tenant* without consuming anything."""
        used = await self._tenant_count(tenant, day_bucket(self._clock()))
        return RateLimitResult(
            allowed=used < limit,
            remaining=max(0, limit - used),
            used=used,
        )

    async def increment_tenant_budget(self, tenant: str) -> None:
        """Count one completed analysis against *tenant*'s budget for today."""
        day = day_bucket(self._clock())
        async with self._db.session() as session:
            await increment(
                session,
                self._db.dialect,
                DailyAnalysisCount,
                {"tenant": tenant, "day": day},
                "count",
            )

    async def collection_calls(self, collection: str) -> int:
        """Return calls counted for *collection* in the current hour."""
        model = HourlyCallCount
        hour = hour_bucket(self._clock())
        async with self._db.session() as session:
            result = await session.execute(
                select(model.calls).where(model.collection == collection, model.hour == hour)
            )
            row = result.first()
        return int(row[0]) if row else 0

    async def _tenant_count(self, tenant: str, day: str) -> int:
        model = DailyAnalysisCount
        async with self._db.session() as session:
            result = await session.execute(
                select(model.count).where(model.tenant == tenant, model.day == day)
            )
            row = result.first()
        return int(row[0]) if row else 0
