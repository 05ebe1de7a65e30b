"""PRGuard — facade wiring the database, stores, limiter, pipeline and event bus."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from prguard.embedding.openai import OpenAIEmbedding
from prguard.events import EventBus, EventType, ItemEvent
from prguard.metrics import Metrics
from prguard.pipeline import TriageOutcome, TriagePipeline
from prguard.rate_limit import RateLimiter
from prguard.store.analyses import AnalysisStore
from prguard.store.database import DEFAULT_DATABASE_URL, Database
from prguard.store.embeddings import EmbeddingStore

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from prguard.collaborators import CommentApplier, LabelApplier
    from prguard.embedding.protocols import EmbeddingProvider
    from prguard.pipeline import ConfigLoader, ProviderFactory

logger = logging.getLogger(__name__)


class PRGuard:
    """Async facade for the triage engine.

    The caller owns the :class:`~prguard.store.Database` handle and the
    collaborators; PRGuard builds everything else around them::

        db = Database.from_url("sqlite+aiosqlite:///prguard.db")
        guard = PRGuard(db, embedding_provider=OpenAIEmbedding())
        await guard.setup()
        await guard.dispatch(ItemEvent(EventType.OPENED, item))

    :meth:`dispatch` never raises: handler failures are logged and
    counted in ``errors_total``. A repository whose config sets
    ``openai_api_key`` is embedded with its own provider built by
    *provider_factory*.
    """

    def __init__(
        self,
        database: Database,
        *,
        embedding_provider: EmbeddingProvider | None = None,
        labels: LabelApplier | None = None,
        comments: CommentApplier | None = None,
        config_loader: ConfigLoader | None = None,
        clock: Callable[[], datetime] | None = None,
        provider_factory: ProviderFactory | None = OpenAIEmbedding.for_key,
    ) -> None:
        self._database = database
        self._closed = False
        self._metrics = Metrics()

        self._embeddings = EmbeddingStore(database)
        self._analyses = AnalysisStore(database)
        self._rate_limiter = RateLimiter(database, clock=clock)
        self._pipeline = TriagePipeline(
            self._embeddings,
            self._analyses,
            self._rate_limiter,
            embedding_provider,
            labels=labels,
            comments=comments,
            config_loader=config_loader,
            metrics=self._metrics,
            provider_factory=provider_factory,
        )

        self._event_bus = EventBus(on_error=self._on_handler_error)
        self._event_bus.register(EventType.OPENED, self._on_analyze)
        self._event_bus.register(EventType.EDITED, self._on_analyze)
        self._event_bus.register(EventType.CLOSED, self._on_closed)
        self._event_bus.register(EventType.REOPENED, self._on_reopened)

    @classmethod
    async def open(cls, url: str = DEFAULT_DATABASE_URL, **kwargs: object) -> PRGuard:
        """Create a database from *url*, create its tables and return a ready facade."""
        guard = cls(Database.from_url(url), **kwargs)  # type: ignore[arg-type]
        await guard.setup()
        return guard

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def database(self) -> Database:
        return self._database

    @property
    def embeddings(self) -> EmbeddingStore:
        return self._embeddings

    @property
    def analyses(self) -> AnalysisStore:
        return self._analyses

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    @property
    def pipeline(self) -> TriagePipeline:
        return self._pipeline

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def setup(self) -> None:
        """Create tables and verify the database answers."""
        await self._database.create_tables()
        if await self._database.ping():
            logger.info("Database connection verified (%s)", self._database.dialect)

    async def dispatch(self, event: ItemEvent) -> TriageOutcome | bool | None:
        """Route *event* to the pipeline and return the handler's result.

        Returns None when the handler failed.
        """
        if self._closed:
            raise RuntimeError("PRGuard is closed")
        results = await self._event_bus.emit(event)
        return results[0] if results else None

    async def close(self) -> None:
        """Dispose the database engine. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        await self._database.close()

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def _on_analyze(self, event: ItemEvent) -> TriageOutcome:
        return await self._pipeline.run(event.item)

    async def _on_closed(self, event: ItemEvent) -> bool:
        return await self._pipeline.close(event.item.key)

    async def _on_reopened(self, event: ItemEvent) -> TriageOutcome:
        return await self._pipeline.reopen(event.item)

    def _on_handler_error(self, event: ItemEvent, exc: Exception) -> None:
        self._metrics.inc("errors_total")
