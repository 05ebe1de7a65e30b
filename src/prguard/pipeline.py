"""TriagePipeline — gate, embed, deduplicate, score, persist, and annotate one item."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from prguard.comments import (
    build_daily_limit_comment,
    build_degraded_comment,
    build_summary_comment,
    upsert_marker_comment,
)
from prguard.config import default_config_loader
from prguard.dedup import cluster_duplicates, cosine_similarity, find_duplicates
from prguard.embedding.result import Unavailable, build_embedding_input, embed_text
from prguard.metrics import Metrics
from prguard.quality import score_quality
from prguard.types import (
    AnalysisRecord,
    Comparison,
    EmbeddingRecord,
    ItemKey,
    ItemKind,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from prguard.collaborators import CommentApplier, LabelApplier
    from prguard.config import TriageConfig
    from prguard.embedding.protocols import EmbeddingProvider
    from prguard.rate_limit import RateLimiter
    from prguard.store.analyses import AnalysisStore
    from prguard.store.embeddings import EmbeddingStore
    from prguard.types import DuplicateCluster, DuplicateMatch, QualityInput, QualityResult

    ConfigLoader = Callable[[str], Awaitable[TriageConfig]]
    ProviderFactory = Callable[[str], EmbeddingProvider]

logger = logging.getLogger(__name__)

_BOT_LOGINS = frozenset({"dependabot", "renovate"})


def is_bot(login: str, user_type: str | None = None) -> bool:
    """Return True for automated accounts."""
    if user_type == "Bot":
        return True
    return login.endswith("[bot]") or login in _BOT_LOGINS


class TriageStatus(Enum):
    """How a pipeline run ended."""

    SKIPPED_TRUSTED = "skipped_trusted"
    SKIPPED_BOT = "skipped_bot"
    DAILY_LIMIT = "daily_limit"
    RATE_LIMITED = "rate_limited"
    DEGRADED = "degraded"
    ANALYZED = "analyzed"


@dataclass(frozen=True, slots=True)
class TriageItem:
    """An inbound work item, already extracted from the platform payload.

    Attributes:
        collection: Repository name.
        kind: Pull request or issue.
        number: Item number.
        title: Item title.
        body: Item body; empty when the platform sends none.
        author: Author login.
        author_type: Platform account type (``"Bot"`` for app accounts).
        tenant: Budget owner (e.g. an installation id). When None the
            daily tenant budget is neither checked nor consumed.
        diff_summary: Diff excerpt (pull requests only).
        quality: Quality signals (pull requests only).
    """

    collection: str
    kind: ItemKind
    number: int
    title: str
    body: str = ""
    author: str = ""
    author_type: str | None = None
    tenant: str | None = None
    diff_summary: str = ""
    quality: QualityInput | None = None

    @property
    def key(self) -> ItemKey:
        return ItemKey(self.collection, self.kind, self.number)


@dataclass(frozen=True, slots=True)
class TriageOutcome:
    """Result of one pipeline run."""

    key: ItemKey
    status: TriageStatus
    duplicates: list[DuplicateMatch] = field(default_factory=list)
    quality: QualityResult | None = None
    best_number: int | None = None
    labels: list[str] = field(default_factory=list)

    @property
    def analyzed(self) -> bool:
        """True for runs that count as processed, degraded ones included."""
        return self.status in (TriageStatus.ANALYZED, TriageStatus.DEGRADED)


class TriagePipeline:
    """Runs the triage sequence for one item at a time.

    Every store call commits on its own; a failure part way through can
    leave the embedding written without its analysis, which the next
    delivery for the same item overwrites. ``StorageError`` propagates to
    the caller. Label and comment failures are logged and ignored.
    """

    def __init__(
        self,
        embeddings: EmbeddingStore,
        analyses: AnalysisStore,
        rate_limiter: RateLimiter,
        embedding_provider: EmbeddingProvider | None = None,
        *,
        labels: LabelApplier | None = None,
        comments: CommentApplier | None = None,
        config_loader: ConfigLoader | None = None,
        metrics: Metrics | None = None,
        provider_factory: ProviderFactory | None = None,
    ) -> None:
        self._embeddings = embeddings
        self._analyses = analyses
        self._rate_limiter = rate_limiter
        self._provider = embedding_provider
        self._labels = labels
        self._comments = comments
        self._config_loader = config_loader or default_config_loader
        self.metrics = metrics or Metrics()
        self._provider_factory = provider_factory
        self._keyed_providers: dict[str, EmbeddingProvider] = {}

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def run(self, item: TriageItem) -> TriageOutcome:
        """Triage *item*, stopping at the first gate that rejects it."""
        key = item.key
        config = await self._config_loader(item.collection)
        logger.info("Processing %s by %s", key, item.author or "<unknown>")

        if item.author and item.author in config.trusted_users:
            logger.info("Skipping %s: trusted user %s", key, item.author)
            return TriageOutcome(key, TriageStatus.SKIPPED_TRUSTED)

        if config.skip_bots and is_bot(item.author, item.author_type):
            logger.info("Skipping %s: bot user %s", key, item.author)
            return TriageOutcome(key, TriageStatus.SKIPPED_BOT)

        if item.tenant is not None:
            budget = await self._rate_limiter.check_tenant_budget(item.tenant, config.daily_limit)
            if not budget.allowed:
                logger.warning(
                    "Daily analysis limit reached for tenant %s (%d/%d); skipping %s",
                    item.tenant,
                    budget.used,
                    config.daily_limit,
                    key,
                )
                self.metrics.inc("daily_limited_total")
                await upsert_marker_comment(
                    self._comments,
                    key,
                    build_daily_limit_comment(budget.used, config.daily_limit),
                    dry_run=config.dry_run,
                )
                return TriageOutcome(key, TriageStatus.DAILY_LIMIT)

        if not await self._rate_limiter.check_collection_budget(
            item.collection, config.hourly_budget
        ):
            logger.warning("Hourly embedding budget exceeded for %s; skipping %s", item.collection, key)
            self.metrics.inc("rate_limited_total")
            return TriageOutcome(key, TriageStatus.RATE_LIMITED)

        if item.quality is not None and item.quality.total_lines > config.max_diff_lines:
            logger.warning(
                "%s has %d diff lines (max %d); analysis uses a truncated diff",
                key,
                item.quality.total_lines,
                config.max_diff_lines,
            )

        text = build_embedding_input(item.title, item.body, item.diff_summary)
        provider = self._provider_for(config)
        if provider is not None:
            self.metrics.inc("openai_calls_total")
        embedded = await embed_text(provider, text)
        if isinstance(embedded, Unavailable):
            return await self._degrade(item, config, embedded.reason)

        record = EmbeddingRecord(
            collection=item.collection,
            kind=item.kind,
            number=item.number,
            title=item.title,
            body=item.body,
            diff_summary=item.diff_summary,
            embedding=embedded.vector,
        )
        await self._embeddings.upsert(record)

        candidates = await self._embeddings.list_active(
            item.collection, limit=config.candidate_limit
        )
        duplicates = find_duplicates(record, candidates, config.duplicate_threshold)
        if duplicates:
            self.metrics.inc("duplicates_found_total", len(duplicates))

        quality: QualityResult | None = None
        reasoning: str | None = None
        best_number: int | None = None
        if item.kind.scored:
            if item.quality is not None:
                quality = score_quality(item.quality, config.quality_thresholds)
                reasoning = "; ".join(quality.reasons) or None
            best_number = await self.best_candidate(
                key, duplicates, quality.score if quality is not None else 0.0
            )

        await self._analyses.upsert(
            AnalysisRecord(
                collection=item.collection,
                kind=item.kind,
                number=item.number,
                duplicates=duplicates,
                quality_score=quality.score if quality is not None else None,
                recommendation=quality.recommendation if quality is not None else None,
                reasoning=reasoning,
            )
        )

        labels = [config.labels.needs_review]
        if duplicates:
            labels.append(config.labels.duplicate)
            if best_number == item.number:
                labels.append(config.labels.recommended)
        labels = await self._apply_labels(key, labels, config)

        summary = build_summary_comment(
            duplicates,
            quality=quality,
            best_number=best_number if duplicates else None,
        )
        await upsert_marker_comment(self._comments, key, summary, dry_run=config.dry_run)

        if item.tenant is not None:
            await self._rate_limiter.increment_tenant_budget(item.tenant)

        self._count_analyzed(item.kind)
        logger.info(
            "Analyzed %s: %d duplicate(s), quality=%s",
            key,
            len(duplicates),
            f"{quality.score:.2f}" if quality is not None else "n/a",
        )
        return TriageOutcome(
            key,
            TriageStatus.ANALYZED,
            duplicates=duplicates,
            quality=quality,
            best_number=best_number,
            labels=labels,
        )

    def _provider_for(self, config: TriageConfig) -> EmbeddingProvider | None:
        """Repository key first, then the shared provider."""
        key = config.openai_api_key
        if not key or self._provider_factory is None:
            return self._provider
        if key not in self._keyed_providers:
            self._keyed_providers[key] = self._provider_factory(key)
        return self._keyed_providers[key]

    async def best_candidate(
        self,
        key: ItemKey,
        duplicates: Sequence[DuplicateMatch],
        current_score: float,
    ) -> int:
        """Return the number of the strongest item among *key* and its duplicates.

        Only duplicates of the same kind compete. A candidate without a
        persisted score counts as 0 and must beat the best score so far
        strictly, so the current item keeps exact ties and the earliest
        candidate wins ties among candidates.
        """
        best_number = key.number
        best_score = current_score
        for candidate in duplicates:
            if candidate.kind is not key.kind:
                continue
            stored = await self._analyses.quality_score(
                ItemKey(key.collection, candidate.kind, candidate.number)
            )
            score = stored if stored is not None else 0.0
            if score > best_score:
                best_score = score
                best_number = candidate.number
        return best_number

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self, key: ItemKey) -> bool:
        """Drop *key* from duplicate candidates. Returns True if a row changed."""
        changed = await self._embeddings.deactivate(key)
        logger.info("Deactivated embedding for %s" if changed else "No active embedding for %s", key)
        return changed

    async def reopen(self, item: TriageItem) -> TriageOutcome:
        """Reactivate *item*'s embedding and re-run the full analysis."""
        reactivated = await self._embeddings.reactivate(item.key)
        self.metrics.inc("reopens_total")
        if reactivated:
            logger.info("Reactivated embedding for %s", item.key)
        else:
            logger.info("No deactivated embedding for %s; re-analyzing", item.key)
        return await self.run(item)

    async def ignore(self, key: ItemKey) -> None:
        """Stop tracking *key*: deactivate it, forget its analysis, strip labels."""
        config = await self._config_loader(key.collection)
        await self._embeddings.deactivate(key)
        await self._analyses.delete(key)

        if config.dry_run:
            logger.info("[dry run] Would remove labels from %s", key)
        elif self._labels is not None:
            try:
                await self._labels.remove_labels(key, config.labels.all())
            except Exception:
                logger.warning("Failed to remove labels from %s", key, exc_info=True)
        logger.info("Ignoring %s", key)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def compare(
        self,
        collection: str,
        kind: ItemKind,
        number: int,
        target_number: int,
    ) -> Comparison | None:
        """Compare two stored items by embedding similarity.

        The target is looked up as a pull request first, then as an
        issue. Returns None when either item has no stored embedding.
        """
        key = ItemKey(collection, kind, number)
        source = await self._embeddings.get(key)
        if source is None:
            return None

        target = await self._embeddings.get(ItemKey(collection, ItemKind.PULL_REQUEST, target_number))
        if target is None:
            target = await self._embeddings.get(ItemKey(collection, ItemKind.ISSUE, target_number))
        if target is None:
            return None

        config = await self._config_loader(collection)
        return Comparison(
            key=key,
            target=target.key,
            similarity=cosine_similarity(source.embedding, target.embedding),
            threshold=config.duplicate_threshold,
            title=source.title,
            target_title=target.title,
        )

    async def clusters(
        self, collection: str, threshold: float | None = None
    ) -> list[DuplicateCluster]:
        """Group the active items of *collection* into duplicate clusters."""
        config = await self._config_loader(collection)
        items = await self._embeddings.list_active(collection, limit=config.candidate_limit)
        return cluster_duplicates(
            items, threshold if threshold is not None else config.duplicate_threshold
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _degrade(self, item: TriageItem, config: TriageConfig, reason: str) -> TriageOutcome:
        key = item.key
        logger.warning("Embedding unavailable for %s (%s); degrading", key, reason)
        labels = await self._apply_labels(key, [config.labels.needs_review], config)
        await upsert_marker_comment(
            self._comments,
            key,
            build_degraded_comment(config.labels.needs_review),
            dry_run=config.dry_run,
        )
        self.metrics.inc("openai_degraded_total")
        self._count_analyzed(item.kind)
        return TriageOutcome(key, TriageStatus.DEGRADED, labels=labels)

    async def _apply_labels(
        self, key: ItemKey, names: list[str], config: TriageConfig
    ) -> list[str]:
        unique = list(dict.fromkeys(names))
        if config.dry_run:
            logger.info("[dry run] Would apply labels to %s: %s", key, ", ".join(unique))
            return unique
        if self._labels is None:
            return unique
        try:
            await self._labels.add_labels(key, unique)
        except Exception:
            logger.warning("Failed to apply labels to %s", key, exc_info=True)
        return unique

    def _count_analyzed(self, kind: ItemKind) -> None:
        if kind is ItemKind.PULL_REQUEST:
            self.metrics.inc("prs_analyzed_total")
        else:
            self.metrics.inc("issues_analyzed_total")
