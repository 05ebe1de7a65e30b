"""Value objects shared across the triage engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ItemKind(Enum):
    """Kind of tracked work item."""

    PULL_REQUEST = "pr"
    ISSUE = "issue"

    @property
    def scored(self) -> bool:
        """True for kinds that carry quality semantics."""
        return self is ItemKind.PULL_REQUEST


class Recommendation(Enum):
    """Triage recommendation derived from the quality score."""

    APPROVE = "approve"
    REVIEW = "review"
    REJECT = "reject"


class EmbeddingState(Enum):
    """Lifecycle state of a stored embedding row."""

    ACTIVE = "active"
    INACTIVE = "inactive"


# ------------------------------------------------------------------
# Identity
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ItemKey:
    """Identity of a work item: ``(collection, kind, number)``.

    Attributes:
        collection: Repository name, e.g. ``"octo/widgets"``.
        kind: Pull request or issue.
        number: Item number within the collection.
    """

    collection: str
    kind: ItemKind
    number: int

    def __str__(self) -> str:
        return f"{self.collection}#{self.number} ({self.kind.value})"


# ------------------------------------------------------------------
# Embeddings and duplicates
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EmbeddingRecord:
    """An embedded work item as held by the embedding store.

    Attributes:
        collection: Repository the item belongs to.
        kind: Pull request or issue.
        number: Item number.
        title: Item title.
        body: Item body (empty string when missing).
        diff_summary: Truncated diff excerpt (pull requests only).
        embedding: Embedding vector.
        state: Lifecycle state; new records are always active.
    """

    collection: str
    kind: ItemKind
    number: int
    title: str
    body: str = ""
    diff_summary: str = ""
    embedding: list[float] = field(default_factory=list)
    state: EmbeddingState = EmbeddingState.ACTIVE

    @property
    def key(self) -> ItemKey:
        return ItemKey(self.collection, self.kind, self.number)

    @property
    def active(self) -> bool:
        return self.state is EmbeddingState.ACTIVE


@dataclass(frozen=True, slots=True)
class DuplicateMatch:
    """A candidate whose similarity to the current item met the threshold."""

    kind: ItemKind
    number: int
    similarity: float
    title: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "number": self.number,
            "similarity": self.similarity,
            "title": self.title,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DuplicateMatch:
        return cls(
            kind=ItemKind(data["type"]),
            number=int(data["number"]),
            similarity=float(data["similarity"]),
            title=str(data.get("title", "")),
        )


@dataclass(frozen=True, slots=True)
class DuplicateCluster:
    """A greedily grouped set of items that all matched a shared anchor.

    Attributes:
        anchor: The first-seen item the cluster was built around.
        members: Anchor followed by every item that matched it.
    """

    anchor: EmbeddingRecord
    members: list[EmbeddingRecord]


@dataclass(frozen=True, slots=True)
class Comparison:
    """Similarity between two stored items."""

    key: ItemKey
    target: ItemKey
    similarity: float
    threshold: float
    title: str = ""
    target_title: str = ""

    @property
    def is_duplicate(self) -> bool:
        return self.similarity >= self.threshold


# ------------------------------------------------------------------
# Analyses
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AnalysisRecord:
    """Last computed triage outcome for an item.

    Attributes:
        collection: Repository the item belongs to.
        kind: Pull request or issue.
        number: Item number.
        duplicates: Matches at or above the duplicate threshold.
        quality_score: Quality score in [0, 1], None for unscored kinds.
        recommendation: Recommendation derived from the score.
        reasoning: Free-text reasoning (quality notes).
    """

    collection: str
    kind: ItemKind
    number: int
    duplicates: list[DuplicateMatch] = field(default_factory=list)
    quality_score: float | None = None
    recommendation: Recommendation | None = None
    reasoning: str | None = None

    @property
    def key(self) -> ItemKey:
        return ItemKey(self.collection, self.kind, self.number)


# ------------------------------------------------------------------
# Quality
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class QualityInput:
    """Signals collected for a pull request before scoring."""

    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    has_tests: bool = False
    commit_messages: list[str] = field(default_factory=list)
    contributor_merged_prs: int = 0
    contributor_account_age_days: int = 0
    ci_passing: bool = False

    @property
    def total_lines(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True, slots=True)
class QualityResult:
    """Score, recommendation and advisory reasons for a pull request."""

    score: float
    recommendation: Recommendation
    reasons: list[str] = field(default_factory=list)


# ------------------------------------------------------------------
# Rate limiting
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """Daily tenant budget snapshot.

    Attributes:
        allowed: True when another analysis fits in today's budget.
        remaining: Analyses left today (never negative).
        used: Analyses already counted today.
    """

    allowed: bool
    remaining: int
    used: int
