"""PRGuard: duplicate detection and quality triage for pull requests and issues."""

__version__ = "0.1.0"

from prguard._prguard import PRGuard
from prguard.collaborators import CommentApplier, CommentRef, LabelApplier
from prguard.config import LabelConfig, QualityThresholds, TriageConfig, load_config, parse_config
from prguard.dedup import cluster_duplicates, cosine_similarity, find_duplicates
from prguard.diff import DiffSummary, summarize_diff
from prguard.embedding import (
    Embedded,
    EmbeddingProvider,
    OpenAIEmbedding,
    Unavailable,
    build_embedding_input,
    embed_text,
)
from prguard.events import EventBus, EventType, ItemEvent
from prguard.exceptions import ConfigError, PRGuardError, StorageError
from prguard.metrics import Metrics
from prguard.pipeline import TriageItem, TriageOutcome, TriagePipeline, TriageStatus, is_bot
from prguard.quality import score_quality
from prguard.rate_limit import RateLimiter
from prguard.store import AnalysisStore, Database, EmbeddingStore
from prguard.types import (
    AnalysisRecord,
    Comparison,
    DuplicateCluster,
    DuplicateMatch,
    EmbeddingRecord,
    EmbeddingState,
    ItemKey,
    ItemKind,
    QualityInput,
    QualityResult,
    RateLimitResult,
    Recommendation,
)

__all__ = [
    "AnalysisRecord",
    "AnalysisStore",
    "CommentApplier",
    "CommentRef",
    "Comparison",
    "ConfigError",
    "Database",
    "DiffSummary",
    "DuplicateCluster",
    "DuplicateMatch",
    "Embedded",
    "EmbeddingProvider",
    "EmbeddingRecord",
    "EmbeddingState",
    "EmbeddingStore",
    "EventBus",
    "EventType",
    "ItemEvent",
    "ItemKey",
    "ItemKind",
    "LabelApplier",
    "LabelConfig",
    "Metrics",
    "OpenAIEmbedding",
    "PRGuard",
    "PRGuardError",
    "QualityInput",
    "QualityResult",
    "QualityThresholds",
    "RateLimitResult",
    "RateLimiter",
    "Recommendation",
    "StorageError",
    "TriageConfig",
    "TriageItem",
    "TriageOutcome",
    "TriagePipeline",
    "TriageStatus",
    "Unavailable",
    "__version__",
    "build_embedding_input",
    "cluster_duplicates",
    "cosine_similarity",
    "embed_text",
    "find_duplicates",
    "is_bot",
    "load_config",
    "parse_config",
    "score_quality",
    "summarize_diff",
]
