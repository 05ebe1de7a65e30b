"""Persistence layer — database handle, dialect helpers, and keyed stores."""

from prguard.store.analyses import AnalysisStore
from prguard.store.database import DEFAULT_DATABASE_URL, Database
from prguard.store.embeddings import DEFAULT_CANDIDATE_LIMIT, EmbeddingStore

__all__ = [
    "DEFAULT_CANDIDATE_LIMIT",
    "DEFAULT_DATABASE_URL",
    "AnalysisStore",
    "Database",
    "EmbeddingStore",
]
