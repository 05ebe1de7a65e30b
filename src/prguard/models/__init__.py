"""SQLModel database models for PRGuard."""

from prguard.models.analyses import ItemAnalysis
from prguard.models.embeddings import ItemEmbedding
from prguard.models.rate_limits import DailyAnalysisCount, HourlyCallCount

__all__ = [
    "DailyAnalysisCount",
    "HourlyCallCount",
    "ItemAnalysis",
    "ItemEmbedding",
]
