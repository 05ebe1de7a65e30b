"""Embedding providers — protocol, OpenAI implementation, and the failure boundary."""

from prguard.embedding.openai import OpenAIEmbedding
from prguard.embedding.protocols import EmbeddingProvider
from prguard.embedding.result import (
    Embedded,
    EmbeddingResult,
    Unavailable,
    build_embedding_input,
    embed_text,
)

__all__ = [
    "Embedded",
    "EmbeddingProvider",
    "EmbeddingResult",
    "OpenAIEmbedding",
    "Unavailable",
    "build_embedding_input",
    "embed_text",
]
