"""EmbeddingProvider protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Turns triage text into a float vector for similarity comparison.

    Sync implementations are also accepted by
    :func:`~prguard.embedding.embed_text`.
    """

    async def embed(self, text: str) -> list[float]:
        """Embed a single text string into a vector."""
        ...
