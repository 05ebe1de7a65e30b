"""Provider boundary — every embedding call ends as ``Embedded`` or ``Unavailable``."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prguard.embedding.protocols import EmbeddingProvider

logger = logging.getLogger(__name__)

MAX_DIFF_CHARS = 2000
"""Diff excerpt characters included in the embedding input."""


@dataclass(frozen=True, slots=True)
class Embedded:
    """A usable embedding vector."""

    vector: list[float]


@dataclass(frozen=True, slots=True)
class Unavailable:
    """The provider produced no vector; the pipeline degrades instead of failing."""

    reason: str


EmbeddingResult = Embedded | Unavailable


def build_embedding_input(title: str, body: str, diff_summary: str = "") -> str:
    """Join the trimmed, non-empty parts of an item into one embedding input."""
    trimmed_diff = diff_summary[:MAX_DIFF_CHARS]
    parts = [title.strip(), body.strip(), trimmed_diff.strip()]
    return "\n\n".join(p for p in parts if p)


async def embed_text(provider: EmbeddingProvider | None, text: str) -> EmbeddingResult:
    """Embed *text*, converting every failure mode into :class:`Unavailable`.

    Handles both sync and async providers. Provider exceptions are logged
    and never propagate; an empty vector from the provider is treated the
    same way.
    """
    if provider is None:
        return Unavailable("no embedding provider configured")

    stripped = text.strip()
    if not stripped:
        return Unavailable("empty input")

    try:
        result = provider.embed(stripped)
        vector = await result if inspect.isawaitable(result) else result
    except Exception as exc:
        logger.warning("Embedding call failed: %s", exc, exc_info=True)
        return Unavailable(f"provider error: {type(exc).__name__}")

    if not vector:
        logger.warning("Embedding provider returned an empty vector")
        return Unavailable("empty vector")

    try:
        return Embedded([float(x) for x in vector])
    except (TypeError, ValueError):
        logger.warning("Embedding provider returned a non-numeric vector", exc_info=True)
        return Unavailable("malformed vector")
