"""OpenAIEmbedding — embeds one triage text per call through OpenAI."""

from __future__ import annotations

import os

from openai import AsyncOpenAI

DEFAULT_MODEL = "text-embedding-3-small"


class OpenAIEmbedding:
    """Embedding provider over the OpenAI Embeddings API.

    Retries on rate-limit, connection and 5xx errors are left to the
    ``AsyncOpenAI`` client (``max_retries``). Whatever survives them
    propagates; :func:`~prguard.embedding.embed_text` turns it into
    :class:`~prguard.embedding.Unavailable`.
    """

    def __init__(
        self,
        *,
        model: str = DEFAULT_MODEL,
        api_key: str | None = None,
        max_retries: int = 3,
        timeout: float = 60.0,
    ) -> None:
        resolved_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not resolved_key:
            raise ValueError(
                "No OpenAI API key provided. Pass api_key= or set OPENAI_API_KEY."
            )
        self.model = model
        self._client = AsyncOpenAI(api_key=resolved_key, max_retries=max_retries, timeout=timeout)

    @classmethod
    def for_key(cls, api_key: str) -> OpenAIEmbedding:
        """Provider for a repository that configures its own key."""
        return cls(api_key=api_key)

    async def embed(self, text: str) -> list[float]:
        """Return the vector for *text*, or ``[]`` when it is blank."""
        text = text.strip()
        if not text:
            return []
        return await self._call_api(text)

    async def _call_api(self, text: str) -> list[float]:
        response = await self._client.embeddings.create(input=text, model=self.model)
        if not response.data:
            return []
        return list(response.data[0].embedding)
