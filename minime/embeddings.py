"""Embedding providers for minime.

Providers never raise to their caller: a missing credential, a model that
fails to load or a provider error all come back as ``None`` ("no embedding").
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Dict, List, Optional

import requests
from sentence_transformers import SentenceTransformer

from .config import CONFIG, EmbeddingConfig

_LOGGER = logging.getLogger("minime.embeddings")


@lru_cache(maxsize=2)
def _get_model(model_name: str) -> SentenceTransformer:
    """Return a cached embedding model instance."""

    return SentenceTransformer(model_name)


class EmbeddingProvider(ABC):
    """Turns text into a vector, or ``None`` when unavailable."""

    name: str = "base"

    def __init__(self, model: str) -> None:
        self.model = model

    async def embed(self, text: str) -> Optional[List[float]]:
        """Embed *text* off the event loop; never raises."""

        if not text or not text.strip():
            return None
        start = time.perf_counter()
        try:
            vector = await asyncio.to_thread(self._embed, text)
            vector = [float(value) for value in vector] if vector else None
        except Exception as exc:  # noqa: BLE001 - embedding failure means "no embedding"
            _LOGGER.warning(
                "Embedding failed (%s): %s",
                self.name,
                exc,
                extra={"operation": "embed", "backend": self.name},
            )
            return None
        if vector is None:
            return None
        _LOGGER.debug(
            "Embedded text",
            extra={
                "operation": "embed",
                "backend": self.name,
                "elapsed_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return vector

    @abstractmethod
    def _embed(self, text: str) -> Optional[List[float]]:
        """Blocking embedding call; may raise."""


class NullEmbeddingProvider(EmbeddingProvider):
    """Provider used when embeddings are disabled."""

    name = "none"

    def __init__(self, model: str = "") -> None:
        super().__init__(model)

    def _embed(self, text: str) -> Optional[List[float]]:
        return None


class SentenceTransformerProvider(EmbeddingProvider):
    """Local sentence-transformers model, loaded on first use."""

    name = "sentence_transformers"

    def _embed(self, text: str) -> Optional[List[float]]:
        model = _get_model(self.model)
        vector = model.encode([text.strip()], batch_size=1, normalize_embeddings=True)[0]
        return vector.tolist() if hasattr(vector, "tolist") else list(vector)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI-compatible ``/v1/embeddings`` endpoint."""

    name = "openai"

    def __init__(self, model: str, api_key: Optional[str], base_url: str, timeout: int = 30) -> None:
        super().__init__(model)
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.session = requests.Session()

    def _embed(self, text: str) -> Optional[List[float]]:
        if not self.api_key:
            return None
        payload: Dict[str, Any] = {"model": self.model, "input": text}
        response = self.session.post(
            self.base_url,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )
        if response.status_code != 200:
            raise RuntimeError(f"embedding endpoint returned {response.status_code}: {response.text[:500]}")
        data = response.json().get("data") or []
        if not data:
            return None
        return data[0].get("embedding")


def create_embedding_provider(config: Optional[EmbeddingConfig] = None) -> EmbeddingProvider:
    """Instantiate the configured embedding provider."""

    config = config or CONFIG.embedding
    provider = config.provider.lower()
    if provider in {"none", "disabled", "off"}:
        return NullEmbeddingProvider(config.model)
    if provider in {"sentence_transformers", "sentence-transformers", "local"}:
        return SentenceTransformerProvider(config.model)
    if provider == "openai":
        if not config.api_key:
            _LOGGER.info("No embedding API key configured; embeddings disabled")
        return OpenAIEmbeddingProvider(
            model=config.model,
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
        )
    raise ValueError(f"Unsupported embedding provider: {config.provider}")


__all__ = [
    "EmbeddingProvider",
    "NullEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "SentenceTransformerProvider",
    "create_embedding_provider",
]
