"""Factory helpers for constructing the VectorMemory facade."""

from __future__ import annotations

import functools
import logging
from typing import Optional

from ...config import AppConfig, CONFIG, VectorStoreConfig
from ...embeddings import EmbeddingProvider, create_embedding_provider
from .chromadb_impl import ChromaBackend, connect_chroma
from .facade import VectorMemory

_LOGGER = logging.getLogger("minime.vector_store")


def open_chroma_backend(config: VectorStoreConfig) -> ChromaBackend:
    """Connect to Chroma and open the configured collection (blocking)."""

    client = connect_chroma(config.chroma)
    backend = ChromaBackend(client, config.collection)
    _LOGGER.info(
        "Opened Chroma collection",
        extra={"operation": "initialize", "collection": config.collection},
    )
    return backend


def create_vector_memory(
    config: AppConfig = CONFIG,
    *,
    embedder: Optional[EmbeddingProvider] = None,
) -> VectorMemory:
    """Build a VectorMemory wired to the configured backends.

    The remote backend is only connected when ``VectorMemory.initialize`` runs,
    and only if ``vector_store.enable_remote`` is set.
    """

    store_config = config.vector_store
    connector = None
    if store_config.enable_remote:
        connector = functools.partial(open_chroma_backend, store_config)
    else:
        _LOGGER.info("Remote vector backend disabled; using in-memory fallback")
    return VectorMemory(
        embedder or create_embedding_provider(config.embedding),
        remote_connector=connector,
        default_k=store_config.default_k,
        mirror_writes=store_config.mirror_writes,
        remote_timeout=store_config.remote_timeout,
    )


__all__ = ["create_vector_memory", "open_chroma_backend"]
