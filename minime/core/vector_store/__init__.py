"""Vector memory: backends, similarity scoring and the VectorMemory facade."""

from __future__ import annotations

from .base import (
    BackendError,
    BackendKind,
    DuplicateRecordError,
    ScoredRecord,
    VectorBackend,
    VectorRecord,
)
from .facade import RemoteState, VectorMemory
from .factory import create_vector_memory
from .memory_impl import InMemoryBackend
from .similarity import SENTINEL_SCORE, cosine_similarity

__all__ = [
    "BackendError",
    "BackendKind",
    "DuplicateRecordError",
    "InMemoryBackend",
    "RemoteState",
    "SENTINEL_SCORE",
    "ScoredRecord",
    "VectorBackend",
    "VectorMemory",
    "VectorRecord",
    "cosine_similarity",
    "create_vector_memory",
]
