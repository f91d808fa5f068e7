"""In-process VectorBackend used when no persistent backend is usable."""

from __future__ import annotations

import itertools
import threading
from typing import List, Optional, Sequence

from .base import BackendKind, DuplicateRecordError, ScoredRecord, VectorBackend, VectorRecord
from .similarity import cosine_similarity


class InMemoryBackend(VectorBackend):
    """Volatile record list kept in insertion order.

    All reads and writes happen under one lock, and ids are assigned inside it
    at the moment of insertion, so concurrent adds never share an id.
    """

    kind = BackendKind.FALLBACK

    def __init__(self) -> None:
        self._records: List[VectorRecord] = []
        self._ids: set[str] = set()
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return record_id in self._ids

    def contains(self, record_id: str) -> bool:
        return record_id in self

    def add(self, record: VectorRecord) -> VectorRecord:
        with self._lock:
            if record.id:
                if record.id in self._ids:
                    raise DuplicateRecordError(record.id)
                stored = record
            else:
                stored = record.with_id(self._next_id())
            self._records.append(stored)
            self._ids.add(stored.id)
            return stored

    def query(self, embedding: Optional[Sequence[float]], k: int) -> List[ScoredRecord]:
        if embedding is None or k <= 0:
            return []
        with self._lock:
            snapshot = list(self._records)
        scored = [ScoredRecord(record=rec, score=cosine_similarity(embedding, rec.embedding)) for rec in snapshot]
        # sort() is stable, so equal scores keep insertion order.
        scored.sort(key=lambda item: item.score, reverse=True)
        return scored[:k]

    def list(self) -> List[VectorRecord]:
        with self._lock:
            return list(self._records)

    def clear(self) -> bool:
        with self._lock:
            self._records = []
            self._ids = set()
            self._counter = itertools.count(1)
        return True

    def _next_id(self) -> str:
        candidate = str(next(self._counter))
        while candidate in self._ids:
            candidate = str(next(self._counter))
        return candidate


__all__ = ["InMemoryBackend"]
