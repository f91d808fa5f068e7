"""Abstract backend interface and shared dataclasses for vector memory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

Metadata = Dict[str, Any]
Embedding = List[float]


class BackendKind(str, Enum):
    """Which backend is serving the vector memory."""

    FALLBACK = "fallback"
    REMOTE = "remote"


class BackendError(RuntimeError):
    """Raised when a backend cannot complete an operation."""


class DuplicateRecordError(BackendError, ValueError):
    """Raised when a caller-supplied id is already stored in the backend."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"record id already exists: {record_id}")
        self.record_id = record_id


@dataclass(frozen=True)
class VectorRecord:
    """One stored document and its (optional) embedding."""

    text: str
    id: Optional[str] = None
    embedding: Optional[Embedding] = None
    metadata: Metadata = field(default_factory=dict)

    def with_id(self, record_id: str) -> "VectorRecord":
        return replace(self, id=record_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "embedding": list(self.embedding) if self.embedding is not None else None,
            "meta": dict(self.metadata),
        }


@dataclass(frozen=True)
class ScoredRecord:
    """A record returned by a similarity query."""

    record: VectorRecord
    score: float

    @property
    def id(self) -> Optional[str]:
        return self.record.id

    @property
    def text(self) -> str:
        return self.record.text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.record.id,
            "text": self.record.text,
            "score": self.score,
            "meta": dict(self.record.metadata),
        }


class VectorBackend(ABC):
    """Storage capability shared by the fallback and remote backends."""

    kind: BackendKind

    @abstractmethod
    def add(self, record: VectorRecord) -> VectorRecord:
        """Persist *record*, assigning an id when it has none, and return it."""

    @abstractmethod
    def query(self, embedding: Optional[Sequence[float]], k: int) -> List[ScoredRecord]:
        """Return up to *k* best matches by descending score.

        An absent *embedding* yields an empty list.
        """

    @abstractmethod
    def list(self) -> List[VectorRecord]:
        """Return every stored record in backend-defined order."""

    @abstractmethod
    def clear(self) -> bool:
        """Remove all records."""

    def contains(self, record_id: str) -> bool:
        """Whether a record with *record_id* is stored; backends may override."""

        return any(record.id == record_id for record in self.list())
