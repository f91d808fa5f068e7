"""VectorMemory: the single entry point for storing and retrieving memories.

The facade prefers the remote backend while it is available and falls back to
the in-process backend otherwise. Any remote failure, whether while connecting
or during a later call, permanently degrades the store to the fallback backend
for the rest of the process. Remote and embedding failures are logged and
absorbed here; callers only ever see ``ValueError`` for bad input.

While the remote backend is preferred, the fallback still holds records that
could not go to the remote (no embedding, or written before the connection
came up). Queries and listings merge those in, so everything listed is also
retrievable.

The optional ``remote_timeout`` bounds connecting and reads only. A worker
thread cannot be cancelled, so a timed-out write would still land in the
remote after its fallback copy was written; writes therefore always run to
completion.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Sequence

from ...embeddings import EmbeddingProvider
from .base import (
    BackendKind,
    DuplicateRecordError,
    ScoredRecord,
    VectorBackend,
    VectorRecord,
)
from .memory_impl import InMemoryBackend

_LOGGER = logging.getLogger("minime.vector_store")

RemoteConnector = Callable[[], VectorBackend]


class RemoteState(str, Enum):
    """Lifecycle of the remote backend within one process."""

    DISABLED = "disabled"
    PENDING = "pending"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class VectorMemory:
    """Document/embedding store with one-way remote-to-fallback degradation."""

    def __init__(
        self,
        embedder: EmbeddingProvider,
        *,
        fallback: Optional[InMemoryBackend] = None,
        remote_connector: Optional[RemoteConnector] = None,
        default_k: int = 3,
        mirror_writes: bool = False,
        remote_timeout: Optional[float] = None,
    ) -> None:
        if default_k <= 0:
            raise ValueError("default_k must be positive")
        self.embedder = embedder
        self.default_k = default_k
        self.mirror_writes = mirror_writes
        self.remote_timeout = remote_timeout or None
        self._fallback = fallback if fallback is not None else InMemoryBackend()
        self._remote_connector = remote_connector
        self._remote: Optional[VectorBackend] = None
        self._remote_state = RemoteState.PENDING if remote_connector else RemoteState.DISABLED
        self._init_task: Optional[asyncio.Future] = None

    # ---- State ------------------------------------------------------------
    @property
    def backend_kind(self) -> BackendKind:
        if self._remote_state is RemoteState.AVAILABLE:
            return BackendKind.REMOTE
        return BackendKind.FALLBACK

    @property
    def remote_state(self) -> RemoteState:
        return self._remote_state

    @property
    def fallback(self) -> InMemoryBackend:
        return self._fallback

    async def initialize(self) -> BackendKind:
        """Connect the remote backend once; later calls reuse the outcome."""

        if self._remote_state is not RemoteState.PENDING:
            return self.backend_kind
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._connect_remote())
        await self._init_task
        return self.backend_kind

    async def _connect_remote(self) -> None:
        connector = self._remote_connector
        if connector is None:
            raise RuntimeError("no remote connector configured")
        start = time.perf_counter()
        try:
            backend = await self._call_remote(connector)
        except Exception as exc:  # noqa: BLE001 - any init failure degrades
            self._degrade("initialize", exc)
            return
        self._remote = backend
        self._remote_state = RemoteState.AVAILABLE
        _LOGGER.info(
            "Remote vector backend ready",
            extra={
                "operation": "initialize",
                "backend": BackendKind.REMOTE.value,
                "elapsed_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )

    def _degrade(self, operation: str, exc: BaseException) -> None:
        if self._remote_state is RemoteState.UNAVAILABLE:
            return
        self._remote_state = RemoteState.UNAVAILABLE
        self._remote = None
        _LOGGER.warning(
            "Remote vector backend failed; using in-memory fallback for the rest of the process: %s",
            exc,
            extra={"operation": operation, "backend": BackendKind.FALLBACK.value},
        )

    async def _call_remote(self, func: Callable[..., Any], *args: Any, bounded: bool = True) -> Any:
        call = asyncio.to_thread(func, *args)
        if bounded and self.remote_timeout:
            return await asyncio.wait_for(call, self.remote_timeout)
        return await call

    # ---- Public API -------------------------------------------------------
    async def add_vector(
        self,
        text: str,
        *,
        id: Optional[str] = None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> VectorRecord:
        """Embed and store *text*, returning the stored record.

        Raises:
            ValueError: if *text* is empty or *id* is already stored.
        """

        if not isinstance(text, str) or not text.strip():
            raise ValueError("text required")
        if id is not None and id in self._fallback:
            raise DuplicateRecordError(id)

        embedding = await self.embedder.embed(text)
        record = VectorRecord(text=text, id=id or None, embedding=embedding, metadata=dict(meta or {}))

        remote = self._remote
        if remote is not None and embedding is not None:
            try:
                stored = await self._call_remote(remote.add, record, bounded=False)
            except DuplicateRecordError:
                raise
            except Exception as exc:  # noqa: BLE001 - fall through to the fallback backend
                self._degrade("add", exc)
            else:
                if self.mirror_writes:
                    self._mirror(stored)
                _LOGGER.debug(
                    "Stored record",
                    extra={"operation": "add", "backend": remote.kind.value, "record_id": stored.id},
                )
                return stored
        elif remote is not None:
            # The fallback copy is listed next to the remote records, so its id
            # must not shadow one the remote already holds.
            if record.id is not None and await self._remote_contains(remote, record.id):
                raise DuplicateRecordError(record.id)
            _LOGGER.debug(
                "Record has no embedding; storing in fallback backend",
                extra={"operation": "add", "backend": BackendKind.FALLBACK.value},
            )

        stored = self._fallback.add(record)
        _LOGGER.debug(
            "Stored record",
            extra={"operation": "add", "backend": BackendKind.FALLBACK.value, "record_id": stored.id},
        )
        return stored

    async def _remote_contains(self, remote: VectorBackend, record_id: str) -> bool:
        try:
            return await self._call_remote(remote.contains, record_id)
        except Exception as exc:  # noqa: BLE001
            self._degrade("add", exc)
            return False

    def _mirror(self, record: VectorRecord) -> None:
        try:
            self._fallback.add(record)
        except DuplicateRecordError:
            _LOGGER.warning(
                "Mirror copy skipped; id already in fallback backend",
                extra={"operation": "add", "record_id": record.id},
            )

    async def query_vectors(
        self,
        embedding: Optional[Sequence[float]],
        k: Optional[int] = None,
    ) -> List[ScoredRecord]:
        """Return up to *k* records ranked by descending similarity.

        An absent or empty *embedding* returns ``[]`` for any *k*.
        """

        if embedding is None or len(embedding) == 0:
            return []
        k = self.default_k if k is None else k
        if k <= 0:
            raise ValueError("k must be positive")
        vector = [float(value) for value in embedding]

        remote = self._remote
        if remote is not None:
            try:
                results = await self._call_remote(remote.query, vector, k)
            except Exception as exc:  # noqa: BLE001
                self._degrade("query", exc)
            else:
                results = self._merge_fallback_hits(results, vector, k)
                self._log_query(remote.kind, k, results)
                return results

        results = self._fallback.query(vector, k)
        self._log_query(BackendKind.FALLBACK, k, results)
        return results

    def _merge_fallback_hits(
        self, results: List[ScoredRecord], vector: List[float], k: int
    ) -> List[ScoredRecord]:
        if not len(self._fallback):
            return results
        seen = {hit.id for hit in results}
        merged = list(results) + [hit for hit in self._fallback.query(vector, k) if hit.id not in seen]
        # Stable: on equal scores remote hits stay ahead of fallback hits.
        merged.sort(key=lambda hit: hit.score, reverse=True)
        return merged[:k]

    async def query_text(self, text: str, k: Optional[int] = None) -> List[ScoredRecord]:
        """Embed *text* and query with it; ``[]`` when no embedding is available."""

        if not isinstance(text, str) or not text.strip():
            raise ValueError("text required")
        embedding = await self.embedder.embed(text)
        return await self.query_vectors(embedding, k)

    async def list_vectors(self) -> List[VectorRecord]:
        """Return every visible record; never raises for remote failures."""

        remote = self._remote
        if remote is not None:
            try:
                remote_records = await self._call_remote(remote.list)
            except Exception as exc:  # noqa: BLE001
                self._degrade("list", exc)
            else:
                seen = {record.id for record in remote_records}
                extras = [record for record in self._fallback.list() if record.id not in seen]
                return list(remote_records) + extras
        return self._fallback.list()

    async def clear_vectors(self) -> bool:
        """Remove every record from the remote (if active) and fallback backends."""

        remote = self._remote
        if remote is not None:
            try:
                await self._call_remote(remote.clear, bounded=False)
            except Exception as exc:  # noqa: BLE001
                self._degrade("clear", exc)
        self._fallback.clear()
        _LOGGER.info("Cleared vector memory", extra={"operation": "clear", "backend": self.backend_kind.value})
        return True

    def _log_query(self, kind: BackendKind, k: int, results: List[ScoredRecord]) -> None:
        _LOGGER.debug(
            "Query served",
            extra={"operation": "query", "backend": kind.value, "k": k, "results": len(results)},
        )


__all__ = ["RemoteConnector", "RemoteState", "VectorMemory"]
