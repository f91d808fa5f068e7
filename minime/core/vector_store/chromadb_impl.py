"""Chroma backend for the VectorBackend abstraction."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

import chromadb

from ...config import ChromaConfig
from .base import (
    BackendError,
    BackendKind,
    DuplicateRecordError,
    Metadata,
    ScoredRecord,
    VectorBackend,
    VectorRecord,
)
from .similarity import SENTINEL_SCORE

_LOGGER = logging.getLogger("minime.vector_store.chroma")

# Metadata key listing values that were JSON-encoded on the way in.
JSON_KEYS_FIELD = "__json_keys__"
_SCALAR_TYPES = (str, int, float, bool)
_COLLECTION_METADATA = {"hnsw:space": "cosine"}


def connect_chroma(config: ChromaConfig) -> Any:
    """Build the Chroma client described by *config*.

    Cloud credentials take precedence, then a local persistent path, then a
    Chroma server reachable over HTTP.
    """

    if config.uses_cloud:
        _LOGGER.info("Connecting to Chroma Cloud", extra={"backend": "chroma-cloud"})
        return chromadb.CloudClient(
            tenant=config.tenant,
            database=config.database,
            api_key=config.cloud_api_key,
        )
    if config.path:
        _LOGGER.info("Opening persistent Chroma store at %s", config.path, extra={"backend": "chroma-local"})
        return chromadb.PersistentClient(path=config.path)
    _LOGGER.info(
        "Connecting to Chroma server at %s:%s", config.host, config.port, extra={"backend": "chroma-http"}
    )
    return chromadb.HttpClient(host=config.host, port=config.port, ssl=config.ssl)


def encode_metadata(metadata: Metadata) -> Optional[Dict[str, Any]]:
    """Flatten *metadata* into the scalar-only mapping Chroma accepts."""

    if not metadata:
        return None
    encoded: Dict[str, Any] = {}
    json_keys: List[str] = []
    for key, value in metadata.items():
        if isinstance(value, _SCALAR_TYPES):
            encoded[key] = value
        else:
            encoded[key] = json.dumps(value)
            json_keys.append(key)
    if json_keys:
        encoded[JSON_KEYS_FIELD] = ",".join(json_keys)
    return encoded


def decode_metadata(metadata: Optional[Dict[str, Any]]) -> Metadata:
    """Invert :func:`encode_metadata`."""

    if not metadata:
        return {}
    decoded = dict(metadata)
    raw_keys = decoded.pop(JSON_KEYS_FIELD, "")
    for key in filter(None, str(raw_keys).split(",")):
        if isinstance(decoded.get(key), str):
            decoded[key] = json.loads(decoded[key])
    return decoded


def _as_floats(vector: Any) -> Optional[List[float]]:
    if vector is None:
        return None
    return [float(value) for value in vector]


def _first_batch(response: Dict[str, Any], key: str) -> List[Any]:
    # query() nests results per query embedding; get() does not.
    values = response.get(key)
    if values is None:
        return []
    values = list(values)
    if values and isinstance(values[0], (list, tuple)) and key != "embeddings":
        return list(values[0])
    return values


def _records(response: Dict[str, Any]) -> List[VectorRecord]:
    """Rebuild records from a ``get()`` or single-embedding ``query()`` response."""

    ids = _first_batch(response, "ids")
    documents = _first_batch(response, "documents")
    metadatas = _first_batch(response, "metadatas")
    embeddings = _first_batch(response, "embeddings")
    records: List[VectorRecord] = []
    for idx, doc_id in enumerate(ids):
        records.append(
            VectorRecord(
                id=str(doc_id),
                text=documents[idx] if idx < len(documents) and documents[idx] else "",
                embedding=_as_floats(embeddings[idx]) if idx < len(embeddings) else None,
                metadata=decode_metadata(metadatas[idx] if idx < len(metadatas) else None),
            )
        )
    return records


class ChromaBackend(VectorBackend):
    """VectorBackend backed by a single Chroma collection.

    Chroma rejects query embeddings whose length differs from the stored
    ones. Such queries are answered here instead, with every candidate scored
    at the sentinel, matching how the in-memory scorer treats mismatched
    lengths.
    """

    kind = BackendKind.REMOTE

    def __init__(self, client: Any, collection_name: str) -> None:
        if not collection_name:
            raise ValueError("collection name must not be empty")
        self._client = client
        self._collection_name = collection_name
        self._dimension: Optional[int] = None
        try:
            self._collection = self._open_collection()
        except Exception as exc:
            raise BackendError(f"could not open Chroma collection {collection_name!r}: {exc}") from exc

    @property
    def collection_name(self) -> str:
        return self._collection_name

    def _open_collection(self) -> Any:
        return self._client.get_or_create_collection(
            name=self._collection_name,
            metadata=_COLLECTION_METADATA,
            embedding_function=None,
        )

    def _stored_dimension(self) -> Optional[int]:
        """Embedding length of the collection, or ``None`` while it is empty."""

        if self._dimension is None:
            sample = _first_batch(self._collection.get(limit=1, include=["embeddings"]), "embeddings")
            if len(sample) and sample[0] is not None:
                self._dimension = len(sample[0])
        return self._dimension

    def contains(self, record_id: str) -> bool:
        try:
            existing = self._collection.get(ids=[record_id], include=[])
        except Exception as exc:
            raise BackendError(f"Chroma get failed: {exc}") from exc
        return bool(existing.get("ids"))

    def add(self, record: VectorRecord) -> VectorRecord:
        if record.embedding is None:
            raise BackendError("Chroma backend requires an embedding")
        if record.id and self.contains(record.id):
            raise DuplicateRecordError(record.id)
        stored = record if record.id else record.with_id(uuid.uuid4().hex)
        try:
            self._collection.add(
                ids=[stored.id],
                documents=[stored.text],
                embeddings=[list(stored.embedding)],
                metadatas=[encode_metadata(stored.metadata)] if stored.metadata else None,
            )
        except Exception as exc:
            raise BackendError(f"Chroma add failed: {exc}") from exc
        if self._dimension is None:
            self._dimension = len(stored.embedding)
        return stored

    def query(self, embedding: Optional[Sequence[float]], k: int) -> List[ScoredRecord]:
        if embedding is None or k <= 0:
            return []
        try:
            dimension = self._stored_dimension()
            if dimension is not None and len(embedding) != dimension:
                _LOGGER.debug(
                    "Query embedding has %d dimensions, collection has %d",
                    len(embedding),
                    dimension,
                    extra={"operation": "query", "collection": self._collection_name},
                )
                response = self._collection.get(limit=k, include=["documents", "metadatas"])
                return [ScoredRecord(record=rec, score=SENTINEL_SCORE) for rec in _records(response)]
            response = self._collection.query(
                query_embeddings=[list(embedding)],
                n_results=k,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise BackendError(f"Chroma query failed: {exc}") from exc
        distances = _first_batch(response, "distances")
        results: List[ScoredRecord] = []
        for idx, record in enumerate(_records(response)):
            distance = distances[idx] if idx < len(distances) else None
            # Cosine space: distance = 1 - similarity.
            score = 1.0 - float(distance) if distance is not None else SENTINEL_SCORE
            results.append(ScoredRecord(record=record, score=score))
        return results

    def list(self) -> List[VectorRecord]:
        try:
            response = self._collection.get(include=["documents", "metadatas", "embeddings"])
        except Exception as exc:
            raise BackendError(f"Chroma get failed: {exc}") from exc
        return _records(response)

    def clear(self) -> bool:
        try:
            self._client.delete_collection(name=self._collection_name)
            self._collection = self._open_collection()
        except Exception as exc:
            raise BackendError(f"Chroma clear failed: {exc}") from exc
        self._dimension = None
        return True


__all__ = ["ChromaBackend", "connect_chroma", "decode_metadata", "encode_metadata"]
