"""Shared fakes: an in-process stand-in for the chromadb client API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np
import pytest


class FakeCollection:
    """Mimics the subset of chromadb's Collection API the adapter uses.

    Like Chroma, it fixes its embedding dimension on the first add and rejects
    adds or queries of any other length.
    """

    def __init__(self, name: str, metadata: Optional[Dict[str, Any]]) -> None:
        self.name = name
        self.metadata = metadata
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.add_calls: List[Dict[str, Any]] = []
        self.query_calls = 0
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("chroma unreachable")

    def _check_dimension(self, vector) -> None:
        if self.rows:
            expected = len(next(iter(self.rows.values()))["embedding"])
            if len(vector) != expected:
                raise ValueError(f"Collection expecting embedding with dimension of {expected}, got {len(vector)}")

    def add(self, ids, documents, embeddings, metadatas=None) -> None:
        self._check()
        self.add_calls.append({"ids": ids, "metadatas": metadatas})
        for idx, doc_id in enumerate(ids):
            self._check_dimension(embeddings[idx])
            self.rows[doc_id] = {
                "document": documents[idx],
                "embedding": np.asarray(embeddings[idx], dtype=np.float32),
                "metadata": metadatas[idx] if metadatas else None,
            }

    def get(self, ids=None, limit=None, include=None) -> Dict[str, Any]:
        self._check()
        selected = [doc_id for doc_id in self.rows if ids is None or doc_id in ids]
        if limit is not None:
            selected = selected[:limit]
        include = include or []
        response: Dict[str, Any] = {"ids": selected}
        if "documents" in include:
            response["documents"] = [self.rows[i]["document"] for i in selected]
        if "metadatas" in include:
            response["metadatas"] = [self.rows[i]["metadata"] for i in selected]
        if "embeddings" in include:
            response["embeddings"] = np.array([self.rows[i]["embedding"] for i in selected])
        return response

    def query(self, query_embeddings, n_results, include=None) -> Dict[str, Any]:
        self._check()
        self.query_calls += 1
        query = np.asarray(query_embeddings[0], dtype=float)
        self._check_dimension(query)
        scored = []
        for doc_id, row in self.rows.items():
            emb = row["embedding"].astype(float)
            cos = float(np.dot(query, emb) / (np.linalg.norm(query) * np.linalg.norm(emb)))
            scored.append((1.0 - cos, doc_id))
        scored.sort()
        top = scored[:n_results]
        return {
            "ids": [[doc_id for _, doc_id in top]],
            "documents": [[self.rows[doc_id]["document"] for _, doc_id in top]],
            "metadatas": [[self.rows[doc_id]["metadata"] for _, doc_id in top]],
            "distances": [[distance for distance, _ in top]],
        }


class FakeChromaClient:
    def __init__(self) -> None:
        self.collections: Dict[str, FakeCollection] = {}
        self.deleted: List[str] = []

    def get_or_create_collection(self, name, metadata=None, embedding_function=None) -> FakeCollection:
        assert embedding_function is None
        return self.collections.setdefault(name, FakeCollection(name, metadata))

    def delete_collection(self, name) -> None:
        self.deleted.append(name)
        self.collections.pop(name)


@pytest.fixture()
def chroma_client() -> FakeChromaClient:
    return FakeChromaClient()
