"""Tests for embedding providers: every failure maps to "no embedding"."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import numpy as np
import pytest

import minime.embeddings as embeddings
from minime.config import EmbeddingConfig
from minime.embeddings import (
    NullEmbeddingProvider,
    OpenAIEmbeddingProvider,
    SentenceTransformerProvider,
    create_embedding_provider,
)


class FakeResponse:
    def __init__(self, status_code: int, body: Dict[str, Any]) -> None:
        self.status_code = status_code
        self._body = body
        self.text = str(body)

    def json(self) -> Dict[str, Any]:
        return self._body


class FakeSession:
    def __init__(self, response: FakeResponse) -> None:
        self.response = response
        self.calls: List[Dict[str, Any]] = []

    def post(self, url, **kwargs) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        return self.response


def test_null_provider_returns_none():
    assert asyncio.run(NullEmbeddingProvider().embed("hello")) is None


def test_blank_text_is_not_embedded():
    provider = OpenAIEmbeddingProvider("m", api_key="k", base_url="http://x")
    provider.session = FakeSession(FakeResponse(200, {"data": [{"embedding": [1.0]}]}))
    assert asyncio.run(provider.embed("   ")) is None
    assert provider.session.calls == []


def test_openai_without_key_never_calls_network():
    provider = OpenAIEmbeddingProvider("text-embedding-3-small", api_key=None, base_url="http://x")
    provider.session = FakeSession(FakeResponse(200, {"data": [{"embedding": [1.0]}]}))
    assert asyncio.run(provider.embed("hello")) is None
    assert provider.session.calls == []


def test_openai_returns_first_embedding():
    provider = OpenAIEmbeddingProvider("text-embedding-3-small", api_key="secret", base_url="http://emb")
    provider.session = FakeSession(FakeResponse(200, {"data": [{"embedding": [0.25, 0.5, 1]}]}))
    assert asyncio.run(provider.embed("hello")) == [0.25, 0.5, 1.0]
    call = provider.session.calls[0]
    assert call["url"] == "http://emb"
    assert call["json"] == {"model": "text-embedding-3-small", "input": "hello"}
    assert call["headers"]["Authorization"] == "Bearer secret"


def test_openai_error_status_maps_to_none():
    provider = OpenAIEmbeddingProvider("m", api_key="secret", base_url="http://emb")
    provider.session = FakeSession(FakeResponse(401, {"error": "bad key"}))
    assert asyncio.run(provider.embed("hello")) is None


def test_transport_exception_maps_to_none():
    class ExplodingSession:
        def post(self, *args, **kwargs):
            raise ConnectionError("network down")

    provider = OpenAIEmbeddingProvider("m", api_key="secret", base_url="http://emb")
    provider.session = ExplodingSession()
    assert asyncio.run(provider.embed("hello")) is None


def test_sentence_transformer_provider_uses_cached_model(monkeypatch):
    class FakeModel:
        def encode(self, texts, batch_size, normalize_embeddings):
            assert normalize_embeddings is True
            return np.array([[0.6, 0.8] for _ in texts])

    loaded: List[str] = []

    def fake_get_model(name: str) -> FakeModel:
        loaded.append(name)
        return FakeModel()

    monkeypatch.setattr(embeddings, "_get_model", fake_get_model)
    provider = SentenceTransformerProvider("all-MiniLM-L6-v2")
    assert asyncio.run(provider.embed("hello")) == pytest.approx([0.6, 0.8])
    assert loaded == ["all-MiniLM-L6-v2"]


def test_model_load_failure_maps_to_none(monkeypatch):
    def broken(name: str):
        raise OSError("model not found")

    monkeypatch.setattr(embeddings, "_get_model", broken)
    assert asyncio.run(SentenceTransformerProvider("missing").embed("hello")) is None


@pytest.mark.parametrize(
    "provider, expected",
    [
        ("none", NullEmbeddingProvider),
        ("sentence_transformers", SentenceTransformerProvider),
        ("openai", OpenAIEmbeddingProvider),
    ],
)
def test_factory_selects_provider(provider, expected):
    instance = create_embedding_provider(EmbeddingConfig(provider=provider, model="m"))
    assert isinstance(instance, expected)
    assert instance.model == "m"


def test_factory_rejects_unknown_provider():
    with pytest.raises(ValueError):
        create_embedding_provider(EmbeddingConfig(provider="word2vec"))
