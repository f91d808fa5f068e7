"""Application runtime bootstrap helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .chat import ChatService
from .config import AppConfig, CONFIG
from .core.vector_store import VectorMemory, create_vector_memory
from .embeddings import EmbeddingProvider
from .llm_client import LLMClient


@dataclass
class AppRuntime:
    """Bundle of shared services for the minime application."""

    config: AppConfig
    memory: VectorMemory
    llm_client: LLMClient
    chat: ChatService


def create_runtime(config: AppConfig = CONFIG, *, embedder: Optional[EmbeddingProvider] = None) -> AppRuntime:
    """Instantiate shared services once and wire dependencies explicitly."""

    memory = create_vector_memory(config, embedder=embedder)
    llm_client = LLMClient(config.llm)
    chat = ChatService(memory, llm_client)
    return AppRuntime(config=config, memory=memory, llm_client=llm_client, chat=chat)


__all__ = ["AppRuntime", "create_runtime"]
