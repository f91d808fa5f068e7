"""Retrieval-augmented chat on top of VectorMemory."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .core.vector_store import SENTINEL_SCORE, ScoredRecord, VectorMemory, VectorRecord
from .llm_client import ChatMessage, LLMClient

SYSTEM_PROMPT = "You are a helpful assistant."


@dataclass
class ChatResult:
    """Reply text plus the memory written for the user message."""

    reply: str
    stored: Optional[VectorRecord]
    context: List[ScoredRecord] = field(default_factory=list)


def build_messages(message: str, context: List[ScoredRecord]) -> List[ChatMessage]:
    """Render the system prompt, retrieved memories and the user turn."""

    system = SYSTEM_PROMPT
    if context:
        memories = "\n".join(f"- {item.text}" for item in context)
        system = f"{SYSTEM_PROMPT}\nRelevant memories from earlier conversations:\n{memories}"
    return [ChatMessage(role="system", content=system), ChatMessage(role="user", content=message)]


class ChatService:
    """Answers a message using retrieved memories, then remembers the message."""

    def __init__(self, memory: VectorMemory, llm_client: LLMClient, *, context_k: Optional[int] = None) -> None:
        self.memory = memory
        self.llm_client = llm_client
        self.context_k = context_k
        self.logger = logging.getLogger("minime.chat")

    async def reply(self, message: str) -> ChatResult:
        if not message or not message.strip():
            raise ValueError("message required")

        hits = await self.memory.query_text(message, self.context_k)
        context = [hit for hit in hits if hit.score > SENTINEL_SCORE]

        if self.llm_client.enabled:
            try:
                reply = await asyncio.to_thread(self.llm_client.chat, build_messages(message, context))
            except RuntimeError as exc:
                self.logger.error("LLM call failed: %s", exc)
                reply = f"Error: LLM request failed: {exc}"
        else:
            reply = f"Echo (no API key): {message}"

        try:
            stored = await self.memory.add_vector(message)
        except Exception:  # noqa: BLE001 - the reply is still returned without a stored record
            self.logger.exception("Failed to store chat message")
            stored = None
        return ChatResult(reply=reply, stored=stored, context=context)


__all__ = ["ChatResult", "ChatService", "build_messages"]
