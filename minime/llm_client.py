"""HTTP client for an OpenAI-compatible chat completion API."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import requests

from .config import CONFIG, LLMConfig


@dataclass
class ChatMessage:
    """Simple representation of an OpenAI-style chat message."""

    role: str
    content: str


class LLMClient:
    """Thin wrapper over a ``/v1/chat/completions`` endpoint."""

    def __init__(self, config: Optional[LLMConfig] = None) -> None:
        self.config = config or CONFIG.llm
        self.session = requests.Session()
        self.logger = logging.getLogger("minime.llm_client")
        self.headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            self.headers["Authorization"] = f"Bearer {self.config.api_key}"

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def chat(
        self,
        messages: Iterable[ChatMessage],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Send a chat completion request and return the assistant content.

        Raises:
            RuntimeError: on transport errors, non-200 responses or a
                malformed body.
        """

        if not self.enabled:
            raise RuntimeError("no LLM endpoint configured")
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "temperature": temperature if temperature is not None else self.config.temperature,
            "max_tokens": max_tokens if max_tokens is not None else self.config.max_tokens,
            "messages": [message.__dict__ for message in messages],
        }

        start = time.perf_counter()
        try:
            response = self.session.post(
                self.config.base_url,
                data=json.dumps(payload),
                headers=self.headers,
                timeout=self.config.request_timeout,
            )
        except requests.exceptions.Timeout as exc:
            msg = f"LLM request timed out after {self.config.request_timeout}s (base_url={self.config.base_url})"
            self.logger.error(msg, exc_info=True)
            raise RuntimeError(msg) from exc
        except requests.exceptions.RequestException as exc:
            msg = f"LLM request failed for {self.config.base_url}: {exc}"
            self.logger.error(msg, exc_info=True)
            raise RuntimeError(msg) from exc
        elapsed = time.perf_counter() - start

        if response.status_code != 200:
            self.logger.error(
                "LLM request failed",
                extra={"status_code": response.status_code, "elapsed_ms": round(elapsed * 1000, 2)},
            )
            raise RuntimeError(f"LLM endpoint returned {response.status_code}: {response.text[:2000]}")

        self.logger.info(
            "LLM request completed",
            extra={"status_code": response.status_code, "elapsed_ms": round(elapsed * 1000, 2)},
        )
        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise RuntimeError(f"Unexpected LLM response shape: {response.text[:500]}") from exc
        return content or ""


__all__ = ["ChatMessage", "LLMClient"]
