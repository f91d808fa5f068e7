"""Central configuration for the minime memory service.

Every setting is resolved in the same order: a ``MINIME_<SECTION>_<NAME>``
environment variable, then the matching key in the TOML config file, then the
built-in default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Final, Optional

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for 3.10
    import tomli as tomllib

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = Path(os.environ.get("MINIME_CONFIG_FILE", PROJECT_ROOT / "minime.toml"))

_TRUTHY = {"1", "true", "yes", "on"}


def _load_config_data() -> Dict[str, Any]:
    if DEFAULT_CONFIG_PATH.exists():
        with DEFAULT_CONFIG_PATH.open("rb") as fh:
            return tomllib.load(fh)
    return {}


_CONFIG_DATA = _load_config_data()


def _get_setting(section: str, name: str, default: Any) -> Any:
    env_key = f"MINIME_{section.upper()}_{name.upper()}"
    if env_key in os.environ:
        return os.environ[env_key]
    return _CONFIG_DATA.get(section, {}).get(name, default)


def _get_str(section: str, name: str, default: str) -> str:
    return str(_get_setting(section, name, default))


def _get_optional_str(section: str, name: str) -> Optional[str]:
    value = _get_setting(section, name, None)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _get_int(section: str, name: str, default: int) -> int:
    return int(_get_setting(section, name, default))


def _get_float(section: str, name: str, default: float) -> float:
    return float(_get_setting(section, name, default))


def _get_bool(section: str, name: str, default: bool) -> bool:
    value = _get_setting(section, name, default)
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


@dataclass(frozen=True)
class ChromaConfig:
    """Connection settings for the Chroma remote backend.

    Cloud credentials win over a local ``path``; with neither set the client
    talks to a Chroma server at ``host:port``.
    """

    host: str = _get_str("chroma", "host", "localhost")
    port: int = _get_int("chroma", "port", 8000)
    ssl: bool = _get_bool("chroma", "ssl", False)
    path: Optional[str] = _get_optional_str("chroma", "path")
    cloud_api_key: Optional[str] = _get_optional_str("chroma", "cloud_api_key")
    tenant: Optional[str] = _get_optional_str("chroma", "tenant")
    database: str = _get_str("chroma", "database", "minime")

    @property
    def uses_cloud(self) -> bool:
        return bool(self.cloud_api_key and self.tenant)


@dataclass(frozen=True)
class VectorStoreConfig:
    """Vector memory behavior and backend selection."""

    enable_remote: bool = _get_bool("vector_store", "enable_remote", False)
    collection: str = _get_str("vector_store", "collection", "minime")
    default_k: int = _get_int("vector_store", "default_k", 3)
    mirror_writes: bool = _get_bool("vector_store", "mirror_writes", False)
    # Seconds, applied to connecting and reads; writes always finish. 0 disables it.
    remote_timeout: float = _get_float("vector_store", "remote_timeout", 0.0)
    chroma: ChromaConfig = field(default_factory=ChromaConfig)


@dataclass(frozen=True)
class EmbeddingConfig:
    """Embedding provider selection.

    ``provider`` is one of ``sentence_transformers``, ``openai`` or ``none``.
    """

    provider: str = _get_str("embedding", "provider", "sentence_transformers")
    model: str = _get_str("embedding", "model", "sentence-transformers/all-MiniLM-L6-v2")
    api_key: Optional[str] = _get_optional_str("embedding", "api_key")
    base_url: str = _get_str("embedding", "base_url", "https://api.openai.com/v1/embeddings")
    timeout: int = _get_int("embedding", "timeout", 30)


@dataclass(frozen=True)
class LLMConfig:
    """OpenAI-compatible chat completion endpoint used by the chat route."""

    base_url: Optional[str] = _get_optional_str("llm", "base_url")
    model: str = _get_str("llm", "model", "gpt-4o-mini")
    api_key: Optional[str] = _get_optional_str("llm", "api_key")
    temperature: float = _get_float("llm", "temperature", 0.7)
    max_tokens: int = _get_int("llm", "max_tokens", 1024)
    request_timeout: int = _get_int("llm", "timeout", 60)

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server settings."""

    host: str = _get_str("server", "host", "127.0.0.1")
    port: int = _get_int("server", "port", 8000)
    api_key: Optional[str] = _get_optional_str("server", "api_key")
    log_dir: Path = Path(_get_str("server", "log_dir", str(PROJECT_ROOT / "logs")))


@dataclass(frozen=True)
class AppConfig:
    """Aggregate configuration for the minime runtime."""

    vector_store: VectorStoreConfig = field(default_factory=VectorStoreConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    config_file: Path = DEFAULT_CONFIG_PATH


CONFIG: Final[AppConfig] = AppConfig()
