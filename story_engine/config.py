"""Runtime settings read from the environment (.env is loaded by the app).

Values are read on every call so tests can monkeypatch os.environ.
"""

import os
from dataclasses import dataclass
from typing import Literal

ExtractionMode = Literal["conservative", "balanced", "aggressive"]


def _flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    return int(raw) if raw.strip() else default


def _float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    return float(raw) if raw.strip() else default


def ollama_url() -> str:
    return os.getenv("OLLAMA_URL", "http://localhost:11434")


def chat_model() -> str:
    return os.getenv("CHAT_MODEL", "llama3.2")


def ai_enabled() -> bool:
    return _flag("AI_ENABLED", True)


def session_ttl() -> int:
    return _int("SESSION_TTL_SECONDS", 7 * 24 * 60 * 60)


def max_avatar_bytes() -> int:
    return _int("MAX_AVATAR_BYTES", 5 * 1024 * 1024)


def worker_poll_interval() -> float:
    """Seconds between worker polls."""
    return _int("WORKER_POLL_INTERVAL_MS", 5000) / 1000


def extraction_mode() -> ExtractionMode:
    mode = os.getenv("EXTRACTION_MODE", "conservative")
    if mode not in ("conservative", "balanced", "aggressive"):
        return "conservative"
    return mode  # type: ignore[return-value]


@dataclass(frozen=True)
class EmbeddingFeatures:
    character_embeddings: bool
    conversation_memory: bool
    semantic_search: bool
    background_processing: bool


@dataclass(frozen=True)
class EmbeddingSettings:
    model: str
    batch_size: int
    max_retries: int
    timeout_ms: int
    similarity_threshold: float
    vector_dimensions: int


def embedding_features() -> EmbeddingFeatures:
    return EmbeddingFeatures(
        character_embeddings=_flag("ENABLE_CHARACTER_EMBEDDINGS"),
        conversation_memory=_flag("ENABLE_CONVERSATION_MEMORY"),
        semantic_search=_flag("ENABLE_SEMANTIC_SEARCH"),
        background_processing=_flag("ENABLE_BACKGROUND_EMBEDDINGS"),
    )


def embedding_settings() -> EmbeddingSettings:
    return EmbeddingSettings(
        model=os.getenv("EMBEDDING_MODEL", "nomic-embed-text"),
        batch_size=_int("EMBEDDING_BATCH_SIZE", 10),
        max_retries=_int("EMBEDDING_MAX_RETRIES", 3),
        timeout_ms=_int("EMBEDDING_TIMEOUT_MS", 30000),
        similarity_threshold=_float("SIMILARITY_THRESHOLD", 0.8),
        vector_dimensions=_int("VECTOR_DIMENSIONS", 768),
    )
