"""Embedding generation and semantic recall for character traits and messages.

Trait embeddings live in the `character_traits` vector collection keyed by
"<adventure_character_id>:<trait_path>", so re-embedding a trait replaces
its previous vector. Message embeddings (conversation memory) live in
`conversation_memory` keyed by message id.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

from story_engine import config, storage
from story_engine.llm import LLMError, OllamaClient

logger = logging.getLogger(__name__)

TRAIT_COLLECTION = storage.TRAIT_COLLECTION
MEMORY_COLLECTION = storage.MEMORY_COLLECTION


# ── Model catalogue ──────────────────────────────────────


@dataclass(frozen=True)
class EmbeddingModel:
    name: str
    dimensions: int
    availability: str  # "recommended" | "optional"
    performance: str   # "fast" | "balanced" | "quality"
    description: str


EMBEDDING_MODELS: dict[str, EmbeddingModel] = {
    "nomic-embed-text": EmbeddingModel(
        "nomic-embed-text", 768, "recommended", "balanced",
        "General-purpose text embeddings with a long context window",
    ),
    "all-minilm": EmbeddingModel(
        "all-minilm", 384, "optional", "fast",
        "Small and fast, lower recall on long passages",
    ),
    "bge-large": EmbeddingModel(
        "bge-large", 1024, "optional", "quality",
        "Highest quality, slowest to compute",
    ),
}
DEFAULT_EMBEDDING_MODEL = "nomic-embed-text"

_AVAILABILITY_ORDER = {"recommended": 0, "optional": 1}
_USE_CASE_PERFORMANCE = {
    "realtime": ["fast", "balanced", "quality"],
    "general": ["balanced", "fast", "quality"],
    "quality": ["quality", "balanced", "fast"],
}


def get_embedding_model(name: str | None = None) -> EmbeddingModel:
    """Look up a model by name, falling back to the default."""
    return EMBEDDING_MODELS.get(name or "", EMBEDDING_MODELS[DEFAULT_EMBEDDING_MODEL])


def get_embedding_model_for_use_case(
    use_case: str = "general", available: list[str] | None = None
) -> EmbeddingModel:
    """Best model for a use case, preferring installed, then recommended ones."""
    preference = _USE_CASE_PERFORMANCE.get(use_case, _USE_CASE_PERFORMANCE["general"])
    installed = {n.split(":")[0] for n in available} if available is not None else None

    def rank(model: EmbeddingModel) -> tuple[int, int, int]:
        missing = 0 if installed is None or model.name in installed else 1
        return (missing, _AVAILABILITY_ORDER[model.availability], preference.index(model.performance))

    return sorted(EMBEDDING_MODELS.values(), key=rank)[0]


# ── Trait text ───────────────────────────────────────────


def trait_to_text(trait_type: str, trait_path: str, value: Any) -> str:
    """Render a trait as a sentence-like string for embedding."""
    if isinstance(value, dict):
        rendered = "; ".join(
            f"{k}: {', '.join(v) if isinstance(v, list) else v}" for k, v in value.items()
        )
    elif isinstance(value, list):
        rendered = ", ".join(str(v) for v in value)
    else:
        rendered = str(value)
    label = trait_path.split(".")[-1].replace("_", " ")
    return f"{trait_type} {label}: {rendered}"


# ── Service ──────────────────────────────────────────────


class EmbeddingService:
    """Generates and searches embeddings through an OllamaClient."""

    def __init__(self, client: OllamaClient, retry_base_delay: float = 1.0) -> None:
        self.client = client
        self.retry_base_delay = retry_base_delay

    async def _embed_with_retry(self, texts: list[str]) -> list[list[float]]:
        settings = config.embedding_settings()
        attempts = max(1, settings.max_retries)
        attempt = 1
        while True:
            try:
                vectors = await asyncio.wait_for(
                    self.client.embed(texts), timeout=settings.timeout_ms / 1000
                )
                break
            except (LLMError, asyncio.TimeoutError) as e:
                if attempt >= attempts:
                    raise LLMError(f"Embedding failed after {attempts} attempts: {e}") from e
                delay = self.retry_base_delay * 2 ** (attempt - 1)
                logger.warning("embedding attempt %d failed (%s), retrying in %.1fs", attempt, e, delay)
                await asyncio.sleep(delay)
                attempt += 1

        wrong = {len(v) for v in vectors if len(v) != settings.vector_dimensions}
        if wrong:
            raise LLMError(
                f"Embedding model returned {sorted(wrong)[0]}-dimensional vectors, "
                f"expected {settings.vector_dimensions} (VECTOR_DIMENSIONS)"
            )
        return vectors

    async def generate_trait_embedding(
        self,
        adventure_character_id: str,
        trait_type: str,
        trait_path: str,
        trait_value: Any,
        context: str = "",
    ) -> str:
        """Embed one trait and store it. Returns the vector entry id."""
        text = trait_to_text(trait_type, trait_path, trait_value)
        [vector] = await self._embed_with_retry([text])
        entity_id = f"{adventure_character_id}:{trait_path}"
        storage.upsert_vector(TRAIT_COLLECTION, entity_id, vector, {
            "adventure_character_id": adventure_character_id,
            "trait_type": trait_type,
            "trait_path": trait_path,
            "text": text,
            "extraction_context": context,
            "created_at": storage.now_iso(),
        })
        logger.debug("stored trait embedding %s", entity_id)
        return entity_id

    async def generate_batch(self, items: list[dict[str, Any]]) -> list[str]:
        """Embed many traits, `EMBEDDING_BATCH_SIZE` at a time.

        Each item holds the keyword arguments of generate_trait_embedding.
        Failed items are logged and skipped.
        """
        batch_size = max(1, config.embedding_settings().batch_size)
        stored: list[str] = []
        for start in range(0, len(items), batch_size):
            chunk = items[start:start + batch_size]
            outcomes = await asyncio.gather(
                *(self.generate_trait_embedding(**item) for item in chunk),
                return_exceptions=True,
            )
            for item, outcome in zip(chunk, outcomes):
                if isinstance(outcome, BaseException):
                    logger.warning("batch embedding failed for %s: %s", item.get("trait_path"), outcome)
                else:
                    stored.append(outcome)
        return stored

    async def find_similar_traits(
        self,
        query: str,
        adventure_character_id: str,
        limit: int = 10,
        threshold: float | None = None,
        trait_type: str | None = None,
    ) -> list[dict[str, Any]]:
        if threshold is None:
            threshold = config.embedding_settings().similarity_threshold
        [vector] = await self._embed_with_retry([query])
        where: dict[str, Any] = {"adventure_character_id": adventure_character_id}
        if trait_type:
            where["trait_type"] = trait_type
        return storage.search_vectors(TRAIT_COLLECTION, vector, limit, threshold, where)

    async def embed_message(self, message: dict[str, Any]) -> str:
        """Store a chat message in conversation memory."""
        [vector] = await self._embed_with_retry([message["content"]])
        storage.upsert_vector(MEMORY_COLLECTION, message["id"], vector, {
            "adventure_id": message["adventure_id"],
            "user_id": message["user_id"],
            "role": message["role"],
            "text": message["content"],
            "created_at": message["created_at"],
        })
        return message["id"]

    async def search_memory(
        self, query: str, adventure_id: str, user_id: str, limit: int = 5
    ) -> list[dict[str, Any]]:
        [vector] = await self._embed_with_retry([query])
        return storage.search_vectors(
            MEMORY_COLLECTION, vector, limit, 0.0,
            {"adventure_id": adventure_id, "user_id": user_id},
        )

    async def queue_embedding_generation(
        self,
        adventure_character_id: str,
        trait_type: str,
        trait_path: str,
        trait_value: Any,
        context: str = "",
        priority: int = 0,
    ) -> dict[str, Any]:
        """Queue a trait embedding job, or embed now when background work is off.

        Returns {"queued": bool, "job_id" | "entity_id": ...}.
        """
        payload = {
            "adventure_character_id": adventure_character_id,
            "trait_type": trait_type,
            "trait_path": trait_path,
            "trait_value": trait_value,
            "context": context,
        }
        if config.embedding_features().background_processing:
            # Round-trip through JSON so the payload is storable as-is
            job = storage.create_job("trait_embedding", json.loads(json.dumps(payload)), priority)
            return {"queued": True, "job_id": job["id"]}
        entity_id = await self.generate_trait_embedding(**payload)
        return {"queued": False, "entity_id": entity_id}
