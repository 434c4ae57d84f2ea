"""Apply extracted state updates to adventure characters and queue embeddings."""

import logging
from typing import Any

from story_engine import config, storage
from story_engine.embeddings import EmbeddingService
from story_engine.extraction import ExtractionReport, extract_character_state
from story_engine.resilience import FallbackManager, FallbackOptions, FallbackStrategy

logger = logging.getLogger(__name__)


def extract_updates(text: str) -> ExtractionReport:
    """Run the extractor in the configured mode."""
    return extract_character_state(text, mode=config.extraction_mode())


def apply_state_updates(
    adventure_id: str, character_id: str, report: ExtractionReport
) -> list[dict[str, Any]]:
    """Record each extraction as a state update. Returns the applied updates."""
    applied = []
    for item in report.results:
        storage.update_character_state(
            adventure_id, character_id, item.field, item.value, context=item.source,
        )
        applied.append({
            "character_id": character_id,
            "field": item.field,
            "value": item.value,
            "confidence": item.confidence,
            "field_type": item.field_type,
        })
    if applied:
        logger.info("applied %d state updates to %s", len(applied), character_id)
    return applied


async def queue_trait_embeddings(
    service: EmbeddingService,
    fallbacks: FallbackManager,
    character_id: str,
    updates: list[dict[str, Any]],
) -> int:
    """Queue (or run) trait embeddings. Failures never break the chat turn."""
    if not config.embedding_features().character_embeddings:
        return 0
    timeout = config.embedding_settings().timeout_ms / 1000 * 2
    queued = 0
    for update in updates:
        async def run(update=update):
            return await service.queue_embedding_generation(
                adventure_character_id=character_id,
                trait_type=update["field_type"],
                trait_path=update["field"],
                trait_value=update["value"],
                context=f"confidence={update['confidence']}",
            )

        result = await fallbacks.execute(
            run, FallbackOptions(strategy=FallbackStrategy.SILENT_FAIL, timeout=timeout)
        )
        if result.value is not None:
            queued += 1
    return queued


async def remember_message(
    service: EmbeddingService, fallbacks: FallbackManager, message: dict[str, Any]
) -> bool:
    """Store a message in conversation memory when that feature is on.

    With background embeddings the work becomes a job; otherwise it runs now
    and a failure is parked in the fallback retry queue.
    """
    if not config.embedding_features().conversation_memory:
        return False
    if config.embedding_features().background_processing:
        storage.create_job("message_embedding", {"message": message})
        return True

    async def run():
        return await service.embed_message(message)

    result = await fallbacks.execute(run, FallbackOptions(
        strategy=FallbackStrategy.QUEUE_FOR_RETRY,
        cache_key=f"memory:{message['id']}",
        timeout=config.embedding_settings().timeout_ms / 1000 * 2,
    ))
    return result.success
