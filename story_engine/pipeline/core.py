"""One chat turn: store the player's message, ask the model, store the reply,
then extract character state changes from it."""

import logging
from typing import Any

from story_engine import storage
from story_engine.embeddings import EmbeddingService
from story_engine.llm import LLMError, OllamaClient
from story_engine.prompts import build_character_context
from story_engine.resilience import FallbackManager

from .extractors import (
    apply_state_updates,
    extract_updates,
    queue_trait_embeddings,
    remember_message,
)

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10
CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 500


def system_prompt_for(adventure: dict[str, Any], user_id: str) -> str:
    """The adventure's stored prompt, or one rendered from its participants."""
    if adventure.get("system_prompt"):
        return adventure["system_prompt"]
    characters = adventure.get("characters") or storage.get_adventure_characters(adventure["id"])
    if not characters:
        return "You are the narrator of an interactive story."
    character = storage.current_state(characters[0])
    location = storage.get_location(adventure["location_id"], user_id) if adventure.get("location_id") else None
    setting = storage.get_setting(adventure["setting_id"], user_id) if adventure.get("setting_id") else None
    persona = storage.get_persona(adventure["persona_id"], user_id) if adventure.get("persona_id") else None
    return build_character_context(
        character, location, setting, persona, adventure.get("user_name", "Player"),
    )


async def run_chat_turn(
    adventure: dict[str, Any],
    user_id: str,
    content: str,
    client: OllamaClient,
    embeddings: EmbeddingService,
    fallbacks: FallbackManager,
) -> dict[str, Any]:
    """Execute one exchange for an adventure the caller already owns.

    Returns {"messages": [user_msg, assistant_msg], "state_updates": [...]}.
    Raises LLMError when the model server is down or fails; the user's
    message is kept either way.
    """
    adventure_id = adventure["id"]
    content = content.strip()
    if not content:
        raise ValueError("Message content is required")

    user_msg = storage.create_message(adventure_id, user_id, "user", content)
    history = storage.get_messages(adventure_id, user_id, limit=HISTORY_LIMIT)

    chat_messages = [{"role": "system", "content": system_prompt_for(adventure, user_id)}]
    chat_messages.extend(
        {"role": m["role"], "content": m["content"]}
        for m in history
        if m["role"] in ("user", "assistant")
    )

    if not await client.health_check():
        raise LLMError("AI service is unavailable")
    result = await client.chat(
        chat_messages, temperature=CHAT_TEMPERATURE, max_tokens=CHAT_MAX_TOKENS,
    )

    assistant_msg = storage.create_message(
        adventure_id, user_id, "assistant", result.content, metadata=result.metadata(),
    )

    state_updates: list[dict[str, Any]] = []
    characters = storage.get_adventure_characters(adventure_id)
    if characters:
        primary = characters[0]
        report = extract_updates(result.content)
        state_updates = apply_state_updates(adventure_id, primary["id"], report)
        await queue_trait_embeddings(embeddings, fallbacks, primary["id"], state_updates)

    for message in (user_msg, assistant_msg):
        await remember_message(embeddings, fallbacks, message)

    logger.info(
        "chat turn adventure=%s reply_len=%d updates=%d",
        adventure_id, len(result.content), len(state_updates),
    )
    return {"messages": [user_msg, assistant_msg], "state_updates": state_updates}
