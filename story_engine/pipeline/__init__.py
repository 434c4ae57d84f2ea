"""Chat turn pipeline.

Executes one exchange for a player message:
  1. Store the user message and load the recent history (last 10 messages).
  2. Resolve the system prompt: the adventure's stored prompt, or one
     rendered from the primary character, location, setting and persona.
  3. Check the model server, then chat (temperature 0.7, max 500 tokens).
  4. Store the assistant reply with {model, eval_count, total_duration}.
  5. Extract state updates from the reply and record them on the primary
     adventure character (extraction mode from EXTRACTION_MODE).
  6. Queue trait embeddings and conversation-memory embeddings when those
     features are enabled. Embedding failures never fail the turn.
"""

from .core import run_chat_turn, system_prompt_for  # noqa: F401
from .extractors import (  # noqa: F401
    apply_state_updates,
    extract_updates,
    queue_trait_embeddings,
    remember_message,
)
