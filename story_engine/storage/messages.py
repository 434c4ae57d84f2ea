"""Chat message storage (one log per adventure, ordered by creation time)."""

from pathlib import Path
from typing import Any

from .adventures import touch_adventure
from .core import NotFoundError, adventures_dir, new_id, now_iso, read_json, write_lock, write_json
from .vectors import MEMORY_COLLECTION, delete_vector

ROLES = ("user", "assistant", "system")


def _messages_path(adventure_id: str) -> Path:
    return adventures_dir() / adventure_id / "messages.json"


def _load(adventure_id: str) -> list[dict[str, Any]]:
    return read_json(_messages_path(adventure_id), [])


def get_messages(adventure_id: str, user_id: str, limit: int = 50) -> list[dict[str, Any]]:
    """Return the latest `limit` messages owned by `user_id`, oldest first."""
    messages = [m for m in _load(adventure_id) if m["user_id"] == user_id]
    messages.sort(key=lambda m: m["created_at"])
    if limit and len(messages) > limit:
        messages = messages[-limit:]
    return messages


def create_message(
    adventure_id: str,
    user_id: str,
    role: str,
    content: str,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    if role not in ROLES:
        raise ValueError(f"Invalid message role: {role}")
    message = {
        "id": new_id(),
        "adventure_id": adventure_id,
        "user_id": user_id,
        "role": role,
        "content": content,
        "metadata": metadata or {},
        "created_at": now_iso(),
    }
    with write_lock:
        messages = _load(adventure_id)
        messages.append(message)
        write_json(_messages_path(adventure_id), messages)
    touch_adventure(adventure_id)
    return message


def update_message(
    message_id: str, adventure_id: str, user_id: str, content: str
) -> dict[str, Any]:
    """Replace a message's content. Raises NotFoundError if missing or not owned."""
    with write_lock:
        messages = _load(adventure_id)
        for message in messages:
            if message["id"] == message_id and message["user_id"] == user_id:
                message["content"] = content
                message["updated_at"] = now_iso()
                write_json(_messages_path(adventure_id), messages)
                return message
    raise NotFoundError(f"Message {message_id} not found")


def delete_message(message_id: str, adventure_id: str, user_id: str) -> None:
    """Delete a message. Raises NotFoundError if missing or not owned."""
    with write_lock:
        messages = _load(adventure_id)
        kept = [
            m for m in messages
            if not (m["id"] == message_id and m["user_id"] == user_id)
        ]
        if len(kept) == len(messages):
            raise NotFoundError(f"Message {message_id} not found")
        write_json(_messages_path(adventure_id), kept)
        delete_vector(MEMORY_COLLECTION, message_id)
    touch_adventure(adventure_id)
