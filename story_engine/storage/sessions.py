"""Login sessions with a sliding expiry."""

import secrets
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from .core import NotFoundError, data_dir, now_iso, read_json, write_lock, write_json

DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60


def _sessions_path() -> Path:
    return data_dir() / "sessions.json"


def _load() -> dict[str, dict[str, Any]]:
    return read_json(_sessions_path(), {})


def _expiry(ttl: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(seconds=ttl)).isoformat()


def _is_expired(session: dict[str, Any]) -> bool:
    return datetime.fromisoformat(session["expires_at"]) <= datetime.now(timezone.utc)


def create_session(
    user_id: str, ttl: int = DEFAULT_TTL_SECONDS, data: dict[str, Any] | None = None
) -> dict[str, Any]:
    session = {
        "id": secrets.token_urlsafe(32),
        "user_id": user_id,
        "created_at": now_iso(),
        "expires_at": _expiry(ttl),
        "data": data or {},
    }
    with write_lock:
        sessions = _load()
        sessions[session["id"]] = session
        write_json(_sessions_path(), sessions)
    return session


def get_session(session_id: str) -> dict[str, Any] | None:
    """Return a live session. Expired sessions are removed and read as missing."""
    session = _load().get(session_id)
    if session is None:
        return None
    if _is_expired(session):
        destroy_session(session_id)
        return None
    return session


def update_session(session_id: str, data: dict[str, Any]) -> dict[str, Any]:
    with write_lock:
        sessions = _load()
        session = sessions.get(session_id)
        if session is None or _is_expired(session):
            raise NotFoundError(f"Session {session_id} not found")
        session["data"].update(data)
        write_json(_sessions_path(), sessions)
    return session


def refresh_session(session_id: str, ttl: int = DEFAULT_TTL_SECONDS) -> bool:
    with write_lock:
        sessions = _load()
        session = sessions.get(session_id)
        if session is None or _is_expired(session):
            return False
        session["expires_at"] = _expiry(ttl)
        write_json(_sessions_path(), sessions)
    return True


def destroy_session(session_id: str) -> bool:
    with write_lock:
        sessions = _load()
        if sessions.pop(session_id, None) is None:
            return False
        write_json(_sessions_path(), sessions)
    return True


def purge_expired_sessions() -> int:
    with write_lock:
        sessions = _load()
        live = {sid: s for sid, s in sessions.items() if not _is_expired(s)}
        removed = len(sessions) - len(live)
        if removed:
            write_json(_sessions_path(), live)
    return removed
