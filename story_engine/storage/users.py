"""User account storage. Password hashing happens in story_engine.auth."""

from pathlib import Path
from typing import Any

from .core import data_dir, new_id, now_iso, read_json, write_lock, write_json


def _users_path() -> Path:
    return data_dir() / "users.json"


def _load_users() -> list[dict[str, Any]]:
    return read_json(_users_path(), [])


def get_user(user_id: str) -> dict[str, Any] | None:
    for user in _load_users():
        if user["id"] == user_id:
            return user
    return None


def get_user_by_email(email: str) -> dict[str, Any] | None:
    wanted = email.strip().lower()
    for user in _load_users():
        if user["email"] == wanted:
            return user
    return None


def create_user(email: str, name: str, password_hash: str) -> dict[str, Any]:
    """Store a new user. Emails are unique, compared case-insensitively."""
    email = email.strip().lower()
    if not email:
        raise ValueError("Email is required")
    with write_lock:
        users = _load_users()
        if any(u["email"] == email for u in users):
            raise ValueError("A user with this email already exists")
        user = {
            "id": new_id(),
            "email": email,
            "name": name.strip() or email.split("@")[0],
            "password_hash": password_hash,
            "created_at": now_iso(),
        }
        users.append(user)
        write_json(_users_path(), users)
    return user
