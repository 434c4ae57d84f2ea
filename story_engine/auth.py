"""Password hashing, login sessions, and the require_auth dependency.

A session id travels in the `session_id` cookie or as a bearer token.
Every authenticated request slides the session expiry forward.
"""

import logging
from typing import Any

import bcrypt
from fastapi import HTTPException, Request

from story_engine import config, storage

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session_id"
MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("stored password hash is malformed")
        return False


def public_user(user: dict[str, Any]) -> dict[str, Any]:
    """User record without the password hash."""
    return {k: v for k, v in user.items() if k != "password_hash"}


def register_user(email: str, name: str, password: str) -> dict[str, Any]:
    """Create an account. Raises ValueError for weak passwords or taken emails."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if "@" not in email:
        raise ValueError("Invalid email address")
    user = storage.create_user(email, name, hash_password(password))
    logger.info("registered user %s", user["id"])
    return public_user(user)


def authenticate(email: str, password: str) -> dict[str, Any] | None:
    user = storage.get_user_by_email(email)
    if user is None or not verify_password(password, user["password_hash"]):
        return None
    return public_user(user)


def login(email: str, password: str) -> tuple[dict[str, Any], dict[str, Any]] | None:
    """Return (user, session) for valid credentials, else None."""
    user = authenticate(email, password)
    if user is None:
        return None
    session = storage.create_session(user["id"], ttl=config.session_ttl())
    return user, session


def session_id_from_request(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.cookies.get(SESSION_COOKIE)


def require_auth(request: Request) -> dict[str, Any]:
    """FastAPI dependency: the logged-in user, or 401."""
    session_id = session_id_from_request(request)
    if not session_id:
        raise HTTPException(401, "Not authenticated")
    session = storage.get_session(session_id)
    if session is None:
        raise HTTPException(401, "Session expired")
    user = storage.get_user(session["user_id"])
    if user is None:
        storage.destroy_session(session_id)
        raise HTTPException(401, "Not authenticated")
    storage.refresh_session(session_id, ttl=config.session_ttl())
    return public_user(user)
