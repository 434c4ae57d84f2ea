"""Datastore error classification and safe client-facing error bodies."""

import asyncio
import enum
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from story_engine.storage import NotFoundError

logger = logging.getLogger(__name__)


class DatabaseErrorType(str, enum.Enum):
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    CONSTRAINT_VIOLATION = "constraint_violation"
    RATE_LIMIT = "rate_limit"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


_RETRYABLE = {
    DatabaseErrorType.CONNECTION,
    DatabaseErrorType.TIMEOUT,
    DatabaseErrorType.RATE_LIMIT,
}

_MESSAGES = {
    DatabaseErrorType.CONNECTION: "Service temporarily unavailable",
    DatabaseErrorType.TIMEOUT: "The request timed out",
    DatabaseErrorType.CONSTRAINT_VIOLATION: "The request conflicts with existing data",
    DatabaseErrorType.RATE_LIMIT: "Too many requests, try again shortly",
    DatabaseErrorType.NOT_FOUND: "Not found",
    DatabaseErrorType.UNKNOWN: "An unexpected error occurred",
}


def classify_error(error: BaseException) -> DatabaseErrorType:
    """Map an exception to an error type by class, then by message."""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
        return DatabaseErrorType.TIMEOUT
    if isinstance(error, (ConnectionError, httpx.ConnectError, OSError)):
        return DatabaseErrorType.CONNECTION
    if isinstance(error, NotFoundError):
        return DatabaseErrorType.NOT_FOUND
    if isinstance(error, httpx.HTTPStatusError) and error.response.status_code == 429:
        return DatabaseErrorType.RATE_LIMIT

    message = str(error).lower()
    if "timeout" in message or "timed out" in message:
        return DatabaseErrorType.TIMEOUT
    if any(w in message for w in ("connect", "network", "unavailable", "refused")):
        return DatabaseErrorType.CONNECTION
    if any(w in message for w in ("duplicate", "already exists", "unique", "constraint")):
        return DatabaseErrorType.CONSTRAINT_VIOLATION
    if "rate limit" in message or "too many" in message:
        return DatabaseErrorType.RATE_LIMIT
    if "not found" in message:
        return DatabaseErrorType.NOT_FOUND
    return DatabaseErrorType.UNKNOWN


def should_retry(error: BaseException) -> bool:
    return classify_error(error) in _RETRYABLE


def safe_error_response(error: BaseException) -> dict[str, Any]:
    """Client-safe failure body; internal details go to the log only."""
    error_type = classify_error(error)
    logger.error("operation failed (%s): %s", error_type.value, error)
    return {
        "success": False,
        "error": _MESSAGES[error_type],
        "error_code": error_type.value.upper(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
