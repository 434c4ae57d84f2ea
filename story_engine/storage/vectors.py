"""Vector store for embeddings, searched by cosine similarity.

Each collection is a JSON list of {id, vector, metadata} under
data/vectors/. Searches run against an in-memory matrix of row-normalized
vectors that is built on first use and dropped whenever the collection is
written.
"""

import logging
import threading
from pathlib import Path
from typing import Any

import numpy as np

from .core import read_json, vectors_dir, write_lock, write_json

logger = logging.getLogger(__name__)

TRAIT_COLLECTION = "character_traits"
MEMORY_COLLECTION = "conversation_memory"

_cache: dict[str, dict[str, Any]] = {}
_cache_lock = threading.Lock()


def invalidate_cache(collection: str | None = None) -> None:
    with _cache_lock:
        if collection is None:
            _cache.clear()
        else:
            _cache.pop(collection, None)


def _collection_path(collection: str) -> Path:
    if not collection.replace("_", "").isalnum():
        raise ValueError(f"Invalid collection name: {collection}")
    return vectors_dir() / f"{collection}.json"


def _load(collection: str) -> list[dict[str, Any]]:
    return read_json(_collection_path(collection), [])


def upsert_vector(
    collection: str, entity_id: str, vector: list[float], metadata: dict[str, Any]
) -> None:
    """Insert or replace the entry with id `entity_id`."""
    entry = {"id": entity_id, "vector": [float(x) for x in vector], "metadata": metadata}
    with write_lock:
        entries = [e for e in _load(collection) if e["id"] != entity_id]
        entries.append(entry)
        write_json(_collection_path(collection), entries)
    invalidate_cache(collection)


def delete_vector(collection: str, entity_id: str) -> bool:
    with write_lock:
        entries = _load(collection)
        kept = [e for e in entries if e["id"] != entity_id]
        if len(kept) == len(entries):
            return False
        write_json(_collection_path(collection), kept)
    invalidate_cache(collection)
    return True


def delete_vectors_where(collection: str, where: dict[str, Any]) -> int:
    """Delete entries whose metadata matches every key in `where`. Returns the count."""
    with write_lock:
        entries = _load(collection)
        kept = [
            e for e in entries
            if not all(e["metadata"].get(k) == v for k, v in where.items())
        ]
        removed = len(entries) - len(kept)
        if removed:
            write_json(_collection_path(collection), kept)
    if removed:
        invalidate_cache(collection)
    return removed


def count_vectors(collection: str) -> int:
    return len(_load(collection))


def _mtime(collection: str) -> int | None:
    try:
        return _collection_path(collection).stat().st_mtime_ns
    except FileNotFoundError:
        return None


def _load_matrix(collection: str) -> dict[str, Any] | None:
    """Build (or reuse) the normalized matrix for a collection.

    The cache is keyed on the file's mtime so writes from another process
    (the `--worker` launcher) are picked up.
    """
    mtime = _mtime(collection)
    with _cache_lock:
        cached = _cache.get(collection)
        if cached is not None and cached["mtime"] == mtime:
            return cached

    entries = _load(collection)
    if not entries:
        return None

    dim = len(entries[0]["vector"])
    # Entries from a different embedding model are skipped
    entries = [e for e in entries if len(e["vector"]) == dim]
    matrix = np.array([e["vector"] for e in entries], dtype=np.float32)
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1
    matrix = matrix / norms

    cache = {
        "mtime": mtime,
        "matrix": matrix,
        "ids": [e["id"] for e in entries],
        "metadata": [e["metadata"] for e in entries],
    }
    with _cache_lock:
        _cache[collection] = cache
    return cache


def search_vectors(
    collection: str,
    query: list[float],
    limit: int = 10,
    threshold: float = 0.0,
    where: dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """Return up to `limit` entries scoring at least `threshold`, best first.

    `where` filters on exact metadata equality before ranking.
    """
    cache = _load_matrix(collection)
    if cache is None or limit <= 0:
        return []

    q = np.array(query, dtype=np.float32)
    if q.shape[0] != cache["matrix"].shape[1]:
        logger.warning(
            "query has %d dimensions but %s holds %d; no results",
            q.shape[0], collection, cache["matrix"].shape[1],
        )
        return []
    q_norm = np.linalg.norm(q)
    if q_norm == 0:
        return []
    q = q / q_norm

    similarities = cache["matrix"] @ q
    if where:
        mask = np.array([
            all(meta.get(k) == v for k, v in where.items())
            for meta in cache["metadata"]
        ])
        similarities = np.where(mask, similarities, -np.inf)

    k = min(limit, len(similarities))
    top = np.argpartition(similarities, -k)[-k:]
    top = top[np.argsort(similarities[top])[::-1]]

    results = []
    for i in top:
        score = float(similarities[i])
        if score == -np.inf or score < threshold:
            continue
        results.append({
            "id": cache["ids"][i],
            "score": score,
            "metadata": cache["metadata"][i],
        })
    return results
