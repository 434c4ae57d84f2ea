"""Lightweight text and vector similarity helpers.

Keyword scoring is used where embeddings are disabled (message search);
cosine similarity backs the vector store.
"""

import re
from typing import Any

import numpy as np

MIN_KEYWORD_RELEVANCE = 0.1

_WORD = re.compile(r"[a-z0-9']+")


def _words(text: str) -> list[str]:
    return _WORD.findall(text.lower())


def keyword_similarity(query: str, content: str) -> float:
    """Fraction of query words present in content; 0 below the relevance floor."""
    query_words = set(_words(query))
    if not query_words:
        return 0.0
    content_words = set(_words(content))
    relevance = len(query_words & content_words) / len(query_words)
    return relevance if relevance >= MIN_KEYWORD_RELEVANCE else 0.0


def jaccard_similarity(a: str, b: str) -> float:
    set_a, set_b = set(_words(a)), set(_words(b))
    if not set_a and not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    va = np.asarray(a, dtype=np.float32)
    vb = np.asarray(b, dtype=np.float32)
    if va.shape != vb.shape:
        raise ValueError("Vectors must have the same dimensions")
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0:
        return 0.0
    return float(va @ vb) / denom


def truncate_content(text: str, max_length: int = 200) -> str:
    """Shorten text to max_length, preferring to cut at a word boundary."""
    if len(text) <= max_length:
        return text
    cut = text[:max_length]
    last_space = cut.rfind(" ")
    if last_space > max_length * 0.7:
        cut = cut[:last_space]
    return cut.rstrip() + "..."


def extract_best_matches(
    query: str, content: str, window: int = 50, limit: int = 3
) -> list[dict[str, Any]]:
    """Slide a word window over content and return the best-scoring snippets."""
    words = content.split()
    if not words:
        return []
    step = max(1, window // 2)
    snippets = []
    for start in range(0, max(1, len(words) - window + step), step):
        snippet = " ".join(words[start:start + window])
        score = keyword_similarity(query, snippet)
        if score > 0:
            snippets.append({"text": snippet, "score": score, "offset": start})
    snippets.sort(key=lambda s: s["score"], reverse=True)
    return snippets[:limit]


def combine_similarity_scores(
    scores: dict[str, float], weights: dict[str, float] | None = None
) -> float:
    """Weighted mean of named scores; unweighted names count once."""
    if not scores:
        return 0.0
    weights = weights or {}
    total_weight = 0.0
    total = 0.0
    for name, score in scores.items():
        weight = weights.get(name, 1.0)
        total += score * weight
        total_weight += weight
    return total / total_weight if total_weight else 0.0
