"""Tests for keyword and vector similarity helpers."""

import pytest

from story_engine.similarity import (
    combine_similarity_scores,
    cosine_similarity,
    extract_best_matches,
    jaccard_similarity,
    keyword_similarity,
    truncate_content,
)


def test_keyword_similarity():
    assert keyword_similarity("red hair", "She has red hair.") == 1.0
    assert keyword_similarity("red hair", "A red door") == 0.5
    assert keyword_similarity("red hair", "nothing here") == 0.0
    assert keyword_similarity("", "anything") == 0.0


def test_keyword_similarity_relevance_floor():
    query = " ".join(f"w{i}" for i in range(20))
    # one of twenty words is below the 0.1 floor
    assert keyword_similarity(query, "w0") == 0.0


def test_jaccard_similarity():
    assert jaccard_similarity("a b", "b c") == pytest.approx(1 / 3)
    assert jaccard_similarity("", "") == 0.0


def test_cosine_similarity():
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([0, 0], [1, 0]) == 0.0
    with pytest.raises(ValueError):
        cosine_similarity([1, 0], [1, 0, 0])


def test_truncate_content():
    assert truncate_content("short") == "short"
    text = "word " * 60
    truncated = truncate_content(text, 50)
    assert truncated.endswith("...")
    assert len(truncated) <= 53
    assert not truncated[:-3].endswith(" ")


def test_truncate_without_word_boundary():
    assert truncate_content("x" * 30, 10) == "x" * 10 + "..."


def test_extract_best_matches():
    content = " ".join(["filler"] * 100 + ["dragon", "fire"] + ["filler"] * 100)
    matches = extract_best_matches("dragon fire", content, window=20, limit=2)
    assert matches
    assert matches[0]["score"] == 1.0
    assert "dragon fire" in matches[0]["text"]
    assert len(matches) <= 2
    assert extract_best_matches("dragon", "") == []


def test_combine_similarity_scores():
    assert combine_similarity_scores({}) == 0.0
    assert combine_similarity_scores({"a": 1.0, "b": 0.0}) == 0.5
    assert combine_similarity_scores({"a": 1.0, "b": 0.0}, {"a": 3.0}) == 0.75
