"""Tests for the cosine-similarity vector store."""

import json
import os

import pytest

from story_engine import storage


def test_search_empty_collection():
    assert storage.search_vectors("character_traits", [1.0, 0.0]) == []


def test_upsert_and_search_ranked():
    storage.upsert_vector("character_traits", "a", [1.0, 0.0, 0.0], {"kind": "hair"})
    storage.upsert_vector("character_traits", "b", [0.7, 0.7, 0.0], {"kind": "eyes"})
    storage.upsert_vector("character_traits", "c", [0.0, 0.0, 1.0], {"kind": "hair"})

    hits = storage.search_vectors("character_traits", [1.0, 0.0, 0.0], limit=2)
    assert [h["id"] for h in hits] == ["a", "b"]
    assert hits[0]["score"] == pytest.approx(1.0)
    assert hits[1]["metadata"] == {"kind": "eyes"}


def test_threshold_filters_weak_matches():
    storage.upsert_vector("character_traits", "a", [1.0, 0.0], {})
    storage.upsert_vector("character_traits", "b", [0.0, 1.0], {})
    hits = storage.search_vectors("character_traits", [1.0, 0.1], threshold=0.5)
    assert [h["id"] for h in hits] == ["a"]


def test_where_filters_metadata():
    storage.upsert_vector("character_traits", "a", [1.0, 0.0], {"owner": "x"})
    storage.upsert_vector("character_traits", "b", [0.9, 0.1], {"owner": "y"})
    hits = storage.search_vectors("character_traits", [1.0, 0.0], where={"owner": "y"})
    assert [h["id"] for h in hits] == ["b"]


def test_upsert_replaces_and_invalidates_cache():
    storage.upsert_vector("character_traits", "a", [1.0, 0.0], {"v": 1})
    assert storage.search_vectors("character_traits", [1.0, 0.0])[0]["metadata"] == {"v": 1}
    storage.upsert_vector("character_traits", "a", [0.0, 1.0], {"v": 2})
    assert storage.count_vectors("character_traits") == 1
    [hit] = storage.search_vectors("character_traits", [0.0, 1.0])
    assert hit["metadata"] == {"v": 2}
    assert hit["score"] == pytest.approx(1.0)


def test_delete_vector():
    storage.upsert_vector("conversation_memory", "m1", [1.0, 0.0], {})
    assert storage.delete_vector("conversation_memory", "m1") is True
    assert storage.delete_vector("conversation_memory", "m1") is False
    assert storage.search_vectors("conversation_memory", [1.0, 0.0]) == []


def test_dimension_mismatch_and_zero_query():
    storage.upsert_vector("character_traits", "a", [1.0, 0.0], {})
    assert storage.search_vectors("character_traits", [1.0, 0.0, 0.0]) == []
    assert storage.search_vectors("character_traits", [0.0, 0.0]) == []


def test_invalid_collection_name():
    with pytest.raises(ValueError):
        storage.upsert_vector("../escape", "a", [1.0], {})


def test_delete_vectors_where():
    storage.upsert_vector("conversation_memory", "m1", [1.0, 0.0], {"adventure_id": "a1"})
    storage.upsert_vector("conversation_memory", "m2", [0.0, 1.0], {"adventure_id": "a1"})
    storage.upsert_vector("conversation_memory", "m3", [1.0, 1.0], {"adventure_id": "a2"})
    assert storage.search_vectors("conversation_memory", [1.0, 0.0], where={"adventure_id": "a1"})
    assert storage.delete_vectors_where("conversation_memory", {"adventure_id": "a1"}) == 2
    assert [h["id"] for h in storage.search_vectors("conversation_memory", [1.0, 0.0])] == ["m3"]
    assert storage.delete_vectors_where("conversation_memory", {"adventure_id": "a1"}) == 0


def test_search_sees_writes_from_another_process():
    storage.upsert_vector("character_traits", "a", [1.0, 0.0], {})
    assert len(storage.search_vectors("character_traits", [1.0, 0.0])) == 1
    # Rewrite the file directly, bypassing this process's cache invalidation
    path = storage.vectors_dir() / "character_traits.json"
    entries = json.loads(path.read_text())
    entries.append({"id": "b", "vector": [0.9, 0.1], "metadata": {}})
    path.write_text(json.dumps(entries))
    os.utime(path, ns=(path.stat().st_atime_ns, path.stat().st_mtime_ns + 1_000_000))
    assert {h["id"] for h in storage.search_vectors("character_traits", [1.0, 0.0])} == {"a", "b"}
