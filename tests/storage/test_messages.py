"""Tests for chat message storage."""

import pytest

from story_engine import storage


@pytest.fixture
def adventure():
    char = storage.create_character("u1", {"name": "Elena"})
    return storage.create_adventure("u1", "Run", char)


def test_empty_messages(adventure):
    assert storage.get_messages(adventure["id"], "u1") == []


def test_create_and_order(adventure):
    storage.create_message(adventure["id"], "u1", "user", "Hi")
    storage.create_message(adventure["id"], "u1", "assistant", "Hello", metadata={"model": "m"})
    messages = storage.get_messages(adventure["id"], "u1")
    assert [m["content"] for m in messages] == ["Hi", "Hello"]
    assert messages[1]["metadata"] == {"model": "m"}
    assert messages[0]["metadata"] == {}


def test_invalid_role(adventure):
    with pytest.raises(ValueError):
        storage.create_message(adventure["id"], "u1", "narrator", "x")


def test_limit_returns_latest(adventure):
    for i in range(5):
        storage.create_message(adventure["id"], "u1", "user", f"m{i}")
    latest = storage.get_messages(adventure["id"], "u1", limit=2)
    assert [m["content"] for m in latest] == ["m3", "m4"]
    assert len(storage.get_messages(adventure["id"], "u1", limit=0)) == 5


def test_messages_scoped_by_user(adventure):
    storage.create_message(adventure["id"], "u1", "user", "mine")
    assert storage.get_messages(adventure["id"], "u2") == []


def test_update_message(adventure):
    msg = storage.create_message(adventure["id"], "u1", "user", "tpyo")
    updated = storage.update_message(msg["id"], adventure["id"], "u1", "typo")
    assert updated["content"] == "typo"
    assert "updated_at" in updated
    with pytest.raises(storage.NotFoundError):
        storage.update_message(msg["id"], adventure["id"], "u2", "hijack")


def test_delete_message(adventure):
    msg = storage.create_message(adventure["id"], "u1", "user", "bye")
    with pytest.raises(storage.NotFoundError):
        storage.delete_message(msg["id"], adventure["id"], "u2")
    storage.delete_message(msg["id"], adventure["id"], "u1")
    assert storage.get_messages(adventure["id"], "u1") == []
    with pytest.raises(storage.NotFoundError):
        storage.delete_message(msg["id"], adventure["id"], "u1")


def test_message_touches_adventure(adventure):
    before = storage.get_adventure(adventure["id"], "u1")["updated_at"]
    storage.create_message(adventure["id"], "u1", "user", "Hi")
    after = storage.get_adventure(adventure["id"], "u1")["updated_at"]
    assert after >= before


def test_delete_message_removes_its_embedding(adventure):
    msg = storage.create_message(adventure["id"], "u1", "user", "remember this")
    keep = storage.create_message(adventure["id"], "u1", "user", "and this")
    for m in (msg, keep):
        storage.upsert_vector(storage.MEMORY_COLLECTION, m["id"], [1.0, 0.0, 0.0], {"adventure_id": adventure["id"]})
    storage.delete_message(msg["id"], adventure["id"], "u1")
    assert [h["id"] for h in storage.search_vectors(storage.MEMORY_COLLECTION, [1.0, 0.0, 0.0])] == [keep["id"]]
