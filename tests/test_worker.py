"""Tests for the embedding job worker."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from story_engine import storage
from story_engine.embeddings import EmbeddingService
from story_engine.llm import LLMError
from story_engine.worker import EmbeddingWorker, get_worker, start_worker, stop_worker

TRAIT_PAYLOAD = {
    "adventure_character_id": "ac1",
    "trait_type": "appearance",
    "trait_path": "appearance.hair",
    "trait_value": "silver",
    "context": "her hair is now silver",
}

MESSAGE = {
    "id": "m1", "adventure_id": "adv1", "user_id": "u1", "role": "user",
    "content": "Hello", "created_at": "2026-01-01T00:00:00+00:00",
}


def _service(fail: bool = False) -> EmbeddingService:
    client = MagicMock()
    if fail:
        client.embed = AsyncMock(side_effect=LLMError("Cannot connect to Ollama"))
    else:
        client.embed = AsyncMock(side_effect=lambda texts: [[1.0, 0.0, 0.0] for _ in texts])
    return EmbeddingService(client, retry_base_delay=0)


@pytest.fixture(autouse=True)
def _one_embedding_attempt(monkeypatch):
    monkeypatch.setenv("EMBEDDING_MAX_RETRIES", "1")


class TestProcessJob:
    async def test_trait_job_completes(self):
        job = storage.create_job("trait_embedding", TRAIT_PAYLOAD)
        worker = EmbeddingWorker(_service())
        await worker.process_job(storage.get_next_pending_job())

        done = storage.get_job(job["id"])
        assert done["status"] == "completed"
        assert done["result"] == {"entity_id": "ac1:appearance.hair"}
        assert storage.count_vectors("character_traits") == 1
        assert [e["event"] for e in storage.get_job_logs(job["id"])] == ["job_started", "job_completed"]
        assert worker.processed == 1

    async def test_message_job_completes(self):
        job = storage.create_job("message_embedding", {"message": MESSAGE})
        worker = EmbeddingWorker(_service())
        await worker.process_job(storage.get_next_pending_job())
        assert storage.get_job(job["id"])["result"] == {"message_id": "m1"}
        assert storage.count_vectors("conversation_memory") == 1

    async def test_embedding_failure_is_retried(self):
        job = storage.create_job("trait_embedding", TRAIT_PAYLOAD)
        worker = EmbeddingWorker(_service(fail=True))
        await worker.process_job(storage.get_next_pending_job())

        failed = storage.get_job(job["id"])
        assert failed["status"] == "retrying"
        assert "Embedding failed" in failed["last_error"]
        assert worker.failed == 1
        logs = storage.get_job_logs(job["id"])
        assert logs[-1]["event"] == "job_failed"
        assert logs[-1]["details"]["status"] == "retrying"

    async def test_unknown_job_type_not_retried(self):
        job = storage.create_job("thumbnail", {})
        await EmbeddingWorker(_service()).process_job(storage.get_next_pending_job())
        failed = storage.get_job(job["id"])
        assert failed["status"] == "failed"
        assert "Unknown job type" in failed["last_error"]

    async def test_bad_payload_not_retried(self):
        job = storage.create_job("trait_embedding", {"trait_type": "appearance"})
        await EmbeddingWorker(_service()).process_job(storage.get_next_pending_job())
        assert storage.get_job(job["id"])["status"] == "failed"


class TestLoop:
    async def test_drains_queue_and_stops(self):
        first = storage.create_job("trait_embedding", TRAIT_PAYLOAD)
        second = storage.create_job("message_embedding", {"message": MESSAGE})
        worker = EmbeddingWorker(_service(), poll_interval=0.01, max_concurrent_jobs=2)
        worker.start()
        assert worker.is_running
        assert worker.status()["started_at"] is not None

        for _ in range(200):
            if worker.processed == 2:
                break
            await asyncio.sleep(0.01)
        await worker.stop()

        assert not worker.is_running
        assert storage.get_job(first["id"])["status"] == "completed"
        assert storage.get_job(second["id"])["status"] == "completed"
        status = worker.status()
        assert status["processed"] == 2
        assert status["active_jobs"] == 0
        assert status["started_at"] is None

    async def test_survives_unreadable_queue(self, monkeypatch):
        job = storage.create_job("trait_embedding", TRAIT_PAYLOAD)
        real_claim = storage.get_next_pending_job
        calls = {"n": 0}

        def flaky_claim():
            calls["n"] += 1
            if calls["n"] == 1:
                raise json.JSONDecodeError("Expecting value", "", 0)
            return real_claim()

        monkeypatch.setattr(storage, "get_next_pending_job", flaky_claim)
        worker = EmbeddingWorker(_service(), poll_interval=0.01)
        worker.start()
        for _ in range(200):
            if worker.processed == 1:
                break
            await asyncio.sleep(0.01)
        assert worker.is_running
        await worker.stop()
        assert storage.get_job(job["id"])["status"] == "completed"
        assert calls["n"] >= 2

    async def test_start_twice_rejected(self):
        worker = EmbeddingWorker(_service(), poll_interval=0.01)
        worker.start()
        with pytest.raises(RuntimeError):
            worker.start()
        await worker.stop()

    async def test_stop_when_never_started(self):
        await EmbeddingWorker(_service()).stop()


class TestSharedWorker:
    async def test_start_and_stop(self):
        assert get_worker() is None
        worker = start_worker(_service(), poll_interval=0.01, max_concurrent_jobs=1)
        assert get_worker() is worker
        with pytest.raises(RuntimeError):
            start_worker(_service())
        assert await stop_worker() is True
        assert get_worker() is None
        assert await stop_worker() is False
