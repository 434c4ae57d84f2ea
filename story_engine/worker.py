"""Background worker that drains the embedding job queue.

The worker polls storage for runnable jobs and processes up to
`max_concurrent_jobs` at once as asyncio tasks. A single module-level worker
is managed through start_worker() / stop_worker() / get_worker() so the admin
API and the launcher share it.
"""

import asyncio
import logging
import signal
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from story_engine import storage
from story_engine.embeddings import EmbeddingService

logger = logging.getLogger(__name__)

JobHandler = Callable[[EmbeddingService, dict[str, Any]], Awaitable[Any]]


class UnknownJobType(ValueError):
    """Raised for jobs no handler is registered for. Not retried."""


async def _handle_trait_embedding(service: EmbeddingService, payload: dict[str, Any]) -> Any:
    entity_id = await service.generate_trait_embedding(
        adventure_character_id=payload["adventure_character_id"],
        trait_type=payload["trait_type"],
        trait_path=payload["trait_path"],
        trait_value=payload["trait_value"],
        context=payload.get("context", ""),
    )
    return {"entity_id": entity_id}


async def _handle_message_embedding(service: EmbeddingService, payload: dict[str, Any]) -> Any:
    message_id = await service.embed_message(payload["message"])
    return {"message_id": message_id}


HANDLERS: dict[str, JobHandler] = {
    "trait_embedding": _handle_trait_embedding,
    "message_embedding": _handle_message_embedding,
}


class EmbeddingWorker:
    """Polls the job queue and runs embedding jobs.

    Args:
        service:             EmbeddingService used by the job handlers.
        poll_interval:       Seconds to sleep when the queue is empty or full.
        max_concurrent_jobs: Upper bound on jobs running at once.
    """

    def __init__(
        self,
        service: EmbeddingService,
        poll_interval: float = 5.0,
        max_concurrent_jobs: int = 3,
    ) -> None:
        self.service = service
        self.poll_interval = poll_interval
        self.max_concurrent_jobs = max_concurrent_jobs
        self.started_at: str | None = None
        self._loop_task: asyncio.Task | None = None
        self._active: set[asyncio.Task] = set()
        self._stopping = asyncio.Event()
        self.processed = 0
        self.failed = 0

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def status(self) -> dict[str, Any]:
        return {
            "is_running": self.is_running,
            "started_at": self.started_at,
            "active_jobs": len(self._active),
            "processed": self.processed,
            "failed": self.failed,
            "poll_interval": self.poll_interval,
            "max_concurrent_jobs": self.max_concurrent_jobs,
        }

    def start(self) -> None:
        if self.is_running:
            raise RuntimeError("Worker is already running")
        self._stopping.clear()
        self.started_at = datetime.now(timezone.utc).isoformat()
        self._loop_task = asyncio.get_running_loop().create_task(self._run())
        logger.info(
            "embedding worker started (poll=%.1fs, concurrency=%d)",
            self.poll_interval, self.max_concurrent_jobs,
        )

    async def stop(self, timeout: float = 30.0) -> None:
        """Stop polling and wait up to `timeout` seconds for active jobs."""
        if self._loop_task is None:
            return
        self._stopping.set()
        await self._loop_task
        self._loop_task = None
        if self._active:
            logger.info("waiting for %d active jobs", len(self._active))
            _, pending = await asyncio.wait(self._active, timeout=timeout)
            for task in pending:
                task.cancel()
            if pending:
                logger.warning("cancelled %d jobs still running after %.0fs", len(pending), timeout)
        self.started_at = None
        logger.info("embedding worker stopped")

    def install_signal_handlers(self) -> None:
        """Stop gracefully on SIGINT/SIGTERM (main thread only)."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda: loop.create_task(self.stop()))

    async def _run(self) -> None:
        while not self._stopping.is_set():
            claimed = False
            while len(self._active) < self.max_concurrent_jobs:
                try:
                    job = storage.get_next_pending_job()
                except Exception:
                    logger.exception("could not claim a job; retrying after the poll interval")
                    claimed = False
                    break
                if job is None:
                    break
                claimed = True
                task = asyncio.create_task(self.process_job(job))
                self._active.add(task)
                task.add_done_callback(self._active.discard)
            if claimed and len(self._active) < self.max_concurrent_jobs:
                continue
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

    async def process_job(self, job: dict[str, Any]) -> None:
        """Run one claimed job and record its outcome."""
        job_id = job["id"]
        storage.log_job_event(job_id, "job_started", {"job_type": job["job_type"]})
        try:
            handler = HANDLERS.get(job["job_type"])
            if handler is None:
                raise UnknownJobType(f"Unknown job type: {job['job_type']}")
            result = await handler(self.service, job["payload"])
        except Exception as e:
            self.failed += 1
            retry = not isinstance(e, (UnknownJobType, KeyError))
            updated = storage.mark_failed(job_id, str(e), should_retry=retry)
            storage.log_job_event(job_id, "job_failed", {
                "error": str(e),
                "status": updated["status"] if updated else None,
            })
            logger.warning("job %s failed: %s", job_id, e)
            return
        self.processed += 1
        storage.mark_completed(job_id, result)
        storage.log_job_event(job_id, "job_completed", {"result": result})
        logger.info("job %s completed", job_id)


# ── Shared worker handle ─────────────────────────────────

_worker: EmbeddingWorker | None = None


def get_worker() -> EmbeddingWorker | None:
    return _worker


def start_worker(
    service: EmbeddingService, poll_interval: float = 5.0, max_concurrent_jobs: int = 3
) -> EmbeddingWorker:
    global _worker
    if _worker is not None and _worker.is_running:
        raise RuntimeError("Worker is already running")
    _worker = EmbeddingWorker(service, poll_interval, max_concurrent_jobs)
    _worker.start()
    return _worker


async def stop_worker() -> bool:
    """Stop the shared worker. Returns False when none was running."""
    global _worker
    if _worker is None or not _worker.is_running:
        return False
    await _worker.stop()
    _worker = None
    return True
