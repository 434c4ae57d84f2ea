"""Job queue administration: stats, inspection, worker control, cleanup."""

from fastapi import APIRouter, Depends, HTTPException

from story_engine import storage
from story_engine.auth import require_auth
from story_engine.services import get_database, get_embedding_service
from story_engine.worker import get_worker, start_worker, stop_worker

from .models import AdminJobsBody

# Worker settings when started from the admin API
ADMIN_POLL_INTERVAL = 2.0
ADMIN_CONCURRENCY = 2

router = APIRouter()


def _job_summary(job: dict | None) -> dict | None:
    """Queue metadata only. Payloads and results hold user content."""
    if job is None:
        return None
    return {k: v for k, v in job.items() if k not in ("payload", "result")}


def _worker_status() -> dict:
    worker = get_worker()
    if worker is None:
        return {"is_running": False, "started_at": None}
    return worker.status()


@router.get("/admin/jobs")
async def admin_jobs(action: str = "stats", status: str | None = None, user: dict = Depends(require_auth)):
    """action=stats | next-job | list."""
    if action == "stats":
        return {"stats": storage.get_job_stats(), "worker": _worker_status()}
    if action == "next-job":
        # Peek only; claiming is the worker's job
        pending = [
            j for j in storage.list_jobs(limit=1000)
            if j["status"] in ("pending", "retrying")
        ]
        pending.sort(key=lambda j: j["created_at"])
        pending.sort(key=lambda j: j["priority"], reverse=True)
        return {"job": _job_summary(pending[0] if pending else None)}
    if action == "list":
        return {"jobs": [_job_summary(j) for j in storage.list_jobs(status=status)]}
    raise HTTPException(400, f"Unknown action: {action}")


@router.post("/admin/jobs")
async def admin_jobs_action(body: AdminJobsBody, user: dict = Depends(require_auth)):
    """action=start-worker | stop-worker | cleanup-jobs | retry-job | process-retries."""
    if body.action == "start-worker":
        worker = get_worker()
        if worker is not None and worker.is_running:
            raise HTTPException(400, "Worker is already running")
        start_worker(get_embedding_service(), ADMIN_POLL_INTERVAL, ADMIN_CONCURRENCY)
        return {"ok": True, "worker": _worker_status()}

    if body.action == "stop-worker":
        if not await stop_worker():
            raise HTTPException(400, "No worker is running")
        return {"ok": True, "worker": _worker_status()}

    if body.action == "cleanup-jobs":
        removed = storage.cleanup_old_jobs(body.older_than_days)
        return {"ok": True, "removed": removed}

    if body.action == "retry-job":
        if not body.job_id:
            raise HTTPException(400, "job_id is required")
        job = storage.retry_job(body.job_id)
        if job is None:
            raise HTTPException(404, "Failed job not found")
        return {"ok": True, "job": _job_summary(job)}

    if body.action == "process-retries":
        outcome = await get_database().fallbacks.process_retry_queue()
        return {"ok": True, **outcome}

    raise HTTPException(400, f"Unknown action: {body.action}")
