"""Background job queue stored as JSON.

Job lifecycle: pending → running → completed, or running → retrying →
running … → failed once attempts reach max_attempts. Retries back off
exponentially in minutes, capped at an hour.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from .core import data_dir, new_id, read_json, write_lock, write_json

STATUSES = ("pending", "running", "completed", "failed", "retrying")
MAX_RETRY_DELAY_MINUTES = 60
MAX_LOG_ENTRIES = 1000


def _jobs_path() -> Path:
    return data_dir() / "jobs.json"


def _logs_path() -> Path:
    return data_dir() / "job-logs.json"


def _load() -> list[dict[str, Any]]:
    return read_json(_jobs_path(), [])


def _save(jobs: list[dict[str, Any]]) -> None:
    write_json(_jobs_path(), jobs)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_job(
    job_type: str,
    payload: dict[str, Any],
    priority: int = 0,
    max_attempts: int = 3,
    delay_seconds: float = 0,
) -> dict[str, Any]:
    now = _now()
    job = {
        "id": new_id(),
        "job_type": job_type,
        "payload": payload,
        "status": "pending",
        "priority": priority,
        "attempts": 0,
        "max_attempts": max_attempts,
        "last_error": None,
        "result": None,
        "created_at": now.isoformat(),
        "scheduled_at": (now + timedelta(seconds=delay_seconds)).isoformat(),
        "started_at": None,
        "completed_at": None,
    }
    with write_lock:
        jobs = _load()
        jobs.append(job)
        _save(jobs)
    return job


def get_job(job_id: str) -> dict[str, Any] | None:
    for job in _load():
        if job["id"] == job_id:
            return job
    return None


def list_jobs(status: str | None = None, limit: int = 50) -> list[dict[str, Any]]:
    """Newest jobs first, optionally filtered by status."""
    jobs = _load()
    if status:
        jobs = [j for j in jobs if j["status"] == status]
    jobs.sort(key=lambda j: j["created_at"], reverse=True)
    return jobs[:limit]


def get_next_pending_job() -> dict[str, Any] | None:
    """Claim the next runnable job and mark it running.

    Runnable means pending or retrying with scheduled_at in the past.
    Highest priority wins; ties go to the oldest job.
    """
    now = _now()
    with write_lock:
        jobs = _load()
        runnable = [
            j for j in jobs
            if j["status"] in ("pending", "retrying")
            and datetime.fromisoformat(j["scheduled_at"]) <= now
        ]
        if not runnable:
            return None
        runnable.sort(key=lambda j: j["created_at"])
        runnable.sort(key=lambda j: j["priority"], reverse=True)
        job = runnable[0]
        job["status"] = "running"
        job["started_at"] = now.isoformat()
        _save(jobs)
    return job


def mark_completed(job_id: str, result: Any = None) -> dict[str, Any] | None:
    with write_lock:
        jobs = _load()
        for job in jobs:
            if job["id"] == job_id:
                job["status"] = "completed"
                job["result"] = result
                job["completed_at"] = _now().isoformat()
                _save(jobs)
                return job
    return None


def mark_failed(job_id: str, error: str, should_retry: bool = True) -> dict[str, Any] | None:
    """Record a failed attempt; reschedule with backoff or give up."""
    with write_lock:
        jobs = _load()
        for job in jobs:
            if job["id"] != job_id:
                continue
            attempts = job["attempts"] + 1
            job["attempts"] = attempts
            job["last_error"] = error
            if should_retry and attempts < job["max_attempts"]:
                delay = min(2 ** attempts, MAX_RETRY_DELAY_MINUTES)
                job["status"] = "retrying"
                job["scheduled_at"] = (_now() + timedelta(minutes=delay)).isoformat()
            else:
                job["status"] = "failed"
                job["completed_at"] = _now().isoformat()
            _save(jobs)
            return job
    return None


def retry_job(job_id: str) -> dict[str, Any] | None:
    """Put a failed job back in the queue, runnable immediately."""
    with write_lock:
        jobs = _load()
        for job in jobs:
            if job["id"] == job_id and job["status"] == "failed":
                job["status"] = "pending"
                job["attempts"] = 0
                job["scheduled_at"] = _now().isoformat()
                job["completed_at"] = None
                _save(jobs)
                return job
    return None


def log_job_event(job_id: str, event: str, details: dict[str, Any] | None = None) -> None:
    entry = {
        "job_id": job_id,
        "event": event,
        "details": details or {},
        "created_at": _now().isoformat(),
    }
    with write_lock:
        logs = read_json(_logs_path(), [])
        logs.append(entry)
        write_json(_logs_path(), logs[-MAX_LOG_ENTRIES:])


def get_job_logs(job_id: str) -> list[dict[str, Any]]:
    return [e for e in read_json(_logs_path(), []) if e["job_id"] == job_id]


def get_job_stats(hours: int = 24) -> dict[str, int]:
    """Count jobs created in the last `hours` by status."""
    cutoff = _now() - timedelta(hours=hours)
    stats = {status: 0 for status in STATUSES}
    for job in _load():
        if datetime.fromisoformat(job["created_at"]) >= cutoff:
            stats[job["status"]] += 1
    stats["total"] = sum(stats[s] for s in STATUSES)
    return stats


def cleanup_old_jobs(days: int = 7) -> int:
    """Delete finished jobs older than `days`. Returns how many were removed."""
    cutoff = _now() - timedelta(days=days)
    with write_lock:
        jobs = _load()
        kept = [
            j for j in jobs
            if j["status"] not in ("completed", "failed")
            or datetime.fromisoformat(j["created_at"]) >= cutoff
        ]
        removed = len(jobs) - len(kept)
        if removed:
            _save(kept)
    return removed
