"""Liveness, backend health and runtime metrics."""

import os
import platform
import sys
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from story_engine import config, storage
from story_engine.services import get_database
from story_engine.worker import get_worker

SERVICE_NAME = "story-engine"
VERSION = "0.3.0"

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok", "service": SERVICE_NAME, "version": VERSION}


@router.get("/health/database")
async def health_database():
    """Per-backend health. 200 when everything is healthy, 503 otherwise."""
    db = get_database()
    statuses = await db.check_health()
    overall = db.overall_status(statuses)
    body = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "databases": {name: status.to_dict() for name, status in statuses.items()},
        "overall": overall,
        "service": SERVICE_NAME,
        "version": VERSION,
    }
    return JSONResponse(
        body,
        status_code=200 if overall == "healthy" else 503,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )


@router.get("/health/metrics")
async def health_metrics(detail: str = "summary"):
    if detail not in ("summary", "full"):
        raise HTTPException(400, "detail must be 'summary' or 'full'")
    worker = get_worker()
    body = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **get_database().metrics(),
        "jobs": storage.get_job_stats(),
        "worker": worker.status() if worker else {"is_running": False, "started_at": None},
    }
    if detail == "full":
        features = config.embedding_features()
        body["environment"] = {
            "python": sys.version.split()[0],
            "platform": platform.platform(),
            "pid": os.getpid(),
            "data_dir": str(storage.data_dir()),
            "ollama_url": config.ollama_url(),
            "chat_model": config.chat_model(),
            "embedding_model": config.embedding_settings().model,
            "extraction_mode": config.extraction_mode(),
            "features": {
                "character_embeddings": features.character_embeddings,
                "conversation_memory": features.conversation_memory,
                "semantic_search": features.semantic_search,
                "background_processing": features.background_processing,
            },
        }
    return body
