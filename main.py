"""
Build Snapshot Service - Main FastAPI Application
Captures build metadata snapshots and serves them as JSON documents
"""

import logging
import time
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
import uvicorn

from configuration.logging_config import setup_logging
from configuration.settings import load_settings
from host.payload import BuildPayload, BuildUpdate, PayloadBuild
from models.pydantic_models import BuildSnapshot
from serialization.serializer import SnapshotSerializer
from snapshot.builder import SnapshotBuilder

settings = load_settings()
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Build Snapshot Service",
    description="Captures build metadata for log and analytics shipping",
    version="1.0.0"
)

# In-memory storage, one entry per build id
build_store: Dict[str, PayloadBuild] = {}
snapshot_store: Dict[str, BuildSnapshot] = {}

# Initialize components
date_formatter = settings.date_formatter()
builder = SnapshotBuilder(date_formatter)
serializer = SnapshotSerializer(date_formatter)


def _get_snapshot(build_id: str) -> BuildSnapshot:
    if build_id not in snapshot_store:
        raise HTTPException(status_code=404, detail="Build not found")
    return snapshot_store[build_id]


@app.post("/builds", response_model=Dict[str, Any])
async def capture_build(payload: BuildPayload):
    """
    Capture a snapshot of a build
    """
    build = PayloadBuild(payload)

    if payload.execution == "delegated":
        snapshot = builder.from_delegated_execution(build)
    else:
        snapshot = builder.from_direct_execution(build)

    build_store[payload.id] = build
    snapshot_store[payload.id] = snapshot
    logger.info("Captured snapshot of %s", build.full_display_name)

    return serializer.to_dict(snapshot)


@app.post("/builds/{build_id}/refresh", response_model=Dict[str, Any])
async def refresh_build(build_id: str, update: BuildUpdate):
    """
    Record build progress and fill in snapshot fields that are still unset
    """
    snapshot = _get_snapshot(build_id)
    build = build_store[build_id]

    build.apply(update)
    builder.update_result(snapshot, build)

    return serializer.to_dict(snapshot)


@app.get("/builds/{build_id}", response_model=Dict[str, Any])
async def get_build(build_id: str):
    """
    Retrieve the snapshot document of a build
    """
    return serializer.to_dict(_get_snapshot(build_id))


@app.get("/builds/{build_id}/envelope", response_model=Dict[str, Any])
async def get_envelope(build_id: str, message: Optional[List[str]] = Query(None)):
    """
    Retrieve the snapshot wrapped in its delivery envelope
    """
    snapshot = _get_snapshot(build_id)
    return serializer.to_envelope(
        snapshot,
        message=message,
        source=settings.source,
        source_host=settings.source_host,
    )


@app.get("/health")
async def health_check():
    """
    Basic health check
    """
    return {
        "status": "healthy",
        "builds_stored": len(snapshot_store),
        "timestamp_format": date_formatter.pattern,
        "timestamp": time.time()
    }

if __name__ == "__main__":
    setup_logging(settings.log_level)
    uvicorn.run(app, host="127.0.0.1", port=8000)
