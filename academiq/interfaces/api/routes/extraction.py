"""
Extraction Routes - CV parsing as a server-sent event stream.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse

from academiq.adapters.sqlite.repository import CVRepository
from academiq.config import ErrorCode, Settings, get_settings
from academiq.domains.extraction import RawDocument
from academiq.domains.orchestration import EventPublisher, ExtractionPipeline, Stage
from academiq.interfaces.api.deps import get_pipeline, get_repository

logger = logging.getLogger(__name__)

router = APIRouter()

HEARTBEAT_FRAME = ": heartbeat\n\n"


def run_status(publisher: EventPublisher) -> str:
    """Log status for a finished run."""
    event = publisher.terminal_event
    if event is None:
        return "interrupted"
    if event.stage == Stage.COMPLETE:
        return "completed"
    if (event.details or {}).get("code") == ErrorCode.CANCELLED.value:
        return "cancelled"
    return "failed"


def _chunk_count(publisher: EventPublisher) -> int:
    for event in publisher.history:
        if event.stage == Stage.CHUNKING and event.details:
            return len(event.details.get("chunks", []))
    return 0


def processing_log_writer(repo: CVRepository, filename: str, model: str | None):
    """Build the hook that stores a run's stage history once it ends."""
    started_at = datetime.now(timezone.utc).isoformat()

    async def write(publisher: EventPublisher) -> None:
        terminal = publisher.terminal_event
        status = run_status(publisher)
        try:
            await repo.record_processing_log(
                filename=filename,
                status=status,
                events=[e.to_dict() for e in publisher.history if e.result is None],
                model=model,
                total_chunks=_chunk_count(publisher),
                result_summary=terminal.details if status == "completed" and terminal else None,
                error=terminal.details if status != "completed" and terminal else None,
                started_at=started_at,
            )
        except Exception as e:
            logger.warning("Failed to store processing log for %s: %s", filename, e)

    return write


async def sse_frames(
    pipeline: ExtractionPipeline,
    document: RawDocument,
    model: str | None,
    repo: CVRepository,
    heartbeat_interval: float,
) -> AsyncIterator[str]:
    """Run the pipeline and render its events as SSE frames."""
    run = pipeline.start(
        document,
        model,
        on_finish=processing_log_writer(repo, document.filename, model),
    )
    async for event in run.events(heartbeat_interval):
        yield HEARTBEAT_FRAME if event is None else event.to_sse()


@router.post("/parse")
async def parse_cv(
    file: UploadFile = File(...),
    model: str | None = Form(default=None),
    pipeline: ExtractionPipeline = Depends(get_pipeline),
    repo: CVRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """
    Parse an academic CV.

    Upload a PDF and receive a stream of stage events:
    - **uploading**, **extracting**, **identifying**, **chunking**
    - **parsing-base** / **parsing-pubs** per chunk
    - **finalizing**, then **complete** with the structured record or **error**
    """
    if not file.filename or not file.filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="File must be a PDF")

    document = RawDocument(filename=file.filename, content=await file.read())
    return StreamingResponse(
        sse_frames(pipeline, document, model, repo, settings.heartbeat_interval_seconds),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/logs")
async def list_logs(
    limit: int = Query(default=20, ge=1, le=200),
    repo: CVRepository = Depends(get_repository),
) -> dict[str, Any]:
    """Recent extraction runs with their stage history."""
    logs = await repo.list_processing_logs(limit=limit)
    return {"logs": logs, "total": len(logs)}
