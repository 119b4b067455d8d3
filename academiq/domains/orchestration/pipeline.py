"""
Extraction Pipeline - Orchestrates one CV through every stage.

Stages run strictly in order: uploading, extracting, identifying, chunking,
parsing, finalizing. Every run ends with exactly one terminal event.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from academiq.config.errors import AcademiqError, ErrorCode, ExtractionError
from academiq.config.settings import get_settings
from academiq.domains.extraction.merge import merge_results
from academiq.domains.extraction.models import ChunkResult, RawDocument, StructuredCV
from academiq.domains.extraction.normalization import normalize_cv
from academiq.domains.extraction.prompts import model_info, resolve_model, select_model
from academiq.domains.extraction.redaction import count_redactions, redact
from academiq.domains.extraction.sections import detect_section_headers, split_into_chunks

from .events import EventPublisher
from .models import Stage, StageEvent

if TYPE_CHECKING:
    from academiq.config.settings import Settings
    from academiq.domains.extraction.extractor import LLMExtractor
    from academiq.domains.extraction.layout import LayoutTextExtractor

logger = logging.getLogger(__name__)

__all__ = ["ExtractionPipeline", "ExtractionRun", "build_summary"]


def build_summary(
    cv: StructuredCV,
    results: list[ChunkResult],
    total_ms: int,
) -> dict[str, Any]:
    """Counts, timing and throughput for the complete event."""
    input_chars = sum(r.metrics.input_chars for r in results)
    output_chars = sum(r.metrics.output_chars for r in results)
    llm_ms = sum(r.metrics.elapsed_ms for r in results)
    return {
        "personal": f"{cv.personal.first_name} {cv.personal.last_name}".strip(),
        **cv.counts(),
        "totalMs": total_ms,
        "chunks": len(results),
        "modelUsage": dict(Counter(r.model for r in results)),
        "droppedRecords": sum(len(r.dropped) for r in results),
        "speed": {
            "totalInputChars": input_chars,
            "totalOutputChars": output_chars,
            "totalLlmMs": llm_ms,
            "avgOutputCharsPerSec": round(output_chars / llm_ms * 1000) if llm_ms else 0,
        },
    }


@dataclass
class ExtractionRun:
    """A started pipeline task and the stream it publishes into."""

    publisher: EventPublisher
    task: asyncio.Task[StructuredCV | None]

    async def events(self, heartbeat_interval: float | None = None) -> AsyncIterator[StageEvent | None]:
        """
        Stream events; abandoning the iterator cancels the pipeline.

        Args:
            heartbeat_interval: Yield None after this many idle seconds

        Yields:
            Stage events in order, and None for heartbeats
        """
        try:
            if heartbeat_interval:
                async for event in self.publisher.events_with_heartbeat(heartbeat_interval):
                    yield event
            else:
                async for event in self.publisher.events():
                    yield event
        finally:
            if not self.task.done() and not self.publisher.closed:
                logger.info("Consumer left before the terminal event; cancelling extraction")
                self.task.cancel()

    async def result(self) -> StructuredCV | None:
        """Wait for the pipeline to finish."""
        return await self.task


class ExtractionPipeline:
    """
    Main extraction orchestration pipeline.

    Coordinates:
    - Text extraction and redaction
    - Section detection and chunking
    - Bounded model calls per chunk
    - Merging and normalization

    Example:
        >>> pipeline = ExtractionPipeline(LayoutTextExtractor(reader), extractor)
        >>> run = pipeline.start(RawDocument(filename="cv.pdf", content=data))
        >>> async for event in run.events():
        ...     print(event.stage, event.message)
    """

    def __init__(
        self,
        text_extractor: LayoutTextExtractor,
        extractor: LLMExtractor,
        settings: Settings | None = None,
    ) -> None:
        """
        Initialize pipeline.

        Args:
            text_extractor: PDF to reading-order text
            extractor: Model-backed chunk extractor
            settings: Overrides process settings
        """
        self._text = text_extractor
        self._extractor = extractor
        self._settings = settings or get_settings()

    def start(
        self,
        document: RawDocument,
        model: str | None = None,
        on_finish: Callable[[EventPublisher], Awaitable[None]] | None = None,
    ) -> ExtractionRun:
        """
        Run the pipeline as a task and return its event stream.

        Args:
            document: Uploaded PDF
            model: Requested model id
            on_finish: Awaited with the publisher after the run ends,
                including after cancellation

        Returns:
            Handle on the running task and its events
        """
        publisher = EventPublisher()

        async def execute() -> StructuredCV | None:
            try:
                return await self.run(document, publisher, model)
            finally:
                if on_finish is not None:
                    await on_finish(publisher)

        task = asyncio.create_task(execute())
        return ExtractionRun(publisher=publisher, task=task)

    async def run(
        self,
        document: RawDocument,
        publisher: EventPublisher,
        model: str | None = None,
    ) -> StructuredCV | None:
        """
        Process one document, publishing every stage.

        Never raises for pipeline failures: they end the stream with an
        error event and return None. Cancellation publishes an error event
        and propagates.

        Args:
            document: Uploaded PDF
            publisher: Event stream for this run
            model: Requested model id, default from settings

        Returns:
            Normalized record, or None on failure
        """
        started = time.monotonic()
        logger.info("Starting extraction: %s (%d bytes)", document.filename, document.size)

        try:
            cv, results = await self._execute(document, publisher, model)
        except asyncio.CancelledError:
            logger.info("Extraction cancelled: %s", document.filename)
            if not publisher.closed:
                publisher.fail("Extraction cancelled", {"code": ErrorCode.CANCELLED.value})
            raise
        except AcademiqError as e:
            logger.error("Extraction failed: %s - %s", document.filename, e)
            publisher.fail(e.message, e.to_dict())
            return None
        except Exception as e:
            logger.exception("Unexpected error extracting %s", document.filename)
            publisher.fail(
                "Unexpected error occurred",
                {"code": ErrorCode.INTERNAL_ERROR.value, "message": str(e), "details": {}},
            )
            return None

        total_ms = int((time.monotonic() - started) * 1000)
        summary = build_summary(cv, results, total_ms)
        publisher.complete(cv.to_wire(), summary)
        logger.info(
            "Extraction complete: %s - %d publications, %d education entries in %dms",
            document.filename,
            len(cv.publications),
            len(cv.education),
            total_ms,
        )
        return cv

    async def _execute(
        self,
        document: RawDocument,
        publisher: EventPublisher,
        requested_model: str | None,
    ) -> tuple[StructuredCV, list[ChunkResult]]:
        settings = self._settings

        # Stage 1: Upload received
        publisher.publish(
            Stage.UPLOADING,
            f"Received {document.filename}",
            {"filename": document.filename, "bytes": document.size},
        )
        if not document.content:
            raise ExtractionError("Uploaded file is empty", code=ErrorCode.EXTRACTION_INVALID_PDF)

        # A known requested model is used for every chunk; otherwise models are tiered per chunk
        model, fell_back = resolve_model(requested_model, settings.llm_model)
        pinned = bool(requested_model) and not fell_back
        advanced = model_info(settings.llm_advanced_model)
        if fell_back:
            publisher.publish(
                Stage.WARNING,
                f"Unknown model '{requested_model}', using {model.name}",
                {"requestedModel": requested_model, "model": model.id},
            )

        # Stage 2: Text extraction and redaction
        publisher.publish(Stage.EXTRACTING, "Extracting text from PDF...")
        step_start = time.monotonic()
        extracted = await self._text.extract(document.content)
        if extracted.content_chars < settings.min_text_chars:
            raise ExtractionError(
                "PDF contains no readable text",
                {"chars": extracted.content_chars, "pages": extracted.page_count},
                code=ErrorCode.EXTRACTION_NO_TEXT,
            )
        text = redact(extracted.text)
        publisher.publish(
            Stage.EXTRACTING,
            f"Extracted {extracted.line_count} lines from {extracted.page_count} pages",
            {
                "pages": extracted.page_count,
                "lines": extracted.line_count,
                "chars": len(text),
                "redactions": count_redactions(text),
                "ms": int((time.monotonic() - step_start) * 1000),
            },
        )

        # Stage 3: Section detection
        headers = detect_section_headers(text)
        publisher.publish(
            Stage.IDENTIFYING,
            f"Found {len(headers)} section headers",
            {
                "count": len(headers),
                "sections": [
                    {"text": h.text[:50], "type": h.type, "position": h.position}
                    for h in headers
                ],
            },
        )

        # Stage 4: Chunking
        chunks = split_into_chunks(text, headers, settings.chunk_size)
        publisher.publish(
            Stage.CHUNKING,
            f"Split into {len(chunks)} chunk{'s' if len(chunks) != 1 else ''}",
            {
                "totalChars": len(text),
                "targetChunkSize": settings.chunk_size,
                "chunks": [
                    {"id": c.id, "chars": c.char_count, "startSection": c.start_section}
                    for c in chunks
                ],
            },
        )

        # Stage 5: Model extraction per chunk
        results: list[ChunkResult] = []
        last_section: str | None = None
        for chunk in chunks:
            continuing = chunk.start_section or last_section
            stage = Stage.PARSING_PUBS if continuing == "publications" else Stage.PARSING_BASE
            result = await self._extractor.extract_chunk(
                chunk,
                total_chunks=len(chunks),
                model=model if pinned else select_model(chunk, model, advanced),
                publisher=publisher,
                stage=stage,
                continuing_section=continuing,
            )
            if result.dropped:
                publisher.publish(
                    Stage.PARSE_ERROR,
                    f"Dropped {len(result.dropped)} invalid records from chunk {chunk.id}",
                    {
                        "chunkId": chunk.id,
                        "dropped": [d.model_dump() for d in result.dropped],
                    },
                )
            publisher.publish(
                stage,
                f"Chunk {chunk.id}/{len(chunks)} processed",
                {
                    "chunkId": chunk.id,
                    "itemCounts": result.cv.counts(),
                    "speed": {
                        **result.metrics.model_dump(),
                        "outputCharsPerSec": result.metrics.output_chars_per_sec,
                    },
                },
            )
            results.append(result)
            if chunk.start_section:
                last_section = chunk.start_section

        # Stage 6: Merge and normalize
        publisher.publish(
            Stage.FINALIZING,
            "Merging and normalizing results...",
            {"chunkCount": len(results)},
        )
        cv = normalize_cv(merge_results([r.cv for r in results]))
        return cv, results
