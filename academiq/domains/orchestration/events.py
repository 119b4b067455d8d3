"""
Event Publisher - Ordered, append-only stage event channel.

The pipeline writes into one end; a transport (SSE route, CLI) reads from
the other. Exactly one terminal event closes the channel.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from academiq.config.errors import PublisherClosedError

from .models import Stage, StageEvent

logger = logging.getLogger(__name__)

__all__ = ["EventPublisher"]


class EventPublisher:
    """
    Queue-backed stage event stream for one extraction run.

    Example:
        >>> publisher = EventPublisher()
        >>> publisher.publish(Stage.EXTRACTING, "Extracting text...")
        >>> publisher.complete({"personal": {...}})
        >>> [e.stage async for e in publisher.events()]
        [<Stage.EXTRACTING: 'extracting'>, <Stage.COMPLETE: 'complete'>]
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[StageEvent] = asyncio.Queue()
        self._history: list[StageEvent] = []
        self._terminal: StageEvent | None = None

    @property
    def closed(self) -> bool:
        """True once a terminal event was published."""
        return self._terminal is not None

    @property
    def terminal_event(self) -> StageEvent | None:
        return self._terminal

    @property
    def history(self) -> list[StageEvent]:
        """Every event published so far, in order."""
        return list(self._history)

    def publish(
        self,
        stage: Stage,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> StageEvent:
        """Publish a progress event."""
        if stage.is_terminal:
            raise ValueError(f"Use complete() or fail() for terminal stage {stage.value}")
        return self._emit(StageEvent(stage=stage, message=message, details=details))

    def complete(
        self,
        result: dict[str, Any],
        details: dict[str, Any] | None = None,
        message: str = "Processing complete",
    ) -> StageEvent:
        """Publish the successful terminal event carrying the record."""
        return self._emit(
            StageEvent(stage=Stage.COMPLETE, message=message, details=details, result=result)
        )

    def fail(self, message: str, details: dict[str, Any] | None = None) -> StageEvent:
        """Publish the failing terminal event."""
        return self._emit(StageEvent(stage=Stage.ERROR, message=message, details=details))

    def _emit(self, event: StageEvent) -> StageEvent:
        if self._terminal is not None:
            raise PublisherClosedError(
                f"Stream already ended with '{self._terminal.stage.value}'",
                {"rejected_stage": event.stage.value},
            )
        self._history.append(event)
        self._queue.put_nowait(event)
        if event.is_terminal:
            self._terminal = event

        suffix = f" | {json.dumps(event.details, default=str)}" if event.details else ""
        level = logging.WARNING if event.stage in (Stage.ERROR, Stage.WARNING) else logging.INFO
        logger.log(level, "[%s] %s%s", event.stage.value, event.message, suffix)
        return event

    async def next_event(self) -> StageEvent:
        """Wait for the next undelivered event."""
        return await self._queue.get()

    async def events(self) -> AsyncIterator[StageEvent]:
        """Deliver events in emission order, ending after the terminal one."""
        while True:
            event = await self._queue.get()
            yield event
            if event.is_terminal:
                return

    async def events_with_heartbeat(
        self,
        interval: float,
    ) -> AsyncIterator[StageEvent | None]:
        """
        Like events(), but yields None after each idle interval.

        Args:
            interval: Seconds without an event before a heartbeat

        Yields:
            Events in order, or None when the stream has been idle
        """
        pending: asyncio.Future[StageEvent] | None = None
        try:
            while True:
                if pending is None:
                    pending = asyncio.ensure_future(self._queue.get())
                done, _ = await asyncio.wait({pending}, timeout=interval)
                if not done:
                    yield None
                    continue
                event = pending.result()
                pending = None
                yield event
                if event.is_terminal:
                    return
        finally:
            if pending is not None:
                pending.cancel()
