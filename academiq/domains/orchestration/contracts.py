"""
Orchestration Contracts - Interfaces for orchestration domain.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .models import Stage, StageEvent


@runtime_checkable
class ProgressSink(Protocol):
    """
    Contract for anything that accepts non-terminal stage events.

    Example:
        >>> class ListSink:
        ...     def publish(self, stage, message, details=None):
        ...         ...
        >>> assert isinstance(ListSink(), ProgressSink)
    """

    def publish(
        self,
        stage: Stage,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> StageEvent:
        """
        Append one event to the stream.

        Args:
            stage: Stage the event belongs to
            message: Human-readable progress message
            details: Structured diagnostic payload

        Returns:
            The published event
        """
        ...
