"""
Orchestration Models - Stage events streamed while a CV is processed.
"""

from __future__ import annotations

import json
import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Stage(str, Enum):
    """Pipeline stages, as rendered by the caller's timeline."""

    UPLOADING = "uploading"
    EXTRACTING = "extracting"
    IDENTIFYING = "identifying"
    CHUNKING = "chunking"
    PARSING_BASE = "parsing-base"
    PARSING_PUBS = "parsing-pubs"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    ERROR = "error"
    WARNING = "warning"
    PARSE_ERROR = "parse_error"

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.COMPLETE, Stage.ERROR)


def now_ms() -> int:
    """Current epoch time in milliseconds."""
    return int(time.time() * 1000)


class StageEvent(BaseModel):
    """One unit of progress in the extraction stream."""

    stage: Stage
    message: str
    timestamp: int = Field(default_factory=now_ms)
    details: dict[str, Any] | None = None
    result: dict[str, Any] | None = None

    model_config = {"frozen": True}

    @property
    def is_terminal(self) -> bool:
        return self.stage.is_terminal

    def to_dict(self) -> dict[str, Any]:
        """Wire form; details and result only when present."""
        data: dict[str, Any] = {
            "stage": self.stage.value,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.details is not None:
            data["details"] = self.details
        if self.result is not None:
            data["result"] = self.result
        return data

    def to_sse(self) -> str:
        """Server-sent event frame."""
        return f"data: {json.dumps(self.to_dict(), ensure_ascii=False)}\n\n"
