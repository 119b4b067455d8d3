"""
Orchestration Domain - Pipeline coordination and progress streaming.

This domain handles:
- Stage event publishing
- Bounded retries and timeouts for model calls
- Extraction pipeline orchestration
- Name lookup for pre-parse duplicate checks
"""

from .contracts import ProgressSink
from .events import EventPublisher
from .identity import NameIdentifier
from .models import Stage, StageEvent
from .pipeline import ExtractionPipeline, ExtractionRun
from .retry import BoundedExecutor, RetryPolicy

__all__ = [
    # Contracts
    "ProgressSink",
    # Models
    "Stage",
    "StageEvent",
    # Implementations
    "EventPublisher",
    "RetryPolicy",
    "BoundedExecutor",
    "ExtractionPipeline",
    "ExtractionRun",
    "NameIdentifier",
]
