"""
Configuration - Application settings, error taxonomy, and logging setup.
"""

from .errors import (
    AcademiqError,
    DuplicateError,
    ErrorCode,
    ExtractionError,
    FatalLLMError,
    LLMError,
    NotFoundError,
    PublisherClosedError,
    StorageError,
    TransientLLMError,
    ValidationError,
    is_transient,
)
from .logging import configure_logging
from .settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "configure_logging",
    # Errors
    "ErrorCode",
    "AcademiqError",
    "ExtractionError",
    "LLMError",
    "TransientLLMError",
    "FatalLLMError",
    "ValidationError",
    "StorageError",
    "DuplicateError",
    "NotFoundError",
    "PublisherClosedError",
    "is_transient",
]
