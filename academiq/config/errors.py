"""
Error Taxonomy - Consistent error codes across the application.

Usage:
    from academiq.config.errors import ErrorCode, AcademiqError

    raise AcademiqError(ErrorCode.EXTRACTION_FAILED, "PDF parsing failed")
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for machine-readable error responses."""

    # Extraction errors
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    EXTRACTION_INVALID_PDF = "EXTRACTION_INVALID_PDF"
    EXTRACTION_NO_TEXT = "EXTRACTION_NO_TEXT"

    # LLM/Model errors
    LLM_UNAVAILABLE = "LLM_UNAVAILABLE"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LLM_RATE_LIMITED = "LLM_RATE_LIMITED"
    LLM_INVALID_RESPONSE = "LLM_INVALID_RESPONSE"
    LLM_AUTH_FAILED = "LLM_AUTH_FAILED"
    LLM_REJECTED = "LLM_REJECTED"
    LLM_RETRIES_EXHAUSTED = "LLM_RETRIES_EXHAUSTED"

    # Storage errors
    STORAGE_CONNECTION_FAILED = "STORAGE_CONNECTION_FAILED"
    STORAGE_WRITE_FAILED = "STORAGE_WRITE_FAILED"
    DUPLICATE_RECORD = "DUPLICATE_RECORD"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CANCELLED = "CANCELLED"


class AcademiqError(Exception):
    """Base exception with error code support."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


# Domain-specific exceptions for cleaner imports
class ExtractionError(AcademiqError):
    """PDF could not be parsed or its layout reconstructed."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: ErrorCode = ErrorCode.EXTRACTION_FAILED,
    ) -> None:
        super().__init__(code, message, details)


class LLMError(AcademiqError):
    """LLM/model errors."""

    transient = False

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: ErrorCode = ErrorCode.LLM_UNAVAILABLE,
    ) -> None:
        super().__init__(code, message, details)


class TransientLLMError(LLMError):
    """Network failure, timeout or malformed response. Worth retrying."""

    transient = True


class FatalLLMError(LLMError):
    """Missing credential or explicit rejection. Never retried."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: ErrorCode = ErrorCode.LLM_AUTH_FAILED,
    ) -> None:
        super().__init__(message, details, code)


class ValidationError(AcademiqError):
    """Well-formed model output that violates the record contract."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.VALIDATION_ERROR, message, details)


class StorageError(AcademiqError):
    """Storage/database errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: ErrorCode = ErrorCode.STORAGE_WRITE_FAILED,
    ) -> None:
        super().__init__(code, message, details)


class DuplicateError(StorageError):
    """A record with the same unique key already exists."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details, ErrorCode.DUPLICATE_RECORD)


class NotFoundError(AcademiqError):
    """Requested record does not exist."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.NOT_FOUND, message, details)


class PublisherClosedError(AcademiqError):
    """Event published after the stream's terminal event."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.INTERNAL_ERROR, message, details)


def is_transient(error: BaseException) -> bool:
    """Whether a failure is worth another attempt."""
    return isinstance(error, LLMError) and error.transient
