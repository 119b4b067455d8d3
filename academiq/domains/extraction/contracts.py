"""
Extraction Contracts - Interfaces for extraction domain.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import ExtractionRequest, LLMResponse, PageLayout


@runtime_checkable
class PageReader(Protocol):
    """
    Contract for PDF parsers that yield positioned text per page.

    Example:
        >>> class MyReader:
        ...     def read_pages(self, content: bytes) -> list[PageLayout]:
        ...         ...
        >>> assert isinstance(MyReader(), PageReader)
    """

    def read_pages(self, content: bytes) -> list[PageLayout]:
        """
        Parse a PDF into pages of positioned fragments.

        Args:
            content: Raw PDF bytes

        Returns:
            One layout per page, in page order

        Raises:
            ExtractionError: If the bytes cannot be parsed as a PDF
        """
        ...


@runtime_checkable
class LLMClient(Protocol):
    """
    Contract for structured-output model clients.

    Example:
        >>> class MyClient:
        ...     async def complete(self, request: ExtractionRequest) -> LLMResponse:
        ...         ...
        >>> assert isinstance(MyClient(), LLMClient)
    """

    async def complete(self, request: ExtractionRequest) -> LLMResponse:
        """
        Perform exactly one model call.

        Args:
            request: Instruction, content and output schema

        Returns:
            Raw response text

        Raises:
            TransientLLMError: Network failure, throttling or empty output
            FatalLLMError: Missing credential or rejected request
        """
        ...
