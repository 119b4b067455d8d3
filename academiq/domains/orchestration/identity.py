"""
Name Identifier - Who a CV belongs to, before running the full extraction.

Reads only the top of page one and asks the model for a first and last
name.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from academiq.config.errors import ErrorCode, ExtractionError, ValidationError
from academiq.domains.extraction.extractor import parse_name
from academiq.domains.extraction.layout import HEADER_LINES
from academiq.domains.extraction.models import PersonalInfo
from academiq.domains.extraction.prompts import build_name_request
from academiq.domains.extraction.redaction import redact

from .events import EventPublisher
from .models import Stage

if TYPE_CHECKING:
    from academiq.domains.extraction.contracts import LLMClient
    from academiq.domains.extraction.layout import LayoutTextExtractor

    from .contracts import ProgressSink
    from .retry import BoundedExecutor

logger = logging.getLogger(__name__)

__all__ = ["NameIdentifier"]


class NameIdentifier:
    """
    Extracts the CV owner's name from the first lines of a PDF.

    Example:
        >>> identifier = NameIdentifier(LayoutTextExtractor(reader), client, executor, "gpt-4.1-2025-04-14")
        >>> name = await identifier.identify(pdf_bytes)
        >>> name.first_name, name.last_name
        ('Jane', 'Doe')
    """

    def __init__(
        self,
        text_extractor: LayoutTextExtractor,
        client: LLMClient,
        executor: BoundedExecutor,
        model: str,
        temperature: float = 0.1,
        max_lines: int = HEADER_LINES,
    ) -> None:
        self._text = text_extractor
        self._client = client
        self._executor = executor
        self._model = model
        self._temperature = temperature
        self._max_lines = max_lines

    async def identify(
        self,
        content: bytes,
        publisher: ProgressSink | None = None,
    ) -> PersonalInfo:
        """
        Read the owner's name.

        Args:
            content: Raw PDF bytes
            publisher: Receives attempt events; a private one is used if omitted

        Returns:
            Personal info with normalized first and last name set

        Raises:
            ExtractionError: If the PDF is unreadable or its first page is blank
            LLMError: If the model call fails
            ValidationError: If the model finds no complete name
        """
        header = await self._text.header(content, self._max_lines)
        if not header.strip():
            raise ExtractionError(
                "PDF contains no readable text",
                {"lines": 0},
                code=ErrorCode.EXTRACTION_NO_TEXT,
            )

        request = build_name_request(redact(header), model=self._model, temperature=self._temperature)

        async def attempt() -> PersonalInfo:
            response = await self._client.complete(request)
            return parse_name(response.text)

        name = await self._executor.run(
            attempt,
            publisher=publisher or EventPublisher(),
            stage=Stage.IDENTIFYING,
            label="Name lookup",
            details={"model": self._model, "lines": header.count("\n") + 1},
        )
        if not name.first_name or not name.last_name:
            raise ValidationError(
                "Could not extract name from CV",
                {"firstName": name.first_name, "lastName": name.last_name},
            )

        logger.info("Identified CV owner: %s %s", name.first_name, name.last_name)
        return name
