"""
Layout Reconstruction - Rebuild reading-order lines from positioned text.

PDF content streams have no notion of a line. Fragments are bucketed into
fixed-height vertical bands; fragments in the same band form one line,
ordered left to right.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections import defaultdict
from collections.abc import Iterable
from typing import TYPE_CHECKING

from academiq.config.errors import ErrorCode, ExtractionError

from .models import ExtractedText, PageLayout, PositionedFragment, ReconstructedLine

if TYPE_CHECKING:
    from .contracts import PageReader

logger = logging.getLogger(__name__)

__all__ = [
    "HEADER_LINES",
    "LINE_BAND",
    "LayoutTextExtractor",
    "page_marker",
    "reconstruct_lines",
    "render_pages",
]

LINE_BAND = 8

# Lines read from page one for a name lookup
HEADER_LINES = 10


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def page_marker(number: int) -> str:
    return f"[PAGE {number} END]"


def reconstruct_lines(
    fragments: Iterable[PositionedFragment],
    page_height: float,
    band_size: int = LINE_BAND,
) -> list[ReconstructedLine]:
    """
    Group a page's fragments into lines.

    Args:
        fragments: Fragments of a single page
        page_height: Page height, used to convert y to a top-down offset
        band_size: Vertical tolerance for two fragments sharing a line

    Returns:
        Lines ordered by band, then horizontal position
    """
    bands: dict[int, list[PositionedFragment]] = defaultdict(list)
    page = 0
    for fragment in fragments:
        if not fragment.text.strip():
            continue
        page = fragment.page
        top = _round_half_up(page_height - fragment.y)
        band = _round_half_up(top / band_size) * band_size
        bands[band].append(fragment)

    lines = []
    for band in sorted(bands):
        ordered = sorted(bands[band], key=lambda f: f.x)
        text = " ".join(f.text for f in ordered).strip()
        if text:
            lines.append(ReconstructedLine(page=page, band=band, text=text))
    return lines


def render_pages(pages: list[PageLayout]) -> ExtractedText:
    """Join every page's lines, each page followed by its end marker."""
    out: list[str] = []
    line_count = 0
    for page in pages:
        lines = reconstruct_lines(page.fragments, page.height)
        line_count += len(lines)
        out.extend(line.text for line in lines)
        out.append(page_marker(page.number))
    return ExtractedText(text="\n".join(out), page_count=len(pages), line_count=line_count)


class LayoutTextExtractor:
    """
    Turns PDF bytes into ordered CV text.

    Example:
        >>> extractor = LayoutTextExtractor(PdfPlumberReader())
        >>> extracted = await extractor.extract(pdf_bytes)
        >>> extracted.text.endswith("[PAGE 1 END]")
        True
    """

    def __init__(self, reader: PageReader) -> None:
        self._reader = reader

    def extract_sync(self, content: bytes) -> ExtractedText:
        """Read pages and rebuild lines on the calling thread."""
        pages = self._reader.read_pages(content)
        if not pages:
            raise ExtractionError(
                "PDF has no pages",
                code=ErrorCode.EXTRACTION_INVALID_PDF,
            )
        extracted = render_pages(pages)
        logger.debug(
            "Reconstructed %d lines from %d pages",
            extracted.line_count,
            extracted.page_count,
        )
        return extracted

    async def extract(self, content: bytes) -> ExtractedText:
        """
        Extract text without blocking the event loop.

        Args:
            content: Raw PDF bytes

        Returns:
            Reading-order text with a page-end marker after each page

        Raises:
            ExtractionError: If the bytes are not a PDF or it has no pages
        """
        return await asyncio.to_thread(self.extract_sync, content)

    def header_sync(self, content: bytes, max_lines: int = HEADER_LINES) -> str:
        """First reconstructed lines of page one, without a page marker."""
        pages = self._reader.read_pages(content)
        if not pages:
            raise ExtractionError("PDF has no pages", code=ErrorCode.EXTRACTION_INVALID_PDF)
        first = pages[0]
        lines = reconstruct_lines(first.fragments, first.height)
        return "\n".join(line.text for line in lines[:max_lines])

    async def header(self, content: bytes, max_lines: int = HEADER_LINES) -> str:
        """
        Top of the first page, where a CV states its owner's name.

        Args:
            content: Raw PDF bytes
            max_lines: Lines to keep

        Returns:
            Up to max_lines lines joined by newlines

        Raises:
            ExtractionError: If the bytes are not a PDF or it has no pages
        """
        return await asyncio.to_thread(self.header_sync, content, max_lines)
