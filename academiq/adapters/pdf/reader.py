"""
PDF Reader - Positioned words per page via pdfplumber.
"""

from __future__ import annotations

import io
import logging

import pdfplumber

from academiq.config.errors import ErrorCode, ExtractionError
from academiq.domains.extraction.models import PageLayout, PositionedFragment

logger = logging.getLogger(__name__)

__all__ = ["PdfPlumberReader"]


class PdfPlumberReader:
    """
    Reads positioned words from PDF bytes.

    Fragment y is reported in PDF user space (origin bottom-left), taken
    from each word's bottom edge.

    Example:
        >>> reader = PdfPlumberReader()
        >>> pages = reader.read_pages(Path("cv.pdf").read_bytes())
        >>> pages[0].fragments[0].text
        'JANE'
    """

    def __init__(self, x_tolerance: float = 3, y_tolerance: float = 3) -> None:
        self.x_tolerance = x_tolerance
        self.y_tolerance = y_tolerance

    def read_pages(self, content: bytes) -> list[PageLayout]:
        """Parse every page; raises ExtractionError for unreadable input."""
        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                return [self._read_page(number, page) for number, page in enumerate(pdf.pages, start=1)]
        except ExtractionError:
            raise
        except Exception as e:
            logger.warning("PDF parsing failed: %s", e)
            raise ExtractionError(
                "Could not parse PDF",
                {"error": str(e)},
                code=ErrorCode.EXTRACTION_INVALID_PDF,
            ) from e

    def _read_page(self, number: int, page: pdfplumber.page.Page) -> PageLayout:
        height = float(page.height)
        words = page.extract_words(x_tolerance=self.x_tolerance, y_tolerance=self.y_tolerance)
        fragments = [
            PositionedFragment(
                text=word["text"],
                page=number,
                x=float(word["x0"]),
                y=height - float(word["bottom"]),
            )
            for word in words
            if word.get("text", "").strip()
        ]
        return PageLayout(number=number, height=height, fragments=fragments)
