"""
PDF Adapter - The only place that parses PDF bytes.
"""

from .reader import PdfPlumberReader

__all__ = ["PdfPlumberReader"]
