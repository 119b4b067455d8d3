"""
Adapters - External service integrations.

All external API calls are wrapped here to isolate domains from third-party changes.
"""

from .llm import OpenAIClient
from .pdf import PdfPlumberReader
from .sqlite import CVRepository

__all__ = [
    "OpenAIClient",
    "PdfPlumberReader",
    "CVRepository",
]
