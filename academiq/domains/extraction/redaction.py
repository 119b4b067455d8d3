"""
Redaction - Strip sensitive spans before text leaves the trust boundary.

Rules apply in a fixed order: ID patterns first, then the address label,
then email addresses. Placeholders contain no digits or "@", so running
the rules again on redacted text changes nothing.
"""

from __future__ import annotations

import re

__all__ = [
    "ADDRESS_PLACEHOLDER",
    "EMAIL_PLACEHOLDER",
    "ID_PLACEHOLDER",
    "REDACTION_RULES",
    "count_redactions",
    "redact",
]

ID_PLACEHOLDER = "[ID REDACTED]"
ADDRESS_PLACEHOLDER = "[ADDRESS REDACTED]"
EMAIL_PLACEHOLDER = "[EMAIL REDACTED]"

REDACTION_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    # Labelled ID: "ID 123456789", "ID# 123456789"
    (re.compile(r"\bID\s*#?\s*\d{9}\b", re.IGNORECASE), ID_PLACEHOLDER),
    # Bare 9-digit ID
    (re.compile(r"\b\d{9}\b"), ID_PLACEHOLDER),
    # Grouped ID or phone: 12-345-6789, 050.1234567.890, 03 123 4567
    (re.compile(r"\b\d{2,3}[-. \t]\d{3,6}[-. \t]\d{3,4}\b"), ID_PLACEHOLDER),
    # Address label and the rest of its line
    (re.compile(r"Home\s*Address[:\s]+[^\n]+", re.IGNORECASE), ADDRESS_PLACEHOLDER),
    (re.compile(r"[\w.-]+@[\w.-]+\.\w+"), EMAIL_PLACEHOLDER),
)


def redact(text: str) -> str:
    """Replace every sensitive span with its category placeholder."""
    for pattern, placeholder in REDACTION_RULES:
        text = pattern.sub(placeholder, text)
    return text


def count_redactions(text: str) -> dict[str, int]:
    """Count placeholders by category in already-redacted text."""
    return {
        "ids": text.count(ID_PLACEHOLDER),
        "addresses": text.count(ADDRESS_PLACEHOLDER),
        "emails": text.count(EMAIL_PLACEHOLDER),
    }
