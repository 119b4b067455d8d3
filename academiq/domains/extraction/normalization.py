"""
Normalization - Canonical names and dates for stored records.

Both functions are total: unrecognized input degrades to an empty string
or None, never an exception.
"""

from __future__ import annotations

import re

from .models import StructuredCV

__all__ = ["NAME_PARTICLES", "normalize_cv", "normalize_date", "normalize_name"]

NAME_PARTICLES = frozenset({"de", "von", "van", "der", "den", "la", "le", "du"})

_YEAR = re.compile(r"^\d{4}$")
_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{2})$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EMBEDDED_YEAR = re.compile(r"\b(19|20)\d{2}\b")


def _capitalize(part: str) -> str:
    if part in NAME_PARTICLES:
        return part
    return part[:1].upper() + part[1:]


def normalize_name(name: str | None) -> str:
    """
    Canonical capitalization of a person name.

    Example:
        >>> normalize_name("JOHN VAN DER BERG")
        'John van der Berg'
        >>> normalize_name("jean-pierre  DUPONT")
        'Jean-Pierre Dupont'
    """
    if not name:
        return ""
    words = []
    for word in name.strip().lower().split():
        parts = [_capitalize(part) for part in word.split("-") if part]
        if parts:
            words.append("-".join(parts))
    return " ".join(words)


def normalize_date(value: str | int | None) -> str | None:
    """
    Convert a date-like value to YYYY-MM-DD.

    Example:
        >>> normalize_date("2019-06")
        '2019-06-01'
        >>> normalize_date("graduated in 2005")
        '2005-01-01'
        >>> normalize_date("unknown") is None
        True
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if _YEAR.match(text):
        return f"{text}-01-01"
    match = _YEAR_MONTH.match(text)
    if match:
        return f"{match.group(1)}-{match.group(2)}-01"
    if _ISO_DATE.match(text):
        return text
    match = _EMBEDDED_YEAR.search(text)
    if match:
        return f"{match.group(0)}-01-01"
    return None


def normalize_cv(cv: StructuredCV) -> StructuredCV:
    """Normalize names and dates in a merged record."""
    personal = cv.personal.model_copy(
        update={
            "first_name": normalize_name(cv.personal.first_name),
            "last_name": normalize_name(cv.personal.last_name),
        }
    )
    education = [
        e.model_copy(update={"award_date": normalize_date(e.award_date)})
        for e in cv.education
    ]
    experience = [
        e.model_copy(
            update={
                "start_date": normalize_date(e.start_date),
                "end_date": normalize_date(e.end_date),
            }
        )
        for e in cv.experience
    ]
    return cv.model_copy(
        update={"personal": personal, "education": education, "experience": experience}
    )
