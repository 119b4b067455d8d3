"""
Result Merging - Combine per-chunk partial records into one StructuredCV.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

from .models import Education, Experience, PersonalInfo, Publication, StructuredCV

__all__ = ["deduplicate", "merge_results"]

T = TypeVar("T")


def deduplicate(items: Iterable[T], key: Callable[[T], str]) -> list[T]:
    """Keep the first item for each key, preserving order."""
    seen: set[str] = set()
    result = []
    for item in items:
        k = key(item)
        if k not in seen:
            seen.add(k)
            result.append(item)
    return result


def _publication_key(p: Publication) -> str:
    return f"{p.title.lower()}|{p.publication_year}"


def _education_key(e: Education) -> str:
    return f"{e.institution.lower()}|{(e.degree_type or '').lower()}"


def _experience_key(e: Experience) -> str:
    return f"{e.institution.lower()}|{e.position_title.lower()}|{e.start_date}"


def merge_results(parts: list[StructuredCV]) -> StructuredCV:
    """
    Merge chunk results in chunk order.

    The first non-empty value of each personal field wins. Collections are
    concatenated, then publications, education and experience are
    de-duplicated.
    """
    personal = PersonalInfo()
    merged = StructuredCV()
    for part in parts:
        for field in PersonalInfo.model_fields:
            if not getattr(personal, field) and getattr(part.personal, field):
                personal = personal.model_copy(update={field: getattr(part.personal, field)})
        merged.education.extend(part.education)
        merged.publications.extend(part.publications)
        merged.experience.extend(part.experience)
        merged.grants.extend(part.grants)
        merged.teaching.extend(part.teaching)
        merged.supervision.extend(part.supervision)
        merged.memberships.extend(part.memberships)
        merged.awards.extend(part.awards)

    return merged.model_copy(
        update={
            "personal": personal,
            "publications": deduplicate(merged.publications, _publication_key),
            "education": deduplicate(merged.education, _education_key),
            "experience": deduplicate(merged.experience, _experience_key),
        }
    )
