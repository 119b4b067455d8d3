"""
Section Detection - Find CV headings and split long text on them.
"""

from __future__ import annotations

import re

from .models import Chunk, SectionHeader

__all__ = [
    "HEADER_KEYWORDS",
    "classify_header",
    "detect_section_headers",
    "split_into_chunks",
]

HEADER_KEYWORDS: dict[str, tuple[str, ...]] = {
    "personal": ("PERSONAL", "BIOGRAPHICAL", "CURRICULUM VITAE", "CV", "NAME"),
    "education": (
        "EDUCATION",
        "ACADEMIC BACKGROUND",
        "DEGREES",
        "QUALIFICATIONS",
        "FURTHER STUDIES",
    ),
    "experience": (
        "EXPERIENCE",
        "EMPLOYMENT",
        "POSITIONS",
        "APPOINTMENTS",
        "ACADEMIC POSITIONS",
        "PROFESSIONAL EXPERIENCE",
        "CAREER",
    ),
    "publications": (
        "PUBLICATIONS",
        "PAPERS",
        "ARTICLES",
        "REFEREED",
        "JOURNAL",
        "BOOKS",
        "CHAPTERS",
    ),
    "grants": ("GRANTS", "FUNDING", "RESEARCH SUPPORT", "SPONSORED RESEARCH"),
    "teaching": ("TEACHING", "COURSES", "INSTRUCTION"),
    "supervision": (
        "SUPERVISION",
        "STUDENTS",
        "ADVISEES",
        "DOCTORAL",
        "GRADUATE STUDENTS",
        "THESIS",
    ),
    "awards": ("AWARDS", "HONORS", "PRIZES", "FELLOWSHIPS", "RECOGNITION"),
    "memberships": ("MEMBERSHIPS", "AFFILIATIONS", "SOCIETIES", "PROFESSIONAL ACTIVITIES"),
    "other": (
        "REFERENCES",
        "PATENTS",
        "MEDIA",
        "TALKS",
        "PRESENTATIONS",
        "CONFERENCES",
        "SERVICE",
        "COMMITTEES",
    ),
}

_CITATION_YEAR = re.compile(r"\(\d{4}\)")
_PAGE_REF = re.compile(r"pp?\.\s*\d+")
_VOLUME_REF = re.compile(r"vol\.\s*\d+", re.IGNORECASE)
_LETTER_PREFIX = re.compile(r"^[A-Z]\.\s+", re.IGNORECASE)
_NUMBER_PREFIX = re.compile(r"^\d{1,2}\.\s+")
_SUBSECTION_PREFIX = re.compile(r"^[A-Z]\d+\.\s+", re.IGNORECASE)


def _mostly_uppercase(text: str) -> bool:
    letters = [c for c in text if c.isascii() and c.isalpha()]
    return sum(c.isupper() for c in letters) > len(letters) * 0.5


def classify_header(line: str, previous: str = "") -> str | None:
    """
    Decide whether a line is a section heading.

    Args:
        line: Candidate line
        previous: Line before it (empty for the first line)

    Returns:
        Section type, "unknown" for an unlabelled heading, or None
    """
    text = line.strip()
    if not 2 <= len(text) <= 80:
        return None
    # Citation-like lines are never headings
    if _CITATION_YEAR.search(text) or _PAGE_REF.search(text) or _VOLUME_REF.search(text):
        return None
    if text.count(",") > 2:
        return None

    prefixed = bool(_LETTER_PREFIX.match(text) or _NUMBER_PREFIX.match(text))
    uppercase = _mostly_uppercase(text)
    after_blank = not previous.strip()

    upper = text.upper()
    if prefixed or uppercase or after_blank:
        for section, keywords in HEADER_KEYWORDS.items():
            if any(keyword in upper for keyword in keywords):
                return section

    if prefixed and uppercase and after_blank:
        return "unknown"
    return None


def detect_section_headers(text: str) -> list[SectionHeader]:
    """Headings in order, with their character offset in the text."""
    headers = []
    position = 0
    previous = ""
    for line in text.split("\n"):
        section = classify_header(line, previous)
        if section and not _SUBSECTION_PREFIX.match(line.strip()):
            headers.append(SectionHeader(position=position, text=line.strip(), type=section))
        position += len(line) + 1
        previous = line
    return headers


def _split_by_paragraphs(text: str, max_size: int) -> list[Chunk]:
    chunks: list[Chunk] = []
    current = ""
    for paragraph in re.split(r"\n\s*\n", text):
        if current and len(current) + len(paragraph) > max_size:
            chunks.append(Chunk(id=len(chunks) + 1, text=current))
            current = paragraph
        else:
            current = f"{current}\n\n{paragraph}" if current else paragraph
    if current:
        chunks.append(Chunk(id=len(chunks) + 1, text=current))
    return chunks


def split_into_chunks(
    text: str,
    headers: list[SectionHeader],
    max_size: int,
) -> list[Chunk]:
    """
    Pack whole sections into chunks of at most max_size characters.

    A section larger than max_size becomes a chunk on its own. Text that
    fits in one chunk is never split.

    Args:
        text: Redacted CV text
        headers: Headings from detect_section_headers
        max_size: Maximum characters per chunk

    Returns:
        Chunks numbered from 1
    """
    if len(text) <= max_size:
        start = "personal" if not headers or headers[0].position > 0 else headers[0].type
        return [Chunk(id=1, text=text, start_section=start)]
    if not headers:
        return _split_by_paragraphs(text, max_size)

    pieces: list[tuple[str | None, str]] = []
    current = ""
    current_section: str | None = None

    # Text before the first heading usually holds the name
    preamble = text[: headers[0].position]
    if len(preamble.strip()) > 100:
        pieces.append(("personal", preamble))
    elif preamble.strip():
        current, current_section = preamble, "personal"

    for index, header in enumerate(headers):
        end = headers[index + 1].position if index + 1 < len(headers) else len(text)
        section_text = text[header.position : end]
        if current and len(current) + len(section_text) > max_size:
            pieces.append((current_section, current))
            current = section_text
            current_section = header.type
        else:
            if not current:
                current_section = header.type
            current += section_text
    if current:
        pieces.append((current_section, current))

    return [
        Chunk(id=number, text=piece, start_section=section)
        for number, (section, piece) in enumerate(pieces, start=1)
    ]
