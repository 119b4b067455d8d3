"""
Extraction Models - Data types for extraction domain.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RawDocument(BaseModel):
    """Uploaded PDF, consumed once by extraction."""

    filename: str
    content: bytes

    model_config = {"frozen": True}

    @property
    def size(self) -> int:
        return len(self.content)


class PositionedFragment(BaseModel):
    """A piece of text at a position in PDF user space (origin bottom-left)."""

    text: str
    page: int
    x: float
    y: float

    model_config = {"frozen": True}


class PageLayout(BaseModel):
    """All fragments of one page plus the page height needed to flip y."""

    number: int
    height: float
    fragments: list[PositionedFragment] = Field(default_factory=list)


class ReconstructedLine(BaseModel):
    """Fragments sharing a vertical band, joined left to right."""

    page: int
    band: int
    text: str

    model_config = {"frozen": True}


class ExtractedText(BaseModel):
    """Reading-order text of a whole document with page-end markers."""

    text: str
    page_count: int
    line_count: int

    @property
    def content_chars(self) -> int:
        """Characters excluding page-end markers and whitespace."""
        return sum(
            len(line.strip())
            for line in self.text.splitlines()
            if not (line.startswith("[PAGE ") and line.endswith(" END]"))
        )


class ExtractionRequest(BaseModel):
    """One model call: instruction, user content and output contract."""

    system_instruction: str
    user_content: str
    model: str
    schema_name: str
    output_schema: dict[str, Any]
    temperature: float = 0.1

    model_config = {"frozen": True}


class LLMResponse(BaseModel):
    """Raw completion returned by a model client."""

    text: str
    model: str
    tokens_used: int | None = None


class SectionHeader(BaseModel):
    """A detected CV section heading."""

    position: int
    text: str
    type: str


class Chunk(BaseModel):
    """A slice of redacted text sent to the model in one call."""

    id: int
    text: str
    start_section: str | None = None

    @property
    def char_count(self) -> int:
        return len(self.text)


class SpeedMetrics(BaseModel):
    """Throughput of one model call."""

    input_chars: int
    output_chars: int
    elapsed_ms: int

    @property
    def output_chars_per_sec(self) -> int:
        if self.elapsed_ms <= 0:
            return 0
        return round(self.output_chars / self.elapsed_ms * 1000)


# --- Structured CV ---


class CVRecord(BaseModel):
    """Base for CV sub-records: camelCase on the wire, unknown keys dropped."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class PersonalInfo(CVRecord):
    first_name: str = ""
    last_name: str = ""
    birth_year: int | None = None
    birth_country: str | None = None


class Education(CVRecord):
    institution: str = Field(min_length=1)
    degree_type: str | None = None
    department: str | None = None
    subject: str | None = None
    specialization: str | None = None
    award_date: str | None = None
    honors: str | None = None
    country: str | None = None


class Publication(CVRecord):
    """Published work. Never carries contact details."""

    title: str = Field(min_length=1)
    publication_year: int
    publication_type: str | None = None
    venue_name: str | None = None
    volume: str | None = None
    issue: str | None = None
    pages: str | None = None
    co_authors: list[str] = Field(default_factory=list)
    citation_count: int | None = None
    url: str | None = None


class Experience(CVRecord):
    institution: str = Field(min_length=1)
    position_title: str = Field(min_length=1)
    department: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    description: str | None = None
    employment_type: str | None = None


class Grant(CVRecord):
    title: str = Field(min_length=1)
    funding_institution: str = Field(min_length=1)
    amount: float | None = None
    currency_code: str | None = None
    award_year: int | None = None
    duration: str | None = None
    role: str | None = None


class Teaching(CVRecord):
    course_title: str = Field(min_length=1)
    education_level: str | None = None
    institution: str | None = None
    teaching_period: str | None = None


class Supervision(CVRecord):
    student_name: str = Field(min_length=1)
    degree_level: str | None = None
    thesis_title: str | None = None
    completion_year: int | None = None
    role: str | None = None


class Membership(CVRecord):
    organization: str = Field(min_length=1)
    start_year: int | None = None
    end_year: int | None = None


class Award(CVRecord):
    award_name: str = Field(min_length=1)
    awarding_institution: str | None = None
    award_year: int | None = None
    description: str | None = None


# Collection key -> record type, in output order
SECTION_MODELS: dict[str, type[CVRecord]] = {
    "education": Education,
    "publications": Publication,
    "experience": Experience,
    "grants": Grant,
    "teaching": Teaching,
    "supervision": Supervision,
    "memberships": Membership,
    "awards": Award,
}


class StructuredCV(CVRecord):
    """Canonical structured representation of one academic CV."""

    personal: PersonalInfo = Field(default_factory=PersonalInfo)
    education: list[Education] = Field(default_factory=list)
    publications: list[Publication] = Field(default_factory=list)
    experience: list[Experience] = Field(default_factory=list)
    grants: list[Grant] = Field(default_factory=list)
    teaching: list[Teaching] = Field(default_factory=list)
    supervision: list[Supervision] = Field(default_factory=list)
    memberships: list[Membership] = Field(default_factory=list)
    awards: list[Award] = Field(default_factory=list)

    def to_wire(self) -> dict[str, Any]:
        """Serialize with camelCase keys, unknown values as null."""
        return self.model_dump(by_alias=True, mode="json")

    def counts(self) -> dict[str, int]:
        """Number of entries per collection."""
        return {key: len(getattr(self, key)) for key in SECTION_MODELS}


class DroppedRecord(BaseModel):
    """A sub-record rejected by validation."""

    section: str
    index: int
    reason: str


class ChunkResult(BaseModel):
    """Outcome of parsing one chunk."""

    chunk_id: int
    cv: StructuredCV
    metrics: SpeedMetrics
    model: str
    dropped: list[DroppedRecord] = Field(default_factory=list)
