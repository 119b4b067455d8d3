"""
Extraction Prompts - Instruction text, output contract and model catalogue.

The schema is sent in strict mode: every property is listed as required and
unknown values come back as null, never as a missing key.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from .models import Chunk, ExtractionRequest

__all__ = [
    "CV_SCHEMA",
    "KNOWN_MODELS",
    "ModelInfo",
    "SCHEMA_NAME",
    "SYSTEM_INSTRUCTION",
    "build_name_request",
    "build_request",
    "model_info",
    "resolve_model",
    "select_model",
]

SCHEMA_NAME = "academic_cv"

# Publications chunks longer than this go to the advanced model
ADVANCED_PUBLICATIONS_CHARS = 15000

SYSTEM_INSTRUCTION = """You are an expert CV parser for an academic research database. Extract information from this CV into structured JSON.

CRITICAL INSTRUCTIONS:
1. The person's NAME is typically at the top of the CV. Ignore titles like "Ph.D.", "Dr.", "Prof." when splitting it into first and last name.
2. Extract EVERY education entry, whatever the heading style (numbered, lettered or free-form).
3. Extract EVERY distinct work position as its own experience entry.
4. For dates: use the year (e.g., "2024") or the start year of a range. Never copy free text.
5. DO NOT extract email addresses or phone numbers.

PUBLICATIONS - STRICT DEFINITION:
INCLUDE: Journal articles, conference papers, books, book chapters, technical reports, preprints.
EXCLUDE: Patents, press coverage, blog posts, presentations (unless in proceedings).

PUBLICATION TYPE CLASSIFICATION:
Look for ranking indicators in the publication text:
- "WoS: Q1" or "SCImago: Q1" or "IF:" above 3 -> "Ranked Journal Article (Q1)"
- "WoS: Q2" or "SCImago: Q2" or IF between 1 and 3 -> "Ranked Journal Article (Q2)"
- "WoS: Q3" or "SCImago: Q3" or IF below 1 -> "Ranked Journal Article (Q3)"
- Journal name contains "IEEE Transactions" or "ACM Transactions" -> "Ranked Journal Article"
- Conference papers (FOCS, STOC, AAAI, EC, NeurIPS, ICML, etc.) -> "Conference Paper"
- Book chapters -> "Book Chapter"
- Books -> "Book"
- Journal articles with no ranking info -> "Journal Article"
- Preprints or working papers -> "Preprint"
- Technical reports -> "Technical Report"

Extract all fields according to the provided schema. Use null for any unknown value. If a category has no entries, return an empty array for it."""

CONTINUATION_NOTE = (
    "NOTE: This is part {chunk_id} of {total_chunks} of the CV. The text may "
    "start mid-section (type: {section}). Parse accordingly."
)


def _string() -> dict[str, Any]:
    return {"type": "string"}


def _nullable(kind: str) -> dict[str, Any]:
    return {"type": [kind, "null"]}


def _object(properties: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }


def _array_of(properties: dict[str, Any]) -> dict[str, Any]:
    return {"type": "array", "items": _object(properties)}


CV_SCHEMA: dict[str, Any] = _object(
    {
        "personal": _object(
            {
                "firstName": _string(),
                "lastName": _string(),
                "birthYear": _nullable("number"),
                "birthCountry": _nullable("string"),
            }
        ),
        "education": _array_of(
            {
                "degreeType": _string(),
                "institution": _string(),
                "department": _nullable("string"),
                "subject": _nullable("string"),
                "specialization": _nullable("string"),
                "awardDate": _nullable("string"),
                "honors": _nullable("string"),
                "country": _nullable("string"),
            }
        ),
        "publications": _array_of(
            {
                "title": _string(),
                "publicationType": _string(),
                "venueName": _nullable("string"),
                "publicationYear": {"type": "number"},
                "volume": _nullable("string"),
                "issue": _nullable("string"),
                "pages": _nullable("string"),
                "coAuthors": {"type": "array", "items": _string()},
                "citationCount": _nullable("number"),
                "url": _nullable("string"),
            }
        ),
        "experience": _array_of(
            {
                "institution": _string(),
                "department": _nullable("string"),
                "positionTitle": _string(),
                "startDate": _nullable("string"),
                "endDate": _nullable("string"),
                "description": _nullable("string"),
                "employmentType": _string(),
            }
        ),
        "grants": _array_of(
            {
                "title": _string(),
                "fundingInstitution": _string(),
                "amount": _nullable("number"),
                "currencyCode": _string(),
                "awardYear": _nullable("number"),
                "duration": _nullable("string"),
                "role": _nullable("string"),
            }
        ),
        "teaching": _array_of(
            {
                "courseTitle": _string(),
                "educationLevel": _nullable("string"),
                "institution": _nullable("string"),
                "teachingPeriod": _nullable("string"),
            }
        ),
        "supervision": _array_of(
            {
                "studentName": _string(),
                "degreeLevel": _nullable("string"),
                "thesisTitle": _nullable("string"),
                "completionYear": _nullable("number"),
                "role": _nullable("string"),
            }
        ),
        "memberships": _array_of(
            {
                "organization": _string(),
                "startYear": _nullable("number"),
                "endYear": _nullable("number"),
            }
        ),
        "awards": _array_of(
            {
                "awardName": _string(),
                "awardingInstitution": _nullable("string"),
                "awardYear": _nullable("number"),
                "description": _nullable("string"),
            }
        ),
    }
)


class ModelInfo(BaseModel):
    """Display metadata for a supported model."""

    id: str
    name: str
    tier: str

    model_config = {"frozen": True}


KNOWN_MODELS: dict[str, ModelInfo] = {
    info.id: info
    for info in (
        ModelInfo(id="gpt-4.1-2025-04-14", name="GPT-4.1", tier="fast"),
        ModelInfo(id="gpt-5.2-2025-12-11", name="GPT-5.2", tier="intelligent"),
        ModelInfo(id="gpt-5-mini", name="GPT-5 Mini", tier="ultrafast"),
        ModelInfo(id="gpt-5", name="GPT-5", tier="intelligent"),
        ModelInfo(id="gpt-5.2", name="GPT-5.2", tier="advanced"),
    )
}


def model_info(model_id: str) -> ModelInfo:
    """Catalogue entry for a model id; unlisted ids are a custom tier."""
    return KNOWN_MODELS.get(model_id) or ModelInfo(id=model_id, name=model_id, tier="custom")


def resolve_model(requested: str | None, default: str) -> tuple[ModelInfo, bool]:
    """
    Pick the model for a run.

    Args:
        requested: Model asked for by the caller, if any
        default: Configured default model id

    Returns:
        (model, fell_back) where fell_back is True if an unknown model was
        requested and the default was used instead
    """
    fallback = model_info(default)
    if not requested:
        return fallback, False
    if requested in KNOWN_MODELS:
        return KNOWN_MODELS[requested], False
    return fallback, True


def select_model(chunk: Chunk, default: ModelInfo, advanced: ModelInfo) -> ModelInfo:
    """
    Pick the model for one chunk of an unpinned run.

    The first chunk and long publications chunks use the advanced model.

    Args:
        chunk: Chunk about to be sent
        default: Fast model
        advanced: Model for complex chunks

    Returns:
        Model to call for this chunk
    """
    if chunk.id == 1:
        return advanced
    if chunk.start_section == "publications" and chunk.char_count > ADVANCED_PUBLICATIONS_CHARS:
        return advanced
    return default


def build_request(
    text: str,
    *,
    model: str,
    chunk_id: int = 1,
    total_chunks: int = 1,
    continuing_section: str | None = None,
    temperature: float = 0.1,
) -> ExtractionRequest:
    """
    Assemble the model request for one piece of redacted CV text.

    Args:
        text: Redacted CV text
        model: Model identifier
        chunk_id: 1-based position of this piece
        total_chunks: Number of pieces in the run
        continuing_section: Section type this piece starts in, if known
        temperature: Sampling temperature

    Returns:
        Immutable request
    """
    instruction = SYSTEM_INSTRUCTION
    if total_chunks > 1 and continuing_section:
        note = CONTINUATION_NOTE.format(
            chunk_id=chunk_id,
            total_chunks=total_chunks,
            section=continuing_section,
        )
        instruction = f"{note}\n\n{SYSTEM_INSTRUCTION}"

    return ExtractionRequest(
        system_instruction=instruction,
        user_content=text,
        model=model,
        schema_name=SCHEMA_NAME,
        output_schema=CV_SCHEMA,
        temperature=temperature,
    )


# --- Name lookup ---

NAME_SCHEMA_NAME = "cv_name"

NAME_INSTRUCTION = """Extract the person's name from the top of this CV text. The name is typically at the very beginning.

Rules:
- Ignore titles like "Dr.", "Prof.", "Ph.D."
- Return only firstName and lastName
- Handle names in any format (e.g., "JOHN SMITH", "Smith, John", "John A. Smith")
- If no name is present, return empty strings"""

NAME_SCHEMA: dict[str, Any] = _object({"firstName": _string(), "lastName": _string()})


def build_name_request(header: str, *, model: str, temperature: float = 0.1) -> ExtractionRequest:
    """Request for the name on the first lines of a CV."""
    return ExtractionRequest(
        system_instruction=NAME_INSTRUCTION,
        user_content=f"Extract the name from this text:\n\n{header}",
        model=model,
        schema_name=NAME_SCHEMA_NAME,
        output_schema=NAME_SCHEMA,
        temperature=temperature,
    )
