"""Tests for response parsing and the chunk extractor."""

import json
from typing import Any
from unittest.mock import AsyncMock

import pytest

from academiq.config.errors import (
    ErrorCode,
    FatalLLMError,
    LLMError,
    TransientLLMError,
    ValidationError,
)
from academiq.domains.orchestration import BoundedExecutor, EventPublisher, RetryPolicy, Stage

from .extractor import LLMExtractor, parse_response, validate_record
from .models import Chunk, LLMResponse, Publication
from .prompts import KNOWN_MODELS


def cv_payload(**overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "personal": {"firstName": "JANE", "lastName": "DOE", "birthYear": None, "birthCountry": None},
        "education": [
            {
                "degreeType": "PhD",
                "institution": "MIT",
                "department": None,
                "subject": "Physics",
                "specialization": None,
                "awardDate": "2010",
                "honors": None,
                "country": "USA",
            }
        ],
        "publications": [
            {
                "title": "Quantum things",
                "publicationType": "Journal Article",
                "venueName": "Nature",
                "publicationYear": 2020,
                "volume": "12",
                "issue": None,
                "pages": "1-5",
                "coAuthors": ["A. Smith"],
                "citationCount": None,
                "url": None,
            }
        ],
        "experience": [],
        "grants": [],
        "teaching": [],
        "supervision": [],
        "memberships": [],
        "awards": [],
    }
    data.update(overrides)
    return data


@pytest.fixture
def chunk() -> Chunk:
    return Chunk(id=1, text="JANE DOE\nDoe, J. (2020) Quantum things.", start_section="personal")


@pytest.fixture
def executor() -> BoundedExecutor:
    return BoundedExecutor(RetryPolicy(max_retries=2, delay_seconds=0), timeout_seconds=5)


# --- Record Validation Tests ---


def test_validate_record_accepts_camel_case() -> None:
    record = validate_record(Publication, {"title": "T", "publicationYear": 2001})
    assert record.publication_year == 2001


def test_validate_record_reports_missing_field() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_record(Publication, {"title": "T"})

    assert "publicationYear" in exc_info.value.message
    assert exc_info.value.code == ErrorCode.VALIDATION_ERROR


# --- Response Parsing Tests ---


def test_parse_valid_response() -> None:
    cv, dropped = parse_response(json.dumps(cv_payload()))

    assert dropped == []
    assert cv.personal.last_name == "DOE"
    assert cv.publications[0].co_authors == ["A. Smith"]
    assert cv.education[0].institution == "MIT"


def test_parse_tolerates_code_fences() -> None:
    content = "```json\n" + json.dumps(cv_payload()) + "\n```"

    cv, _ = parse_response(content)

    assert cv.personal.first_name == "JANE"


def test_parse_drops_invalid_sub_records() -> None:
    payload = cv_payload(
        publications=[
            {"title": "No year"},
            {"title": "Has year", "publicationYear": 2019},
        ]
    )

    cv, dropped = parse_response(json.dumps(payload))

    assert [p.title for p in cv.publications] == ["Has year"]
    assert len(dropped) == 1
    assert dropped[0].section == "publications"
    assert dropped[0].index == 0


def test_parse_ignores_unknown_keys() -> None:
    payload = cv_payload(
        publications=[{"title": "T", "publicationYear": 2019, "email": "x@y.z"}]
    )

    cv, _ = parse_response(json.dumps(payload))

    assert "email" not in cv.publications[0].model_dump()


@pytest.mark.parametrize(
    "content",
    [
        "not json at all",
        json.dumps([1, 2, 3]),
        json.dumps({"personal": {"firstName": "A", "lastName": "B"}}),
        json.dumps(cv_payload(publications={"title": "T"})),
    ],
)
def test_parse_malformed_top_level_is_transient(content: str) -> None:
    with pytest.raises(TransientLLMError) as exc_info:
        parse_response(content)

    assert exc_info.value.code == ErrorCode.LLM_INVALID_RESPONSE


# --- Chunk Extractor Tests ---


async def test_extract_chunk(chunk: Chunk, executor: BoundedExecutor) -> None:
    client = AsyncMock()
    client.complete.return_value = LLMResponse(
        text=json.dumps(cv_payload()), model="gpt-4.1-2025-04-14"
    )
    publisher = EventPublisher()

    result = await LLMExtractor(client, executor).extract_chunk(
        chunk,
        total_chunks=1,
        model=KNOWN_MODELS["gpt-4.1-2025-04-14"],
        publisher=publisher,
        stage=Stage.PARSING_BASE,
    )

    assert result.chunk_id == 1
    assert result.model == "gpt-4.1-2025-04-14"
    assert result.cv.counts()["publications"] == 1
    assert result.metrics.input_chars == chunk.char_count

    request = client.complete.call_args.args[0]
    assert request.user_content == chunk.text
    assert request.model == "gpt-4.1-2025-04-14"

    messages = [e.message for e in publisher.history]
    assert messages == [
        "Chunk 1/1: calling model (attempt 1/3)",
        "Chunk 1/1: model responded",
    ]


async def test_extract_chunk_retries_malformed_response(
    chunk: Chunk, executor: BoundedExecutor
) -> None:
    client = AsyncMock()
    client.complete.side_effect = [
        LLMResponse(text="{}", model="gpt-5"),
        LLMResponse(text=json.dumps(cv_payload()), model="gpt-5"),
    ]
    publisher = EventPublisher()

    result = await LLMExtractor(client, executor).extract_chunk(
        chunk,
        total_chunks=1,
        model=KNOWN_MODELS["gpt-5"],
        publisher=publisher,
        stage=Stage.PARSING_BASE,
    )

    assert client.complete.await_count == 2
    assert result.cv.personal.first_name == "JANE"
    assert [e.stage for e in publisher.history].count(Stage.WARNING) == 1


async def test_extract_chunk_stops_on_fatal_error(chunk: Chunk, executor: BoundedExecutor) -> None:
    client = AsyncMock()
    client.complete.side_effect = FatalLLMError("bad key")

    with pytest.raises(LLMError) as exc_info:
        await LLMExtractor(client, executor).extract_chunk(
            chunk,
            total_chunks=1,
            model=KNOWN_MODELS["gpt-5"],
            publisher=EventPublisher(),
            stage=Stage.PARSING_BASE,
        )

    assert exc_info.value.code == ErrorCode.LLM_AUTH_FAILED
    assert client.complete.await_count == 1
