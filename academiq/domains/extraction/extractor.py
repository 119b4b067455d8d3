"""
LLM Extractor - Structured CV extraction through a chat-completion model.

Each chunk of redacted text becomes one bounded model call. The response is
checked at two levels: a malformed top level is a transient failure and is
retried; an individual invalid sub-record is dropped and reported.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from academiq.config.errors import ErrorCode, TransientLLMError, ValidationError

from .models import (
    SECTION_MODELS,
    Chunk,
    ChunkResult,
    CVRecord,
    DroppedRecord,
    PersonalInfo,
    SpeedMetrics,
    StructuredCV,
)
from .normalization import normalize_name
from .prompts import ModelInfo, build_request

if TYPE_CHECKING:
    from academiq.domains.orchestration.contracts import ProgressSink
    from academiq.domains.orchestration.models import Stage
    from academiq.domains.orchestration.retry import BoundedExecutor

    from .contracts import LLMClient

logger = logging.getLogger(__name__)

__all__ = ["LLMExtractor", "parse_name", "parse_response", "validate_record"]

TOP_LEVEL_KEYS = ("personal", *SECTION_MODELS)


def _malformed(message: str, content: str) -> TransientLLMError:
    return TransientLLMError(
        message,
        {"contentPreview": content[:200]},
        code=ErrorCode.LLM_INVALID_RESPONSE,
    )


def _load_json(content: str) -> Any:
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        # Tolerate prose or code fences around the object
        start = content.find("{")
        end = content.rfind("}") + 1
        if start >= 0 and end > start:
            try:
                return json.loads(content[start:end])
            except json.JSONDecodeError:
                pass
        raise _malformed("Model response is not valid JSON", content) from None


def validate_record(model: type[CVRecord], data: Any) -> CVRecord:
    """
    Validate one sub-record.

    Raises:
        ValidationError: If required fields are missing or mistyped
    """
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        reasons = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(reasons, {"record": model.__name__}) from e


def parse_response(content: str) -> tuple[StructuredCV, list[DroppedRecord]]:
    """
    Turn model output into a record, dropping invalid sub-records.

    Args:
        content: Raw response text

    Returns:
        (record, dropped sub-records)

    Raises:
        TransientLLMError: If the top-level shape is wrong
    """
    data = _load_json(content)
    if not isinstance(data, dict):
        raise _malformed("Model response is not a JSON object", content)

    missing = [key for key in TOP_LEVEL_KEYS if key not in data]
    if missing:
        raise _malformed(f"Model response is missing keys: {', '.join(missing)}", content)

    try:
        personal = validate_record(PersonalInfo, data["personal"])
    except ValidationError as e:
        raise _malformed(f"Invalid personal section: {e.message}", content) from e

    sections: dict[str, list[CVRecord]] = {}
    dropped: list[DroppedRecord] = []
    for key, model in SECTION_MODELS.items():
        items = data[key]
        if not isinstance(items, list):
            raise _malformed(f"Section '{key}' is not a list", content)
        valid = []
        for index, item in enumerate(items):
            try:
                valid.append(validate_record(model, item))
            except ValidationError as e:
                dropped.append(DroppedRecord(section=key, index=index, reason=e.message))
        sections[key] = valid

    return StructuredCV(personal=personal, **sections), dropped


def parse_name(content: str) -> PersonalInfo:
    """
    Read a name-lookup response.

    Returns:
        Personal info with only the normalized names set; either may be empty

    Raises:
        TransientLLMError: If the response is not a name object
    """
    data = _load_json(content)
    if not isinstance(data, dict):
        raise _malformed("Model response is not a JSON object", content)
    try:
        name = validate_record(PersonalInfo, data)
    except ValidationError as e:
        raise _malformed(f"Invalid name: {e.message}", content) from e
    return PersonalInfo(
        first_name=normalize_name(name.first_name),
        last_name=normalize_name(name.last_name),
    )


class LLMExtractor:
    """
    Chunk extractor over any LLMClient.

    Example:
        >>> extractor = LLMExtractor(OpenAIClient(), BoundedExecutor())
        >>> result = await extractor.extract_chunk(
        ...     chunk, total_chunks=1, model=model, publisher=publisher,
        ...     stage=Stage.PARSING_BASE,
        ... )
        >>> result.cv.personal.last_name
        'Doe'
    """

    def __init__(
        self,
        client: LLMClient,
        executor: BoundedExecutor,
        temperature: float = 0.1,
    ) -> None:
        """
        Initialize extractor.

        Args:
            client: Model client performing single calls
            executor: Timeout and retry bounds for each call
            temperature: Sampling temperature
        """
        self._client = client
        self._executor = executor
        self._temperature = temperature

    async def extract_chunk(
        self,
        chunk: Chunk,
        *,
        total_chunks: int,
        model: ModelInfo,
        publisher: ProgressSink,
        stage: Stage,
        continuing_section: str | None = None,
    ) -> ChunkResult:
        """
        Extract a partial record from one chunk.

        Args:
            chunk: Redacted text slice
            total_chunks: Number of chunks in the run
            model: Model to call
            publisher: Receives per-attempt events
            stage: Stage the attempts are reported under
            continuing_section: Section the chunk starts in

        Returns:
            Partial record, call metrics and any dropped sub-records

        Raises:
            LLMError: Fatal failure or retries exhausted
        """
        request = build_request(
            chunk.text,
            model=model.id,
            chunk_id=chunk.id,
            total_chunks=total_chunks,
            continuing_section=continuing_section,
            temperature=self._temperature,
        )
        label = f"Chunk {chunk.id}/{total_chunks}"

        async def attempt() -> ChunkResult:
            started = time.monotonic()
            response = await self._client.complete(request)
            cv, dropped = parse_response(response.text)
            return ChunkResult(
                chunk_id=chunk.id,
                cv=cv,
                metrics=SpeedMetrics(
                    input_chars=chunk.char_count,
                    output_chars=len(response.text),
                    elapsed_ms=int((time.monotonic() - started) * 1000),
                ),
                model=response.model or model.id,
                dropped=dropped,
            )

        logger.info("Extracting %s (%d chars) with %s", label, chunk.char_count, model.id)
        result = await self._executor.run(
            attempt,
            publisher=publisher,
            stage=stage,
            label=label,
            details={
                "chunkId": chunk.id,
                "totalChunks": total_chunks,
                "inputChars": chunk.char_count,
                "continuingSection": continuing_section,
                "model": model.id,
                "modelName": model.name,
                "modelTier": model.tier,
            },
        )
        if result.dropped:
            logger.warning("%s: dropped %d invalid records", label, len(result.dropped))
        return result
