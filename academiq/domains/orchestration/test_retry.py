"""Tests for bounded retries and per-attempt timeouts."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from academiq.config import Settings
from academiq.config.errors import ErrorCode, FatalLLMError, LLMError, TransientLLMError

from .events import EventPublisher
from .models import Stage
from .retry import BoundedExecutor, RetryPolicy


@pytest.fixture
def publisher() -> EventPublisher:
    return EventPublisher()


def executor(timeout: float = 1.0, retries: int = 2) -> BoundedExecutor:
    return BoundedExecutor(RetryPolicy(max_retries=retries, delay_seconds=0), timeout_seconds=timeout)


def warnings(publisher: EventPublisher) -> list[str]:
    return [e.message for e in publisher.history if e.stage == Stage.WARNING]


# --- Policy Tests ---


def test_policy_from_settings() -> None:
    settings = Settings(llm_max_retries=4, llm_retry_delay_ms=250)

    policy = RetryPolicy.from_settings(settings)

    assert policy.max_attempts == 5
    assert policy.delay_seconds == 0.25


def test_executor_from_settings() -> None:
    bounded = BoundedExecutor.from_settings(Settings(llm_attempt_timeout_seconds=12))

    assert bounded.timeout_seconds == 12
    assert bounded.policy.max_attempts == 3


# --- Executor Tests ---


async def test_success_on_first_attempt(publisher: EventPublisher) -> None:
    operation = AsyncMock(return_value="ok")

    result = await executor().run(operation, publisher=publisher, stage=Stage.PARSING_BASE, label="Chunk 1/1")

    assert result == "ok"
    assert operation.await_count == 1
    assert warnings(publisher) == []


async def test_transient_failure_then_success(publisher: EventPublisher) -> None:
    operation = AsyncMock(side_effect=[TransientLLMError("flaky"), "ok"])

    result = await executor().run(operation, publisher=publisher, stage=Stage.PARSING_BASE, label="Chunk 1/1")

    assert result == "ok"
    assert operation.await_count == 2
    assert warnings(publisher) == ["Chunk 1/1: attempt 1 failed, retrying in 0s"]


async def test_fatal_failure_is_not_retried(publisher: EventPublisher) -> None:
    operation = AsyncMock(side_effect=FatalLLMError("bad key"))

    with pytest.raises(FatalLLMError):
        await executor().run(operation, publisher=publisher, stage=Stage.PARSING_BASE, label="Chunk 1/1")

    assert operation.await_count == 1
    assert warnings(publisher) == ["Chunk 1/1: fatal error, not retrying"]


async def test_timeouts_exhaust_every_attempt(publisher: EventPublisher) -> None:
    calls = 0

    async def hang() -> str:
        nonlocal calls
        calls += 1
        await asyncio.sleep(10)
        return "never"

    with pytest.raises(LLMError) as exc_info:
        await executor(timeout=0.01).run(hang, publisher=publisher, stage=Stage.PARSING_BASE, label="Chunk 1/1")

    error = exc_info.value
    assert calls == 3
    assert error.code == ErrorCode.LLM_RETRIES_EXHAUSTED
    assert error.details["attempts"] == 3
    assert error.details["lastError"]["code"] == ErrorCode.LLM_TIMEOUT.value
    assert len(warnings(publisher)) == 3
    assert warnings(publisher)[-1] == "Chunk 1/1: attempt 3 failed, no attempts left"


async def test_zero_retries_makes_one_attempt(publisher: EventPublisher) -> None:
    operation = AsyncMock(side_effect=TransientLLMError("flaky"))

    with pytest.raises(LLMError) as exc_info:
        await executor(retries=0).run(operation, publisher=publisher, stage=Stage.PARSING_BASE, label="x")

    assert operation.await_count == 1
    assert exc_info.value.code == ErrorCode.LLM_RETRIES_EXHAUSTED


async def test_attempt_events_carry_details(publisher: EventPublisher) -> None:
    await executor().run(
        AsyncMock(return_value=1),
        publisher=publisher,
        stage=Stage.PARSING_PUBS,
        label="Chunk 2/3",
        details={"chunkId": 2},
    )

    call_event = publisher.history[0]
    assert call_event.stage == Stage.PARSING_PUBS
    assert call_event.details == {"chunkId": 2, "attempt": 1, "maxAttempts": 3}
