"""
Bounded Execution - Per-attempt timeout plus bounded retry for external calls.

State machine per call:
    Idle -> Calling -> Success
                    -> TransientFailure -> Calling (while attempts remain)
                    -> FatalFailure -> Failed
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from academiq.config.errors import ErrorCode, LLMError, TransientLLMError, is_transient

from .models import Stage

if TYPE_CHECKING:
    from academiq.config.settings import Settings

    from .contracts import ProgressSink

logger = logging.getLogger(__name__)

__all__ = ["BoundedExecutor", "RetryPolicy"]

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with a fixed delay and a retryable-error predicate.

    Example:
        >>> policy = RetryPolicy(max_retries=2, delay_seconds=0.5)
        >>> async for attempt in policy.retrying():
        ...     with attempt:
        ...         await call()
    """

    max_retries: int = 2
    delay_seconds: float = 0.5
    retryable: Callable[[BaseException], bool] = is_transient

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_retries=settings.llm_max_retries,
            delay_seconds=settings.llm_retry_delay_ms / 1000,
        )

    def retrying(self) -> AsyncRetrying:
        """Fresh tenacity controller for one call."""
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.delay_seconds),
            retry=retry_if_exception(self.retryable),
            reraise=True,
        )


class BoundedExecutor:
    """
    Runs an async operation under a wall-clock timeout per attempt.

    Timeouts cancel the in-flight attempt and count as transient. Every
    attempt outcome is published before control returns to the caller.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        timeout_seconds: float = 50.0,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> BoundedExecutor:
        return cls(
            policy=RetryPolicy.from_settings(settings),
            timeout_seconds=settings.llm_attempt_timeout_seconds,
        )

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        publisher: ProgressSink,
        stage: Stage,
        label: str,
        details: dict[str, Any] | None = None,
    ) -> T:
        """
        Execute operation with bounded retries.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            publisher: Receives one event per attempt outcome
            stage: Stage for call and success events
            label: Human-readable name of the call, e.g. "Chunk 1/3"
            details: Extra fields added to the call event

        Returns:
            The operation's result

        Raises:
            LLMError: Fatal failure, or transient failures exhausted every attempt
        """
        max_attempts = self.policy.max_attempts
        attempt = 0

        try:
            async for state in self.policy.retrying():
                with state:
                    attempt = state.retry_state.attempt_number
                    publisher.publish(
                        stage,
                        f"{label}: calling model (attempt {attempt}/{max_attempts})",
                        {**(details or {}), "attempt": attempt, "maxAttempts": max_attempts},
                    )
                    started = time.monotonic()
                    try:
                        result = await asyncio.wait_for(operation(), timeout=self.timeout_seconds)
                    except asyncio.TimeoutError:
                        error = TransientLLMError(
                            f"{label} timed out after {self.timeout_seconds:g}s",
                            {"attempt": attempt, "timeoutSeconds": self.timeout_seconds},
                            code=ErrorCode.LLM_TIMEOUT,
                        )
                        self._report_failure(publisher, label, attempt, error)
                        raise error from None
                    except LLMError as e:
                        self._report_failure(publisher, label, attempt, e)
                        raise

                    elapsed_ms = int((time.monotonic() - started) * 1000)
                    publisher.publish(
                        stage,
                        f"{label}: model responded",
                        {"attempt": attempt, "elapsedMs": elapsed_ms},
                    )
        except LLMError as e:
            if not self.policy.retryable(e):
                raise
            raise LLMError(
                f"{label} failed after {attempt} attempts: {e.message}",
                {"attempts": attempt, "lastError": e.to_dict()},
                code=ErrorCode.LLM_RETRIES_EXHAUSTED,
            ) from e

        return result

    def _report_failure(
        self,
        publisher: ProgressSink,
        label: str,
        attempt: int,
        error: LLMError,
    ) -> None:
        retryable = self.policy.retryable(error)
        remaining = self.policy.max_attempts - attempt
        if retryable and remaining > 0:
            message = f"{label}: attempt {attempt} failed, retrying in {self.policy.delay_seconds:g}s"
        elif retryable:
            message = f"{label}: attempt {attempt} failed, no attempts left"
        else:
            message = f"{label}: fatal error, not retrying"

        logger.warning("%s (%s)", message, error)
        publisher.publish(
            Stage.WARNING,
            message,
            {"attempt": attempt, "retryable": retryable, "error": error.to_dict()},
        )
