"""
API Middleware - Request context and error responses.

Provides:
- Request ID and timing headers, with streamed responses logged when the
  stream closes rather than when headers are sent
- Error-code to HTTP status mapping for AcademiqError
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from academiq.config.errors import AcademiqError, ErrorCode

logger = logging.getLogger(__name__)

__all__ = ["RequestContextMiddleware", "register_error_handlers", "status_for"]

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.EXTRACTION_INVALID_PDF: 400,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.LLM_AUTH_FAILED: 401,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.DUPLICATE_RECORD: 409,
    ErrorCode.EXTRACTION_NO_TEXT: 422,
    ErrorCode.LLM_REJECTED: 422,
    ErrorCode.LLM_RATE_LIMITED: 429,
    ErrorCode.LLM_UNAVAILABLE: 503,
    ErrorCode.LLM_TIMEOUT: 503,
    ErrorCode.LLM_RETRIES_EXHAUSTED: 503,
    ErrorCode.LLM_INVALID_RESPONSE: 503,
    ErrorCode.STORAGE_CONNECTION_FAILED: 503,
}

RETRY_AFTER_SECONDS = 30


def status_for(code: ErrorCode) -> int:
    return STATUS_BY_CODE.get(code, 500)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tag every request with an ID and log how long it took.

    Event streams report time-to-headers in X-Response-Time-Ms and are
    logged again, with their total duration, once the client has the last
    frame or goes away.

    Example:
        >>> app.add_middleware(RequestContextMiddleware)
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception("Unhandled error: %s request_id=%s", e, request_id)
            response = JSONResponse(
                status_code=500,
                content={
                    "error": {
                        "code": ErrorCode.INTERNAL_ERROR.value,
                        "message": "Internal server error",
                        "details": {},
                    },
                    "request_id": request_id,
                },
            )

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"

        if response.headers.get("content-type", "").startswith("text/event-stream"):
            logger.info(
                "%s %s stream opened in %.2fms request_id=%s",
                request.method,
                request.url.path,
                elapsed_ms,
                request_id,
            )
            response.body_iterator = self._track_stream(  # type: ignore[attr-defined]
                response.body_iterator,  # type: ignore[attr-defined]
                request,
                started,
            )
        else:
            logger.info(
                "%s %s status=%d latency_ms=%.2f request_id=%s",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
                request_id,
            )
        return response

    @staticmethod
    async def _track_stream(
        body: AsyncIterator[bytes],
        request: Request,
        started: float,
    ) -> AsyncIterator[bytes]:
        frames = 0
        try:
            async for chunk in body:
                frames += 1
                yield chunk
        finally:
            logger.info(
                "%s %s stream closed frames=%d duration_ms=%.2f request_id=%s",
                request.method,
                request.url.path,
                frames,
                (time.perf_counter() - started) * 1000,
                _request_id(request),
            )


async def academiq_error_handler(request: Request, exc: AcademiqError) -> JSONResponse:
    """Render an AcademiqError as `{"error": {...}, "request_id": ...}`."""
    status = status_for(exc.code)
    request_id = _request_id(request)
    log = logger.warning if status < 500 else logger.error
    log("%s: %s request_id=%s details=%s", exc.code.value, exc.message, request_id, exc.details)

    headers: dict[str, str] = {}
    if exc.code == ErrorCode.LLM_RATE_LIMITED:
        headers["Retry-After"] = str(RETRY_AFTER_SECONDS)
    return JSONResponse(
        status_code=status,
        content={"error": exc.to_dict(), "request_id": request_id},
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AcademiqError, academiq_error_handler)  # type: ignore[arg-type]
