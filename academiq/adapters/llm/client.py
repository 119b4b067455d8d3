"""
OpenAI Client - Structured-output chat completions over httpx.

Performs exactly one HTTP call per complete(); timeouts and retries belong
to the caller's BoundedExecutor. Failures are classified here:

    transient: transport errors, 408, 429, 5xx, empty or truncated output
    fatal:     missing API key, 401/403, other 4xx, model refusal
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from academiq.config import ErrorCode, FatalLLMError, TransientLLMError, get_settings
from academiq.domains.extraction.models import ExtractionRequest, LLMResponse

logger = logging.getLogger(__name__)

__all__ = ["OpenAIClient"]

TRANSIENT_STATUSES = frozenset({408, 429})


class OpenAIClient:
    """
    Client for an OpenAI-compatible chat completions endpoint.

    Example:
        >>> client = OpenAIClient(api_key="sk-...")
        >>> response = await client.complete(build_request(text, model="gpt-4.1-2025-04-14"))
        >>> data = json.loads(response.text)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize client.

        Args:
            api_key: Provider credential, default from settings
            base_url: Endpoint root, default from settings
            transport: Custom httpx transport (tests)
        """
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self._transport = transport

    def _body(self, request: ExtractionRequest) -> dict[str, Any]:
        return {
            "model": request.model,
            "messages": [
                {"role": "system", "content": request.system_instruction},
                {"role": "user", "content": request.user_content},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": request.schema_name,
                    "strict": True,
                    "schema": request.output_schema,
                },
            },
            "temperature": request.temperature,
        }

    async def complete(self, request: ExtractionRequest) -> LLMResponse:
        """
        Send one structured-output request.

        Args:
            request: Model request

        Returns:
            Response with the raw JSON text

        Raises:
            FatalLLMError: Credential missing or request rejected
            TransientLLMError: Network failure, throttling or unusable output
        """
        if not self.api_key:
            raise FatalLLMError(
                "OPENAI_API_KEY not configured",
                {"hint": "Set OPENAI_API_KEY in the environment or .env"},
            )

        url = f"{self.base_url}/chat/completions"
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=None) as client:
                response = await client.post(
                    url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=self._body(request),
                )
        except httpx.TransportError as e:
            raise TransientLLMError(
                f"Model endpoint unreachable: {e}",
                {"url": url},
                code=ErrorCode.LLM_UNAVAILABLE,
            ) from e

        self._raise_for_status(response)
        return self._parse(response, request.model)

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status == 200:
            return

        body = response.text[:500]
        logger.error("Model API error: %s %s", status, body)
        details = {"status": status, "error": body}

        if status in (401, 403):
            raise FatalLLMError(f"Model API rejected credentials ({status})", details)
        if status == 429:
            raise TransientLLMError("Model API rate limited", details, code=ErrorCode.LLM_RATE_LIMITED)
        if status in TRANSIENT_STATUSES or status >= 500:
            raise TransientLLMError(f"Model API error: {status}", details)
        raise FatalLLMError(f"Model API error: {status}", details, code=ErrorCode.LLM_REJECTED)

    def _parse(self, response: httpx.Response, model: str) -> LLMResponse:
        try:
            data = response.json()
        except ValueError as e:
            raise TransientLLMError(
                "Model API returned a non-JSON body",
                code=ErrorCode.LLM_INVALID_RESPONSE,
            ) from e

        choices = data.get("choices") if isinstance(data, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise TransientLLMError(
                "Invalid model response structure",
                {"body": str(data)[:200]},
                code=ErrorCode.LLM_INVALID_RESPONSE,
            )

        if message.get("refusal"):
            raise FatalLLMError(
                f"Model refused: {message['refusal']}",
                code=ErrorCode.LLM_REJECTED,
            )

        content = message.get("content")
        if not content:
            raise TransientLLMError(
                "Invalid model response structure",
                {"finishReason": first.get("finish_reason")},
                code=ErrorCode.LLM_INVALID_RESPONSE,
            )

        usage = data.get("usage") or {}
        return LLMResponse(
            text=content,
            model=data.get("model") or model,
            tokens_used=usage.get("total_tokens"),
        )
