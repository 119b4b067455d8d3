"""
Tests for the OpenAI-compatible client adapter.
"""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from academiq.config.errors import ErrorCode, FatalLLMError, TransientLLMError
from academiq.domains.extraction import ExtractionRequest, build_request

from .client import OpenAIClient

BASE_URL = "https://llm.test/v1"


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> OpenAIClient:
    return OpenAIClient(api_key="sk-test", base_url=BASE_URL, transport=httpx.MockTransport(handler))


def completion(content: str | None, **message: object) -> dict:
    return {
        "model": "gpt-4.1-2025-04-14",
        "choices": [
            {"message": {"role": "assistant", "content": content, **message}, "finish_reason": "stop"}
        ],
        "usage": {"total_tokens": 321},
    }


@pytest.fixture
def cv_request() -> ExtractionRequest:
    return build_request("JANE DOE\n[PAGE 1 END]", model="gpt-4.1-2025-04-14")


# --- Success Tests ---


async def test_complete_sends_strict_schema(cv_request) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=completion('{"personal": {}}'))

    response = await make_client(handler).complete(cv_request)

    assert response.text == '{"personal": {}}'
    assert response.model == "gpt-4.1-2025-04-14"
    assert response.tokens_used == 321

    sent = seen[0]
    assert str(sent.url) == f"{BASE_URL}/chat/completions"
    assert sent.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(sent.content)
    assert body["model"] == "gpt-4.1-2025-04-14"
    assert body["messages"][0]["role"] == "system"
    assert body["messages"][1]["content"] == "JANE DOE\n[PAGE 1 END]"
    assert body["response_format"]["type"] == "json_schema"
    assert body["response_format"]["json_schema"]["strict"] is True
    assert body["response_format"]["json_schema"]["name"] == "academic_cv"


# --- Failure Classification Tests ---


async def test_missing_api_key_is_fatal(cv_request) -> None:
    client = OpenAIClient(api_key="", base_url=BASE_URL)

    with pytest.raises(FatalLLMError) as exc_info:
        await client.complete(cv_request)

    assert exc_info.value.code == ErrorCode.LLM_AUTH_FAILED


@pytest.mark.parametrize(
    "status,error_type,code",
    [
        (401, FatalLLMError, ErrorCode.LLM_AUTH_FAILED),
        (403, FatalLLMError, ErrorCode.LLM_AUTH_FAILED),
        (400, FatalLLMError, ErrorCode.LLM_REJECTED),
        (408, TransientLLMError, ErrorCode.LLM_UNAVAILABLE),
        (429, TransientLLMError, ErrorCode.LLM_RATE_LIMITED),
        (500, TransientLLMError, ErrorCode.LLM_UNAVAILABLE),
        (503, TransientLLMError, ErrorCode.LLM_UNAVAILABLE),
    ],
)
async def test_http_status_classification(cv_request, status, error_type, code) -> None:
    client = make_client(lambda request: httpx.Response(status, json={"error": {"message": "nope"}}))

    with pytest.raises(error_type) as exc_info:
        await client.complete(cv_request)

    assert exc_info.value.code == code
    assert exc_info.value.details["status"] == status


async def test_network_error_is_transient(cv_request) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransientLLMError) as exc_info:
        await make_client(handler).complete(cv_request)

    assert exc_info.value.code == ErrorCode.LLM_UNAVAILABLE


async def test_refusal_is_fatal(cv_request) -> None:
    client = make_client(
        lambda request: httpx.Response(200, json=completion(None, refusal="I can't help with that"))
    )

    with pytest.raises(FatalLLMError) as exc_info:
        await client.complete(cv_request)

    assert exc_info.value.code == ErrorCode.LLM_REJECTED


async def test_empty_content_is_transient(cv_request) -> None:
    client = make_client(lambda request: httpx.Response(200, json=completion("")))

    with pytest.raises(TransientLLMError) as exc_info:
        await client.complete(cv_request)

    assert exc_info.value.code == ErrorCode.LLM_INVALID_RESPONSE


async def test_non_json_body_is_transient(cv_request) -> None:
    client = make_client(lambda request: httpx.Response(200, text="<html>gateway</html>"))

    with pytest.raises(TransientLLMError) as exc_info:
        await client.complete(cv_request)

    assert exc_info.value.code == ErrorCode.LLM_INVALID_RESPONSE


@pytest.mark.parametrize(
    "body",
    [
        [{"choices": []}],
        {"choices": ["not an object"]},
        {"choices": [{"message": "plain text"}]},
        {"choices": []},
    ],
)
async def test_unexpected_body_shape_is_transient(cv_request, body) -> None:
    client = make_client(lambda request: httpx.Response(200, json=body))

    with pytest.raises(TransientLLMError) as exc_info:
        await client.complete(cv_request)

    assert exc_info.value.code == ErrorCode.LLM_INVALID_RESPONSE
