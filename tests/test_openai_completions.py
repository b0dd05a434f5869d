"""Tests for OpenAICompletionService against a mocked transport."""

import json

import httpx
import pytest

from agent_metrics.llm.interface import CompletionService, PromptRequest
from agent_metrics.llm.openai_completions import OpenAICompletionService
from agent_metrics.utils.errors import CompletionRequestError

REQUEST = PromptRequest(
    model_id="gpt-3.5-turbo-instruct",
    prompt_text="Rate this call",
    max_output_tokens=4083,
    temperature=0.0,
)

COMPLETION_RESPONSE = {
    "id": "cmpl-123",
    "object": "text_completion",
    "choices": [
        {"text": "{'activeListening': 'Fair'}", "index": 0, "finish_reason": "stop"},
        {"text": "ignored", "index": 1, "finish_reason": "stop"},
    ],
    "usage": {"prompt_tokens": 4, "completion_tokens": 9},
}


def _make_response(
    status_code: int = 200,
    json_data: dict | None = None,
    text: str = "",
) -> httpx.Response:
    """Build an httpx.Response with proper content encoding."""
    if json_data is not None:
        content = json.dumps(json_data).encode("utf-8")
        headers = {"content-type": "application/json"}
    else:
        content = text.encode("utf-8")
        headers = {"content-type": "text/plain"}
    return httpx.Response(
        status_code=status_code,
        content=content,
        headers=headers,
        request=httpx.Request("POST", "https://mock-api/completions"),
    )


def _build_service(handler) -> OpenAICompletionService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenAICompletionService(
        api_key="test-key", base_url="https://mock-api/", client=client
    )


class TestConstruction:
    def test_requires_api_key(self) -> None:
        with pytest.raises(ValueError, match="api_key is required"):
            OpenAICompletionService(api_key="")

    def test_isinstance_completion_service(self) -> None:
        assert isinstance(OpenAICompletionService(api_key="k"), CompletionService)


class TestComplete:
    async def test_sends_prompt_budget_and_temperature(self) -> None:
        call_log: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            call_log.append(request)
            return _make_response(200, COMPLETION_RESPONSE)

        await _build_service(handler).complete(REQUEST)

        assert len(call_log) == 1
        sent = call_log[0]
        assert sent.method == "POST"
        assert str(sent.url) == "https://mock-api/completions"
        assert sent.headers["authorization"] == "Bearer test-key"
        assert json.loads(sent.content) == {
            "model": "gpt-3.5-turbo-instruct",
            "prompt": "Rate this call",
            "max_tokens": 4083,
            "temperature": 0.0,
        }

    async def test_returns_first_choice_text(self) -> None:
        service = _build_service(lambda r: _make_response(200, COMPLETION_RESPONSE))

        result = await service.complete(REQUEST)

        assert result.text == "{'activeListening': 'Fair'}"
        assert result.raw_response["id"] == "cmpl-123"

    async def test_error_status_raises(self) -> None:
        service = _build_service(lambda r: _make_response(401, text="invalid key"))

        with pytest.raises(CompletionRequestError, match="401") as exc_info:
            await service.complete(REQUEST)

        assert exc_info.value.status_code == 401
        assert exc_info.value.provider == "openai"

    async def test_empty_choices_raises(self) -> None:
        service = _build_service(lambda r: _make_response(200, {"choices": []}))

        with pytest.raises(CompletionRequestError, match="no choices"):
            await service.complete(REQUEST)

    async def test_invalid_json_raises(self) -> None:
        service = _build_service(lambda r: _make_response(200, text="<html>"))

        with pytest.raises(CompletionRequestError, match="not valid JSON"):
            await service.complete(REQUEST)

    async def test_transport_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(CompletionRequestError, match="connection refused"):
            await _build_service(handler).complete(REQUEST)

    async def test_single_attempt_on_failure(self) -> None:
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            return _make_response(503, text="overloaded")

        with pytest.raises(CompletionRequestError):
            await _build_service(handler).complete(REQUEST)

        assert attempts == 1
