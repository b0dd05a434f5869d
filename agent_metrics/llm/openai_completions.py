"""OpenAI-compatible text completion client.

Implements CompletionService against the legacy /completions endpoint,
which takes a raw prompt and an explicit max_tokens budget.
"""

import logging

import httpx

from agent_metrics.config import DEFAULT_COMPLETION_BASE_URL
from agent_metrics.llm.interface import CompletionResult, CompletionService, PromptRequest
from agent_metrics.utils.errors import CompletionRequestError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120.0


class OpenAICompletionService(CompletionService):
    """Completion service for OpenAI-compatible /completions APIs.

    Args:
        api_key: API key sent as a bearer token.
        base_url: API base URL (default OpenAI production endpoint).
        timeout: Request timeout in seconds.
        client: Optional pre-configured httpx.AsyncClient.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_COMPLETION_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    async def complete(self, request: PromptRequest) -> CompletionResult:
        """Send one completion request and return the first choice.

        Raises:
            CompletionRequestError: On transport failure, a non-200 status,
                or a response without choices.
        """
        if self._client is not None:
            return await self._post(self._client, request)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._post(client, request)

    async def _post(
        self, client: httpx.AsyncClient, request: PromptRequest
    ) -> CompletionResult:
        url = f"{self._base_url}/completions"
        headers = {"Authorization": f"Bearer {self._api_key}"}
        payload = {
            "model": request.model_id,
            "prompt": request.prompt_text,
            "max_tokens": request.max_output_tokens,
            "temperature": request.temperature,
        }

        try:
            response = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise CompletionRequestError(
                f"Completion request failed: {exc}", provider="openai"
            ) from exc

        if response.status_code != 200:
            raise CompletionRequestError(
                f"Completion request failed with status {response.status_code}: "
                f"{response.text}",
                provider="openai",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise CompletionRequestError(
                "Completion response is not valid JSON",
                provider="openai",
                status_code=response.status_code,
            ) from exc

        choices = body.get("choices") or []
        if not choices:
            raise CompletionRequestError(
                "Completion response contained no choices",
                provider="openai",
                status_code=response.status_code,
            )

        usage = body.get("usage", {})
        logger.debug(
            "Completion used %s prompt and %s completion tokens",
            usage.get("prompt_tokens"),
            usage.get("completion_tokens"),
        )
        return CompletionResult(text=choices[0].get("text", ""), raw_response=body)
