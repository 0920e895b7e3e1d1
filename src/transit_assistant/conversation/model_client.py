"""Model Service client (Anthropic Messages API over httpx)."""

import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from transit_assistant.data.config import AssistantConfig
from transit_assistant.models.conversation import Message, ModelResponse

logger = logging.getLogger(__name__)

SUPPORTED_BLOCK_TYPES = frozenset({"text", "tool_use"})


class ModelServiceError(Exception):
    """The Model Service could not be reached or sent an unusable reply."""


class ModelService(Protocol):
    """Anything that can answer a conversation with text and tool calls."""

    async def create_message(
        self,
        system: str,
        messages: list[Message],
        tools: list[dict[str, Any]],
        max_tokens: int,
    ) -> ModelResponse: ...


def parse_model_response(data: dict[str, Any]) -> ModelResponse:
    """Parse a Messages API response body.

    Block types other than text and tool_use (e.g. thinking) are dropped.

    Raises:
        ModelServiceError: If the body does not have the expected shape.
    """
    try:
        blocks = [b for b in data.get("content") or [] if b.get("type") in SUPPORTED_BLOCK_TYPES]
        return ModelResponse.model_validate(
            {
                "content": blocks,
                "stop_reason": data.get("stop_reason"),
                "usage": data.get("usage") or {},
            }
        )
    except (AttributeError, ValidationError) as e:
        raise ModelServiceError(f"Malformed Model Service response: {e}") from e


class AnthropicClient:
    """Async HTTP client for the Anthropic Messages API.

    Usage:
        async with AnthropicClient(config) as client:
            response = await client.create_message(system, messages, tools, 1024)
    """

    def __init__(self, config: AssistantConfig):
        """Initialize the client.

        Args:
            config: Configuration with API key, endpoint and model.
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "AnthropicClient":
        """Enter async context - create HTTP client."""
        if not self._config.api_key:
            raise ModelServiceError("No API key configured - set ANTHROPIC_API_KEY")
        headers = {
            "x-api-key": self._config.api_key,
            "anthropic-version": self._config.api_version,
            "content-type": "application/json",
        }
        self._client = httpx.AsyncClient(headers=headers, timeout=self._config.request_timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def create_message(
        self,
        system: str,
        messages: list[Message],
        tools: list[dict[str, Any]],
        max_tokens: int,
    ) -> ModelResponse:
        """Send the conversation and return the parsed reply.

        Raises:
            RuntimeError: If client not initialized.
            ModelServiceError: If the request fails or the reply is malformed.
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        payload = {
            "model": self._config.model,
            "max_tokens": max_tokens,
            "system": system,
            "tools": tools,
            "messages": [m.model_dump(mode="json", exclude_none=True) for m in messages],
        }
        try:
            response = await self._client.post(self._config.api_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ModelServiceError(
                f"Model Service returned HTTP {e.response.status_code}: {e.response.text[:500]}"
            ) from e
        except httpx.HTTPError as e:
            raise ModelServiceError(f"Model Service request failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise ModelServiceError(f"Model Service returned a non-JSON body: {e}") from e

        result = parse_model_response(body)
        logger.debug(
            f"Model replied ({result.stop_reason}): {len(result.content)} blocks, "
            f"{result.usage.input_tokens} in / {result.usage.output_tokens} out tokens"
        )
        return result
