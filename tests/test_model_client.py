"""Tests for the Model Service client."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from transit_assistant.conversation.model_client import (
    AnthropicClient,
    ModelServiceError,
    parse_model_response,
)
from transit_assistant.data.config import AssistantConfig
from transit_assistant.models.conversation import (
    Message,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)


def create_api_response() -> dict:
    """Create a sample Messages API response for testing."""
    return {
        "id": "msg_01",
        "type": "message",
        "role": "assistant",
        "content": [
            {"type": "thinking", "thinking": "Need the date first", "signature": "sig"},
            {"type": "text", "text": "Je regarde les horaires."},
            {
                "type": "tool_use",
                "id": "toolu_01",
                "name": "getCurrentDateTime",
                "input": {},
            },
        ],
        "stop_reason": "tool_use",
        "usage": {"input_tokens": 812, "output_tokens": 64},
    }


@pytest.fixture
def config() -> AssistantConfig:
    return AssistantConfig(
        ANTHROPIC_API_KEY="test-key",
        TRANSIT_MODEL="claude-haiku-4-5",
        _env_file=None,
    )


def mock_http_client(json_body: dict | None = None, error: Exception | None = None) -> AsyncMock:
    mock_response = MagicMock()
    mock_response.json.return_value = json_body or {}
    mock_response.raise_for_status = MagicMock(side_effect=error)
    mock_client = AsyncMock()
    mock_client.post.return_value = mock_response
    return mock_client


class TestParseModelResponse:
    """Tests for parse_model_response."""

    def test_parses_text_and_tool_use(self) -> None:
        """Test that text and tool_use blocks are kept in order."""
        response = parse_model_response(create_api_response())

        assert [block.type for block in response.content] == ["text", "tool_use"]
        assert response.text == "Je regarde les horaires."
        assert response.tool_uses[0].name == "getCurrentDateTime"
        assert response.stop_reason == "tool_use"
        assert response.usage.input_tokens == 812
        assert response.usage.output_tokens == 64

    def test_missing_usage_defaults_to_zero(self) -> None:
        """Test that a body without usage still parses."""
        response = parse_model_response({"content": [{"type": "text", "text": "Bonjour"}]})

        assert response.usage.input_tokens == 0
        assert response.text == "Bonjour"

    def test_malformed_body(self) -> None:
        """Test that an unusable body raises ModelServiceError."""
        with pytest.raises(ModelServiceError):
            parse_model_response({"content": [{"type": "tool_use", "name": "x"}]})
        with pytest.raises(ModelServiceError):
            parse_model_response({"content": ["not a block"]})


class TestAnthropicClient:
    """Tests for AnthropicClient."""

    async def test_sends_headers_and_payload(self, config: AssistantConfig) -> None:
        """Test that the request carries the API key, version and full conversation."""
        messages = [
            Message(role="user", content="Prochain bus?"),
            Message(
                role="assistant",
                content=[ToolUseBlock(id="toolu_01", name="getCurrentDateTime", input={})],
            ),
            Message(
                role="user",
                content=[ToolResultBlock(tool_use_id="toolu_01", content='{"date": "2025-12-03"}')],
            ),
        ]

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = mock_http_client(create_api_response())
            mock_client_class.return_value = mock_client

            async with AnthropicClient(config) as client:
                response = await client.create_message(
                    system="Tu es un assistant.",
                    messages=messages,
                    tools=[{"name": "getCurrentDateTime"}],
                    max_tokens=512,
                )

        headers = mock_client_class.call_args.kwargs["headers"]
        assert headers["x-api-key"] == "test-key"
        assert headers["anthropic-version"] == "2023-06-01"

        url = mock_client.post.call_args.args[0]
        payload = mock_client.post.call_args.kwargs["json"]
        assert url == config.api_url
        assert payload["model"] == "claude-haiku-4-5"
        assert payload["max_tokens"] == 512
        assert payload["system"] == "Tu es un assistant."
        assert payload["messages"][0] == {"role": "user", "content": "Prochain bus?"}
        assert payload["messages"][2]["content"][0] == {
            "type": "tool_result",
            "tool_use_id": "toolu_01",
            "content": '{"date": "2025-12-03"}',
        }
        assert isinstance(response.content[0], TextBlock)
        mock_client.aclose.assert_awaited_once()

    async def test_http_status_error(self, config: AssistantConfig) -> None:
        """Test that HTTP errors become ModelServiceError."""
        error_response = MagicMock()
        error_response.status_code = 529
        error_response.text = "Overloaded"
        error = httpx.HTTPStatusError("529", request=MagicMock(), response=error_response)

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client_class.return_value = mock_http_client(error=error)

            async with AnthropicClient(config) as client:
                with pytest.raises(ModelServiceError, match="HTTP 529"):
                    await client.create_message("system", [], [], 100)

    async def test_non_json_body(self, config: AssistantConfig) -> None:
        """Test that a reply body that is not JSON becomes ModelServiceError."""
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = mock_http_client()
            mock_client.post.return_value.json.side_effect = json.JSONDecodeError(
                "Expecting value", "<html>", 0
            )
            mock_client_class.return_value = mock_client

            async with AnthropicClient(config) as client:
                with pytest.raises(ModelServiceError, match="non-JSON body"):
                    await client.create_message("system", [], [], 100)

    async def test_transport_error(self, config: AssistantConfig) -> None:
        """Test that connection failures become ModelServiceError."""
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client = AsyncMock()
            mock_client.post.side_effect = httpx.ConnectError("connection refused")
            mock_client_class.return_value = mock_client

            async with AnthropicClient(config) as client:
                with pytest.raises(ModelServiceError, match="request failed"):
                    await client.create_message("system", [], [], 100)

    async def test_missing_api_key(self) -> None:
        """Test that entering the client without an API key fails."""
        config = AssistantConfig(ANTHROPIC_API_KEY=None, _env_file=None)

        with pytest.raises(ModelServiceError, match="No API key"):
            async with AnthropicClient(config):
                pass

    async def test_not_initialized(self, config: AssistantConfig) -> None:
        """Test that using the client outside async with fails."""
        client = AnthropicClient(config)

        with pytest.raises(RuntimeError, match="Client not initialized"):
            await client.create_message("system", [], [], 100)
