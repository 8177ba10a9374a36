"""Integration tests for LLM adapter layer."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from victry.adapters.llm import OpenAIClient, create_llm_client
from victry.core.config import LLMSettings
from victry.core.errors import AppError, ErrorCategory, ErrorCode, is_retryable_error


def _completion(content: str | None, finish_reason: str = "stop") -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content), finish_reason=finish_reason)]
    return response


def _patched(client: OpenAIClient, **kwargs):
    return patch.object(client.client.chat.completions, "create", new_callable=AsyncMock, **kwargs)


class TestOpenAIClientIntegration:
    """Test OpenAI client integration with mocked API calls."""

    @pytest.mark.asyncio
    async def test_generate_json_success(self) -> None:
        """Test successful JSON generation from OpenAI client."""
        client = OpenAIClient(api_key="test-key-123", model="gpt-4o")

        with _patched(client, return_value=_completion('{"status": "success", "data": {"key": "value"}}')) as mock_create:
            result = await client.generate_json(
                prompt="Generate test JSON",
                schema={"type": "object"},
                temperature=0.1,
                max_tokens=500,
                unsupported="dropped",
            )

        assert result == {"status": "success", "data": {"key": "value"}}
        call_kwargs = mock_create.call_args.kwargs
        assert call_kwargs["response_format"] == {"type": "json_object"}
        assert call_kwargs["temperature"] == 0.1
        assert call_kwargs["max_tokens"] == 500
        assert "unsupported" not in call_kwargs

    @pytest.mark.asyncio
    async def test_no_schema_means_no_json_mode(self) -> None:
        client = OpenAIClient(api_key="test-key", model="gpt-4o")

        with _patched(client, return_value=_completion('{"ok": true}')) as mock_create:
            await client.generate_json(prompt="Test")

        assert "response_format" not in mock_create.call_args.kwargs

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "content, finish_reason, code",
        [
            ("This is not JSON", "stop", ErrorCode.AI_GENERATION_ERROR),
            ("[1, 2]", "stop", ErrorCode.AI_GENERATION_ERROR),
            ("", "stop", ErrorCode.AI_GENERATION_ERROR),
            (None, "stop", ErrorCode.AI_GENERATION_ERROR),
            ('{"partial": ', "length", ErrorCode.AI_TOKEN_LIMIT),
            (None, "content_filter", ErrorCode.AI_CONTENT_POLICY),
        ],
    )
    async def test_bad_output_is_classified(self, content, finish_reason, code) -> None:
        client = OpenAIClient(api_key="test-key", model="gpt-4o")

        with _patched(client, return_value=_completion(content, finish_reason)):
            with pytest.raises(AppError) as exc_info:
                await client.generate_json(prompt="Test")

        assert exc_info.value.code == code
        assert exc_info.value.category == ErrorCategory.AI
        assert is_retryable_error(exc_info.value) is False

    @pytest.mark.asyncio
    async def test_vendor_rate_limit_is_translated(self) -> None:
        client = OpenAIClient(api_key="test-key", model="gpt-4o")
        response = httpx.Response(429, request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
        vendor_error = openai.RateLimitError(
            "Rate limit reached",
            response=response,
            body={"message": "Rate limit reached", "type": "rate_limit_error"},
        )

        with _patched(client, side_effect=vendor_error):
            with pytest.raises(AppError) as exc_info:
                await client.generate_json(prompt="Test")

        assert exc_info.value.code == ErrorCode.RATE_LIMIT_EXCEEDED
        assert exc_info.value.__cause__ is vendor_error

    @pytest.mark.asyncio
    async def test_timeout_and_connection_errors(self) -> None:
        client = OpenAIClient(api_key="test-key", model="gpt-4o")
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")

        with _patched(client, side_effect=openai.APITimeoutError(request=request)):
            with pytest.raises(AppError) as timeout_info:
                await client.generate_json(prompt="Test")

        with _patched(client, side_effect=openai.APIConnectionError(request=request)):
            with pytest.raises(AppError) as connection_info:
                await client.generate_json(prompt="Test")

        assert timeout_info.value.code == ErrorCode.SERVICE_TIMEOUT
        assert connection_info.value.code == ErrorCode.NETWORK_CONNECTION_ERROR
        assert is_retryable_error(timeout_info.value) is True
        assert is_retryable_error(connection_info.value) is True


class TestLLMFactory:
    """Test LLM client factory pattern."""

    def test_create_llm_client_with_settings(self) -> None:
        client = create_llm_client(
            LLMSettings(
                provider="OpenAI",
                api_key="test-key",
                model="gpt-4o-mini",
                timeout_seconds=30.0,
            )
        )

        assert isinstance(client, OpenAIClient)
        assert client.model == "gpt-4o-mini"

    def test_create_llm_client_missing_api_key_raises_error(self) -> None:
        with pytest.raises(AppError, match="requires LLM_API_KEY") as exc:
            create_llm_client(LLMSettings(provider="openai", api_key=None, model="gpt-4o"))

        assert exc.value.code == ErrorCode.SERVER_INTERNAL_ERROR

    def test_create_llm_client_unknown_provider_raises_error(self) -> None:
        with pytest.raises(AppError, match="Unknown LLM provider") as exc:
            create_llm_client(LLMSettings(provider="unknown-provider", api_key="k", model="gpt-4o"))

        assert exc.value.code == ErrorCode.SERVER_NOT_IMPLEMENTED
        assert exc.value.status_code == 501
