"""OpenAI LLM client adapter.

Vendor exceptions never leave this module: every failure is translated into
the error taxonomy and raised as ``AppError``.
"""

import json
import logging
from typing import Any

from openai import APIConnectionError, APITimeoutError, AsyncOpenAI, OpenAIError

from victry.adapters.llm.base import AbstractLLMClient
from victry.core.errors import AppError, ErrorCategory, ErrorCode, create_api_error, handle_ai_error

logger = logging.getLogger(__name__)


class OpenAIClient(AbstractLLMClient):
    """Client for calling OpenAI chat completions and returning JSON.

    Uses the official OpenAI Python SDK with async support. SDK-level retries
    are disabled; callers retry through ``with_retry``.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )
        self.model = model

    async def generate_json(
        self,
        prompt: str,
        *,
        temperature: float = 0.3,
        schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Generate structured JSON using OpenAI chat completions.

        Raises:
            AppError: ``service``/``network`` for transport failures, vendor
                status errors via ``handle_ai_error``, ``ai`` for empty,
                truncated, filtered or non-JSON output.
        """
        messages = [
            {
                "role": "system",
                "content": "Output JSON only. No extra text or markdown formatting.",
            },
            {"role": "user", "content": prompt},
        ]

        request_params: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }

        # Enforce JSON response format when schema is provided
        if schema is not None:
            request_params["response_format"] = {"type": "json_object"}

        allowed_params = {
            "max_tokens",
            "top_p",
            "frequency_penalty",
            "presence_penalty",
            "seed",
        }
        for param in allowed_params:
            if param in kwargs:
                request_params[param] = kwargs[param]

        try:
            response = await self.client.chat.completions.create(**request_params)
        except APITimeoutError as exc:
            raise AppError(
                create_api_error(
                    "AI service request timed out",
                    ErrorCategory.SERVICE,
                    code=ErrorCode.SERVICE_TIMEOUT,
                    cause=exc,
                )
            ) from exc
        except APIConnectionError as exc:
            raise AppError(
                create_api_error(
                    "Could not reach the AI service",
                    ErrorCategory.NETWORK,
                    code=ErrorCode.NETWORK_CONNECTION_ERROR,
                    cause=exc,
                )
            ) from exc
        except OpenAIError as exc:
            raise AppError(handle_ai_error(exc)) from exc

        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            raise AppError(
                create_api_error(
                    "Content policy violation",
                    ErrorCategory.AI,
                    code=ErrorCode.AI_CONTENT_POLICY,
                )
            )
        if choice.finish_reason == "length":
            raise AppError(
                create_api_error(
                    "AI response exceeded the token limit",
                    ErrorCategory.AI,
                    code=ErrorCode.AI_TOKEN_LIMIT,
                )
            )

        content = (choice.message.content or "").strip()
        if not content:
            raise AppError(
                create_api_error(
                    "AI returned an empty response",
                    ErrorCategory.AI,
                    code=ErrorCode.AI_GENERATION_ERROR,
                )
            )

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            logger.warning(
                "llm.invalid_json",
                extra={"model": self.model, "content_length": len(content)},
            )
            raise AppError(
                create_api_error(
                    "AI returned invalid JSON",
                    ErrorCategory.AI,
                    code=ErrorCode.AI_GENERATION_ERROR,
                )
            ) from exc

        if not isinstance(parsed, dict):
            raise AppError(
                create_api_error(
                    "AI returned JSON that is not an object",
                    ErrorCategory.AI,
                    code=ErrorCode.AI_GENERATION_ERROR,
                )
            )
        return parsed
