"""Factory pattern for creating LLM client instances."""

from victry.adapters.llm.base import AbstractLLMClient
from victry.adapters.llm.openai_client import OpenAIClient
from victry.core.config import LLMSettings, settings
from victry.core.errors import AppError, ErrorCategory, ErrorCode, create_api_error


def create_llm_client(llm_settings: LLMSettings | None = None) -> AbstractLLMClient:
    """Instantiate the LLM client for the configured provider.

    Reads configuration from victry.core.config.settings (Pydantic Settings)
    unless explicit settings are given.

    Returns:
        AbstractLLMClient: Configured LLM client instance.

    Raises:
        AppError: If the provider is unknown or its requirements are not met.
    """
    cfg = llm_settings or settings.llm
    provider = cfg.provider.lower()

    if provider == "openai":
        if not cfg.api_key:
            raise AppError(
                create_api_error(
                    "OpenAI provider requires LLM_API_KEY environment variable",
                    ErrorCategory.SERVER,
                    code=ErrorCode.SERVER_INTERNAL_ERROR,
                )
            )
        return OpenAIClient(
            api_key=cfg.api_key,
            model=cfg.model,
            base_url=cfg.base_url,
            timeout_seconds=cfg.timeout_seconds,
        )

    raise AppError(
        create_api_error(
            f"Unknown LLM provider: '{provider}'. Supported providers: openai",
            ErrorCategory.SERVER,
            code=ErrorCode.SERVER_NOT_IMPLEMENTED,
        )
    )
