"""LLM adapter layer - abstracts over AI analysis providers."""

from victry.adapters.llm.base import AbstractLLMClient
from victry.adapters.llm.factory import create_llm_client
from victry.adapters.llm.openai_client import OpenAIClient

__all__ = [
    "AbstractLLMClient",
    "OpenAIClient",
    "create_llm_client",
]
