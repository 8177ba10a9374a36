from abc import ABC, abstractmethod
from typing import Any


class AbstractLLMClient(ABC):
    """Interface for AI collaborators that produce structured JSON outputs."""

    @abstractmethod
    async def generate_json(
        self,
        prompt: str,
        *,
        temperature: float = 0.3,
        schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Generate a structured JSON response from the model.

        Args:
            prompt: User prompt to send to the model.
            temperature: Sampling temperature.
            schema: Optional JSON schema to enforce on the response.
            **kwargs: Provider-specific options (e.g., max_tokens).

        Returns:
            dict[str, Any]: Parsed JSON object returned by the model.

        Raises:
            AppError: Provider failures translated into the error taxonomy.
        """
        ...
