from abc import ABC, abstractmethod


class AbstractAuthClient(ABC):
    """Interface for the identity provider used by account recovery flows."""

    @abstractmethod
    async def send_password_reset(self, email: str, redirect_to: str) -> None:
        """Ask the provider to email a password reset link.

        Args:
            email: Account email address.
            redirect_to: Absolute URL the reset link lands on.

        Raises:
            AppError: Provider failures translated into the error taxonomy.
        """
        ...

    async def aclose(self) -> None:
        """Release provider resources."""
