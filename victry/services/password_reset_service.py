"""Password reset request flow.

Order of checks:
1. Email format (400 validation_invalid_format).
2. Per-IP limit (429 with a human wait time).
3. Per-email limit: answered with the generic success message so callers
   cannot probe which addresses exist.
4. Auth collaborator call, retried on transient failures. Its errors are
   logged and never surfaced.
"""

from __future__ import annotations

from victry.adapters.auth.base import AbstractAuthClient
from victry.adapters.rate_limit.base import AbstractRateLimiter
from victry.core.config import AppSettings, settings
from victry.core.errors import AppError, ErrorCategory, ErrorCode, create_api_error
from victry.core.logger import Logger
from victry.core.rate_limit import (
    check_password_reset_email_rate_limit,
    check_password_reset_ip_rate_limit,
    format_remaining_time,
)
from victry.core.retry import RetryOptions, with_retry
from victry.core.validation import is_valid_email
from victry.schemas.auth import ForgotPasswordResult

GENERIC_RESET_MESSAGE = "If an account with that email exists, we have sent a password reset link."


class PasswordResetService:
    def __init__(
        self,
        auth_client: AbstractAuthClient,
        limiter: AbstractRateLimiter,
        *,
        logger: Logger,
        retry_options: RetryOptions | None = None,
        app_settings: AppSettings | None = None,
    ) -> None:
        self.auth_client = auth_client
        self.limiter = limiter
        self.logger = logger
        self.retry_options = retry_options or RetryOptions.from_settings(app_settings)
        self.settings = app_settings or settings.app

    def _redirect_url(self, origin: str) -> str:
        return f"{origin.rstrip('/')}{self.settings.password_reset_redirect_path}"

    async def request_reset(self, email: str | None, client_ip: str, origin: str) -> ForgotPasswordResult:
        """Handle one forgot-password request.

        Raises:
            AppError: Invalid email (validation) or IP over its limit (rate_limit).
        """
        if not email or not is_valid_email(email):
            raise AppError(
                create_api_error(
                    "Please provide a valid email address",
                    ErrorCategory.VALIDATION,
                    code=ErrorCode.VALIDATION_INVALID_FORMAT,
                )
            )

        ip_limit = check_password_reset_ip_rate_limit(self.limiter, client_ip, self.settings)
        if not ip_limit.allowed:
            wait = format_remaining_time(ip_limit.remaining_time or 0)
            raise AppError(
                create_api_error(
                    f"Too many password reset requests from this location. Please try again in {wait}.",
                    ErrorCategory.RATE_LIMIT,
                    code=ErrorCode.RATE_LIMIT_EXCEEDED,
                )
            )

        result = ForgotPasswordResult(message=GENERIC_RESET_MESSAGE, email=email)

        email_limit = check_password_reset_email_rate_limit(self.limiter, email, self.settings)
        if not email_limit.allowed:
            self.logger.warn(
                "password_reset.email_rate_limited",
                {"count": email_limit.count},
            )
            return result

        try:
            await with_retry(
                lambda: self.auth_client.send_password_reset(email, self._redirect_url(origin)),
                self.retry_options,
                logger=self.logger,
            )
        except AppError as exc:
            # Reported for monitoring only; the caller always sees the generic answer
            self.logger.error("password_reset.provider_failed", exc, {"client_ip": client_ip})

        return result
