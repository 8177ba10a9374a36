"""HTTP client helpers for calling Victry-style JSON envelope APIs."""

from victry.client.fetch import api_fetch, is_retryable_fetch_error

__all__ = ["api_fetch", "is_retryable_fetch_error"]
