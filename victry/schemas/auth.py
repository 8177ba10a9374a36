"""Pydantic schemas for authentication flows."""

from pydantic import BaseModel, Field


class ForgotPasswordRequest(BaseModel):
    """Password reset request.

    ``email`` is validated by the service so malformed and missing addresses
    get the same response.
    """

    email: str | None = Field(None, description="Account email address")


class ForgotPasswordResult(BaseModel):
    message: str
    email: str
