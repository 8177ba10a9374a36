"""Envelope models used to document responses in OpenAPI."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from victry.core.errors import FieldError

T = TypeVar("T")


class ApiSuccessResponse(BaseModel, Generic[T]):
    """Success envelope: ``{"data", "metadata"?, "requestId"?}``."""

    model_config = ConfigDict(populate_by_name=True)

    data: T
    metadata: dict[str, Any] | None = None
    request_id: str | None = Field(None, alias="requestId")


class ApiErrorResponse(BaseModel):
    """Error envelope: ``{"error", "code"?, "validationErrors"?, "requestId"?}``."""

    model_config = ConfigDict(populate_by_name=True)

    error: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable error code")
    validation_errors: list[FieldError] | None = Field(None, alias="validationErrors")
    request_id: str | None = Field(None, alias="requestId")
