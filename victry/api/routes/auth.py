from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from victry.api.dependencies import get_password_reset_service
from victry.core.auth import verify_api_key
from victry.core.errors import ErrorCategory, ErrorCode
from victry.core.rate_limit import get_client_ip
from victry.core.responses import api_error, api_response
from victry.schemas.auth import ForgotPasswordRequest, ForgotPasswordResult
from victry.schemas.envelope import ApiErrorResponse, ApiSuccessResponse
from victry.services.password_reset_service import PasswordResetService

router = APIRouter(prefix="/auth", tags=["Auth"], dependencies=[Depends(verify_api_key)])


@router.post(
    "/forgot-password",
    response_model=ApiSuccessResponse[ForgotPasswordResult],
    responses={400: {"model": ApiErrorResponse}, 429: {"model": ApiErrorResponse}},
)
async def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> JSONResponse:
    """Request a password reset email.

    Always answers with the same generic message for valid addresses, whether
    or not an account exists or the per-email limit was hit.
    """
    result = await service.request_reset(
        payload.email,
        client_ip=get_client_ip(request),
        origin=str(request.base_url),
    )
    return api_response(result)


@router.api_route(
    "/forgot-password",
    methods=["GET", "PUT", "DELETE"],
    include_in_schema=False,
)
async def forgot_password_method_not_allowed() -> JSONResponse:
    response = api_error("Method not allowed", ErrorCategory.VALIDATION, ErrorCode.VALIDATION_INVALID_DATA)
    response.status_code = 405
    response.headers["Allow"] = "POST"
    return response
