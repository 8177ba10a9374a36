from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from victry.api.dependencies import get_analysis_service
from victry.core.auth import get_current_user_id, verify_api_key
from victry.core.responses import api_response
from victry.schemas.ai import JobAnalysis, JobAnalysisRequest
from victry.schemas.envelope import ApiErrorResponse, ApiSuccessResponse
from victry.services.ai_service import AnalysisService

router = APIRouter(prefix="/ai", tags=["AI"], dependencies=[Depends(verify_api_key)])


@router.post(
    "/analyze",
    response_model=ApiSuccessResponse[JobAnalysis],
    responses={
        400: {"model": ApiErrorResponse},
        429: {"model": ApiErrorResponse},
        500: {"model": ApiErrorResponse},
        503: {"model": ApiErrorResponse},
    },
)
async def analyze_job(
    payload: JobAnalysisRequest,
    user_id: str = Depends(get_current_user_id),
    service: AnalysisService = Depends(get_analysis_service),
) -> JSONResponse:
    """Extract structured requirements from a job description.

    Returns hard and soft skills with importance, experience and education
    requirements, ATS keywords, culture traits and the inferred seniority.
    """
    analysis = await service.analyze(payload, user_id=user_id)
    return api_response(analysis)
