from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from victry.api.dependencies import get_resume_service
from victry.core.auth import get_current_user_id, verify_api_key
from victry.core.responses import api_response
from victry.schemas.envelope import ApiErrorResponse, ApiSuccessResponse
from victry.schemas.resume import Resume, ResumeCreate, ResumeQuery, ResumeUpdate, SortField, SortOrder
from victry.services.resume_service import ResumeService

router = APIRouter(
    prefix="/resumes",
    tags=["Resumes"],
    dependencies=[Depends(verify_api_key)],
    responses={401: {"model": ApiErrorResponse}, 403: {"model": ApiErrorResponse}},
)


@router.get("", response_model=ApiSuccessResponse[list[Resume]])
async def list_resumes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    search: str | None = Query(None, max_length=200),
    sort_by: SortField = Query("updated_at", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    user_id: str = Depends(get_current_user_id),
    service: ResumeService = Depends(get_resume_service),
) -> JSONResponse:
    """List the caller's resumes (paginated, searchable by title)."""
    query = ResumeQuery(page=page, limit=limit, search=search, sort_by=sort_by, sort_order=sort_order)
    items, metadata = await service.list_resumes(user_id, query)
    return api_response(items, metadata=metadata)


@router.get(
    "/{resume_id}",
    response_model=ApiSuccessResponse[Resume],
    responses={404: {"model": ApiErrorResponse}},
)
async def get_resume(
    resume_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ResumeService = Depends(get_resume_service),
) -> JSONResponse:
    return api_response(await service.get_resume(user_id, resume_id))


@router.post(
    "",
    status_code=201,
    response_model=ApiSuccessResponse[Resume],
    responses={400: {"model": ApiErrorResponse}},
)
async def create_resume(
    payload: ResumeCreate,
    user_id: str = Depends(get_current_user_id),
    service: ResumeService = Depends(get_resume_service),
) -> JSONResponse:
    """Create a resume with its nested sections."""
    resume = await service.create_resume(user_id, payload)
    return api_response(resume, status=201)


@router.put(
    "/{resume_id}",
    response_model=ApiSuccessResponse[Resume],
    responses={400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}, 409: {"model": ApiErrorResponse}},
)
async def update_resume(
    resume_id: str,
    payload: ResumeUpdate,
    user_id: str = Depends(get_current_user_id),
    service: ResumeService = Depends(get_resume_service),
) -> JSONResponse:
    """Apply a partial update; only fields present in the body change."""
    return api_response(await service.update_resume(user_id, resume_id, payload))


@router.delete(
    "/{resume_id}",
    response_model=ApiSuccessResponse[dict],
    responses={404: {"model": ApiErrorResponse}},
)
async def delete_resume(
    resume_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ResumeService = Depends(get_resume_service),
) -> JSONResponse:
    await service.delete_resume(user_id, resume_id)
    return api_response({"id": resume_id, "deleted": True})
