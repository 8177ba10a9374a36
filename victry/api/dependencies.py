"""FastAPI dependencies resolving app-owned services from ``app.state``."""

from fastapi import Request

from victry.services.ai_service import AnalysisService
from victry.services.password_reset_service import PasswordResetService
from victry.services.resume_service import ResumeService


def get_analysis_service(request: Request) -> AnalysisService:
    return request.app.state.analysis_service


def get_resume_service(request: Request) -> ResumeService:
    return request.app.state.resume_service


def get_password_reset_service(request: Request) -> PasswordResetService:
    return request.app.state.password_reset_service
