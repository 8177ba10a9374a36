"""Factory for the resume repository."""

from victry.adapters.storage.base import AbstractResumeRepository
from victry.adapters.storage.in_memory import InMemoryResumeRepository
from victry.adapters.storage.supabase import SupabaseResumeRepository
from victry.core.config import Settings, settings
from victry.core.errors import AppError, ErrorCategory, ErrorCode, create_api_error


def create_resume_repository(app_settings: Settings | None = None) -> AbstractResumeRepository:
    """Build the repository selected by ``APP_STORAGE_BACKEND``.

    Raises:
        AppError: If the backend is unknown or Supabase is not configured.
    """
    cfg = app_settings or settings
    backend = cfg.app.storage_backend.lower()

    if backend == "memory":
        return InMemoryResumeRepository()

    if backend == "supabase":
        if not cfg.supabase.url or not cfg.supabase.service_role_key:
            raise AppError(
                create_api_error(
                    "Supabase storage requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY",
                    ErrorCategory.SERVER,
                    code=ErrorCode.SERVER_INTERNAL_ERROR,
                )
            )
        return SupabaseResumeRepository(
            url=cfg.supabase.url,
            service_role_key=cfg.supabase.service_role_key,
            timeout_seconds=cfg.supabase.timeout_seconds,
        )

    raise AppError(
        create_api_error(
            f"Unknown storage backend: '{backend}'. Supported backends: memory, supabase",
            ErrorCategory.SERVER,
            code=ErrorCode.SERVER_NOT_IMPLEMENTED,
        )
    )
