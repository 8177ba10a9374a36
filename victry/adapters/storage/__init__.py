"""Resume storage adapters.

Routes and services depend on ``AbstractResumeRepository``; the backend is
chosen by ``APP_STORAGE_BACKEND``.
"""

from victry.adapters.storage.base import AbstractResumeRepository
from victry.adapters.storage.factory import create_resume_repository
from victry.adapters.storage.in_memory import InMemoryResumeRepository
from victry.adapters.storage.supabase import PostgrestError, SupabaseResumeRepository

__all__ = [
    "AbstractResumeRepository",
    "InMemoryResumeRepository",
    "PostgrestError",
    "SupabaseResumeRepository",
    "create_resume_repository",
]
