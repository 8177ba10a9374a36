"""Resume CRUD orchestration over the storage collaborator.

Every repository call goes through ``with_retry``; transient database
failures (connection errors) are retried, everything else surfaces at once.
"""

from __future__ import annotations

import math
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from victry.adapters.storage.base import AbstractResumeRepository
from victry.core.errors import AppError, create_not_found_error
from victry.core.logger import Logger
from victry.core.retry import RetryOptions, with_retry
from victry.schemas.resume import Resume, ResumeCreate, ResumeQuery, ResumeUpdate

T = TypeVar("T")


class ResumeService:
    """Owner-scoped resume operations.

    Attributes:
        repository: Storage collaborator.
        logger: Structured logger tagged for this service.
        retry_options: Retry policy for storage calls.
    """

    def __init__(
        self,
        repository: AbstractResumeRepository,
        *,
        logger: Logger,
        retry_options: RetryOptions | None = None,
    ) -> None:
        self.repository = repository
        self.logger = logger
        self.retry_options = retry_options or RetryOptions.from_settings()

    async def _call(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await with_retry(operation, self.retry_options, logger=self.logger)

    async def list_resumes(self, user_id: str, query: ResumeQuery) -> tuple[list[Resume], dict[str, Any]]:
        """Return one page of the user's resumes and its pagination metadata."""
        page = await self._call(lambda: self.repository.list(user_id, query))
        total_pages = math.ceil(page.total / query.limit) if page.total else 0
        metadata = {
            "count": page.total,
            "page": query.page,
            "limit": query.limit,
            "totalPages": total_pages,
            "hasMore": query.page < total_pages,
        }
        return page.items, metadata

    async def get_resume(self, user_id: str, resume_id: str) -> Resume:
        resume = await self._call(lambda: self.repository.get(user_id, resume_id))
        if resume is None:
            raise AppError(create_not_found_error("resume", resume_id))
        return resume

    async def create_resume(self, user_id: str, data: ResumeCreate) -> Resume:
        resume = await self._call(lambda: self.repository.create(user_id, data))
        self.logger.info("resume.created", {"user_id": user_id, "resume_id": resume.id})
        return resume

    async def update_resume(self, user_id: str, resume_id: str, changes: ResumeUpdate) -> Resume:
        resume = await self._call(lambda: self.repository.update(user_id, resume_id, changes))
        if resume is None:
            raise AppError(create_not_found_error("resume", resume_id))
        self.logger.info(
            "resume.updated",
            {"user_id": user_id, "resume_id": resume_id, "version": resume.version},
        )
        return resume

    async def delete_resume(self, user_id: str, resume_id: str) -> None:
        deleted = await self._call(lambda: self.repository.delete(user_id, resume_id))
        if not deleted:
            raise AppError(create_not_found_error("resume", resume_id))
        self.logger.info("resume.deleted", {"user_id": user_id, "resume_id": resume_id})
