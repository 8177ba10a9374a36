"""Resume repository interface.

Every operation is scoped to the owner: rows belonging to another user are
indistinguishable from missing rows.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from victry.schemas.resume import Resume, ResumeCreate, ResumePage, ResumeQuery, ResumeUpdate


class AbstractResumeRepository(ABC):
    """CRUD over resumes with ownership filtering.

    Implementations raise ``AppError`` for storage failures.
    """

    @abstractmethod
    async def list(self, user_id: str, query: ResumeQuery) -> ResumePage:
        raise NotImplementedError

    @abstractmethod
    async def get(self, user_id: str, resume_id: str) -> Resume | None:
        raise NotImplementedError

    @abstractmethod
    async def create(self, user_id: str, data: ResumeCreate) -> Resume:
        raise NotImplementedError

    @abstractmethod
    async def update(self, user_id: str, resume_id: str, changes: ResumeUpdate) -> Resume | None:
        """Apply the fields set on ``changes``; returns None when not found."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, user_id: str, resume_id: str) -> bool:
        """Return True when a row was deleted."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release backend resources."""


# Columns that cannot be cleared by a partial update
_REQUIRED_FIELDS = frozenset({"title", "target_job_title", "template_id", "personal_info"})


def apply_changes(current: Resume, changes: ResumeUpdate, updated_at: datetime) -> Resume:
    """Merge a partial update into ``current`` and bump its version."""

    patch = {
        key: value
        for key, value in changes.model_dump(exclude_unset=True).items()
        if value is not None or key not in _REQUIRED_FIELDS
    }
    return Resume.model_validate(
        {
            **current.model_dump(),
            **patch,
            "updated_at": updated_at,
            "version": current.version + 1,
        }
    )
