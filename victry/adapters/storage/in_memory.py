"""In-memory resume repository.

Notes:
- Per-process only; data is lost on restart.
- Used for local development and tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable

from victry.adapters.storage.base import AbstractResumeRepository, apply_changes
from victry.schemas.resume import Resume, ResumeCreate, ResumePage, ResumeQuery, ResumeUpdate


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryResumeRepository(AbstractResumeRepository):
    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._rows: dict[str, Resume] = {}

    async def list(self, user_id: str, query: ResumeQuery) -> ResumePage:
        rows = [row for row in self._rows.values() if row.user_id == user_id]

        if query.search:
            needle = query.search.lower()
            rows = [
                row
                for row in rows
                if needle in row.title.lower() or needle in row.target_job_title.lower()
            ]

        rows.sort(
            key=lambda row: getattr(row, query.sort_by),
            reverse=query.sort_order == "desc",
        )
        return ResumePage(items=rows[query.offset : query.offset + query.limit], total=len(rows))

    async def get(self, user_id: str, resume_id: str) -> Resume | None:
        row = self._rows.get(resume_id)
        if row is None or row.user_id != user_id:
            return None
        return row

    async def create(self, user_id: str, data: ResumeCreate) -> Resume:
        now = self._clock()
        resume = Resume(
            **data.model_dump(),
            id=str(uuid.uuid4()),
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )
        self._rows[resume.id] = resume
        return resume

    async def update(self, user_id: str, resume_id: str, changes: ResumeUpdate) -> Resume | None:
        current = await self.get(user_id, resume_id)
        if current is None:
            return None

        updated = apply_changes(current, changes, self._clock())
        self._rows[resume_id] = updated
        return updated

    async def delete(self, user_id: str, resume_id: str) -> bool:
        if await self.get(user_id, resume_id) is None:
            return False
        del self._rows[resume_id]
        return True
