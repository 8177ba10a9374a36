"""Supabase (PostgREST) resume repository over ``httpx``.

Table ``resumes``: scalar columns for the fields used in filters and sorting,
plus a ``content`` jsonb column holding personal info and the nested sections.
Ownership is enforced with ``user_id=eq.<id>`` on every request.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any

import httpx

from victry.adapters.storage.base import AbstractResumeRepository, apply_changes
from victry.core.errors import AppError, ErrorCategory, ErrorCode, create_api_error, handle_supabase_error
from victry.schemas.resume import Resume, ResumeCreate, ResumePage, ResumeQuery, ResumeUpdate

logger = logging.getLogger(__name__)

TABLE = "resumes"

_COLUMNS = (
    "title",
    "target_job_title",
    "template_id",
    "is_base_resume",
    "job_description_id",
    "ats_score",
)
_SYSTEM_COLUMNS = ("id", "user_id", "created_at", "updated_at", "version")

# PostgREST reserves these characters inside or=(...) filters
_FILTER_UNSAFE = re.compile(r"[,()*%]")


class PostgrestError(Exception):
    """Error body returned by PostgREST: ``{"code", "message", "details", "hint"}``."""

    def __init__(self, code: str, message: str, details: Any = None, hint: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details
        self.hint = hint


def _to_row(data: dict[str, Any]) -> dict[str, Any]:
    row = {key: data[key] for key in _COLUMNS if key in data}
    row["content"] = {
        key: value
        for key, value in data.items()
        if key not in _COLUMNS and key not in _SYSTEM_COLUMNS
    }
    return row


def _from_row(row: dict[str, Any]) -> Resume:
    content = row.get("content") or {}
    return Resume.model_validate(
        {
            **content,
            **{key: row.get(key) for key in _COLUMNS if key in row},
            **{key: row[key] for key in _SYSTEM_COLUMNS if key in row},
        }
    )


def _total_from_content_range(header: str | None, fallback: int) -> int:
    # "0-9/42" or "*/0"
    if not header or "/" not in header:
        return fallback
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else fallback


class SupabaseResumeRepository(AbstractResumeRepository):
    """PostgREST client authenticated with the service role key.

    Vendor errors are translated by ``handle_supabase_error``; transport
    failures become ``database_connection_error`` (retryable).
    """

    def __init__(
        self,
        url: str,
        service_role_key: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = f"{url.rstrip('/')}/rest/v1/{TABLE}"
        self.service_role_key = service_role_key
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        *,
        params: dict[str, str],
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.request(
                    method,
                    self.base_url,
                    params=params,
                    json=json,
                    headers=self._headers(prefer),
                )
        except httpx.TransportError as exc:
            logger.warning(
                "storage.transport_error",
                extra={"method": method, "error_type": type(exc).__name__},
            )
            raise AppError(
                create_api_error(
                    "Could not reach the database",
                    ErrorCategory.DATABASE,
                    code=ErrorCode.DATABASE_CONNECTION_ERROR,
                    cause=exc,
                )
            ) from exc

        if response.is_error:
            raise self._translate(response)
        return response

    @staticmethod
    def _translate(response: httpx.Response) -> AppError:
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("code") and body.get("message"):
            vendor = PostgrestError(
                code=str(body["code"]),
                message=str(body["message"]),
                details=body.get("details"),
                hint=body.get("hint"),
            )
            return AppError(handle_supabase_error(vendor), details={"status": response.status_code})

        if response.status_code >= 500:
            return AppError(
                create_api_error(
                    "Database is temporarily unavailable",
                    ErrorCategory.DATABASE,
                    code=ErrorCode.DATABASE_CONNECTION_ERROR,
                    details={"status": response.status_code},
                )
            )
        return AppError(
            handle_supabase_error(f"Unexpected database response ({response.status_code})"),
            details={"status": response.status_code},
        )

    @staticmethod
    def _owned(user_id: str, resume_id: str | None = None) -> dict[str, str]:
        params = {"user_id": f"eq.{user_id}"}
        if resume_id is not None:
            params["id"] = f"eq.{resume_id}"
        return params

    async def list(self, user_id: str, query: ResumeQuery) -> ResumePage:
        params = {
            **self._owned(user_id),
            "select": "*",
            "order": f"{query.sort_by}.{query.sort_order}",
            "offset": str(query.offset),
            "limit": str(query.limit),
        }
        if query.search:
            term = _FILTER_UNSAFE.sub(" ", query.search).strip()
            if term:
                params["or"] = f"(title.ilike.*{term}*,target_job_title.ilike.*{term}*)"

        response = await self._request("GET", params=params, prefer="count=exact")
        rows = response.json()
        return ResumePage(
            items=[_from_row(row) for row in rows],
            total=_total_from_content_range(response.headers.get("content-range"), len(rows)),
        )

    async def get(self, user_id: str, resume_id: str) -> Resume | None:
        response = await self._request(
            "GET",
            params={**self._owned(user_id, resume_id), "select": "*", "limit": "1"},
        )
        rows = response.json()
        return _from_row(rows[0]) if rows else None

    async def create(self, user_id: str, data: ResumeCreate) -> Resume:
        row = {**_to_row(data.model_dump(mode="json")), "user_id": user_id, "version": 1}
        response = await self._request(
            "POST",
            params={"select": "*"},
            json=row,
            prefer="return=representation",
        )
        return _from_row(response.json()[0])

    async def update(self, user_id: str, resume_id: str, changes: ResumeUpdate) -> Resume | None:
        current = await self.get(user_id, resume_id)
        if current is None:
            return None

        updated = apply_changes(current, changes, datetime.now(timezone.utc))
        payload = _to_row(updated.model_dump(mode="json"))
        payload["updated_at"] = updated.updated_at.isoformat()
        payload["version"] = updated.version

        # Optimistic concurrency: only the version we read may be replaced
        params = {
            **self._owned(user_id, resume_id),
            "version": f"eq.{current.version}",
            "select": "*",
        }
        response = await self._request("PATCH", params=params, json=payload, prefer="return=representation")
        rows = response.json()
        if not rows:
            raise AppError(
                create_api_error(
                    "Resume was modified concurrently; reload and try again",
                    ErrorCategory.CONFLICT,
                    code=ErrorCode.CONFLICT_VERSION_MISMATCH,
                )
            )
        return _from_row(rows[0])

    async def delete(self, user_id: str, resume_id: str) -> bool:
        response = await self._request(
            "DELETE",
            params={**self._owned(user_id, resume_id), "select": "id"},
            prefer="return=representation",
        )
        return bool(response.json())
