"""OpenAPI schema enrichment for the Victry API.

Adds the ``X-API-Key`` security scheme, tag descriptions and the
request-id response header that every route emits. Routes outside
``/api`` (health, docs) are published without a security requirement.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import FastAPI

API_KEY_SCHEME = "ApiKeyAuth"

TAGS: List[Dict[str, str]] = [
    {"name": "Auth", "description": "Account recovery (password reset emails)."},
    {"name": "AI", "description": "AI-assisted job description analysis."},
    {"name": "Resumes", "description": "Resume CRUD scoped to the calling user."},
    {"name": "Health", "description": "Liveness checks. No API key required."},
]

_REQUEST_ID_HEADER = {
    "description": "Correlation id echoed from the request or generated by the server.",
    "schema": {"type": "string"},
}


def _is_public(path: str) -> bool:
    return not path.startswith("/api/")


def _annotate_operations(schema: Dict[str, Any], header_name: str) -> None:
    for path, operations in schema.get("paths", {}).items():
        for operation in operations.values():
            if not isinstance(operation, dict):
                continue
            if _is_public(path):
                operation["security"] = []
            for response in operation.get("responses", {}).values():
                response.setdefault("headers", {}).setdefault(header_name, _REQUEST_ID_HEADER)


def apply_openapi_customizations(app: FastAPI, request_id_header: str = "X-Request-ID") -> None:
    """Wrap ``app.openapi`` so the generated schema carries security and tag metadata.

    The enriched schema is cached on ``app.openapi_schema`` like FastAPI's own.
    """

    generate = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema
        schema = generate()

        schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        schemes.setdefault(
            API_KEY_SCHEME,
            {"type": "apiKey", "in": "header", "name": "X-API-Key"},
        )
        schema.setdefault("security", [{API_KEY_SCHEME: []}])

        known = {tag.get("name") for tag in schema.setdefault("tags", [])}
        schema["tags"].extend(tag for tag in TAGS if tag["name"] not in known)

        _annotate_operations(schema, request_id_header)
        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
