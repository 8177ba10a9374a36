from __future__ import annotations

from victry.api.routes.ai import router as ai_router
from victry.api.routes.auth import router as auth_router
from victry.api.routes.health import router as health_router
from victry.api.routes.resumes import router as resumes_router

__all__ = ["ai_router", "auth_router", "health_router", "resumes_router"]
