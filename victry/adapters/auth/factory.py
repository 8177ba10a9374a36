"""Factory for the auth collaborator."""

from victry.adapters.auth.base import AbstractAuthClient
from victry.adapters.auth.in_memory import InMemoryAuthClient
from victry.adapters.auth.supabase_client import SupabaseAuthClient
from victry.core.config import SupabaseSettings, settings


def create_auth_client(supabase_settings: SupabaseSettings | None = None) -> AbstractAuthClient:
    """Return the Supabase Auth client when a project is configured, else the in-memory one."""

    cfg = supabase_settings or settings.supabase
    if cfg.url and cfg.anon_key:
        return SupabaseAuthClient(
            url=cfg.url,
            anon_key=cfg.anon_key,
            timeout_seconds=cfg.timeout_seconds,
        )
    return InMemoryAuthClient()
