"""Authentication collaborators (password reset emails)."""

from victry.adapters.auth.base import AbstractAuthClient
from victry.adapters.auth.factory import create_auth_client
from victry.adapters.auth.in_memory import InMemoryAuthClient
from victry.adapters.auth.supabase_client import SupabaseAuthClient

__all__ = [
    "AbstractAuthClient",
    "InMemoryAuthClient",
    "SupabaseAuthClient",
    "create_auth_client",
]
