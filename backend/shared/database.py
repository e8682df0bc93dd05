"""
Database client factory for Supabase.

The backend only uses service-role clients (bypassing RLS): every query is
already scoped to the authenticated store by the calling service.

There is no module-level client cache. The service container in
api/dependencies.py constructs one client per process and passes it to
each repository explicitly.
"""

from typing import Optional
from supabase import create_client, Client

from .config import Settings, get_settings


def create_supabase_client(settings: Optional[Settings] = None) -> Client:
    """
    Create a Supabase client with the service role key.

    Args:
        settings: Settings to read the URL and key from. Defaults to the
                  cached application settings.

    Returns:
        Supabase client configured with service role key

    Raises:
        RuntimeError: If SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is missing
    """
    settings = settings or get_settings()
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise RuntimeError(
            "Supabase configuration missing. "
            "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY environment variables."
        )
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
    )
