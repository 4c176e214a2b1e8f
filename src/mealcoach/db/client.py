"""
MealCoach - Supabase Client.

Low-level database access. Collaborators take an optional client argument;
when omitted they fall back to the shared singletons defined here.
"""

from supabase import Client, ClientOptions, create_client

from mealcoach.config import settings

# Singleton client instances
_client: Client | None = None
_service_client: Client | None = None


def get_client() -> Client:
    """
    Get the Supabase client (anon key).

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        _client = create_client(
            settings.supabase_url,
            settings.supabase_anon_key,
        )

    return _client


def get_service_client() -> Client:
    """
    Get the service-role Supabase client.

    Used for server-side reads that bypass RLS (rulesets, catalog, admin
    config). Falls back to the anon key when no service key is configured.
    """
    global _service_client

    if _service_client is None:
        key = settings.supabase_service_role_key or settings.supabase_anon_key
        _service_client = create_client(settings.supabase_url, key)

    return _service_client


def get_authenticated_client(access_token: str) -> Client:
    """
    Create a per-request client that acts as the authenticated user.

    Not cached: each request carries its own JWT so RLS applies.
    """
    return create_client(
        settings.supabase_url,
        settings.supabase_anon_key,
        options=ClientOptions(headers={"Authorization": f"Bearer {access_token}"}),
    )


def reset_clients() -> None:
    """Drop cached clients (tests and settings reloads)."""
    global _client, _service_client
    _client = None
    _service_client = None
