"""Cached Supabase clients: service role for telemetry writes, anon for auth checks."""

from typing import Dict

from supabase import create_client, Client
from codefix.config import settings

_clients: Dict[str, Client] = {}


def get_supabase(role: str = "service") -> Client:
    """Get or create the Supabase client for ``role`` ("service" or "anon")."""
    client = _clients.get(role)
    if client is not None:
        return client

    key = settings.supabase_anon_key if role == "anon" else settings.supabase_service_role_key
    if not settings.supabase_url or not key:
        env_key = "SUPABASE_ANON_KEY" if role == "anon" else "SUPABASE_SERVICE_ROLE_KEY"
        raise RuntimeError(f"SUPABASE_URL and {env_key} must be set")

    client = create_client(settings.supabase_url, key)
    _clients[role] = client
    return client
