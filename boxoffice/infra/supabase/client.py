"""Process-wide Supabase client for the order, ticket and subscription tables"""
from typing import Optional

from supabase import Client, create_client  # type: ignore

from boxoffice import config

_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Build the client on first use so importing the app needs no credentials"""
    global _client

    if _client is None:
        if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        _client = create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)

    return _client
