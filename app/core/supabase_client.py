# app/core/supabase_client.py
from functools import lru_cache
from supabase import create_client, Client

from app.core.config import get_settings

settings = get_settings()


@lru_cache
def supabase_public() -> Client:
    """
    Create a Supabase client with the anon/public key.

    Use cases:
      - requesting sign-in codes (signInWithOtp)

    Note: This client still respects RLS.

    Raises:
        ConfigurationError: if SUPABASE_URL / SUPABASE_KEY are not set.
    """
    settings.require("SUPABASE_URL", "SUPABASE_KEY")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


def supabase_auth_client() -> Client:
    """
    Create a fresh, uncached anon client for code verification.

    verify_otp stores the resulting session on the client it was called on,
    so each verification gets its own client instead of sharing one.
    """
    settings.require("SUPABASE_URL", "SUPABASE_KEY")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


@lru_cache
def supabase_admin() -> Client:
    """
    Create a Supabase client with the service role key.

    Use cases:
      - admin Auth operations (create / delete / list users)
      - any operation that needs to bypass RLS

    WARNING:
      - Never expose service role key to frontend.
      - Only backend should call this.

    Raises:
        ConfigurationError: if SUPABASE_SERVICE_ROLE_KEY is not set.
    """
    settings.require("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
