# app/core/config.py
from functools import lru_cache
from typing import ClassVar

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.errors import ConfigurationError


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)
      - DATABASE_URL (Supabase Postgres connection string)

    Needed by specific features:
      - SUPABASE_SERVICE_ROLE_KEY (admin user management, first admin setup)
      - SHOPIFY_STORE_URL / SHOPIFY_ACCESS_TOKEN (product catalog)

    Every value is optional at load time so a missing variable can be
    reported as a configuration problem instead of crashing on import.
    """

    PROJECT_NAME: str = "Snuff Specification Builder API"
    API_V1_STR: str = "/api/v1"
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Supabase / DB config
    SUPABASE_URL: str | None = None
    SUPABASE_KEY: str | None = None
    DATABASE_URL: str | None = None

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str | None = None
    SUPABASE_JWT_ALG: str = "HS256"

    # Service role key bypasses RLS (backend only)
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # Shopify Admin API
    SHOPIFY_STORE_URL: str | None = None
    SHOPIFY_ACCESS_TOKEN: str | None = None
    SHOPIFY_API_VERSION: str = "2023-10"

    # Sign-in
    OTP_COOLDOWN_SECONDS: int = 60

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    REQUIRED: ClassVar[tuple[str, ...]] = (
        "SUPABASE_URL",
        "SUPABASE_KEY",
        "SUPABASE_SERVICE_ROLE_KEY",
        "SUPABASE_JWT_SECRET",
        "DATABASE_URL",
    )

    def missing_required(self) -> list[str]:
        """Names of required variables that are unset or blank."""
        return [name for name in self.REQUIRED if not (getattr(self, name) or "").strip()]

    def require(self, *names: str) -> None:
        """
        Raise ConfigurationError if any of `names` is unset or blank.

        Used at the start of operations that cannot run without a value,
        so "misconfigured" stays distinguishable from "denied".
        """
        missing = [name for name in names if not (getattr(self, name) or "").strip()]
        if missing:
            raise ConfigurationError(
                f"Missing environment variables: {', '.join(missing)}",
                missing=missing,
            )

    def get_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
