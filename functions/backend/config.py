"""
Configuration and settings for the Partage functions.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PLATFORM_PROFILE_ID = "d1d67cf6-0d41-4a05-95a0-335c15b15a05"


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Mirrors the hosted edge function URLs.
    api_prefix: str = Field(default="/functions/v1")
    cors_allow_origins: str = Field(default="*")

    # Supabase project
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None
    supabase_service_role_key: Optional[str] = None

    # Database (Postgres expected)
    database_url: Optional[str] = None

    # S3-compatible storage exposed by Supabase
    storage_endpoint: Optional[str] = None
    storage_region: Optional[str] = None
    storage_access_key_id: Optional[str] = None
    storage_secret_access_key: Optional[str] = None
    legal_documents_bucket: str = Field(default="generated_legal_documents")
    signed_documents_bucket: str = Field(default="signed_documents")
    signed_url_ttl_seconds: int = Field(default=600)

    # Payment providers
    stancer_private_key: Optional[str] = None
    stancer_api_base: str = Field(default="https://api.stancer.com")
    stripe_secret_key: Optional[str] = None
    stripe_api_base: str = Field(default="https://api.stripe.com/v1")

    # Billing
    billing_internal_secret: Optional[str] = None
    platform_profile_id: str = Field(default=DEFAULT_PLATFORM_PROFILE_ID)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    @property
    def has_supabase_env(self) -> bool:
        return bool(
            self.supabase_url
            and self.supabase_anon_key
            and self.supabase_service_role_key
        )

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
