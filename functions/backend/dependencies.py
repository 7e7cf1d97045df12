"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Depends

from backend.auth import AuthClient, InMemoryAuthClient, SupabaseAuthClient
from backend.config import Settings, get_settings
from backend.db import DbClient, InMemoryDbClient, PostgresDbClient
from backend.errors import ApiError
from backend.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from payments.stancer import StancerClient
from payments.stripe_checkout import StripeCheckoutClient

FUNCTION_ENV_MISSING = "Function env is missing"
SUPABASE_ENV_MISSING = "Supabase env is missing"

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_auth_client: AuthClient | None = None
_stancer_client: StancerClient | None = None
_stripe_client: StripeCheckoutClient | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_endpoint:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            endpoint=settings.storage_endpoint,
            region=settings.storage_region or "",
            access_key_id=settings.storage_access_key_id or "",
            secret_access_key=settings.storage_secret_access_key or "",
        )
    return _storage_client


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client:
        return _auth_client

    settings = get_settings()
    if settings.use_in_memory_backends or not (
        settings.supabase_url and settings.supabase_anon_key
    ):
        _auth_client = InMemoryAuthClient()
    else:
        _auth_client = SupabaseAuthClient(
            settings.supabase_url, settings.supabase_anon_key
        )
    return _auth_client


def _has_auth_env(settings: Settings) -> bool:
    return settings.use_in_memory_backends or bool(
        settings.supabase_url and settings.supabase_anon_key
    )


def require_supabase_env(settings: Settings = Depends(get_settings)) -> None:
    if not (settings.use_in_memory_backends or settings.has_supabase_env):
        raise ApiError(500, SUPABASE_ENV_MISSING)


def get_stancer_client(settings: Settings = Depends(get_settings)) -> StancerClient:
    global _stancer_client
    if not _has_auth_env(settings) or not settings.stancer_private_key:
        raise ApiError(500, FUNCTION_ENV_MISSING)
    if _stancer_client is None:
        _stancer_client = StancerClient(
            settings.stancer_private_key, api_base=settings.stancer_api_base
        )
    return _stancer_client


def get_stripe_client(settings: Settings = Depends(get_settings)) -> StripeCheckoutClient:
    global _stripe_client
    if not _has_auth_env(settings) or not settings.stripe_secret_key:
        raise ApiError(500, FUNCTION_ENV_MISSING)
    if _stripe_client is None:
        _stripe_client = StripeCheckoutClient(
            settings.stripe_secret_key, api_base=settings.stripe_api_base
        )
    return _stripe_client
