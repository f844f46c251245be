"""Supabase client wrapper backing the shared dedup cache."""

from datetime import datetime, timedelta
from typing import Optional
from supabase import create_client, Client
from supabase.client import ClientOptions
from slack_relay.utils.errors import CacheError, ConfigurationError
from slack_relay.utils.settings import RelaySettings
import logging

logger = logging.getLogger(__name__)

CACHE_TABLE = "relay_dedup_cache"


def create_supabase_client(settings: RelaySettings) -> Client:
    """Create a Supabase client from relay settings."""
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set for DEDUP_BACKEND=supabase")

    # Serverless functions never refresh or persist auth sessions
    options = ClientOptions(
        auto_refresh_token=False,
        persist_session=False,
    )

    client = create_client(settings.supabase_url, settings.supabase_service_role_key, options)
    logger.info("Supabase client initialized", extra={"url": settings.supabase_url})
    return client


def fetch_live_cache_value(client: Client, cache_key: str, now: datetime) -> Optional[str]:
    """Return the value stored under cache_key if it has not expired."""
    try:
        result = (
            client.table(CACHE_TABLE)
            .select("value")
            .eq("cache_key", cache_key)
            .gt("expires_at", now.isoformat())
            .limit(1)
            .execute()
        )
    except Exception as e:
        raise CacheError(f"Failed to read dedup cache entry: {e}") from e
    return result.data[0]["value"] if result.data else None


def upsert_cache_value(client: Client, cache_key: str, value: str, ttl_seconds: int, now: datetime) -> None:
    """Insert or refresh a cache entry that expires ttl_seconds from now."""
    expires_at = now + timedelta(seconds=ttl_seconds)
    try:
        client.table(CACHE_TABLE).upsert({
            "cache_key": cache_key,
            "value": value,
            "expires_at": expires_at.isoformat(),
        }, on_conflict="cache_key").execute()
    except Exception as e:
        raise CacheError(f"Failed to write dedup cache entry: {e}") from e


def purge_expired_cache_values(client: Client, now: datetime) -> None:
    """Delete entries whose TTL has passed so no marker outlives its window."""
    try:
        client.table(CACHE_TABLE).delete().lt("expires_at", now.isoformat()).execute()
    except Exception as e:
        raise CacheError(f"Failed to purge expired dedup cache entries: {e}") from e
