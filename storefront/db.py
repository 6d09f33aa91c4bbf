"""
Database Module - Supabase and Redis Clients

Provides singleton instances of:
- Sync Supabase client for the product catalog
- Sync Upstash Redis client for cart persistence (optional backend)
"""

from typing import Optional

from supabase import create_client, Client
from upstash_redis import Redis

from storefront import config


_supabase_client: Optional[Client] = None
_sync_redis_client: Optional[Redis] = None


def get_supabase_sync() -> Client:
    """
    Get synchronous Supabase client (singleton).

    Raises:
        ValueError: If SUPABASE_URL / SUPABASE_ANON_KEY are not set
    """
    global _supabase_client

    if _supabase_client is None:
        if not config.SUPABASE_URL or not config.SUPABASE_ANON_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
        _supabase_client = create_client(config.SUPABASE_URL, config.SUPABASE_ANON_KEY)

    return _supabase_client


def get_redis_sync() -> Redis:
    """
    Get sync Upstash Redis client (singleton).

    Cart writes are synchronous, so the cart store uses the sync client.

    Raises:
        ValueError: If UPSTASH_REDIS_REST_URL / UPSTASH_REDIS_REST_TOKEN are not set
    """
    global _sync_redis_client

    if _sync_redis_client is None:
        if not config.UPSTASH_REDIS_REST_URL or not config.UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _sync_redis_client = Redis(
            url=config.UPSTASH_REDIS_REST_URL, token=config.UPSTASH_REDIS_REST_TOKEN
        )

    return _sync_redis_client


class RedisKeys:
    """Redis key prefixes for different data types."""

    CART = "cart:"  # cart:{storage key}

    @staticmethod
    def cart_key(storage_key: str) -> str:
        return f"{RedisKeys.CART}{storage_key}"
