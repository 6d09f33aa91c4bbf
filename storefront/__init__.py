"""
Storefront Cart Module

This package contains the cart pricing & currency components:
- cart: cart engine, models and persisted stores
- services: money helpers, currency tables, exchange rate refresh, catalog
- payments: gateway constants and checkout orchestration
- routers: HTTP routes
- app: FastAPI composition root

Note: Imports are lazy so that importing a submodule does not pull in
FastAPI or the storage clients.
"""

__all__ = [
    "CartEngine",
    "create_app",
    "get_supabase_sync",
    "get_redis_sync",
]


def __getattr__(name):
    """Lazy attribute access for the public entry points."""
    if name == "CartEngine":
        from storefront.cart import CartEngine
        return CartEngine
    elif name == "create_app":
        from storefront.app import create_app
        return create_app
    elif name == "get_supabase_sync":
        from storefront.db import get_supabase_sync
        return get_supabase_sync
    elif name == "get_redis_sync":
        from storefront.db import get_redis_sync
        return get_redis_sync
    raise AttributeError(f"module 'storefront' has no attribute '{name}'")
