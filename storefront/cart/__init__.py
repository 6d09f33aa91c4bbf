"""Cart package: models, persisted stores, and the cart engine."""
from .models import CartState, LineItem, ProductSnapshot, SCHEMA_VERSION
from .service import CartEngine
from .storage import CartStore, FileCartStore, MemoryCartStore, RedisCartStore, build_cart_store

__all__ = [
    "CartEngine",
    "CartState",
    "CartStore",
    "FileCartStore",
    "LineItem",
    "MemoryCartStore",
    "ProductSnapshot",
    "RedisCartStore",
    "SCHEMA_VERSION",
    "build_cart_store",
]
