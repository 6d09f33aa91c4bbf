"""Pytest configuration and fixtures"""
import os
from datetime import datetime, timezone
from decimal import Decimal

import pytest

# Set test environment variables before storefront.config is imported
os.environ["CART_STORAGE_BACKEND"] = "memory"
os.environ["BASE_CURRENCY"] = "NGN"
os.environ["DEFAULT_DISPLAY_CURRENCY"] = "NGN"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_ANON_KEY"] = ""
os.environ.setdefault("LOG_LEVEL", "WARNING")

from storefront.cart import CartEngine, MemoryCartStore  # noqa: E402

FIXED_NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now():
    """Timestamp returned by fixed_clock"""
    return FIXED_NOW


@pytest.fixture
def fixed_clock():
    """Clock that always returns FIXED_NOW"""
    return lambda: FIXED_NOW


@pytest.fixture
def store():
    """Empty in-memory cart store"""
    return MemoryCartStore()


@pytest.fixture
def engine(store, fixed_clock):
    """Initialized cart engine over an empty store (NGN base, 2000 delivery fee)"""
    cart = CartEngine(store, base_currency="NGN", base_delivery_fee=Decimal("2000"), clock=fixed_clock)
    cart.initialize()
    return cart


@pytest.fixture
def sample_product():
    """Catalog-style product (NGN, paid delivery)"""
    return {
        "id": "p1",
        "name": "Ankara Dress",
        "price": 100,
        "currency": "NGN",
    }


@pytest.fixture
def free_delivery_product():
    """Product that ships free"""
    return {
        "id": "p2",
        "name": "Leather Sandals",
        "price": 5000,
        "currency": "NGN",
        "free_delivery": True,
        "discount_percentage": 10,
        "stock_quantity": 4,
    }
