"""
Storefront configuration.

All settings come from environment variables (a local .env file is loaded
if present). Values are read once at import time; tests and the composition
root pass explicit values to constructors instead of patching these.
"""
import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()


def _get_env(key: str, default: str) -> str:
    value = os.environ.get(key)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _get_int(key: str, default: int) -> int:
    try:
        return int(_get_env(key, str(default)))
    except ValueError:
        return default


# Pricing
BASE_CURRENCY = _get_env("BASE_CURRENCY", "NGN").upper()
DEFAULT_DISPLAY_CURRENCY = _get_env("DEFAULT_DISPLAY_CURRENCY", BASE_CURRENCY).upper()
BASE_DELIVERY_FEE = Decimal(_get_env("BASE_DELIVERY_FEE", "2000"))

# Exchange rates (https://api.exchangerate-api.com/v4/latest/NGN)
EXCHANGE_API_URL = _get_env("EXCHANGE_API_URL", "https://api.exchangerate-api.com/v4/latest").rstrip("/")
RATE_REFRESH_INTERVAL = _get_int("RATE_REFRESH_INTERVAL", 300)  # 5 minutes
RATE_FETCH_TIMEOUT = float(_get_int("RATE_FETCH_TIMEOUT", 10))

# Cart persistence
CART_STORAGE_KEY = _get_env("CART_STORAGE_KEY", "cartState")
CART_STORAGE_BACKEND = _get_env("CART_STORAGE_BACKEND", "file").lower()  # file | redis | memory
CART_STORAGE_PATH = _get_env("CART_STORAGE_PATH", os.path.join(".storefront", f"{CART_STORAGE_KEY}.json"))
CART_REDIS_TTL = _get_int("CART_REDIS_TTL", 0)  # 0 = no expiry

# BaaS (catalog)
SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "")

# Upstash Redis (optional cart store)
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")
