"""
Persisted cart stores.

A store holds exactly one serialized cart snapshot under a fixed key.
load() returns the parsed snapshot or None (absent or unparseable);
validating the snapshot's shape is the engine's job. save() overwrites
unconditionally and synchronously.
"""
import json
import os
import tempfile
from typing import Optional

from storefront import config
from storefront.db import RedisKeys, get_redis_sync
from storefront.logging import get_logger

logger = get_logger(__name__)


class CartStore:
    """Base class for persisted cart stores."""

    def load(self) -> Optional[dict]:
        raise NotImplementedError

    def save(self, snapshot: dict) -> None:
        raise NotImplementedError


def _parse(raw, source: str) -> Optional[dict]:
    if raw is None or raw == "":
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError, UnicodeDecodeError) as e:
        logger.warning(f"Unparseable cart snapshot in {source}: {e}")
        return None


class MemoryCartStore(CartStore):
    """In-process store; keeps the JSON text so reads behave like a real store."""

    def __init__(self, raw: Optional[str] = None):
        self.raw = raw
        self.writes = 0

    def load(self) -> Optional[dict]:
        return _parse(self.raw, "memory")

    def save(self, snapshot: dict) -> None:
        self.raw = json.dumps(snapshot, ensure_ascii=False)
        self.writes += 1


class FileCartStore(CartStore):
    """
    JSON file on local disk (the device-local storage of the cart).

    Writes go to a temporary file that replaces the target, so a crash
    mid-write leaves the previous snapshot intact.
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[dict]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Failed to read cart snapshot {self.path}: {e}")
            return None
        return _parse(raw, self.path)

    def save(self, snapshot: dict) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".cart-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class RedisCartStore(CartStore):
    """Upstash Redis store (sync client)."""

    def __init__(self, redis=None, storage_key: str = config.CART_STORAGE_KEY, ttl: Optional[int] = None):
        self._redis = redis  # Lazy initialization
        self.key = RedisKeys.cart_key(storage_key)
        self.ttl = ttl or None

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            self._redis = get_redis_sync()
        return self._redis

    def load(self) -> Optional[dict]:
        return _parse(self.redis.get(self.key), self.key)

    def save(self, snapshot: dict) -> None:
        payload = json.dumps(snapshot, ensure_ascii=False)
        if self.ttl:
            self.redis.set(self.key, payload, ex=self.ttl)
        else:
            self.redis.set(self.key, payload)


def build_cart_store(backend: Optional[str] = None) -> CartStore:
    """
    Create the store selected by CART_STORAGE_BACKEND.

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = (backend or config.CART_STORAGE_BACKEND).lower()
    if backend == "file":
        return FileCartStore(config.CART_STORAGE_PATH)
    if backend == "redis":
        return RedisCartStore(storage_key=config.CART_STORAGE_KEY, ttl=config.CART_REDIS_TTL)
    if backend == "memory":
        return MemoryCartStore()
    raise ValueError(f"Unknown cart storage backend: {backend}")
