"""Persisted key-value store backing the CitySync snapshot slots.

Production deployments keep the snapshot in Redis; development setups and the
test-suite use the in-process :class:`MemoryStorage`.  Both expose the same
string-keyed surface so the sync layer never needs to know which one it talks
to.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Protocol

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from citysync.errors import StorageUnavailableError
from citysync.settings import DEFAULT_STORAGE_NAMESPACE, AppSettings, get_settings

logger = logging.getLogger(__name__)

# Slot names making up the persisted snapshot.
LOCATIONS_SLOT = "locations"
REVIEWS_SLOT = "reviews"
USER_SLOT = "user"
USER_CITY_SLOT = "userCity"
USER_COUNTRY_SLOT = "userCountry"
LAST_GEOCODED_SLOT = "lastGeocodedSession"

_redis_client: Redis | None = None
_client_lock = asyncio.Lock()
_redis_disabled = False


class KeyValueStore(Protocol):
    """Structural interface shared by every persisted store implementation."""

    async def get_item(self, key: str) -> str | None: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def set_items(self, items: Mapping[str, str]) -> None: ...

    async def remove_item(self, key: str) -> None: ...

    async def all_keys(self) -> list[str]: ...


def _is_redis_connection_error(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` represents a Redis connection failure."""

    return isinstance(exc, (RedisConnectionError, RedisTimeoutError, OSError))


async def get_redis(url: str) -> Redis | None:
    """Get the shared Redis client, returning ``None`` if the connection fails."""

    global _redis_client, _redis_disabled

    if _redis_disabled:
        logger.debug("Redis connection disabled after previous failure; skipping attempt.")
        return None

    async with _client_lock:
        if _redis_client is not None:
            return _redis_client

        if _redis_disabled:
            return None

        try:
            client = Redis.from_url(url, decode_responses=True, encoding="utf-8")
            # Test connection before storing the singleton instance.
            await client.ping()
            _redis_client = client
            logger.info("Redis connection established successfully")
            return _redis_client
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                logger.warning(
                    "Redis connection failed: %s. Snapshot storage will use process memory.",
                    exc,
                )
                _redis_client = None
                _redis_disabled = True
                return None
            raise


async def close_redis() -> None:
    """Close the global Redis connection gracefully."""

    global _redis_client, _redis_disabled
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
    _redis_disabled = False


class RedisStorage:
    """Redis-backed :class:`KeyValueStore` scoped to a key namespace.

    Connection failures surface as :class:`StorageUnavailableError` so callers can
    apply their own recovery policy; anything else propagates untouched.
    """

    def __init__(self, redis: Redis, *, namespace: str = DEFAULT_STORAGE_NAMESPACE) -> None:
        self._redis = redis
        self._namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get_item(self, key: str) -> str | None:
        try:
            return await self._redis.get(self._key(key))
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                raise StorageUnavailableError(f"Redis get failed for key {key}: {exc}") from exc
            raise

    async def set_item(self, key: str, value: str) -> None:
        try:
            await self._redis.set(self._key(key), value)
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                raise StorageUnavailableError(f"Redis set failed for key {key}: {exc}") from exc
            raise

    async def set_items(self, items: Mapping[str, str]) -> None:
        """Write every pair in one ``MSET`` so either all slots change or none do."""

        if not items:
            return
        try:
            await self._redis.mset({self._key(key): value for key, value in items.items()})
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                raise StorageUnavailableError(f"Redis mset failed: {exc}") from exc
            raise

    async def remove_item(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                raise StorageUnavailableError(
                    f"Redis delete failed for key {key}: {exc}"
                ) from exc
            raise

    async def all_keys(self) -> list[str]:
        prefix = f"{self._namespace}:"
        keys: list[str] = []
        try:
            async for key in self._redis.scan_iter(match=f"{prefix}*"):
                keys.append(key[len(prefix) :])
        except Exception as exc:  # type: ignore[broad-except]
            if _is_redis_connection_error(exc):
                raise StorageUnavailableError(f"Redis scan failed: {exc}") from exc
            raise
        return sorted(keys)


class MemoryStorage:
    """Dictionary-backed :class:`KeyValueStore` living in process memory."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def set_items(self, items: Mapping[str, str]) -> None:
        self._items.update(items)

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def all_keys(self) -> list[str]:
        return sorted(self._items)


async def get_storage(settings: AppSettings | None = None) -> KeyValueStore:
    """Resolve the configured store, degrading to memory when Redis is unreachable."""

    active = settings or get_settings()
    if active.use_memory_storage:
        logger.info("Using in-memory snapshot storage (USE_MEMORY_STORAGE enabled)")
        return MemoryStorage()

    redis = await get_redis(active.redis_url)
    if redis is None:
        return MemoryStorage()
    return RedisStorage(redis, namespace=active.storage_namespace)


__all__ = [
    "KeyValueStore",
    "LAST_GEOCODED_SLOT",
    "LOCATIONS_SLOT",
    "MemoryStorage",
    "REVIEWS_SLOT",
    "RedisStorage",
    "USER_CITY_SLOT",
    "USER_COUNTRY_SLOT",
    "USER_SLOT",
    "close_redis",
    "get_redis",
    "get_storage",
]
