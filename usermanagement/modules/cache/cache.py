"""
Cache-aside storage and decorators.

Caching is explicit: a read method opts in with @cached(namespace, key) and
a mutating method declares what it invalidates with @evicts(namespace, key).
The decorated methods must belong to an object exposing a `cache` attribute
holding a CacheModule.
"""

import functools
import logging
from typing import Any, Callable, Optional

from pydantic import TypeAdapter
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

# Namespaces of the user directory
USERS = "users"
USER_BY_EMAIL = "userByEmail"
USERS_LIST = "usersList"


class CacheModule:
    """
    Namespaced JSON cache on top of Redis.

    Every failure is logged and reported as a miss: a broken cache must
    never fail the request it is serving.
    """

    def __init__(self, redis_client=None, default_ttl: int = 600):
        """
        Initialize cache module.

        Args:
            redis_client: Async Redis client, or None to disable caching
            default_ttl: Entry TTL in seconds
        """
        self.redis = redis_client
        self.default_ttl = default_ttl

    @property
    def enabled(self) -> bool:
        return self.redis is not None

    async def get(self, namespace: str, key: str) -> Optional[str]:
        """Get a cached JSON value, or None on miss."""
        if not self.enabled:
            return None
        try:
            return await self.redis.get(self._key(namespace, key))
        except RedisError as e:
            logger.warning(f"Cache read failed for {namespace}:{key}: {e}")
            return None

    async def set(self, namespace: str, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Store a JSON value and index it under its namespace."""
        if not self.enabled:
            return
        cache_key = self._key(namespace, key)
        try:
            await self.redis.setex(cache_key, ttl or self.default_ttl, value)
            await self.redis.sadd(self._index_key(namespace), cache_key)
        except RedisError as e:
            logger.warning(f"Cache write failed for {namespace}:{key}: {e}")

    async def delete(self, namespace: str, key: str) -> None:
        """Evict a single entry."""
        if not self.enabled:
            return
        cache_key = self._key(namespace, key)
        try:
            await self.redis.delete(cache_key)
            await self.redis.srem(self._index_key(namespace), cache_key)
        except RedisError as e:
            logger.warning(f"Cache eviction failed for {namespace}:{key}: {e}")

    async def delete_namespace(self, namespace: str) -> None:
        """Evict every entry of a namespace."""
        if not self.enabled:
            return
        index_key = self._index_key(namespace)
        try:
            keys = await self.redis.smembers(index_key)
            if keys:
                await self.redis.delete(*keys)
            await self.redis.delete(index_key)
        except RedisError as e:
            logger.warning(f"Cache eviction failed for namespace {namespace}: {e}")

    @staticmethod
    def _key(namespace: str, key: str) -> str:
        return f"cache:{namespace}:{key}"

    @staticmethod
    def _index_key(namespace: str) -> str:
        return f"cache:{namespace}:__keys__"


def cached(namespace: str, key: Callable[..., Any], model: Any):
    """
    Cache-aside read-through for an async method.

    Args:
        namespace: Cache namespace
        key: Builds the entry key from the method's arguments (without self)
        model: Type of the return value, used to (de)serialize entries

    None results are not cached.
    """
    adapter = TypeAdapter(model)

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            cache: CacheModule = self.cache
            entry_key = str(key(*args, **kwargs))

            hit = await cache.get(namespace, entry_key)
            if hit is not None:
                logger.debug(f"Cache HIT {namespace}:{entry_key}")
                return adapter.validate_json(hit)

            logger.debug(f"Cache MISS {namespace}:{entry_key}")
            result = await func(self, *args, **kwargs)
            if result is not None:
                await cache.set(namespace, entry_key, adapter.dump_json(result).decode("utf-8"))
            return result

        return wrapper

    return decorator


def evicts(namespace: str, key: Optional[Callable[..., Any]] = None):
    """
    Invalidate cache entries after an async method succeeds.

    Args:
        namespace: Cache namespace
        key: Builds the entry key from the method's arguments (without self);
            None evicts the whole namespace
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            result = await func(self, *args, **kwargs)

            cache: CacheModule = self.cache
            if key is None:
                await cache.delete_namespace(namespace)
            else:
                await cache.delete(namespace, str(key(*args, **kwargs)))
            return result

        return wrapper

    return decorator
