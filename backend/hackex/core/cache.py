"""
Ephemeral Key-Value Store using Redis

Holds the public-token views of scans and the reverse index from a scan id to
every token issued for it. Entries are short lived (TTL) and the service
degrades gracefully when Redis is unavailable: reads return None/empty and
writes return False, so a broken cache only makes tokens unresolvable and never
fails a scan.

Key features:
- Automatic JSON serialization/deserialization
- TTL-based expiration
- Set operations for reverse indexes
- MULTI/EXEC pipelines for multi-key updates
- Cache key prefixing for namespace isolation
"""

import asyncio
import json
import logging
from typing import Any, Dict, Iterable, Optional, Set

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from hackex.core.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """
    Redis backed key-value and set store shared by all backend pods.
    """

    def __init__(self):
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._available: bool = True
        self._lock: asyncio.Lock = asyncio.Lock()

    async def get_client(self) -> redis.Redis:
        """Get or create Redis client with connection pooling.

        Uses a lock to prevent race conditions when multiple coroutines
        try to initialize the client simultaneously.
        """
        if self._client is not None and self._pool is not None:
            return self._client

        async with self._lock:
            # Double-check after acquiring lock
            if self._client is not None and self._pool is not None:
                return self._client

            try:
                self._pool = ConnectionPool.from_url(
                    settings.REDIS_URL,
                    encoding="utf-8",
                    decode_responses=True,
                    max_connections=20,
                )
                self._client = redis.Redis(connection_pool=self._pool)
                await self._client.ping()
                self._available = True
                logger.info("Redis connection established")
            except Exception as e:
                logger.warning(f"Redis connection failed: {e}. Token views will be unavailable.")
                self._available = False
                raise
        return self._client

    async def close(self) -> None:
        """Close Redis connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
        if self._pool:
            await self._pool.disconnect()
            self._pool = None

    def _make_key(self, key: str) -> str:
        """Create prefixed cache key."""
        return f"{settings.CACHE_PREFIX}{key}"

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key (will be prefixed automatically)

        Returns:
            Cached value or None if not found/expired
        """
        if not self._available:
            return None

        try:
            client = await self.get_client()
            data = await client.get(self._make_key(key))
            if data:
                return json.loads(data)
            return None
        except redis.ConnectionError:
            logger.warning("Redis connection lost, disabling cache temporarily")
            self._available = False
            return None
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to decode cached value for {key}: {e}")
            return None
        except Exception as e:
            logger.warning(f"Cache get error for {key}: {e}")
            return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: Optional[int] = None,
        only_if_exists: bool = False,
    ) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key (will be prefixed automatically)
            value: Value to cache (must be JSON serializable)
            ttl_seconds: Time-to-live in seconds (default: token TTL)
            only_if_exists: Overwrite an existing key only (SET XX) and give it
                a fresh TTL. An expired key is never recreated.

        Returns:
            True if written, False otherwise
        """
        if not self._available:
            return False

        if ttl_seconds is None:
            ttl_seconds = settings.TOKEN_TTL_HOURS * 3600

        try:
            client = await self.get_client()
            serialized = json.dumps(value, default=str)
            if only_if_exists:
                result = await client.set(
                    self._make_key(key), serialized, xx=True, ex=ttl_seconds
                )
                return bool(result)
            await client.setex(self._make_key(key), ttl_seconds, serialized)
            return True
        except redis.ConnectionError:
            logger.warning("Redis connection lost, disabling cache temporarily")
            self._available = False
            return False
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to serialize value for {key}: {e}")
            return False
        except Exception as e:
            logger.warning(f"Cache set error for {key}: {e}")
            return False

    async def delete(self, *keys: str) -> bool:
        """Delete one or more keys from cache."""
        if not self._available or not keys:
            return False

        try:
            client = await self.get_client()
            await client.delete(*[self._make_key(k) for k in keys])
            return True
        except Exception as e:
            logger.warning(f"Cache delete error for {keys}: {e}")
            return False

    async def refresh_ttl(self, key: str, ttl_seconds: Optional[int] = None) -> bool:
        """Reset the TTL of an existing key. Returns False if the key is gone."""
        if not self._available:
            return False

        if ttl_seconds is None:
            ttl_seconds = settings.TOKEN_TTL_HOURS * 3600

        try:
            client = await self.get_client()
            return bool(await client.expire(self._make_key(key), ttl_seconds))
        except redis.ConnectionError:
            logger.warning("Redis connection lost, disabling cache temporarily")
            self._available = False
            return False
        except Exception as e:
            logger.warning(f"Cache expire error for {key}: {e}")
            return False

    async def members(self, key: str) -> Set[str]:
        """Return all members of a set (empty when missing or unavailable)."""
        if not self._available:
            return set()

        try:
            client = await self.get_client()
            return set(await client.smembers(self._make_key(key)))
        except redis.ConnectionError:
            self._available = False
            return set()
        except Exception as e:
            logger.warning(f"Cache smembers error for {key}: {e}")
            return set()

    async def set_and_index(
        self,
        key: str,
        value: Any,
        index_key: str,
        member: str,
        ttl_seconds: Optional[int] = None,
    ) -> bool:
        """
        Atomically write a value and register it in a set index.

        Runs SETEX, SADD and EXPIRE in a single MULTI/EXEC transaction so a
        concurrent writer never observes the value without its index entry.
        """
        if not self._available:
            return False

        if ttl_seconds is None:
            ttl_seconds = settings.TOKEN_TTL_HOURS * 3600

        try:
            client = await self.get_client()
            serialized = json.dumps(value, default=str)
            async with client.pipeline(transaction=True) as pipe:
                pipe.setex(self._make_key(key), ttl_seconds, serialized)
                pipe.sadd(self._make_key(index_key), member)
                pipe.expire(self._make_key(index_key), ttl_seconds)
                await pipe.execute()
            return True
        except redis.ConnectionError:
            logger.warning("Redis connection lost, disabling cache temporarily")
            self._available = False
            return False
        except Exception as e:
            logger.warning(f"Cache set_and_index error for {key}: {e}")
            return False

    async def remove_from_index(self, index_key: str, members: Iterable[str]) -> bool:
        """Atomically remove members from a set index."""
        members = list(members)
        if not self._available or not members:
            return False

        try:
            client = await self.get_client()
            async with client.pipeline(transaction=True) as pipe:
                pipe.srem(self._make_key(index_key), *members)
                await pipe.execute()
            return True
        except Exception as e:
            logger.warning(f"Cache srem error for {index_key}: {e}")
            return False

    async def health_check(self) -> Dict[str, Any]:
        """
        Get cache health status and statistics.

        Returns:
            Dict with health info and Redis stats
        """
        try:
            client = await self.get_client()
            info = await client.info(section="memory")
            stats = await client.info(section="stats")

            return {
                "status": "healthy",
                "available": self._available,
                "used_memory": info.get("used_memory_human", "unknown"),
                "total_keys": await client.dbsize(),
                "keyspace_hits": stats.get("keyspace_hits", 0),
                "keyspace_misses": stats.get("keyspace_misses", 0),
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "available": False,
                "error": str(e),
            }


# Global cache service instance
cache_service = CacheService()


class CacheTTL:
    """Standard TTL values (in seconds)."""

    # Public-token views and their reverse index
    SCAN_VIEW = settings.TOKEN_TTL_HOURS * 3600


class CacheKeys:
    """Cache key builders for consistent key naming."""

    @staticmethod
    def scan_view(token: str) -> str:
        return f"scan:view:{token}"

    @staticmethod
    def scan_tokens(scan_id: str) -> str:
        return f"scan:tokens:{scan_id}"
