# lettuce/services/redis_client.py
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from lettuce.config import settings
from lettuce.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_GLOB_SPECIAL = "\\*?[]"


def _escape_glob(value: str) -> str:
    return "".join(f"\\{ch}" if ch in _GLOB_SPECIAL else ch for ch in value)


class FastRedisClient:
    """
    Pooled Redis client used as the distributed cache store.

    Every operation fails soft: errors are logged and reported as a miss,
    False or 0, never raised.
    """

    def __init__(self, url: str | None = None):
        self.url = url or settings.REDIS_URL
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        try:
            logger.info("Attempting Redis connection", url_preview=self.url[:30] + "...")

            self.pool = ConnectionPool.from_url(
                self.url,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                retry_on_timeout=True,
                retry_on_error=[redis.ConnectionError, redis.TimeoutError],
                socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
                socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
                health_check_interval=30,
                decode_responses=True,
            )

            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True
            logger.info(
                "Fast Redis client initialized successfully",
                max_connections=settings.REDIS_MAX_CONNECTIONS,
            )

        except Exception as e:
            logger.error("Failed to initialize fast Redis client", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

    async def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self._initialized = False
            logger.info("Fast Redis client closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))

    async def _ensure_initialized(self):
        """Ensure Redis is initialized, fallback if not"""
        if not self._initialized:
            logger.warning("Redis not initialized, attempting to initialize")
            await self.initialize()
            if not self._initialized:
                raise ConnectionError("Redis client not available")

    async def ping(self) -> bool:
        """Test Redis connection"""
        try:
            await self._ensure_initialized()
            result = await self.client.ping()
            return bool(result)
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def get(self, key: str) -> str | None:
        """Get value - with fallback handling"""
        try:
            await self._ensure_initialized()
            result = await self.client.get(key)
            return result if result else None  # decode_responses=True handles string conversion
        except Exception as e:
            logger.error("Redis GET failed", key=key[:60], error=str(e))
            return None

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        """Set value with TTL - with fallback handling"""
        try:
            await self._ensure_initialized()

            if ttl_s:
                result = await self.client.setex(key, ttl_s, value)
            else:
                result = await self.client.set(key, value)
            return bool(result)
        except Exception as e:
            logger.error("Redis SET failed", key=key[:60], error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        """Delete key - with fallback handling"""
        try:
            await self._ensure_initialized()
            result = await self.client.delete(key)
            return result > 0
        except Exception as e:
            logger.error("Redis DELETE failed", key=key[:60], error=str(e))
            return False

    async def delete_prefix(self, prefix: str, batch_size: int = 500) -> int:
        """
        Delete every key starting with prefix.

        Uses SCAN rather than KEYS so large keyspaces don't block the server,
        and UNLINK so the memory is reclaimed in the background.
        """
        try:
            await self._ensure_initialized()
            pattern = f"{_escape_glob(prefix)}*"
            removed = 0
            batch: list[str] = []
            async for key in self.client.scan_iter(match=pattern, count=batch_size):
                batch.append(key)
                if len(batch) >= batch_size:
                    removed += await self.client.unlink(*batch)
                    batch = []
            if batch:
                removed += await self.client.unlink(*batch)
            return removed
        except Exception as e:
            logger.error("Redis prefix DELETE failed", prefix=prefix[:60], error=str(e))
            return 0

    async def incr_with_ttl(self, key: str, ttl_s: int | None = None) -> int | None:
        """Increment a key and optionally refresh TTL atomically."""
        try:
            await self._ensure_initialized()
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                if ttl_s:
                    pipe.expire(key, ttl_s)
                results = await pipe.execute()
            return int(results[0]) if results else None
        except Exception as e:
            logger.error("Redis INCR failed", key=key[:60], error=str(e))
            return None


# Global instance
fast_redis = FastRedisClient()
