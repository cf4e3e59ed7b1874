# lettuce/db/pool.py
"""
PostgreSQL connection pool manager using psycopg_pool.
Connections point at the PostGIS database holding locations and ratings.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from lettuce.config import settings
from lettuce.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

POSTGIS_VERSION_QUERY = "SELECT extversion FROM pg_extension WHERE extname = 'postgis'"


class DatabasePoolManager:
    """Owns the pool; refuses to start against a database without PostGIS."""

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    async def initialize(self) -> None:
        """Open the pool and check PostGIS on application startup."""
        if self._initialized:
            logger.warning("Database pool already initialized")
            return

        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")

        pool_config = settings.get_db_pool_config()
        try:
            self.pool = AsyncConnectionPool(
                conninfo=settings.DATABASE_URL,
                open=False,
                check=AsyncConnectionPool.check_connection,
                configure=self._configure_connection,
                **pool_config,
            )
            await self.pool.open()
            await self.pool.wait()

            # connection() refuses calls until this is set
            self._initialized = True

            postgis_version = await self._check_postgis()
            logger.info(
                "Database pool initialized",
                min_size=pool_config["min_size"],
                max_size=pool_config["max_size"],
                postgis_version=postgis_version,
            )

        except Exception as e:
            logger.error("Failed to initialize database pool", error=str(e))
            self._initialized = False
            if self.pool:
                try:
                    await self.pool.close()
                except Exception as close_error:
                    logger.warning("Error closing half-open pool", error=str(close_error))
                self.pool = None
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        """Configure each new connection from the pool."""
        try:
            conn.row_factory = dict_row

            # Autocommit avoids leaving connections in INTRANS state
            await conn.set_autocommit(True)

            # Don't parameterize SET; inline safely with Literal
            app_name = f"lettuce-engine-{settings.environment}"
            await conn.execute(sql.SQL("SET application_name = {}").format(sql.Literal(app_name)))

            # Rating timestamps are compared against UTC cutoffs
            await conn.execute("SET timezone = 'UTC'")
            await conn.execute("SET statement_timeout = '30s'")
        except Exception:
            logger.exception("Failed to configure database connection")

    async def _check_postgis(self) -> str:
        """Return the installed PostGIS version; nearby search needs it."""
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(POSTGIS_VERSION_QUERY)
                row = await cur.fetchone()

        if not row:
            raise RuntimeError("PostGIS extension is not installed")
        return row["extversion"]

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if not self._initialized or self._closed:
            return

        try:
            if self.pool:
                await asyncio.wait_for(self.pool.close(), timeout=30.0)

            self._initialized = False
            self._closed = True
            logger.info("Database pool closed")

        except TimeoutError:
            logger.warning("Database pool close timed out, forcing shutdown")
        except Exception as e:
            logger.error("Error closing database pool", error=str(e))

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Get a connection from the pool.

        Usage:
            async with db_pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1")
        """
        if not self._initialized:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")

        if self._closed:
            raise RuntimeError("Database pool is closed")

        try:
            async with self.pool.connection() as conn:
                yield conn

        except Exception as e:
            logger.error("Database connection error", error=str(e), error_type=type(e).__name__)
            raise

    async def health_check(self) -> dict[str, Any]:
        """
        Round-trip the PostGIS version query and report pool occupancy.

        Returns:
            dict: ``healthy`` plus ``pool_stats``, or ``error`` on failure
        """
        if not self._initialized:
            return {"healthy": False, "error": "Pool not initialized", "service": "database_pool"}

        if self._closed:
            return {"healthy": False, "error": "Pool is closed", "service": "database_pool"}

        try:
            start_time = time.perf_counter()
            postgis_version = await self._check_postgis()
            connection_time_ms = (time.perf_counter() - start_time) * 1000

            stats = self.pool.get_stats()
            return {
                "healthy": True,
                "service": "database_pool",
                "connection_time_ms": round(connection_time_ms, 2),
                "postgis_version": postgis_version,
                "pool_stats": {
                    "pool_size": stats.get("pool_size", 0),
                    "pool_available": stats.get("pool_available", 0),
                    "requests_waiting": stats.get("requests_waiting", 0),
                },
            }

        except Exception as e:
            logger.error("Database pool health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "database_pool",
                "error": str(e),
                "error_type": type(e).__name__,
            }


# Global pool instance
db_pool = DatabasePoolManager()


async def get_db_connection():
    """Get database connection from pool."""
    return db_pool.connection()


async def db_health_check() -> dict[str, Any]:
    """Get database pool health status."""
    return await db_pool.health_check()
