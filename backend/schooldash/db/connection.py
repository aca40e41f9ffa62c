import asyncpg
import logging
from typing import Optional

from schooldash.config import settings

logger = logging.getLogger(__name__)

# Global connection pool, shared by every PostgresKVStore
_pool: Optional[asyncpg.Pool] = None


async def init_db(dsn: Optional[str] = None) -> asyncpg.Pool:
    """
    Create the connection pool for the key-value table

    Opening twice returns the existing pool.
    """
    global _pool
    if _pool is not None:
        return _pool

    try:
        _pool = await asyncpg.create_pool(
            dsn or settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.upstream_timeout * 3
        )
        logger.info(
            f"Database pool created ({settings.db_pool_min_size}-{settings.db_pool_max_size} connections)"
        )
    except (OSError, asyncpg.PostgresError) as e:
        logger.error(f"Failed to create database pool: {e}")
        raise
    return _pool


async def close_db():
    """Close the connection pool; safe to call when it was never opened"""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


async def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized")
    return _pool
