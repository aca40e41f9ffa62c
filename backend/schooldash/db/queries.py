import logging
from typing import Optional

from schooldash.db.connection import get_pool

logger = logging.getLogger(__name__)


CREATE_KV_TABLE = """
    CREATE TABLE IF NOT EXISTS kv_store (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        expires_at TIMESTAMPTZ
    );
"""


async def ensure_schema() -> None:
    """Create the key-value table if it does not exist yet"""
    pool = await get_pool()
    async with pool.acquire() as conn:
        await conn.execute(CREATE_KV_TABLE)


async def get_value(key: str) -> Optional[str]:
    """
    Read a value that has not expired yet

    Args:
        key: Cache or setting key

    Returns:
        The stored text, or None if missing or expired
    """
    pool = await get_pool()

    query = """
        SELECT value
        FROM kv_store
        WHERE key = $1
        AND (expires_at IS NULL OR expires_at > NOW());
    """

    try:
        async with pool.acquire() as conn:
            return await conn.fetchval(query, key)
    except Exception as e:
        logger.error(f"Error reading key {key}: {e}")
        raise


async def put_value(key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
    """
    Insert or overwrite a value

    Args:
        key: Cache or setting key
        value: Text to store
        ttl_seconds: Lifetime in seconds, None keeps the value forever
    """
    pool = await get_pool()

    query = """
        INSERT INTO kv_store (key, value, expires_at)
        VALUES ($1, $2, CASE WHEN $3::int IS NULL THEN NULL
                             ELSE NOW() + make_interval(secs => $3::int) END)
        ON CONFLICT (key)
        DO UPDATE SET
            value = EXCLUDED.value,
            expires_at = EXCLUDED.expires_at;
    """

    try:
        async with pool.acquire() as conn:
            await conn.execute(query, key, value, ttl_seconds)
    except Exception as e:
        logger.error(f"Error writing key {key}: {e}")
        raise


async def purge_expired() -> int:
    """Delete expired rows, returns the number removed"""
    pool = await get_pool()

    query = "DELETE FROM kv_store WHERE expires_at IS NOT NULL AND expires_at <= NOW()"

    try:
        async with pool.acquire() as conn:
            result = await conn.execute(query)
            # asyncpg returns the command tag, e.g. "DELETE 3"
            return int(result.split()[-1])
    except Exception as e:
        logger.error(f"Error purging expired keys: {e}")
        return 0


async def check_database_health() -> bool:
    """
    Check if database connection is healthy

    Returns:
        True if database is accessible, False otherwise
    """
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            result = await conn.fetchval("SELECT 1")
            return result == 1
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
