"""Key-value stores backing the dashboard cache and the battery level.

Both stores own expiry: callers pass a TTL on write and never see an
expired value on read.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from schooldash.config import settings
from schooldash.db import connection, queries

logger = logging.getLogger(__name__)


def _decode(raw: Optional[str], fmt: str) -> Any:
    if raw is None or fmt == "text":
        return raw
    if fmt == "json":
        return json.loads(raw)
    raise ValueError(f"Unknown value format: {fmt}")


class KVStore:
    """Interface shared by the store backends"""

    async def get(self, key: str, fmt: str = "text") -> Any:
        raise NotImplementedError

    async def put(self, key: str, value: str, expiration_ttl: Optional[int] = None) -> None:
        raise NotImplementedError

    async def ping(self) -> bool:
        raise NotImplementedError

    async def open(self) -> None:
        pass

    async def close(self) -> None:
        pass


class MemoryKVStore(KVStore):
    """Process-local store, used for development and tests"""

    def __init__(self):
        self._data: Dict[str, Tuple[str, Optional[datetime]]] = {}

    def _is_live(self, expires_at: Optional[datetime]) -> bool:
        return expires_at is None or datetime.now(timezone.utc) < expires_at

    async def get(self, key: str, fmt: str = "text") -> Any:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if not self._is_live(expires_at):
            del self._data[key]
            return None
        return _decode(value, fmt)

    async def put(self, key: str, value: str, expiration_ttl: Optional[int] = None) -> None:
        expires_at = None
        if expiration_ttl is not None:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=expiration_ttl)
        self._data[key] = (value, expires_at)

    async def ping(self) -> bool:
        return True

    def expire(self, key: str) -> None:
        """Backdate an entry so the next read treats it as expired"""
        if key in self._data:
            value, _ = self._data[key]
            self._data[key] = (value, datetime.now(timezone.utc) - timedelta(seconds=1))


class PostgresKVStore(KVStore):
    """Store backed by the kv_store table"""

    def __init__(self, dsn: Optional[str] = None):
        self.dsn = dsn

    async def open(self) -> None:
        await connection.init_db(self.dsn)
        await queries.ensure_schema()
        removed = await queries.purge_expired()
        if removed > 0:
            logger.info(f"Purged {removed} expired cache entries")

    async def close(self) -> None:
        await connection.close_db()

    async def get(self, key: str, fmt: str = "text") -> Any:
        return _decode(await queries.get_value(key), fmt)

    async def put(self, key: str, value: str, expiration_ttl: Optional[int] = None) -> None:
        await queries.put_value(key, value, expiration_ttl)

    async def ping(self) -> bool:
        return await queries.check_database_health()


# Global store
_store: Optional[KVStore] = None


def create_store(backend: Optional[str] = None) -> KVStore:
    backend = (backend or settings.kv_backend).lower()
    if backend == "memory":
        return MemoryKVStore()
    if backend == "postgres":
        return PostgresKVStore()
    raise ValueError(f"Unknown KV backend: {backend}")


async def init_store(store: Optional[KVStore] = None) -> KVStore:
    """Open the configured store (or the one given) and make it global"""
    global _store
    store = store or create_store()
    await store.open()
    _store = store
    logger.info(f"Key-value store initialized ({type(store).__name__})")
    return store


async def close_store():
    global _store
    if _store:
        await _store.close()
        _store = None
        logger.info("Key-value store closed")


def set_store(store: Optional[KVStore]) -> None:
    global _store
    _store = store


def get_store() -> KVStore:
    """Get the global key-value store"""
    if _store is None:
        raise RuntimeError("Key-value store not initialized")
    return _store
