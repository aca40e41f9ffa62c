import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from schooldash.config import settings
from schooldash.db.kv import KVStore
from schooldash.timeutils import hour_bucket

logger = logging.getLogger(__name__)

WEATHER_SOURCE = "WEATHER"
TRANSIT_SOURCE = "BVG"


class TimeBucketedCache:
    """
    JSON cache whose keys change once per clock hour

    Every request in the same hour (in the configured timezone) sees the
    same key, so each source is fetched upstream at most once per hour.
    Expiry is left to the underlying store.
    """

    def __init__(self, store: KVStore, tz_name: Optional[str] = None):
        self.store = store
        self.tz_name = tz_name or settings.timezone

    def key_for(self, source: str, now: Optional[datetime] = None) -> str:
        return f"{source}_{hour_bucket(now, self.tz_name)}"

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        payload = await self.store.get(key, "json")
        if payload is not None:
            logger.debug(f"Cache hit for {key}")
        return payload

    async def put(self, key: str, payload: Dict[str, Any], ttl_seconds: int) -> None:
        await self.store.put(key, json.dumps(payload), expiration_ttl=ttl_seconds)
        logger.debug(f"Cached {key} for {ttl_seconds}s")
