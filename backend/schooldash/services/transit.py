"""Departures from the BVG transport REST API (https://v6.bvg.transport.rest)."""

import logging
import math
from datetime import datetime
from typing import Any, Optional
from urllib.parse import urlencode

from pydantic import ValidationError

from schooldash.config import Settings, settings
from schooldash.db.kv import KVStore, get_store
from schooldash.errors import EmptyResultError, FetchError
from schooldash.models.transit import DepartureBoard
from schooldash.services.cache import TRANSIT_SOURCE, TimeBucketedCache
from schooldash.services.upstream import fetch_json
from schooldash.timeutils import iso_with_offset

logger = logging.getLogger(__name__)


def build_departure_url(
    base_url: str,
    stop_id: int,
    direction: Optional[int] = None,
    bus: Optional[bool] = None,
    remarks: Optional[bool] = None,
    duration: Optional[int] = None,
    when: Optional[str] = None,
) -> str:
    """Departures URL for a stop, parameters left out when not given"""
    params = {}
    if direction:
        params["direction"] = str(direction)
    if bus is not None:
        params["bus"] = str(bus).lower()
    if when:
        params["when"] = when
    if remarks is not None:
        params["remarks"] = str(remarks).lower()
    if duration:
        params["duration"] = str(duration)

    url = f"{base_url.rstrip('/')}/stops/{stop_id}/departures"
    return f"{url}?{urlencode(params)}" if params else url


def format_delay(seconds: Optional[int]) -> str:
    """
    Human-readable delay for a departure

    Args:
        seconds: Signed delay (negative = early); None means no realtime data

    Returns:
        "On Time", "Early: N min" or "Delayed: N min"
    """
    seconds = 0 if seconds is None else seconds
    # halves round away from zero: -90s is "Early: 2 min"
    minutes = math.floor(abs(seconds) / 60 + 0.5)
    if seconds < 0:
        return f"Early: {minutes} min"
    if seconds == 0:
        return "On Time"
    return f"Delayed: {minutes} min"


def parse_departures(data: Any) -> DepartureBoard:
    """
    Validate a departures response

    Raises:
        EmptyResultError if the departure list is present but empty
        FetchError if the body does not look like a departures response
    """
    if isinstance(data, dict) and data.get("departures") == []:
        raise EmptyResultError(TRANSIT_SOURCE, "no departures available")
    try:
        return DepartureBoard.model_validate(data)
    except ValidationError as e:
        raise FetchError(TRANSIT_SOURCE, f"invalid departures response: {e}")


class TransitFetcher:
    """Hour-cached departures for the configured stop and direction"""

    def __init__(self, config: Settings = settings, store: Optional[KVStore] = None):
        self.config = config
        self.cache = TimeBucketedCache(store or get_store(), config.timezone)

    def departures_url(self, now: Optional[datetime] = None) -> str:
        return build_departure_url(
            self.config.bvg_api_url,
            self.config.bvg_stop_id,
            direction=self.config.bvg_direction_stop_id,
            bus=True,
            remarks=False,
            duration=self.config.bvg_duration_minutes,
            when=iso_with_offset(now, self.config.timezone),
        )

    async def get(self, now: Optional[datetime] = None) -> Optional[DepartureBoard]:
        """
        Get the departure board for the current hour

        Returns:
            The cached or freshly fetched board, None if the upstream failed or
            had no departures (empty results are never cached)
        """
        key = self.cache.key_for(TRANSIT_SOURCE, now)

        try:
            cached = await self.cache.get(key)
        except Exception as e:
            logger.error(f"Could not read transit cache: {e}")
            cached = None

        if cached is not None:
            try:
                return DepartureBoard.model_validate(cached)
            except ValidationError as e:
                logger.warning(f"Ignoring unreadable cached departures: {e}")

        try:
            data = await fetch_json(
                TRANSIT_SOURCE, self.departures_url(now), timeout=self.config.upstream_timeout
            )
            board = parse_departures(data)
        except EmptyResultError:
            logger.info("No departures available.")
            return None
        except FetchError as e:
            logger.error(f"Error fetching BVG data: {e}")
            return None

        try:
            await self.cache.put(key, data, self.config.transit_cache_ttl)
        except Exception as e:
            logger.error(f"Could not cache departures: {e}")

        return board
