import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp

from schooldash.errors import FetchError

logger = logging.getLogger(__name__)


async def fetch_json(
    source: str,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    timeout: int = 10,
) -> Any:
    """
    GET a JSON document from an upstream API

    Args:
        source: Short name of the upstream, used in logs and errors
        url: Endpoint URL (without secrets; pass those in params)
        params: Query parameters
        timeout: Total request timeout in seconds

    Returns:
        The decoded JSON body

    Raises:
        FetchError on non-2xx status, network failure, timeout or invalid JSON
    """
    logger.info(f"Fetching {source} data from {url}")

    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(
                url, params=params, timeout=aiohttp.ClientTimeout(total=timeout)
            ) as response:
                if not 200 <= response.status < 300:
                    error_text = await response.text()
                    logger.error(f"{source} API error {response.status}: {error_text}")
                    raise FetchError(source, f"HTTP error! status: {response.status}", response.status)

                return await response.json()

    except asyncio.TimeoutError:
        raise FetchError(source, "request timed out")
    except aiohttp.ClientError as e:
        raise FetchError(source, f"network error: {e}")
    except ValueError as e:
        raise FetchError(source, f"invalid JSON body: {e}")


def to_float(value: Any, default: float = 0.0) -> float:
    """Parse a provider number; missing, invalid or non-finite values become ``default``"""
    if isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def to_int(value: Any, default: int = 0) -> int:
    return int(round(to_float(value, default)))


def to_epoch(value: Any) -> Optional[int]:
    """Epoch seconds from a number or an ISO 8601 string, None if unparseable"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else None
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())
