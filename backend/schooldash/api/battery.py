from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
import logging

from schooldash.db.kv import get_store

logger = logging.getLogger(__name__)

router = APIRouter()

BATTERY_KEY = "battery_level"


def _is_valid_level(level: str) -> bool:
    try:
        value = float(level)
    except ValueError:
        return False
    return 0 <= value <= 100


@router.get("/battery/{level}", response_class=PlainTextResponse)
async def set_battery_level(level: str):
    """
    Store the battery level reported by the display

    Args:
        level: Charge in percent (0-100)

    Returns:
        Confirmation text, or an error text for invalid input
    """
    if not _is_valid_level(level):
        logger.warning(f"Rejected battery level {level!r}")
        return f"Invalid battery status, {level}"

    store = get_store()
    await store.put(BATTERY_KEY, level)
    value = await store.get(BATTERY_KEY)
    if value is None:
        return "Value not found"

    logger.info(f"Battery level stored: {value}")
    return f"Received battery status, {value}"
