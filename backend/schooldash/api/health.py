from fastapi import APIRouter
from datetime import datetime, timezone
import logging

from schooldash.db.kv import get_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint

    Returns API and key-value store status
    """
    try:
        store_healthy = await get_store().ping()
    except RuntimeError:
        store_healthy = False

    status = "healthy" if store_healthy else "unhealthy"
    store_status = "connected" if store_healthy else "disconnected"

    logger.debug(f"Health check: {status}, Store: {store_status}")

    return {
        "status": status,
        "store": store_status,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
