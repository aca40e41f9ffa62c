import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from markupsafe import Markup

from schooldash.config import Settings, settings
from schooldash.db.kv import KVStore, get_store
from schooldash.errors import InsufficientDataError, RenderPipelineError
from schooldash.models.transit import DepartureBoard
from schooldash.models.weather import WeatherSnapshot
from schooldash.services.renderer import render_dashboard
from schooldash.services.screenshot import capture_screenshot, to_grayscale_png
from schooldash.services.timetable import get_timetable
from schooldash.services.transit import TransitFetcher
from schooldash.services.weather import WeatherFetcher

logger = logging.getLogger(__name__)

INTERNAL_DASHBOARD_PATH = "/api/internal/dashboard"


@dataclass
class DashboardSnapshot:
    """Everything one dashboard render needs; built per request"""

    weather: WeatherSnapshot
    departures: DepartureBoard
    timetable: Markup
    battery_level: str


async def _timetable(config: Settings) -> Markup:
    return get_timetable(tz_name=config.timezone)


async def collect_dashboard(
    battery_level: str,
    config: Settings = settings,
    store: Optional[KVStore] = None,
) -> Optional[DashboardSnapshot]:
    """
    Gather weather, departures and the timetable concurrently

    Returns:
        The snapshot, or None if any source failed (no partial dashboards)
    """
    store = store or get_store()
    weather, departures, timetable = await asyncio.gather(
        WeatherFetcher(config, store).get(),
        TransitFetcher(config, store).get(),
        _timetable(config),
    )

    if weather is None:
        logger.error("Weather data unavailable, cannot build dashboard")
        return None
    if departures is None:
        logger.error("Departure data unavailable, cannot build dashboard")
        return None

    return DashboardSnapshot(
        weather=weather,
        departures=departures,
        timetable=timetable,
        battery_level=battery_level,
    )


async def build_dashboard_html(
    battery_level: str,
    config: Settings = settings,
    store: Optional[KVStore] = None,
) -> Optional[str]:
    """
    Render the dashboard HTML

    Raises:
        InsufficientDataError if an upstream returned too little data
    """
    snapshot = await collect_dashboard(battery_level, config, store)
    if snapshot is None:
        return None
    return render_dashboard(
        snapshot.weather,
        snapshot.departures,
        snapshot.timetable,
        snapshot.battery_level,
        tz_name=config.timezone,
    )


async def render_dashboard_png(
    battery_level: str,
    base_url: str,
    config: Settings = settings,
    store: Optional[KVStore] = None,
) -> Optional[bytes]:
    """
    Screenshot the dashboard and convert it to grayscale

    In "inline" mode the HTML is rendered in-process and handed to the
    browser; in "url" mode the browser fetches the internal HTML route of
    this service at ``base_url``.

    Returns:
        Grayscale PNG bytes, None on any failure
    """
    try:
        if config.render_mode == "url":
            url = f"{base_url.rstrip('/')}{INTERNAL_DASHBOARD_PATH}"
            png = await capture_screenshot(battery_level, url=url, config=config)
        else:
            html = await build_dashboard_html(battery_level, config, store)
            if html is None:
                return None
            png = await capture_screenshot(battery_level, html=html, config=config)

        return to_grayscale_png(png)

    except (InsufficientDataError, RenderPipelineError) as e:
        logger.error(f"Could not render dashboard image: {e}")
        return None
