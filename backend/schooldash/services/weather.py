import logging
from datetime import datetime
from typing import Any, List, Optional

from pydantic import ValidationError

from schooldash.config import Settings, settings
from schooldash.db.kv import KVStore, get_store
from schooldash.errors import FetchError
from schooldash.models.weather import (
    ConditionsRecord,
    HourlySeries,
    WeatherFlags,
    WeatherIcon,
    WeatherSnapshot,
)
from schooldash.services.cache import WEATHER_SOURCE, TimeBucketedCache
from schooldash.services.upstream import fetch_json, to_epoch, to_float, to_int
from schooldash.timeutils import local_now

logger = logging.getLogger(__name__)

HOURS_TO_KEEP = 24

UNKNOWN_GLYPH = "❓"

ICON_GLYPHS = {
    WeatherIcon.CLEAR_DAY: "☀️",
    WeatherIcon.CLEAR_NIGHT: "🌙",
    WeatherIcon.RAIN: "🌧️",
    WeatherIcon.SNOW: "❄️",
    WeatherIcon.SLEET: "🌨️",
    WeatherIcon.WIND: "💨",
    WeatherIcon.FOG: "🌫️",
    WeatherIcon.CLOUDY: "☁️",
    WeatherIcon.PARTLY_CLOUDY_DAY: "⛅",
    WeatherIcon.PARTLY_CLOUDY_NIGHT: "🌤️",
}

# QWeather icon code -> icon category
QWEATHER_ICONS = {
    "100": WeatherIcon.CLEAR_DAY,
    "101": WeatherIcon.PARTLY_CLOUDY_DAY,
    "102": WeatherIcon.PARTLY_CLOUDY_DAY,
    "103": WeatherIcon.CLOUDY,
    "104": WeatherIcon.CLOUDY,
    "150": WeatherIcon.CLEAR_NIGHT,
    "151": WeatherIcon.PARTLY_CLOUDY_NIGHT,
    "152": WeatherIcon.PARTLY_CLOUDY_NIGHT,
    "153": WeatherIcon.PARTLY_CLOUDY_NIGHT,
    **{str(code): WeatherIcon.RAIN for code in range(300, 319)},
    "399": WeatherIcon.RAIN,
    "350": WeatherIcon.RAIN,
    "351": WeatherIcon.RAIN,
    **{str(code): WeatherIcon.SNOW for code in range(400, 411)},
    "456": WeatherIcon.SLEET,
    "457": WeatherIcon.SNOW,
    "499": WeatherIcon.SNOW,
    **{str(code): WeatherIcon.FOG for code in (500, 501, 502, 503, 504, 507, 508, 509,
                                                  510, 511, 512, 513, 514, 515)},
    "900": WeatherIcon.WIND,
    "901": WeatherIcon.WIND,
    "999": WeatherIcon.CLEAR_DAY,
}


def weather_glyph(icon: Any) -> str:
    """Display glyph for an icon category, the unknown glyph for anything else"""
    try:
        return ICON_GLYPHS[WeatherIcon(icon)]
    except (ValueError, TypeError):
        return UNKNOWN_GLYPH


def map_qweather_icon(code: Any) -> WeatherIcon:
    """Map a QWeather icon code; unmapped codes fall back to clear-day"""
    return QWEATHER_ICONS.get(str(code).strip(), WeatherIcon.CLEAR_DAY)


def build_snapshot(
    records: List[ConditionsRecord],
    provider: str,
    updated_at: str,
    config: Settings,
    summary: str = "24-hour forecast",
) -> WeatherSnapshot:
    """Wrap normalized hourly records into a snapshot with provenance"""
    if not records:
        raise FetchError(provider, "no hourly data in response")

    records = sorted(records, key=lambda record: record.time)[:HOURS_TO_KEEP]
    offset = local_now(config.timezone).utcoffset()

    return WeatherSnapshot(
        latitude=config.latitude,
        longitude=config.longitude,
        timezone=config.timezone,
        offset=offset.total_seconds() / 3600 if offset else 0.0,
        currently=records[0],
        hourly=HourlySeries(summary=summary, icon=records[0].icon, data=records),
        flags=WeatherFlags(sources=[provider], source_times={provider: updated_at}),
    )


def convert_qweather(payload: Any, config: Settings) -> WeatherSnapshot:
    """
    Convert a QWeather 24h forecast response into a WeatherSnapshot

    Numbers arrive as strings; invalid ones become zero and hours without a
    readable timestamp are skipped.
    """
    if not isinstance(payload, dict):
        raise FetchError("qweather", "unexpected response format")

    code = str(payload.get("code", ""))
    if code != "200":
        raise FetchError("qweather", f"provider returned code {code or 'missing'}")

    records = []
    for hour in payload.get("hourly") or []:
        if not isinstance(hour, dict):
            continue
        timestamp = to_epoch(hour.get("fxTime"))
        if timestamp is None:
            logger.warning(f"Skipping QWeather hour without valid fxTime: {hour.get('fxTime')!r}")
            continue

        temperature = to_float(hour.get("temp"))
        wind_speed = to_float(hour.get("windSpeed"))
        icon = map_qweather_icon(hour.get("icon"))

        records.append(ConditionsRecord(
            time=timestamp,
            summary=str(hour.get("text") or ""),
            icon=icon.value,
            temperature=temperature,
            apparent_temperature=temperature,
            dew_point=to_float(hour.get("dew")),
            humidity=to_float(hour.get("humidity")),
            pressure=to_float(hour.get("pressure")),
            wind_speed=wind_speed,
            wind_gust=wind_speed,
            wind_bearing=to_int(hour.get("wind360")),
            cloud_cover=to_float(hour.get("cloud")),
            precip_intensity=to_float(hour.get("precip")),
            precip_probability=to_float(hour.get("pop")),
            precip_type="snow" if icon is WeatherIcon.SNOW else "rain",
            visibility=10.0,
        ))

    return build_snapshot(records, "qweather", str(payload.get("updateTime") or ""), config)


async def fetch_qweather(config: Settings) -> WeatherSnapshot:
    if not config.qweather_api_key:
        raise FetchError("qweather", "QWEATHER_API_KEY is not configured")

    url = f"{config.qweather_api_url}/v7/weather/24h"
    params = {
        "location": f"{config.longitude:.2f},{config.latitude:.2f}",
        "key": config.qweather_api_key,
        "unit": "m",
    }
    data = await fetch_json("qweather", url, params=params, timeout=config.upstream_timeout)
    return convert_qweather(data, config)


async def fetch_weather_from_api(config: Settings = settings) -> WeatherSnapshot:
    """
    Fetch and normalize the forecast from the configured provider

    Raises:
        FetchError if the provider is unknown, unreachable or returns bad data
    """
    # weather_openmeteo imports from this module
    from schooldash.services.weather_openmeteo import fetch_openmeteo

    providers = {
        "qweather": fetch_qweather,
        "openmeteo": fetch_openmeteo,
    }
    provider = providers.get(config.weather_provider.lower())
    if provider is None:
        raise FetchError(config.weather_provider, "unknown weather provider")
    return await provider(config)


class WeatherFetcher:
    """Hour-cached weather source"""

    def __init__(self, config: Settings = settings, store: Optional[KVStore] = None):
        self.config = config
        self.cache = TimeBucketedCache(store or get_store(), config.timezone)

    async def get(self, now: Optional[datetime] = None) -> Optional[WeatherSnapshot]:
        """
        Get the weather snapshot for the current hour

        Returns:
            The cached or freshly fetched snapshot, None if the upstream failed
        """
        key = self.cache.key_for(WEATHER_SOURCE, now)

        try:
            cached = await self.cache.get(key)
        except Exception as e:
            logger.error(f"Could not read weather cache: {e}")
            cached = None

        if cached is not None:
            try:
                return WeatherSnapshot.model_validate(cached)
            except ValidationError as e:
                logger.warning(f"Ignoring unreadable cached weather data: {e}")

        logger.info("Cached weather data not found, hitting network")

        try:
            snapshot = await fetch_weather_from_api(self.config)
        except FetchError as e:
            logger.error(f"Error fetching weather data: {e}")
            return None

        try:
            await self.cache.put(key, snapshot.model_dump(mode="json"), self.config.weather_cache_ttl)
        except Exception as e:
            logger.error(f"Could not cache weather data: {e}")

        return snapshot
