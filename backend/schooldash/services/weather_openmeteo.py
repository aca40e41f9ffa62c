import logging
from typing import Any, List

from schooldash.config import Settings
from schooldash.errors import FetchError
from schooldash.models.weather import ConditionsRecord, WeatherIcon
from schooldash.services.upstream import fetch_json, to_epoch, to_float, to_int
from schooldash.services.weather import build_snapshot

logger = logging.getLogger(__name__)

HOURLY_VARIABLES = [
    "temperature_2m",
    "apparent_temperature",
    "relative_humidity_2m",
    "dew_point_2m",
    "precipitation",
    "precipitation_probability",
    "weather_code",
    "surface_pressure",
    "cloud_cover",
    "visibility",
    "wind_speed_10m",
    "wind_gusts_10m",
    "wind_direction_10m",
    "uv_index",
    "is_day",
]

WMO_DESCRIPTIONS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Icy fog",
    51: "Light drizzle",
    53: "Drizzle",
    55: "Heavy drizzle",
    56: "Freezing drizzle",
    57: "Heavy freezing drizzle",
    61: "Light rain",
    63: "Rain",
    65: "Heavy rain",
    66: "Freezing rain",
    67: "Heavy freezing rain",
    71: "Light snow",
    73: "Snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Light showers",
    81: "Showers",
    82: "Violent showers",
    85: "Snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with hail",
    99: "Thunderstorm with heavy hail",
}

_RAIN_CODES = {51, 53, 55, 61, 63, 65, 80, 81, 82, 95, 96, 99}
_SLEET_CODES = {56, 57, 66, 67}
_SNOW_CODES = {71, 73, 75, 77, 85, 86}


def map_wmo_icon(code: Any, is_day: bool = True) -> WeatherIcon:
    """Map a WMO weather code; unmapped codes fall back to clear-day"""
    if isinstance(code, bool):
        return WeatherIcon.CLEAR_DAY
    try:
        code = int(code)
    except (TypeError, ValueError):
        return WeatherIcon.CLEAR_DAY

    if code in (0, 1):
        return WeatherIcon.CLEAR_DAY if is_day else WeatherIcon.CLEAR_NIGHT
    if code == 2:
        return WeatherIcon.PARTLY_CLOUDY_DAY if is_day else WeatherIcon.PARTLY_CLOUDY_NIGHT
    if code == 3:
        return WeatherIcon.CLOUDY
    if code in (45, 48):
        return WeatherIcon.FOG
    if code in _SLEET_CODES:
        return WeatherIcon.SLEET
    if code in _SNOW_CODES:
        return WeatherIcon.SNOW
    if code in _RAIN_CODES:
        return WeatherIcon.RAIN
    return WeatherIcon.CLEAR_DAY


def _column(hourly: dict, name: str, i: int) -> Any:
    values = hourly.get(name)
    if isinstance(values, list) and i < len(values):
        return values[i]
    return None


def convert_openmeteo(payload: Any, config: Settings) -> List[ConditionsRecord]:
    """Turn Open-Meteo's column-oriented hourly block into records"""
    if not isinstance(payload, dict) or not isinstance(payload.get("hourly"), dict):
        raise FetchError("openmeteo", "unexpected response format")

    hourly = payload["hourly"]
    times = hourly.get("time") or []

    records = []
    for i, t in enumerate(times):
        timestamp = to_epoch(t)
        if timestamp is None:
            continue

        code = _column(hourly, "weather_code", i)
        icon = map_wmo_icon(code, is_day=to_int(_column(hourly, "is_day", i), 1) == 1)
        if icon is WeatherIcon.SNOW:
            precip_type = "snow"
        elif icon is WeatherIcon.SLEET:
            precip_type = "sleet"
        else:
            precip_type = "rain"

        records.append(ConditionsRecord(
            time=timestamp,
            summary=WMO_DESCRIPTIONS.get(to_int(code, -1), "Unknown"),
            icon=icon.value,
            temperature=to_float(_column(hourly, "temperature_2m", i)),
            apparent_temperature=to_float(_column(hourly, "apparent_temperature", i)),
            dew_point=to_float(_column(hourly, "dew_point_2m", i)),
            humidity=to_float(_column(hourly, "relative_humidity_2m", i)),
            pressure=to_float(_column(hourly, "surface_pressure", i)),
            wind_speed=to_float(_column(hourly, "wind_speed_10m", i)),
            wind_gust=to_float(_column(hourly, "wind_gusts_10m", i)),
            wind_bearing=to_int(_column(hourly, "wind_direction_10m", i)),
            cloud_cover=to_float(_column(hourly, "cloud_cover", i)),
            precip_intensity=to_float(_column(hourly, "precipitation", i)),
            precip_probability=to_float(_column(hourly, "precipitation_probability", i)),
            precip_type=precip_type,
            uv_index=to_float(_column(hourly, "uv_index", i)),
            visibility=to_float(_column(hourly, "visibility", i)) / 1000,
        ))

    return records


async def fetch_openmeteo(config: Settings):
    params = {
        "latitude": config.latitude,
        "longitude": config.longitude,
        "hourly": ",".join(HOURLY_VARIABLES),
        "forecast_hours": 24,
        "timezone": config.timezone,
        "timeformat": "unixtime",
    }

    logger.info(f"Fetching weather forecast from Open-Meteo: lat={config.latitude}, lon={config.longitude}")

    data = await fetch_json("openmeteo", config.openmeteo_api_url, params=params, timeout=config.upstream_timeout)
    records = convert_openmeteo(data, config)

    # Open-Meteo has no update timestamp; the first forecast hour stands in
    updated_at = str(records[0].time) if records else ""
    return build_snapshot(records, "openmeteo", updated_at, config)
