"""
Unit tests for the weather fetcher and provider normalization with mocked API responses.

Run with:
    pytest backend/tests/test_weather_unit.py -v
"""

import asyncio
import pytest
from unittest.mock import patch

from conftest import NOW, MockClientSession, MockResponse, create_qweather_response
from schooldash.errors import FetchError
from schooldash.models.weather import ConditionsRecord, HourlySeries, WeatherIcon, WeatherSnapshot
from schooldash.services.weather import (
    UNKNOWN_GLYPH,
    WeatherFetcher,
    convert_qweather,
    map_qweather_icon,
    weather_glyph,
)
from schooldash.services.weather_openmeteo import convert_openmeteo, map_wmo_icon


class TimeoutSession(MockClientSession):
    """Session whose requests never complete"""
    def __init__(self):
        super().__init__(None)

    def get(self, url, params=None, timeout=None):
        raise asyncio.TimeoutError("upstream stalled")


# =============================================================================
# Test: QWeather Normalization
# =============================================================================

def test_qweather_conversion_fields(test_settings):
    """Provider strings become numbers in the internal schema"""
    snapshot = convert_qweather(create_qweather_response(), test_settings)

    assert len(snapshot.hourly.data) == 24
    first = snapshot.currently
    assert first == snapshot.hourly.data[0]
    assert first.temperature == 5.0
    assert first.humidity == 80.0
    assert first.wind_bearing == 225
    assert first.icon == "partly-cloudy-day"
    assert first.summary == "Hour 0"
    assert snapshot.latitude == test_settings.latitude
    assert snapshot.timezone == "Europe/Berlin"


def test_qweather_provenance(test_settings):
    snapshot = convert_qweather(create_qweather_response(), test_settings)

    assert snapshot.flags.sources == ["qweather"]
    assert snapshot.flags.source_times == {"qweather": "2026-01-12T10:00+01:00"}


def test_qweather_hourly_sorted_ascending(test_settings):
    """Out-of-order provider hours end up sorted by time"""
    response = create_qweather_response()
    response["hourly"].reverse()

    snapshot = convert_qweather(response, test_settings)
    times = [record.time for record in snapshot.hourly.data]

    assert times == sorted(times)
    assert snapshot.currently.summary == "Hour 0"


def test_qweather_keeps_at_most_24_hours(test_settings):
    snapshot = convert_qweather(create_qweather_response(hours=30), test_settings)
    assert len(snapshot.hourly.data) == 24


def test_qweather_invalid_numbers_become_zero(test_settings):
    """Invalid or missing numeric strings never raise"""
    response = create_qweather_response(hours=2)
    response["hourly"][0].update({"temp": "n/a", "humidity": "", "wind360": None, "cloud": "NaN"})
    del response["hourly"][0]["pressure"]

    snapshot = convert_qweather(response, test_settings)
    first = snapshot.hourly.data[0]

    assert first.temperature == 0.0
    assert first.humidity == 0.0
    assert first.wind_bearing == 0
    assert first.cloud_cover == 0.0
    assert first.pressure == 0.0


def test_qweather_skips_hours_without_time(test_settings):
    response = create_qweather_response(hours=3)
    response["hourly"][1]["fxTime"] = "yesterday-ish"

    snapshot = convert_qweather(response, test_settings)

    assert [r.summary for r in snapshot.hourly.data] == ["Hour 0", "Hour 2"]


def test_qweather_error_code_raises(test_settings):
    response = create_qweather_response()
    response["code"] = "401"

    with pytest.raises(FetchError, match="code 401"):
        convert_qweather(response, test_settings)


def test_qweather_without_hours_raises(test_settings):
    response = create_qweather_response(hours=0)

    with pytest.raises(FetchError, match="no hourly data"):
        convert_qweather(response, test_settings)


def test_qweather_unexpected_format_raises(test_settings):
    with pytest.raises(FetchError, match="unexpected response format"):
        convert_qweather(["not", "a", "dict"], test_settings)


# =============================================================================
# Test: Icon Mapping
# =============================================================================

@pytest.mark.parametrize("code,expected", [
    ("100", WeatherIcon.CLEAR_DAY),
    ("101", WeatherIcon.PARTLY_CLOUDY_DAY),
    ("104", WeatherIcon.CLOUDY),
    ("151", WeatherIcon.PARTLY_CLOUDY_NIGHT),
    ("305", WeatherIcon.RAIN),
    ("401", WeatherIcon.SNOW),
    ("456", WeatherIcon.SLEET),
    ("501", WeatherIcon.FOG),
    ("900", WeatherIcon.WIND),
])
def test_qweather_icon_table(code, expected):
    assert map_qweather_icon(code) is expected


@pytest.mark.parametrize("code", ["", "12345", "abc", None, 42, "505", "  "])
def test_unmapped_qweather_icons_fall_back_to_clear_day(code):
    assert map_qweather_icon(code) is WeatherIcon.CLEAR_DAY


@pytest.mark.parametrize("value", ["", "sunny", None, 7, "CLEAR-DAY", ["rain"]])
def test_unknown_icons_render_unknown_glyph(value):
    assert weather_glyph(value) == UNKNOWN_GLYPH


def test_every_icon_has_a_glyph():
    for icon in WeatherIcon:
        assert weather_glyph(icon.value) != UNKNOWN_GLYPH


@pytest.mark.parametrize("code,is_day,expected", [
    (0, True, WeatherIcon.CLEAR_DAY),
    (0, False, WeatherIcon.CLEAR_NIGHT),
    (2, False, WeatherIcon.PARTLY_CLOUDY_NIGHT),
    (3, True, WeatherIcon.CLOUDY),
    (48, True, WeatherIcon.FOG),
    (63, True, WeatherIcon.RAIN),
    (66, True, WeatherIcon.SLEET),
    (75, True, WeatherIcon.SNOW),
    (95, True, WeatherIcon.RAIN),
    (42, True, WeatherIcon.CLEAR_DAY),
    (None, True, WeatherIcon.CLEAR_DAY),
    ("x", True, WeatherIcon.CLEAR_DAY),
])
def test_wmo_icon_mapping(code, is_day, expected):
    assert map_wmo_icon(code, is_day) is expected


# =============================================================================
# Test: Open-Meteo Normalization
# =============================================================================

def test_openmeteo_conversion(test_settings):
    payload = {
        "hourly": {
            "time": [1768212000, 1768215600],
            "temperature_2m": [3.4, 2.9],
            "relative_humidity_2m": [81, None],
            "weather_code": [71, 1],
            "is_day": [1, 0],
            "visibility": [24000, 18000],
            "wind_direction_10m": [200, 210],
        }
    }

    records = convert_openmeteo(payload, test_settings)

    assert [r.time for r in records] == [1768212000, 1768215600]
    assert records[0].icon == "snow"
    assert records[0].precip_type == "snow"
    assert records[0].summary == "Light snow"
    assert records[0].visibility == 24.0
    assert records[1].icon == "clear-night"
    assert records[1].humidity == 0.0
    assert records[1].cloud_cover == 0.0


def test_openmeteo_unexpected_format(test_settings):
    with pytest.raises(FetchError):
        convert_openmeteo({"error": True, "reason": "bad"}, test_settings)


def test_hourly_series_is_sorted():
    series = HourlySeries(data=[ConditionsRecord(time=3), ConditionsRecord(time=1), ConditionsRecord(time=2)])
    assert [r.time for r in series.data] == [1, 2, 3]


# =============================================================================
# Test: Fetcher Cache Hit/Miss Behavior
# =============================================================================

@pytest.mark.asyncio
async def test_cache_miss_then_hit(test_settings, store):
    """Second request in the same hour is served from the cache"""
    mock_session = MockClientSession(MockResponse(create_qweather_response()))
    fetcher = WeatherFetcher(test_settings, store)

    with patch("aiohttp.ClientSession", return_value=mock_session):
        first = await fetcher.get(NOW)
        second = await fetcher.get(NOW)

    assert len(mock_session.calls) == 1
    assert isinstance(second, WeatherSnapshot)
    assert first.model_dump() == second.model_dump()
    assert await store.get("WEATHER_2026-01-12T10:00:00", "json") is not None


@pytest.mark.asyncio
async def test_next_hour_fetches_again(test_settings, store):
    from datetime import timedelta

    mock_session = MockClientSession(MockResponse(create_qweather_response()))
    fetcher = WeatherFetcher(test_settings, store)

    with patch("aiohttp.ClientSession", return_value=mock_session):
        await fetcher.get(NOW)
        await fetcher.get(NOW + timedelta(hours=1))

    assert len(mock_session.calls) == 2


@pytest.mark.asyncio
async def test_request_sends_location_and_key(test_settings, store):
    config = test_settings.model_copy(update={"latitude": 52.52, "longitude": 13.4})
    mock_session = MockClientSession(MockResponse(create_qweather_response()))

    with patch("aiohttp.ClientSession", return_value=mock_session):
        await WeatherFetcher(config, store).get(NOW)

    url, params = mock_session.calls[0]
    assert url == "https://devapi.qweather.com/v7/weather/24h"
    assert params["key"] == "test-key"
    assert params["location"] == "13.40,52.52"


# =============================================================================
# Test: API Error Handling
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 401, 500, 503])
async def test_http_errors_return_none(test_settings, store, status):
    mock_session = MockClientSession(MockResponse({"error": "nope"}, status=status))

    with patch("aiohttp.ClientSession", return_value=mock_session):
        result = await WeatherFetcher(test_settings, store).get(NOW)

    assert result is None
    assert await store.get("WEATHER_2026-01-12T10:00:00") is None


@pytest.mark.asyncio
async def test_timeout_returns_none(test_settings, store):
    with patch("aiohttp.ClientSession", return_value=TimeoutSession()):
        result = await WeatherFetcher(test_settings, store).get(NOW)

    assert result is None


@pytest.mark.asyncio
async def test_invalid_json_returns_none(test_settings, store):
    mock_session = MockClientSession(MockResponse(ValueError("Expecting value")))

    with patch("aiohttp.ClientSession", return_value=mock_session):
        result = await WeatherFetcher(test_settings, store).get(NOW)

    assert result is None


@pytest.mark.asyncio
async def test_missing_api_key_skips_request(test_settings, store):
    config = test_settings.model_copy(update={"qweather_api_key": None})
    mock_session = MockClientSession(MockResponse(create_qweather_response()))

    with patch("aiohttp.ClientSession", return_value=mock_session):
        result = await WeatherFetcher(config, store).get(NOW)

    assert result is None
    assert mock_session.calls == []


@pytest.mark.asyncio
async def test_unknown_provider_returns_none(test_settings, store):
    config = test_settings.model_copy(update={"weather_provider": "darksky"})

    result = await WeatherFetcher(config, store).get(NOW)

    assert result is None


@pytest.mark.asyncio
async def test_openmeteo_provider_end_to_end(test_settings, store):
    config = test_settings.model_copy(update={"weather_provider": "openmeteo"})
    payload = {
        "hourly": {
            "time": [1768212000 + 3600 * i for i in range(24)],
            "temperature_2m": [float(i) for i in range(24)],
            "weather_code": [3] * 24,
            "is_day": [1] * 24,
        }
    }
    mock_session = MockClientSession(MockResponse(payload))

    with patch("aiohttp.ClientSession", return_value=mock_session):
        snapshot = await WeatherFetcher(config, store).get(NOW)

    url, params = mock_session.calls[0]
    assert url == "https://api.open-meteo.com/v1/forecast"
    assert params["forecast_hours"] == 24
    assert snapshot.flags.sources == ["openmeteo"]
    assert snapshot.hourly.data[8].temperature == 8.0
    assert snapshot.currently.icon == "cloudy"
