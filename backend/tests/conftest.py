"""
Shared fixtures: sample upstream payloads and aiohttp mocks.

Run with:
    pytest -v
"""

import os

os.environ.setdefault("KV_BACKEND", "memory")
os.environ.setdefault("QWEATHER_API_KEY", "test-key")

import pytest
from datetime import datetime, timedelta, timezone

from schooldash.config import Settings
from schooldash.db import kv
from schooldash.db.kv import MemoryKVStore


# A fixed instant: Monday 2026-01-12 10:15 in Berlin
NOW = datetime(2026, 1, 12, 9, 15, tzinfo=timezone.utc)


def create_qweather_response(hours: int = 24, start: datetime = NOW, icon: str = "101"):
    """Create a mock QWeather 24h response"""
    base = start.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    return {
        "code": "200",
        "updateTime": "2026-01-12T10:00+01:00",
        "fxLink": "https://www.qweather.com/weather/berlin.html",
        "hourly": [
            {
                "fxTime": (base + timedelta(hours=i)).isoformat(),
                "temp": str(5 + i),
                "icon": icon,
                "text": f"Hour {i}",
                "wind360": "225",
                "windDir": "SW",
                "windScale": "3",
                "windSpeed": "14",
                "humidity": "80",
                "pop": "20",
                "precip": "0.0",
                "pressure": "1012",
                "cloud": "60",
                "dew": "2",
            }
            for i in range(hours)
        ],
    }


def create_departure(i: int, delay=0, when: str = "2026-01-12T10:20:00+01:00"):
    return {
        "tripId": f"1|{1000 + i}|0|86|12012026",
        "stop": {
            "type": "stop",
            "id": "900044104",
            "name": "Example Str. (Berlin)",
            "location": {"type": "location", "id": "900044104", "latitude": 52.5, "longitude": 13.3},
            "products": {"suburban": False, "subway": False, "tram": False, "bus": True,
                         "ferry": False, "express": False, "regional": False},
        },
        "when": when,
        "plannedWhen": "2026-01-12T10:20:00+01:00",
        "delay": delay,
        "platform": None,
        "plannedPlatform": None,
        "prognosisType": "prognosed",
        "direction": "S+U Zoologischer Garten",
        "provenance": None,
        "line": {
            "type": "line",
            "id": "m46",
            "fahrtNr": "1234",
            "name": "M46",
            "public": True,
            "adminCode": "BVB",
            "productName": "Bus",
            "mode": "bus",
            "product": "bus",
            "operator": {"type": "operator", "id": "bvg", "name": "BVG"},
        },
        "remarks": [],
        "origin": None,
        "destination": {"type": "stop", "id": "900003104", "name": "S+U Zoologischer Garten"},
    }


def create_bvg_response(count: int = 3):
    return {
        "departures": [create_departure(i, delay=60 * i) for i in range(count)],
        "realtimeDataUpdatedAt": 1768209300,
    }


class MockResponse:
    """Mock aiohttp response"""
    def __init__(self, json_data, status=200):
        self._json_data = json_data
        self.status = status

    async def json(self):
        if isinstance(self._json_data, Exception):
            raise self._json_data
        return self._json_data

    async def text(self):
        return str(self._json_data)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


class MockClientSession:
    """Mock aiohttp ClientSession"""
    def __init__(self, response):
        self._response = response
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        return self._response

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


class RoutingClientSession(MockClientSession):
    """Mock session answering by URL substring, e.g. {"qweather": ..., "bvg": ...}"""
    def __init__(self, routes):
        super().__init__(None)
        self._routes = routes

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        for fragment, response in self._routes.items():
            if fragment in url:
                return response
        raise AssertionError(f"Unexpected request to {url}")

    def count(self, fragment):
        return sum(1 for url, _ in self.calls if fragment in url)


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        kv_backend="memory",
        timezone="Europe/Berlin",
        weather_provider="qweather",
        qweather_api_key="test-key",
        qweather_api_url="https://devapi.qweather.com",
        bvg_api_url="https://v6.bvg.transport.rest",
    )


@pytest.fixture
def store():
    """Fresh in-memory store, installed as the global store"""
    memory = MemoryKVStore()
    kv.set_store(memory)
    yield memory
    kv.set_store(None)
