import logging
from datetime import datetime
from typing import List, Optional

from jinja2 import Environment
from markupsafe import Markup

from schooldash.config import settings
from schooldash.errors import InsufficientDataError
from schooldash.models.transit import DepartureBoard
from schooldash.models.weather import ConditionsRecord, WeatherSnapshot
from schooldash.services.transit import format_delay
from schooldash.services.weather import weather_glyph
from schooldash.timeutils import hours_and_minutes, local_now

logger = logging.getLogger(__name__)

DEPARTURES_SHOWN = 3
# Forecast columns by index into the hourly series, which starts at the current hour
FORECAST_OFFSETS = (4, 8)
MIN_HOURLY_ENTRIES = max(FORECAST_OFFSETS) + 1

STYLES = """
        body {
            font-family: sans-serif;
            margin: 0;
            padding: 0;
            background-color: white;
        }
        .container {
            width: 100%;
            max-width: 600px;
            margin: 0 auto;
        }
        .box {
            border: 2px solid #555;
            margin: 10px 10px;
            padding: 15px;
        }
        .header {
            font-size: 16px;
            font-weight: bold;
            margin-bottom: 4px;
            text-align: center;
        }
        .weather-container, .bus-container {
            display: flex;
            justify-content: space-between;
            text-align: center;
        }
        .weather-day {
            flex: 1;
        }
        .weather-icon {
            font-size: 40px;
            margin: 10px 0;
        }
        .weather-temp {
            font-size: 24px;
            font-weight: bold;
            margin: 5px 0;
        }
        .weather-desc {
            font-size: 16px;
        }
        .bus-item {
            flex: 1;
            display: flex;
            flex-direction: column;
            align-items: center;
        }
        .bus-icon {
            font-weight: bold;
            margin-bottom: 5px;
        }
        .bus-time {
            font-weight: bold;
        }
        .bus-status {
            font-size: 14px;
        }
        .timetable-container {
            width: 100%;
        }
        .timetable-item {
            display: flex;
            align-items: center;
            padding: 8px 0;
            border-bottom: 1px solid #ddd;
        }
        .timetable-time {
            width: 80px;
            font-weight: bold;
        }
        .timetable-desc {
            flex-grow: 1;
        }
        .timetable-status {
            width: 120px;
            text-align: right;
            font-style: italic;
        }
        .footer {
            text-align: center;
            margin-top: 2px;
            font-size: 14px;
        }
"""

TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Kindle Dashboard</title>
    <style>{{ styles }}</style>
</head>
<body>
    <div class="container">
        <div class="box">
            <div class="weather-container">
{% for column in weather %}
                <div class="weather-day">
                    <div>{{ column.label }}</div>
                    <div class="weather-icon">{{ column.glyph }}</div>
                    <div class="weather-temp">{{ column.temperature }}˚C</div>
                    <div class="weather-desc">{{ column.summary }}</div>
                </div>
{% endfor %}
            </div>
        </div>

        <div class="box">
            <div class="bus-container">
{% for bus in departures %}
                <div class="bus-item">
                    <div class="bus-icon">{{ bus.delay }}</div>
                    <div class="bus-time">{{ bus.when }}</div>
                    <div class="bus-status">{{ bus.planned }}</div>
                </div>
{% endfor %}
            </div>
        </div>

        <div class="box">
            <div class="header">{{ date }}</div>
            <div class="timetable-container">
                {{ timetable }}
            </div>
        </div>

        <div class="footer">
            Last updated: {{ time }} | 🪫 {{ battery_level }}
        </div>
    </div>
</body>
</html>
"""

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
_template = _env.from_string(TEMPLATE)


def _weather_column(label: str, record: ConditionsRecord) -> dict:
    return {
        "label": label,
        "glyph": weather_glyph(record.icon),
        "temperature": f"{record.temperature:.0f}",
        "summary": record.summary,
    }


def render_dashboard(
    weather: WeatherSnapshot,
    departures: DepartureBoard,
    timetable_html: str,
    battery_level: str,
    now: Optional[datetime] = None,
    tz_name: Optional[str] = None,
) -> str:
    """
    Render the complete dashboard document

    The result is self-contained (inline CSS, no external resources) so it
    can be screenshotted without network access. ``timetable_html`` is
    embedded verbatim; all other text is escaped.

    Raises:
        InsufficientDataError: fewer than 9 hourly entries or 3 departures
    """
    tz_name = tz_name or settings.timezone
    hours = weather.hourly.data
    if len(hours) < MIN_HOURLY_ENTRIES:
        raise InsufficientDataError(
            f"need {MIN_HOURLY_ENTRIES} hourly forecast entries, got {len(hours)}"
        )
    if len(departures.departures) < DEPARTURES_SHOWN:
        raise InsufficientDataError(
            f"need {DEPARTURES_SHOWN} departures, got {len(departures.departures)}"
        )

    weather_columns: List[dict] = [_weather_column("Currently", weather.currently)]
    weather_columns.append(_weather_column(f"Afternoon (+{FORECAST_OFFSETS[0]})", hours[FORECAST_OFFSETS[0]]))
    weather_columns.append(_weather_column(f"Later today (+{FORECAST_OFFSETS[1]})", hours[FORECAST_OFFSETS[1]]))

    buses = [
        {
            "delay": format_delay(departure.delay),
            "when": hours_and_minutes(departure.when, tz_name),
            "planned": hours_and_minutes(departure.planned_when, tz_name),
        }
        for departure in departures.departures[:DEPARTURES_SHOWN]
    ]

    current = local_now(tz_name, now)
    return _template.render(
        styles=Markup(STYLES),
        weather=weather_columns,
        departures=buses,
        timetable=Markup(timetable_html),
        date=current.strftime("%a %b %d %Y"),
        time=current.strftime("%H:%M"),
        battery_level=battery_level,
    )
