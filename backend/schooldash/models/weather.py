from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List


class WeatherIcon(str, Enum):
    """Icon categories the dashboard knows how to draw"""

    CLEAR_DAY = "clear-day"
    CLEAR_NIGHT = "clear-night"
    RAIN = "rain"
    SNOW = "snow"
    SLEET = "sleet"
    WIND = "wind"
    FOG = "fog"
    CLOUDY = "cloudy"
    PARTLY_CLOUDY_DAY = "partly-cloudy-day"
    PARTLY_CLOUDY_NIGHT = "partly-cloudy-night"


class ConditionsRecord(BaseModel):
    """Weather for one hour (or right now)"""

    model_config = ConfigDict(frozen=True)

    time: int = Field(..., description="Seconds since epoch")
    summary: str = Field("", description="Human-readable conditions")
    icon: str = Field(WeatherIcon.CLEAR_DAY.value, description="WeatherIcon value")
    temperature: float = 0.0
    apparent_temperature: float = 0.0
    dew_point: float = 0.0
    humidity: float = 0.0
    pressure: float = 0.0
    wind_speed: float = 0.0
    wind_gust: float = 0.0
    wind_bearing: int = 0
    cloud_cover: float = 0.0
    precip_intensity: float = 0.0
    precip_probability: float = 0.0
    precip_type: str = "rain"
    uv_index: float = 0.0
    visibility: float = 0.0


class HourlySeries(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str = ""
    icon: str = WeatherIcon.CLEAR_DAY.value
    data: List[ConditionsRecord] = Field(default_factory=list)

    @field_validator("data")
    @classmethod
    def sort_by_time(cls, v: List[ConditionsRecord]) -> List[ConditionsRecord]:
        return sorted(v, key=lambda record: record.time)


class WeatherFlags(BaseModel):
    """Provenance of a snapshot"""

    model_config = ConfigDict(frozen=True)

    sources: List[str] = Field(default_factory=list)
    source_times: Dict[str, str] = Field(default_factory=dict)
    units: str = "si"
    version: str = "1.0"


class WeatherSnapshot(BaseModel):
    """Current conditions plus a 24 hour forecast for one location"""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    timezone: str
    offset: float = 0.0
    elevation: float = 0.0
    currently: ConditionsRecord
    hourly: HourlySeries
    flags: WeatherFlags = Field(default_factory=WeatherFlags)
