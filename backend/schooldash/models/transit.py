from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional


class _Upstream(BaseModel):
    # Accept the API's camelCase names and keep fields we do not model
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Location(_Upstream):
    type: Optional[str] = None
    id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class Stop(_Upstream):
    type: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    location: Optional[Location] = None


class Operator(_Upstream):
    type: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None


class Line(_Upstream):
    type: Optional[str] = None
    id: Optional[str] = None
    fahrt_nr: Optional[str] = Field(None, alias="fahrtNr")
    name: Optional[str] = None
    product_name: Optional[str] = Field(None, alias="productName")
    mode: Optional[str] = None
    product: Optional[str] = None
    operator: Optional[Operator] = None


class Departure(_Upstream):
    """One upcoming departure"""

    trip_id: str = Field(..., alias="tripId")
    stop: Optional[Stop] = None
    when: Optional[str] = Field(None, description="Actual/predicted time, ISO 8601")
    planned_when: Optional[str] = Field(None, alias="plannedWhen", description="Scheduled time, ISO 8601")
    delay: Optional[int] = Field(None, description="Seconds late (negative = early, None = no data)")
    platform: Optional[str] = None
    planned_platform: Optional[str] = Field(None, alias="plannedPlatform")
    prognosis_type: Optional[str] = Field(None, alias="prognosisType")
    direction: Optional[str] = None
    provenance: Optional[str] = None
    line: Optional[Line] = None
    remarks: List[Any] = Field(default_factory=list)
    origin: Optional[Stop] = None
    destination: Optional[Stop] = None


class DepartureBoard(_Upstream):
    """Departures for one stop/direction pair"""

    departures: List[Departure]
    realtime_data_updated_at: Optional[int] = Field(None, alias="realtimeDataUpdatedAt")
