"""Pydantic models for GTFS entities."""

from pydantic import BaseModel, ConfigDict, Field


class Route(BaseModel):
    """GTFS route entity."""

    route_id: str
    agency_id: str | None = None
    route_short_name: str | None = None
    route_long_name: str | None = None
    route_type: int  # 0=tram, 1=subway, 2=rail, 3=bus
    route_color: str | None = None
    route_text_color: str | None = None


class Stop(BaseModel):
    """GTFS stop entity."""

    stop_id: str
    stop_code: str | None = None
    stop_name: str
    stop_lat: float | None = None
    stop_lon: float | None = None
    location_type: int | None = None  # 0=stop, 1=station, 2=entrance
    parent_station: str | None = None


class ScoredStop(Stop):
    """Stop matched by a word search, with the words that matched it."""

    model_config = ConfigDict(populate_by_name=True)

    match_score: int = Field(default=0, alias="matchScore")
    matched_words: list[str] = Field(default_factory=list, alias="matchedWords")


class Trip(BaseModel):
    """GTFS trip entity."""

    trip_id: str
    route_id: str
    service_id: str
    trip_headsign: str | None = None
    direction_id: int | None = None


class StopTime(BaseModel):
    """GTFS stop_times entity."""

    trip_id: str
    arrival_time: str | None = None  # HH:MM:SS (can exceed 24:00:00)
    departure_time: str | None = None
    stop_id: str
    stop_sequence: int
    pickup_type: int | None = None
    drop_off_type: int | None = None
    arrival_seconds: int | None = None
    departure_seconds: int | None = None
