"""Itinerary request options, raw journeys and name-resolved results."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, computed_field

from transit_assistant.models.base import CamelModel
from transit_assistant.routing.graph import PathSegment

# Raw journeys (times are seconds since midnight of the service date)


class Leg(CamelModel):
    """One ride or walking transfer within a journey."""

    from_stop: str
    to_stop: str
    route_id: str | None = None
    trip_id: str | None = None
    departure_time: int
    arrival_time: int
    is_transfer: bool = False


class ScheduledJourney(CamelModel):
    """A path bound to concrete scheduled trips."""

    legs: list[Leg]

    @computed_field(alias="departureTime")
    @property
    def departure_time(self) -> int:
        return self.legs[0].departure_time if self.legs else 0

    @computed_field(alias="arrivalTime")
    @property
    def arrival_time(self) -> int:
        return self.legs[-1].arrival_time if self.legs else 0

    @computed_field(alias="totalDuration")
    @property
    def total_duration(self) -> int:
        return self.arrival_time - self.departure_time

    @computed_field(alias="transfers")
    @property
    def transfers(self) -> int:
        return max(len(self.legs) - 1, 0)


class ItineraryOptions(CamelModel):
    """Search bounds for the itinerary engine."""

    max_paths: int = Field(default=5, ge=1)
    max_transfers: int = Field(default=3, ge=0)
    min_transfer_duration_seconds: int = Field(default=120, ge=0)
    journeys_count: int = Field(default=3, ge=1)


class ItineraryResult(CamelModel):
    """Journeys found between two stop IDs, with the paths they were bound from."""

    journeys: list[ScheduledJourney] = Field(default_factory=list)
    paths: list[list[PathSegment]] = Field(default_factory=list)


# Name-resolved results


class StopLabel(BaseModel):
    stop_name: str
    stop_code: str | None = None


class RouteLabel(BaseModel):
    route_short_name: str | None = None
    route_type: int | None = None


class ResolvedLeg(CamelModel):
    from_stop: StopLabel
    to_stop: StopLabel
    route: RouteLabel | None = None
    trip_headsign: str | None = None
    departure_time: str = Field(description="HH:MM:SS, may exceed 24:00:00")
    arrival_time: str
    is_transfer: bool = False
    duration_minutes: int


class ResolvedJourney(CamelModel):
    departure_time: str
    arrival_time: str
    duration_minutes: int
    transfers: int
    legs: list[ResolvedLeg]


class ItinerarySuccess(CamelModel):
    """Journeys between two named places, ready for presentation."""

    status: Literal["success"] = "success"
    start_stop: StopLabel
    end_stop: StopLabel
    date: str = Field(description="Service date in YYYY-MM-DD format")
    departure_time: str
    journeys: list[ResolvedJourney]
    alternative_start_stops: list[str] = Field(default_factory=list)
    alternative_end_stops: list[str] = Field(default_factory=list)


class ItineraryErrorType(str, Enum):
    """Closed set of expected itinerary-by-name failures."""

    INVALID_DATE_TIME = "INVALID_DATE_TIME"
    START_STOP_NOT_FOUND = "START_STOP_NOT_FOUND"
    END_STOP_NOT_FOUND = "END_STOP_NOT_FOUND"
    BOTH_STOPS_NOT_FOUND = "BOTH_STOPS_NOT_FOUND"
    AMBIGUOUS_START_STOP = "AMBIGUOUS_START_STOP"
    AMBIGUOUS_END_STOP = "AMBIGUOUS_END_STOP"
    SAME_START_AND_END = "SAME_START_AND_END"
    NO_ITINERARY_FOUND = "NO_ITINERARY_FOUND"


class ItineraryError(CamelModel):
    """Structured failure. Callers branch on error_type, never on message."""

    status: Literal["error"] = "error"
    error_type: ItineraryErrorType
    message: str
    field: str | None = None
    value: str | None = None
    query: str | None = None
    candidates: list[str] | None = None
    suggestions: list[str] | None = None
    start_stop_name: str | None = None
    end_stop_name: str | None = None
    date: str | None = None
    hints: list[str] | None = None


ItineraryByNameResult = Annotated[
    ItinerarySuccess | ItineraryError, Field(discriminator="status")
]
