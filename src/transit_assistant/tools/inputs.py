"""Validated input models for each tool, keyed by tool name."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

StrOrList = str | list[str]

MAX_LIMIT = 100


def as_id_list(value: StrOrList | None) -> list[str] | None:
    """Normalize one ID, a comma-separated string or a list into a list of IDs.

    Example: "a, b" -> ["a", "b"]; ["a"] -> ["a"]; None -> None
    """
    if value is None:
        return None
    items = value.split(",") if isinstance(value, str) else value
    return [item.strip() for item in items if item.strip()]


class ToolInput(BaseModel):
    """Base for tool inputs: camelCase keys, unknown keys ignored, lax coercion."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )


class LimitedInput(ToolInput):
    limit: int = 10

    @field_validator("limit")
    @classmethod
    def clamp_limit(cls, v: int) -> int:
        return max(1, min(v, MAX_LIMIT))


class GetCurrentDateTimeInput(ToolInput):
    pass


class GetRoutesInput(LimitedInput):
    route_id: StrOrList | None = None
    agency_id: StrOrList | None = None


class GetStopsInput(LimitedInput):
    stop_id: StrOrList | None = None
    stop_code: str | None = None
    name: str | None = None
    trip_id: str | None = None
    parent_station: str | None = None
    include_children: bool = False


class GetTripsInput(LimitedInput):
    trip_id: StrOrList | None = None
    route_id: StrOrList | None = None
    service_ids: StrOrList | None = None
    direction_id: int | None = None
    date: str | None = None


class GetStopTimesInput(LimitedInput):
    trip_id: StrOrList | None = None
    stop_id: StrOrList | None = None
    route_id: StrOrList | None = None
    service_ids: StrOrList | None = None
    date: str | None = None
    limit: int = 20


class SearchStopsByWordsInput(LimitedInput):
    query: str
    limit: int = 20


class FindItineraryInput(ToolInput):
    start_stop_id: str
    end_stop_id: str
    date: str
    departure_time: str
    max_transfers: int = Field(default=3, ge=0, le=5)
    journeys_count: int = Field(default=3, ge=1, le=10)
    max_paths: int = Field(default=5, ge=1, le=20)
    min_transfer_duration_seconds: int = Field(default=120, ge=0)


class FindItineraryByNameInput(ToolInput):
    start_name: str
    end_name: str
    date: str
    departure_time: str
    max_transfers: int = Field(default=3, ge=0, le=5)
    journeys_count: int = Field(default=3, ge=1, le=10)


TOOL_INPUT_MODELS: dict[str, type[ToolInput]] = {
    "getCurrentDateTime": GetCurrentDateTimeInput,
    "getRoutes": GetRoutesInput,
    "getStops": GetStopsInput,
    "getTrips": GetTripsInput,
    "getStopTimes": GetStopTimesInput,
    "searchStopsByWords": SearchStopsByWordsInput,
    "findItinerary": FindItineraryInput,
    "findItineraryByName": FindItineraryByNameInput,
}
