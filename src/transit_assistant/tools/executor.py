"""Dispatch tool calls from the model to the transit backend.

Every call returns JSON text, including failures, so the model can read
errors and adjust its next request.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from transit_assistant.data.backend import TransitBackend
from transit_assistant.matching.word_search import search_stops_by_words
from transit_assistant.models.itinerary import ItineraryOptions
from transit_assistant.services.datetime_service import get_current_datetime
from transit_assistant.services.itinerary_by_name import find_itinerary_by_name
from transit_assistant.services.itinerary_engine import find_itinerary
from transit_assistant.tools.inputs import (
    TOOL_INPUT_MODELS,
    FindItineraryByNameInput,
    FindItineraryInput,
    GetCurrentDateTimeInput,
    GetRoutesInput,
    GetStopsInput,
    GetStopTimesInput,
    GetTripsInput,
    SearchStopsByWordsInput,
    ToolInput,
    as_id_list,
)

logger = logging.getLogger(__name__)

UNKNOWN_TOOL = "UNKNOWN_TOOL"
INVALID_TOOL_INPUT = "INVALID_TOOL_INPUT"


class UnknownToolError(LookupError):
    """The model asked for a tool that does not exist."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


def to_jsonable(value: Any) -> Any:
    """Convert tool results (models, lists of models) into JSON-ready data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, list):
        return [to_jsonable(item) for item in value]
    return value


def to_json_text(payload: Any) -> str:
    return json.dumps(to_jsonable(payload), indent=2, ensure_ascii=False)


class ToolExecutor:
    """Runs tools by name against one transit backend."""

    def __init__(
        self,
        backend: TransitBackend,
        clock: Callable[[], datetime] | None = None,
        timezone: str | None = None,
    ):
        """Initialize the executor.

        Args:
            backend: Transit backend used by every data tool.
            clock: Returns the current time for getCurrentDateTime (tests pin it).
            timezone: IANA timezone reported by getCurrentDateTime.
        """
        self._backend = backend
        self._clock = clock
        self._timezone = timezone
        self._handlers: dict[str, Callable[[Any], Awaitable[Any]]] = {
            "getCurrentDateTime": self._current_datetime,
            "getRoutes": self._get_routes,
            "getStops": self._get_stops,
            "getTrips": self._get_trips,
            "getStopTimes": self._get_stop_times,
            "searchStopsByWords": self._search_stops_by_words,
            "findItinerary": self._find_itinerary,
            "findItineraryByName": self._find_itinerary_by_name,
        }

    def parse_input(self, name: str, raw_input: dict[str, Any] | None) -> ToolInput:
        """Validate raw model input against the tool's input model.

        Raises:
            UnknownToolError: If no tool has this name.
            ValidationError: If required fields are missing or malformed.
        """
        model = TOOL_INPUT_MODELS.get(name)
        if model is None or name not in self._handlers:
            raise UnknownToolError(name)
        return model.model_validate(raw_input or {})

    async def call(self, name: str, raw_input: dict[str, Any] | None = None) -> Any:
        """Run a tool and return its Python result; errors propagate."""
        params = self.parse_input(name, raw_input)
        return await self._handlers[name](params)

    async def execute(self, name: str, raw_input: dict[str, Any] | None = None) -> str:
        """Run a tool and return its result, or its failure, as JSON text."""
        try:
            result = await self.call(name, raw_input)
        except UnknownToolError as e:
            logger.warning(f"Model requested unknown tool {name!r}")
            return to_json_text({"error": str(e), "errorType": UNKNOWN_TOOL})
        except ValidationError as e:
            logger.info(f"Invalid input for {name}: {e.error_count()} error(s)")
            details = [
                {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
            return to_json_text(
                {
                    "error": f"Invalid input for {name}",
                    "errorType": INVALID_TOOL_INPUT,
                    "details": details,
                }
            )
        except Exception as e:
            logger.warning(f"Tool {name} failed: {e}")
            return to_json_text({"error": str(e)})
        return to_json_text(result)

    async def _service_ids_for(self, service_ids: Any, date: str | None) -> list[str] | None:
        ids = as_id_list(service_ids)
        if ids is None and date:
            ids = await self._backend.get_active_service_ids(date)
        return ids

    async def _current_datetime(self, params: GetCurrentDateTimeInput) -> Any:
        now = self._clock() if self._clock else None
        return get_current_datetime(now, self._timezone)

    async def _get_routes(self, params: GetRoutesInput) -> Any:
        return await self._backend.get_routes(
            route_id=as_id_list(params.route_id),
            agency_id=as_id_list(params.agency_id),
            limit=params.limit,
        )

    async def _get_stops(self, params: GetStopsInput) -> Any:
        return await self._backend.get_stops(
            stop_id=as_id_list(params.stop_id),
            stop_code=params.stop_code,
            name=params.name,
            trip_id=params.trip_id,
            parent_station=params.parent_station,
            include_children=params.include_children,
            limit=params.limit,
        )

    async def _get_trips(self, params: GetTripsInput) -> Any:
        return await self._backend.get_trips(
            trip_id=as_id_list(params.trip_id),
            route_id=as_id_list(params.route_id),
            service_ids=await self._service_ids_for(params.service_ids, params.date),
            direction_id=params.direction_id,
            limit=params.limit,
        )

    async def _get_stop_times(self, params: GetStopTimesInput) -> Any:
        return await self._backend.get_stop_times(
            trip_id=as_id_list(params.trip_id),
            stop_id=as_id_list(params.stop_id),
            route_id=as_id_list(params.route_id),
            service_ids=await self._service_ids_for(params.service_ids, params.date),
            limit=params.limit,
        )

    async def _search_stops_by_words(self, params: SearchStopsByWordsInput) -> Any:
        return await search_stops_by_words(self._backend, params.query, params.limit)

    async def _find_itinerary(self, params: FindItineraryInput) -> Any:
        options = ItineraryOptions(
            max_paths=params.max_paths,
            max_transfers=params.max_transfers,
            min_transfer_duration_seconds=params.min_transfer_duration_seconds,
            journeys_count=params.journeys_count,
        )
        return await find_itinerary(
            self._backend,
            params.start_stop_id,
            params.end_stop_id,
            params.date,
            params.departure_time,
            options,
        )

    async def _find_itinerary_by_name(self, params: FindItineraryByNameInput) -> Any:
        return await find_itinerary_by_name(
            self._backend,
            params.start_name,
            params.end_name,
            params.date,
            params.departure_time,
            max_transfers=params.max_transfers,
            journeys_count=params.journeys_count,
        )
