"""Itinerary search between two free-text place names.

Resolves both names to stops, checks for ambiguity, runs the itinerary
engine and rewrites every leg with rider-facing names. Expected failures
come back as ItineraryError values with a fixed error_type.
"""

import logging
import re
from typing import TYPE_CHECKING

from transit_assistant.matching.normalizers import names_equal
from transit_assistant.matching.suggestions import suggest_stop_names
from transit_assistant.matching.word_search import search_stops_by_words
from transit_assistant.models.gtfs import ScoredStop
from transit_assistant.models.itinerary import (
    ItineraryByNameResult,
    ItineraryError,
    ItineraryErrorType,
    ItineraryOptions,
    ItinerarySuccess,
    ResolvedJourney,
    ResolvedLeg,
    RouteLabel,
    ScheduledJourney,
    StopLabel,
)
from transit_assistant.services.itinerary_engine import find_itinerary
from transit_assistant.services.schedule_service import (
    GTFS_DATE_PATTERN,
    parse_gtfs_date,
    seconds_to_gtfs_time,
)

if TYPE_CHECKING:
    from transit_assistant.data.backend import TransitBackend

logger = logging.getLogger(__name__)

# Candidates resolved per side
CANDIDATE_LIMIT = 10
# Tied top-score candidates (with no exact name match) that make a name ambiguous
AMBIGUITY_THRESHOLD = 3
# Candidate names returned with an ambiguity error
AMBIGUITY_HINT_COUNT = 5
# Alternative names returned per side with a success
ALTERNATIVE_COUNT = 3

TIME_PATTERN = re.compile(r"^\d{2}:[0-5]\d(:[0-5]\d)?$")

NO_ITINERARY_HINTS = [
    "Try a later departure time",
    "Try another date; service may not run on this day",
    "Allow more transfers",
    "Try a nearby stop or a more specific stop name",
]


def _stop_label(stop: ScoredStop) -> StopLabel:
    return StopLabel(stop_name=stop.stop_name, stop_code=stop.stop_code)


def _distinct_names(stops: list[ScoredStop], exclude: str | None = None) -> list[str]:
    names: list[str] = []
    for stop in stops:
        if exclude is not None and names_equal(stop.stop_name, exclude):
            continue
        if stop.stop_name not in names:
            names.append(stop.stop_name)
    return names


def _pick_candidate(query: str, candidates: list[ScoredStop]) -> ScoredStop | None:
    """Pick the top candidate, or None if the top score is ambiguous.

    An exact name match among the tied top candidates always wins.
    """
    top_score = candidates[0].match_score
    tied = [c for c in candidates if c.match_score == top_score]
    for candidate in tied:
        if names_equal(candidate.stop_name, query):
            return candidate
    if len(tied) >= AMBIGUITY_THRESHOLD:
        return None
    return candidates[0]


def _minutes(seconds: int) -> int:
    return round(seconds / 60)


async def find_itinerary_by_name(
    backend: "TransitBackend",
    start_name: str,
    end_name: str,
    date: str,
    departure_time: str,
    max_transfers: int = 3,
    journeys_count: int = 3,
) -> ItineraryByNameResult:
    """Find journeys between two place names.

    Args:
        backend: Open transit backend.
        start_name: Free-text origin name (e.g. "Gare Centrale").
        end_name: Free-text destination name.
        date: Service date in YYYYMMDD format.
        departure_time: Earliest departure, HH:MM or HH:MM:SS.
        max_transfers: Maximum transfers per journey.
        journeys_count: Maximum journeys returned.

    Returns:
        ItinerarySuccess with name-resolved journeys, or ItineraryError.
    """
    # 1-2. Validate inputs before touching the backend
    if not GTFS_DATE_PATTERN.match(date or ""):
        return ItineraryError(
            error_type=ItineraryErrorType.INVALID_DATE_TIME,
            message=f"Invalid date '{date}': expected YYYYMMDD (e.g. 20251203)",
            field="date",
            value=date,
        )
    try:
        service_date = parse_gtfs_date(date)
    except ValueError:
        return ItineraryError(
            error_type=ItineraryErrorType.INVALID_DATE_TIME,
            message=f"Invalid date '{date}': not a calendar date",
            field="date",
            value=date,
        )
    if not TIME_PATTERN.match(departure_time or ""):
        return ItineraryError(
            error_type=ItineraryErrorType.INVALID_DATE_TIME,
            message=f"Invalid departure time '{departure_time}': expected HH:MM or HH:MM:SS",
            field="departureTime",
            value=departure_time,
        )
    if len(departure_time) == 5:
        departure_time = f"{departure_time}:00"

    # 3-4. Resolve both names
    start_candidates = await search_stops_by_words(backend, start_name, CANDIDATE_LIMIT)
    end_candidates = await search_stops_by_words(backend, end_name, CANDIDATE_LIMIT)

    if not start_candidates and not end_candidates:
        return ItineraryError(
            error_type=ItineraryErrorType.BOTH_STOPS_NOT_FOUND,
            message=f"No stops found matching '{start_name}' or '{end_name}'",
            query=f"{start_name} -> {end_name}",
            suggestions=(
                await _suggestions(backend, start_name) + await _suggestions(backend, end_name)
            ),
        )
    if not start_candidates:
        return ItineraryError(
            error_type=ItineraryErrorType.START_STOP_NOT_FOUND,
            message=f"No stop found matching '{start_name}'",
            query=start_name,
            suggestions=await _suggestions(backend, start_name),
        )
    if not end_candidates:
        return ItineraryError(
            error_type=ItineraryErrorType.END_STOP_NOT_FOUND,
            message=f"No stop found matching '{end_name}'",
            query=end_name,
            suggestions=await _suggestions(backend, end_name),
        )

    # 5-6. Ambiguity check, then selection
    start = _pick_candidate(start_name, start_candidates)
    if start is None:
        return _ambiguous(ItineraryErrorType.AMBIGUOUS_START_STOP, start_name, start_candidates)
    end = _pick_candidate(end_name, end_candidates)
    if end is None:
        return _ambiguous(ItineraryErrorType.AMBIGUOUS_END_STOP, end_name, end_candidates)

    # 7. Same stop on both sides
    if start.stop_id == end.stop_id:
        return ItineraryError(
            error_type=ItineraryErrorType.SAME_START_AND_END,
            message=f"'{start_name}' and '{end_name}' both resolve to the stop {start.stop_name}",
            start_stop_name=start.stop_name,
            end_stop_name=end.stop_name,
        )

    # 8-9. Itinerary search
    options = ItineraryOptions(max_transfers=max_transfers, journeys_count=journeys_count)
    result = await find_itinerary(
        backend, start.stop_id, end.stop_id, date, departure_time, options
    )
    if not result.journeys:
        return ItineraryError(
            error_type=ItineraryErrorType.NO_ITINERARY_FOUND,
            message=(
                f"No itinerary found from {start.stop_name} to {end.stop_name} "
                f"on {service_date.isoformat()} after {departure_time}"
            ),
            start_stop_name=start.stop_name,
            end_stop_name=end.stop_name,
            date=service_date.isoformat(),
            hints=NO_ITINERARY_HINTS,
        )

    # 10. Replace IDs with names
    journeys = await _resolve_journeys(backend, result.journeys)
    return ItinerarySuccess(
        start_stop=_stop_label(start),
        end_stop=_stop_label(end),
        date=service_date.isoformat(),
        departure_time=departure_time,
        journeys=journeys,
        alternative_start_stops=_alternatives(start, start_candidates),
        alternative_end_stops=_alternatives(end, end_candidates),
    )


async def _suggestions(backend: "TransitBackend", query: str) -> list[str]:
    return suggest_stop_names(query, await backend.get_stop_names())


def _ambiguous(
    error_type: ItineraryErrorType, query: str, candidates: list[ScoredStop]
) -> ItineraryError:
    names = _distinct_names(candidates[:AMBIGUITY_HINT_COUNT])
    side = "start" if error_type == ItineraryErrorType.AMBIGUOUS_START_STOP else "end"
    return ItineraryError(
        error_type=error_type,
        message=f"'{query}' matches several {side} stops equally well; ask which one is meant",
        query=query,
        candidates=names,
        hints=[f"Did you mean {name}?" for name in names],
    )


def _alternatives(selected: ScoredStop, candidates: list[ScoredStop]) -> list[str]:
    others = [c for c in candidates if c.stop_id != selected.stop_id]
    return _distinct_names(others, exclude=selected.stop_name)[:ALTERNATIVE_COUNT]


async def _resolve_journeys(
    backend: "TransitBackend", journeys: list[ScheduledJourney]
) -> list[ResolvedJourney]:
    """Rebuild journeys with stop names, route short names and headsigns.

    Stops, trips and routes are each fetched in one batch.
    """
    stop_ids: list[str] = []
    trip_ids: list[str] = []
    for journey in journeys:
        for leg in journey.legs:
            for stop_id in (leg.from_stop, leg.to_stop):
                if stop_id not in stop_ids:
                    stop_ids.append(stop_id)
            if leg.trip_id and leg.trip_id not in trip_ids:
                trip_ids.append(leg.trip_id)

    stops = {s.stop_id: s for s in await backend.get_stops(stop_id=stop_ids, limit=len(stop_ids))}
    trips = (
        {t.trip_id: t for t in await backend.get_trips(trip_id=trip_ids, limit=len(trip_ids))}
        if trip_ids
        else {}
    )
    route_ids = sorted({t.route_id for t in trips.values()})
    routes = (
        {r.route_id: r for r in await backend.get_routes(route_id=route_ids, limit=len(route_ids))}
        if route_ids
        else {}
    )

    def stop_label(stop_id: str) -> StopLabel:
        stop = stops.get(stop_id)
        if stop is None:
            logger.warning(f"Stop {stop_id} referenced by a journey is missing from the feed")
            return StopLabel(stop_name="Unknown stop")
        return StopLabel(stop_name=stop.stop_name, stop_code=stop.stop_code)

    resolved: list[ResolvedJourney] = []
    for journey in journeys:
        legs: list[ResolvedLeg] = []
        for leg in journey.legs:
            trip = trips.get(leg.trip_id) if leg.trip_id else None
            route = routes.get(trip.route_id if trip else leg.route_id or "")
            legs.append(
                ResolvedLeg(
                    from_stop=stop_label(leg.from_stop),
                    to_stop=stop_label(leg.to_stop),
                    route=(
                        RouteLabel(
                            route_short_name=route.route_short_name,
                            route_type=route.route_type,
                        )
                        if route
                        else None
                    ),
                    trip_headsign=trip.trip_headsign if trip else None,
                    departure_time=seconds_to_gtfs_time(leg.departure_time),
                    arrival_time=seconds_to_gtfs_time(leg.arrival_time),
                    is_transfer=leg.is_transfer,
                    duration_minutes=_minutes(leg.arrival_time - leg.departure_time),
                )
            )
        resolved.append(
            ResolvedJourney(
                departure_time=seconds_to_gtfs_time(journey.departure_time),
                arrival_time=seconds_to_gtfs_time(journey.arrival_time),
                duration_minutes=_minutes(journey.total_duration),
                transfers=journey.transfers,
                legs=legs,
            )
        )
    return resolved
