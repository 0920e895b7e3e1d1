"""Itinerary search between two stop IDs."""

import logging
from typing import TYPE_CHECKING

from transit_assistant.models.itinerary import ItineraryOptions, ItineraryResult, ScheduledJourney
from transit_assistant.services.schedule_service import gtfs_time_to_seconds

if TYPE_CHECKING:
    from transit_assistant.data.backend import TransitBackend

logger = logging.getLogger(__name__)


async def find_itinerary(
    backend: "TransitBackend",
    start_stop_id: str,
    end_stop_id: str,
    date: str,
    departure_time: str,
    options: ItineraryOptions | None = None,
) -> ItineraryResult:
    """Find scheduled journeys from one stop to another.

    Asks the backend for up to `max_paths` distinct paths on the date's graph,
    binds each path to real trips leaving at or after `departure_time`, then
    returns the earliest-departing journeys across all paths.

    Args:
        backend: Open transit backend.
        start_stop_id: Origin stop ID.
        end_stop_id: Destination stop ID.
        date: Service date in YYYYMMDD format.
        departure_time: Earliest departure in HH:MM:SS format.
        options: Search bounds (defaults apply when omitted).

    Returns:
        ItineraryResult. Both lists are empty when no path exists; this is
        not an error.
    """
    if options is None:
        options = ItineraryOptions()

    graph = await backend.build_graph(date)
    paths = await backend.find_all_paths(
        graph,
        start_stop_id,
        end_stop_id,
        max_transfers=options.max_transfers,
        max_paths=options.max_paths,
    )
    if not paths:
        logger.debug(f"No path from {start_stop_id} to {end_stop_id} on {date}")
        return ItineraryResult(journeys=[], paths=[])

    departure_seconds = gtfs_time_to_seconds(departure_time)

    journeys: list[ScheduledJourney] = []
    for path in paths:
        journeys.extend(
            await backend.find_scheduled_trips(
                graph,
                path,
                departure_seconds,
                min_transfer_seconds=options.min_transfer_duration_seconds,
                max_journeys=options.journeys_count,
            )
        )

    journeys.sort(key=lambda j: (j.departure_time, j.arrival_time, j.transfers))
    return ItineraryResult(journeys=journeys[: options.journeys_count], paths=paths)
