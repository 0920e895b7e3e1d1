"""MCP tools exposing the transit tool surface.

Each tool returns the same JSON text the conversation loop hands to the model.
"""

from typing import Any

from mcp.server.fastmcp import Context

from transit_assistant.app import AppContext, mcp


def _context(ctx: Context) -> AppContext:
    return ctx.request_context.lifespan_context


def _args(**kwargs: Any) -> dict[str, Any]:
    return {key: value for key, value in kwargs.items() if value is not None}


@mcp.tool()
async def get_current_datetime(ctx: Context) -> str:
    """Get the current date and time (call this before any date-sensitive query)."""
    return await _context(ctx).executor.execute("getCurrentDateTime", {})


@mcp.tool()
async def search_stops_by_words(query: str, ctx: Context, limit: int = 20) -> str:
    """Search stops matching any word of the query, ranked by number of matched words.

    Args:
        query: Stop name, possibly incomplete (e.g. "gare centrale").
        limit: Maximum number of results (default 20).
    """
    return await _context(ctx).executor.execute(
        "searchStopsByWords", {"query": query, "limit": limit}
    )


@mcp.tool()
async def find_itinerary_by_name(
    start_name: str,
    end_name: str,
    date: str,
    departure_time: str,
    ctx: Context,
    max_transfers: int = 3,
    journeys_count: int = 3,
) -> str:
    """Find itineraries between two stop names.

    Returns journeys with stop names, route short names and headsigns, or a
    structured error (status "error" with an errorType) such as
    AMBIGUOUS_START_STOP with candidate names.

    Args:
        start_name: Origin stop name (fuzzy matching).
        end_name: Destination stop name (fuzzy matching).
        date: Date in YYYYMMDD format.
        departure_time: Earliest departure, HH:MM or HH:MM:SS.
        max_transfers: Maximum number of transfers (default 3).
        journeys_count: Number of journeys to return (default 3).
    """
    return await _context(ctx).executor.execute(
        "findItineraryByName",
        {
            "startName": start_name,
            "endName": end_name,
            "date": date,
            "departureTime": departure_time,
            "maxTransfers": max_transfers,
            "journeysCount": journeys_count,
        },
    )


@mcp.tool()
async def find_itinerary(
    start_stop_id: str,
    end_stop_id: str,
    date: str,
    departure_time: str,
    ctx: Context,
    max_transfers: int = 3,
    journeys_count: int = 3,
) -> str:
    """Find itineraries between two stop IDs (raw IDs and seconds since midnight).

    Prefer find_itinerary_by_name unless the stop IDs are already known.
    """
    return await _context(ctx).executor.execute(
        "findItinerary",
        {
            "startStopId": start_stop_id,
            "endStopId": end_stop_id,
            "date": date,
            "departureTime": departure_time,
            "maxTransfers": max_transfers,
            "journeysCount": journeys_count,
        },
    )


@mcp.tool()
async def get_stops(
    ctx: Context,
    stop_id: str | list[str] | None = None,
    stop_code: str | None = None,
    name: str | None = None,
    trip_id: str | None = None,
    parent_station: str | None = None,
    include_children: bool = False,
    limit: int = 10,
) -> str:
    """Look up stops by ID(s), code, partial name, trip or parent station."""
    return await _context(ctx).executor.execute(
        "getStops",
        _args(
            stopId=stop_id,
            stopCode=stop_code,
            name=name,
            tripId=trip_id,
            parentStation=parent_station,
            includeChildren=include_children,
            limit=limit,
        ),
    )


@mcp.tool()
async def get_routes(
    ctx: Context,
    route_id: str | list[str] | None = None,
    agency_id: str | list[str] | None = None,
    limit: int = 10,
) -> str:
    """Look up routes by ID(s) or agency. Refer to routes by route_short_name."""
    return await _context(ctx).executor.execute(
        "getRoutes", _args(routeId=route_id, agencyId=agency_id, limit=limit)
    )


@mcp.tool()
async def get_trips(
    ctx: Context,
    trip_id: str | list[str] | None = None,
    route_id: str | list[str] | None = None,
    service_ids: str | list[str] | None = None,
    direction_id: int | None = None,
    date: str | None = None,
    limit: int = 10,
) -> str:
    """Look up trips; pass date (YYYYMMDD) to keep only trips running that day."""
    return await _context(ctx).executor.execute(
        "getTrips",
        _args(
            tripId=trip_id,
            routeId=route_id,
            serviceIds=service_ids,
            directionId=direction_id,
            date=date,
            limit=limit,
        ),
    )


@mcp.tool()
async def get_stop_times(
    ctx: Context,
    trip_id: str | list[str] | None = None,
    stop_id: str | list[str] | None = None,
    route_id: str | list[str] | None = None,
    service_ids: str | list[str] | None = None,
    date: str | None = None,
    limit: int = 20,
) -> str:
    """Get scheduled times at stops; pass date (YYYYMMDD) to filter by active service."""
    return await _context(ctx).executor.execute(
        "getStopTimes",
        _args(
            tripId=trip_id,
            stopId=stop_id,
            routeId=route_id,
            serviceIds=service_ids,
            date=date,
            limit=limit,
        ),
    )
