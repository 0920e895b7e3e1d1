"""Tool schema sent to the Model Service with every request."""

from typing import Any


def string_or_array(description: str) -> dict[str, Any]:
    """Schema for parameters accepting one ID or a list of IDs."""
    return {
        "oneOf": [
            {"type": "string"},
            {"type": "array", "items": {"type": "string"}},
        ],
        "description": description,
    }


DATE_PARAMETER = {
    "type": "string",
    "description": "REQUIRED: Date in YYYYMMDD format. Get this from getCurrentDateTime first.",
}

LIMIT_10 = {"type": "number", "description": "Maximum number of results to return (default: 10)"}

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "getCurrentDateTime",
        "description": (
            "Get the current date and time. ALWAYS call this tool first before any other "
            "transit queries to know the current date for filtering trips and schedules."
        ),
        "input_schema": {"type": "object", "properties": {}},
    },
    {
        "name": "getRoutes",
        "description": (
            "Search for transit routes/lines. Returns route short name (the main identifier "
            "to use when referring to routes), long name, type, and colors. NEVER refer to "
            "routes by their internal ID - always use route_short_name. Can query multiple "
            "routes at once by passing an array of IDs."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "routeId": string_or_array("Route ID(s) to look up"),
                "agencyId": string_or_array("Filter routes by agency ID(s)"),
                "limit": LIMIT_10,
            },
        },
    },
    {
        "name": "getStops",
        "description": (
            "Search for transit stops/stations by stop ID (single or multiple), stop code, "
            "name (partial match), or get the stops of a specific trip. Stops often have "
            "parent stops that have no stop times - use includeChildren or parentStation "
            "to get the child stops too."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "stopId": string_or_array("Stop ID(s) to look up, array for batch lookup"),
                "stopCode": {"type": "string", "description": "Stop code (rider-facing identifier)"},
                "name": {
                    "type": "string",
                    "description": "Stop name to search for (partial match, accents ignored)",
                },
                "tripId": {"type": "string", "description": "Get all stops of a trip, in order"},
                "parentStation": {
                    "type": "string",
                    "description": "Get the child stops of this parent station ID",
                },
                "includeChildren": {
                    "type": "boolean",
                    "description": "Also return the child stops of matched stations",
                },
                "limit": LIMIT_10,
            },
        },
    },
    {
        "name": "searchStopsByWords",
        "description": (
            "Search for stops by splitting a query into individual words and finding stops "
            "matching any word. Use this when the stop name may be incomplete or when the "
            "user mentions only part of the stop name. Returns matching stops with a match "
            "score (number of query words found in the name)."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search query (split into words, each searched separately)",
                },
                "limit": {
                    "type": "number",
                    "description": "Maximum number of results to return (default: 20)",
                },
            },
            "required": ["query"],
        },
    },
    {
        "name": "getTrips",
        "description": (
            "Search for trips (scheduled journeys on a route). Returns trip_headsign (the "
            "main identifier to use when referring to trips). ALWAYS pass the date parameter "
            "to filter active trips. Use trip_headsign to describe trips to users, never the "
            "trip ID. Can query multiple trips/routes at once using arrays. If no service runs on "
            "the date, the result is empty."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "tripId": string_or_array("Trip ID(s) to look up"),
                "routeId": string_or_array("Filter trips by route ID(s)"),
                "serviceIds": string_or_array("Filter by service ID(s)"),
                "directionId": {"type": "number", "description": "Direction of travel (0 or 1)"},
                "date": {
                    "type": "string",
                    "description": (
                        "REQUIRED: Filter by date in YYYYMMDD format (returns trips active "
                        "on that date). Get this from getCurrentDateTime first."
                    ),
                },
                "limit": LIMIT_10,
            },
        },
    },
    {
        "name": "getStopTimes",
        "description": (
            "Get scheduled arrival/departure times at stops. ALWAYS pass the date parameter "
            "to filter schedules. Can query multiple stops or trips at once using arrays. If "
            "no results for a stop, try searching for child stops with the same name. If no "
            "service runs on the date, the result is empty."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "tripId": string_or_array("Filter by trip ID(s)"),
                "stopId": string_or_array("Filter by stop ID(s)"),
                "routeId": string_or_array("Filter by route ID(s)"),
                "serviceIds": string_or_array("Filter by service ID(s)"),
                "date": {
                    "type": "string",
                    "description": (
                        "REQUIRED: Filter by date in YYYYMMDD format. Get this from "
                        "getCurrentDateTime first."
                    ),
                },
                "limit": {
                    "type": "number",
                    "description": "Maximum number of results to return (default: 20)",
                },
            },
        },
    },
    {
        "name": "findItinerary",
        "description": (
            "Low-level tool to find transit itineraries between two stops using stop IDs. "
            "Returns raw data that requires additional calls to resolve names. PREFER using "
            "findItineraryByName instead, which handles name resolution automatically."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "startStopId": {
                    "type": "string",
                    "description": "The starting stop ID. Use searchStopsByWords or getStops first.",
                },
                "endStopId": {
                    "type": "string",
                    "description": "The destination stop ID. Use searchStopsByWords or getStops first.",
                },
                "date": DATE_PARAMETER,
                "departureTime": {
                    "type": "string",
                    "description": (
                        'Departure time in HH:MM:SS format (e.g., "08:30:00"). Get current '
                        "time from getCurrentDateTime if user wants to leave now."
                    ),
                },
                "maxTransfers": {
                    "type": "number",
                    "description": "Maximum number of transfers allowed (default: 3)",
                },
                "journeysCount": {
                    "type": "number",
                    "description": "Number of journey options to return (default: 3)",
                },
            },
            "required": ["startStopId", "endStopId", "date", "departureTime"],
        },
    },
    {
        "name": "findItineraryByName",
        "description": (
            "PREFERRED tool for finding transit itineraries. Accepts stop names (fuzzy "
            "matching supported) instead of IDs. Returns fully resolved data with stop names, "
            "route names, and trip headsigns ready for presentation. On failure returns "
            "status 'error' with an errorType (e.g. AMBIGUOUS_START_STOP with candidate names "
            "to offer the user). Call getCurrentDateTime first to get the date and time."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "startName": {
                    "type": "string",
                    "description": (
                        'The starting stop name (fuzzy matching supported). Example: '
                        '"Gare Centrale", "Centre Ville"'
                    ),
                },
                "endName": {
                    "type": "string",
                    "description": (
                        'The destination stop name (fuzzy matching supported). Example: '
                        '"Place Liberté", "Aéroport"'
                    ),
                },
                "date": DATE_PARAMETER,
                "departureTime": {
                    "type": "string",
                    "description": (
                        'Departure time in HH:MM or HH:MM:SS format (e.g., "14:30:00"). Get '
                        "current time from getCurrentDateTime if user wants to leave now."
                    ),
                },
                "maxTransfers": {
                    "type": "number",
                    "description": "Maximum number of transfers allowed (default: 3)",
                },
                "journeysCount": {
                    "type": "number",
                    "description": "Number of journey options to return (default: 3)",
                },
            },
            "required": ["startName", "endName", "date", "departureTime"],
        },
    },
]

TOOL_NAMES = [tool["name"] for tool in TOOL_DEFINITIONS]
