"""In-memory transit graph for one service date.

Trips that serve the same stops in the same order on the same route are
grouped into route patterns, RAPTOR style. Stops index the patterns that
serve them; walking transfer edges connect a parent station with its
children and children of the same station with each other.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Walking time between a station and one of its platforms
PARENT_CHILD_WALK_SECONDS = 60
# Walking time between two platforms of the same station
SIBLING_WALK_SECONDS = 120

# GTFS pickup_type / drop_off_type value meaning "not available"
NOT_AVAILABLE = 1

# (trip_id, route_id, stop_id, stop_sequence, arrival_seconds, departure_seconds,
#  pickup_type, drop_off_type), ordered by trip_id then stop_sequence
StopTimeRow = tuple[str, str, str, int, int | None, int | None, int | None, int | None]


@dataclass(frozen=True)
class PathSegment:
    """One edge of a path: a ride on a route, or a walk when route_id is None."""

    from_stop: str
    to_stop: str
    route_id: str | None = None
    walk_seconds: int = 0

    @property
    def is_walk(self) -> bool:
        return self.route_id is None


@dataclass
class TripSchedule:
    """Times of one trip along its pattern, position by position."""

    trip_id: str
    arrivals: list[int]
    departures: list[int]
    can_board: list[bool]
    can_alight: list[bool]


@dataclass
class RoutePattern:
    """Trips of one route sharing the exact same stop sequence."""

    pattern_id: str
    route_id: str
    stops: tuple[str, ...]
    trips: list[TripSchedule] = field(default_factory=list)

    def positions_of(self, stop_id: str) -> list[int]:
        return [i for i, s in enumerate(self.stops) if s == stop_id]


@dataclass
class TransitGraph:
    """Patterns and transfer edges active on one service date."""

    date: str
    patterns: dict[str, RoutePattern] = field(default_factory=dict)
    # stop_id -> [(pattern_id, position)]
    patterns_by_stop: dict[str, list[tuple[str, int]]] = field(default_factory=dict)
    # route_id -> [pattern_id]
    patterns_by_route: dict[str, list[str]] = field(default_factory=dict)
    # stop_id -> [(other_stop_id, walk_seconds)]
    transfers: dict[str, list[tuple[str, int]]] = field(default_factory=dict)
    # child stop_id -> parent station stop_id
    parent_of: dict[str, str] = field(default_factory=dict)

    @property
    def trip_count(self) -> int:
        return sum(len(p.trips) for p in self.patterns.values())

    def has_stop(self, stop_id: str) -> bool:
        return stop_id in self.patterns_by_stop or stop_id in self.transfers


def build_transit_graph(
    date: str,
    stop_time_rows: Iterable[StopTimeRow],
    parent_rows: Iterable[tuple[str, str]],
) -> TransitGraph:
    """Build the graph for a date from the stop times of its active trips.

    Args:
        date: Service date (YYYYMMDD), kept for reference.
        stop_time_rows: Stop times of active trips, ordered by trip and sequence.
        parent_rows: (stop_id, parent_station) pairs for child stops.

    Returns:
        TransitGraph ready for path search and scheduling.
    """
    graph = TransitGraph(date=date)
    pattern_keys: dict[tuple[str, tuple[str, ...]], str] = {}
    route_pattern_counts: dict[str, int] = defaultdict(int)

    def add_trip(trip_id: str, route_id: str, rows: list[StopTimeRow]) -> None:
        # Stop times without any time cannot be boarded or alighted at a known time
        timed = [r for r in rows if r[4] is not None or r[5] is not None]
        if len(timed) < 2:
            return
        stops = tuple(r[2] for r in timed)
        key = (route_id, stops)
        pattern_id = pattern_keys.get(key)
        if pattern_id is None:
            pattern_id = f"{route_id}:{route_pattern_counts[route_id]}"
            route_pattern_counts[route_id] += 1
            pattern_keys[key] = pattern_id
            graph.patterns[pattern_id] = RoutePattern(pattern_id, route_id, stops)
            graph.patterns_by_route.setdefault(route_id, []).append(pattern_id)
            for position, stop_id in enumerate(stops):
                graph.patterns_by_stop.setdefault(stop_id, []).append((pattern_id, position))

        arrivals = [r[4] if r[4] is not None else r[5] for r in timed]
        departures = [r[5] if r[5] is not None else r[4] for r in timed]
        graph.patterns[pattern_id].trips.append(
            TripSchedule(
                trip_id=trip_id,
                arrivals=arrivals,
                departures=departures,
                can_board=[r[6] != NOT_AVAILABLE for r in timed],
                can_alight=[r[7] != NOT_AVAILABLE for r in timed],
            )
        )

    current_trip: str | None = None
    current_route = ""
    buffer: list[StopTimeRow] = []
    for row in stop_time_rows:
        if row[0] != current_trip:
            if current_trip is not None:
                add_trip(current_trip, current_route, buffer)
            current_trip, current_route, buffer = row[0], row[1], []
        buffer.append(row)
    if current_trip is not None:
        add_trip(current_trip, current_route, buffer)

    for pattern in graph.patterns.values():
        pattern.trips.sort(key=lambda t: t.departures[0])

    _add_station_transfers(graph, parent_rows)

    logger.info(
        f"Built graph for {date}: {len(graph.patterns)} patterns, "
        f"{graph.trip_count} trips, {len(graph.patterns_by_stop)} stops"
    )
    return graph


def _add_station_transfers(graph: TransitGraph, parent_rows: Iterable[tuple[str, str]]) -> None:
    """Connect parent stations to their children and children to each other."""
    children: dict[str, list[str]] = defaultdict(list)
    for stop_id, parent in parent_rows:
        if parent and parent != stop_id:
            children[parent].append(stop_id)
            graph.parent_of[stop_id] = parent

    for parent, kids in children.items():
        for child in kids:
            graph.transfers.setdefault(parent, []).append((child, PARENT_CHILD_WALK_SECONDS))
            graph.transfers.setdefault(child, []).append((parent, PARENT_CHILD_WALK_SECONDS))
            for sibling in kids:
                if sibling != child:
                    graph.transfers[child].append((sibling, SIBLING_WALK_SECONDS))
