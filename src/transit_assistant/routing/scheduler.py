"""Bind a structural path to concrete scheduled trips."""

from bisect import bisect_left
from dataclasses import dataclass

from transit_assistant.models.itinerary import Leg, ScheduledJourney
from transit_assistant.routing.graph import PathSegment, TransitGraph

# First-ride departures tried per path before giving up on more journeys
MAX_FIRST_RIDE_CANDIDATES = 30


@dataclass(frozen=True)
class _RideOption:
    departure: int
    arrival: int
    trip_id: str


def _ride_options(graph: TransitGraph, segment: PathSegment) -> list[_RideOption]:
    """All trips of the segment's route that carry a rider from one stop to the other."""
    options: list[_RideOption] = []
    for pattern_id in graph.patterns_by_route.get(segment.route_id or "", []):
        pattern = graph.patterns[pattern_id]
        boards = pattern.positions_of(segment.from_stop)
        alights = pattern.positions_of(segment.to_stop)
        for i in boards:
            for j in alights:
                if j <= i:
                    continue
                for trip in pattern.trips:
                    if not trip.can_board[i] or not trip.can_alight[j]:
                        continue
                    options.append(_RideOption(trip.departures[i], trip.arrivals[j], trip.trip_id))
    options.sort(key=lambda o: (o.departure, o.arrival, o.trip_id))
    return options


def _earliest_arrival(options: list[_RideOption], departures: list[int], ready: int) -> _RideOption | None:
    """Option departing at or after `ready` with the earliest arrival."""
    best: _RideOption | None = None
    for option in options[bisect_left(departures, ready) :]:
        if best is None or option.arrival < best.arrival:
            best = option
    return best


def find_scheduled_trips(
    graph: TransitGraph,
    path: list[PathSegment],
    departure_seconds: int,
    min_transfer_seconds: int = 120,
    max_journeys: int = 3,
) -> list[ScheduledJourney]:
    """Find journeys following `path` that leave no earlier than departure_seconds.

    For each candidate first-ride trip, in departure order, every following
    ride takes the trip that arrives earliest among those leaving after the
    rider is ready. A rider is ready min_transfer_seconds after arriving at a
    transfer stop; after a walk, after the longer of the walk and
    min_transfer_seconds. A journey that leaves earlier than another but
    arrives at the same time is dropped.

    A path that starts by walking from a station to one of its platforms, or
    ends by walking from a platform to its station, boards or alights at the
    station itself.

    Returns:
        Journeys sorted by departure time, at most max_journeys.
    """
    if not path:
        return []

    if all(segment.is_walk for segment in path):
        return [_walk_only_journey(path, departure_seconds)]

    # Station to own platform at the start, or back at the end, is not a leg
    origin_station: str | None = None
    destination_station: str | None = None
    head, tail = path[0], path[-1]
    if head.is_walk and graph.parent_of.get(head.to_stop) == head.from_stop:
        origin_station = head.from_stop
        path = path[1:]
    if tail.is_walk and graph.parent_of.get(tail.from_stop) == tail.to_stop:
        destination_station = tail.to_stop
        path = path[:-1]

    ride_indexes = [i for i, segment in enumerate(path) if not segment.is_walk]

    options = {i: _ride_options(graph, path[i]) for i in ride_indexes}
    departures = {i: [o.departure for o in opts] for i, opts in options.items()}

    first = ride_indexes[0]
    lead_walks = path[:first]
    lead_seconds = sum(s.walk_seconds for s in lead_walks)

    by_arrival: dict[int, ScheduledJourney] = {}
    start = bisect_left(departures[first], departure_seconds + lead_seconds)
    for option in options[first][start : start + MAX_FIRST_RIDE_CANDIDATES]:
        journey = _chain(path, first, option, options, departures, min_transfer_seconds)
        if journey is None:
            continue
        journey = _at_stations(journey, origin_station, destination_station)
        current = by_arrival.get(journey.arrival_time)
        if current is None or journey.departure_time > current.departure_time:
            by_arrival[journey.arrival_time] = journey

    journeys = sorted(by_arrival.values(), key=lambda j: (j.departure_time, j.arrival_time))
    return journeys[:max_journeys]


def _chain(
    path: list[PathSegment],
    first: int,
    first_option: _RideOption,
    options: dict[int, list[_RideOption]],
    departures: dict[int, list[int]],
    min_transfer_seconds: int,
) -> ScheduledJourney | None:
    legs: list[Leg] = []

    # Leading walks end exactly when the first ride leaves
    t = first_option.departure - sum(s.walk_seconds for s in path[:first])
    for segment in path[:first]:
        legs.append(_walk_leg(segment, t))
        t += segment.walk_seconds

    legs.append(_ride_leg(path[first], first_option))
    last_arrival = first_option.arrival
    walked = 0
    t = last_arrival

    for index in range(first + 1, len(path)):
        segment = path[index]
        if segment.is_walk:
            legs.append(_walk_leg(segment, t))
            t += segment.walk_seconds
            walked += segment.walk_seconds
            continue
        ready = last_arrival + max(walked, min_transfer_seconds)
        option = _earliest_arrival(options[index], departures[index], ready)
        if option is None:
            return None
        legs.append(_ride_leg(segment, option))
        last_arrival = option.arrival
        walked = 0
        t = last_arrival

    return ScheduledJourney(legs=legs)


def _at_stations(
    journey: ScheduledJourney, origin: str | None, destination: str | None
) -> ScheduledJourney:
    legs = list(journey.legs)
    if origin:
        legs[0] = legs[0].model_copy(update={"from_stop": origin})
    if destination:
        legs[-1] = legs[-1].model_copy(update={"to_stop": destination})
    return ScheduledJourney(legs=legs)


def _ride_leg(segment: PathSegment, option: _RideOption) -> Leg:
    return Leg(
        from_stop=segment.from_stop,
        to_stop=segment.to_stop,
        route_id=segment.route_id,
        trip_id=option.trip_id,
        departure_time=option.departure,
        arrival_time=option.arrival,
        is_transfer=False,
    )


def _walk_leg(segment: PathSegment, departure: int) -> Leg:
    return Leg(
        from_stop=segment.from_stop,
        to_stop=segment.to_stop,
        departure_time=departure,
        arrival_time=departure + segment.walk_seconds,
        is_transfer=True,
    )


def _walk_only_journey(path: list[PathSegment], departure_seconds: int) -> ScheduledJourney:
    legs = []
    t = departure_seconds
    for segment in path:
        legs.append(_walk_leg(segment, t))
        t += segment.walk_seconds
    return ScheduledJourney(legs=legs)
