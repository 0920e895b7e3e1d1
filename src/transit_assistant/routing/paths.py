"""Enumerate structurally distinct paths between two stops."""

from collections import defaultdict
from dataclasses import dataclass

from transit_assistant.routing.graph import PathSegment, TransitGraph

# Partial paths kept per stop across all rounds
MAX_LABELS_PER_STOP = 3


@dataclass(frozen=True)
class _Label:
    stop_id: str
    segments: tuple[PathSegment, ...]
    visited: frozenset[str]
    last_route: str | None = None


def find_all_paths(
    graph: TransitGraph,
    start_stop_id: str,
    end_stop_id: str,
    max_transfers: int = 3,
    max_paths: int = 5,
) -> list[list[PathSegment]]:
    """Find up to max_paths ride sequences from start to end.

    Search runs in rounds: round k extends every partial path by one ride, so
    paths come out ordered by number of rides. A single walking transfer may
    follow the start or any ride. Stops are never revisited within a path and
    the same route is never ridden twice in a row.

    Args:
        graph: Graph for the service date.
        start_stop_id: Origin stop.
        end_stop_id: Destination stop.
        max_transfers: Rides beyond the first allowed in a path.
        max_paths: Maximum number of paths returned.

    Returns:
        List of paths, each a list of PathSegment. Empty if none exist.
    """
    if start_stop_id == end_stop_id or max_paths < 1:
        return []
    if not graph.has_stop(start_stop_id) or not graph.has_stop(end_stop_id):
        return []

    paths: list[list[PathSegment]] = []
    found: set[tuple[PathSegment, ...]] = set()
    labels_at_stop: dict[str, int] = defaultdict(int)
    seen_labels: set[tuple[PathSegment, ...]] = set()

    def record(segments: tuple[PathSegment, ...]) -> None:
        if segments not in found:
            found.add(segments)
            paths.append(list(segments))

    def keep(label: _Label, frontier: list[_Label]) -> None:
        if label.segments in seen_labels:
            return
        if labels_at_stop[label.stop_id] >= MAX_LABELS_PER_STOP:
            return
        seen_labels.add(label.segments)
        labels_at_stop[label.stop_id] += 1
        frontier.append(label)

    def walk_from(label: _Label, frontier: list[_Label], can_continue: bool) -> None:
        for neighbor, walk_seconds in graph.transfers.get(label.stop_id, []):
            if neighbor in label.visited:
                continue
            walked = _Label(
                neighbor,
                label.segments + (PathSegment(label.stop_id, neighbor, None, walk_seconds),),
                label.visited | {neighbor},
                label.last_route,
            )
            if neighbor == end_stop_id:
                record(walked.segments)
            elif can_continue:
                keep(walked, frontier)

    origin = _Label(start_stop_id, (), frozenset({start_stop_id}))
    frontier: list[_Label] = []
    keep(origin, frontier)
    walk_from(origin, frontier, can_continue=True)

    for rides in range(1, max_transfers + 2):
        can_continue = rides <= max_transfers
        next_frontier: list[_Label] = []
        for label in frontier:
            for pattern_id, position in graph.patterns_by_stop.get(label.stop_id, []):
                pattern = graph.patterns[pattern_id]
                if pattern.route_id == label.last_route:
                    continue
                for stop_id in pattern.stops[position + 1 :]:
                    if stop_id in label.visited:
                        continue
                    ride = _Label(
                        stop_id,
                        label.segments + (PathSegment(label.stop_id, stop_id, pattern.route_id),),
                        label.visited | {stop_id},
                        pattern.route_id,
                    )
                    if stop_id == end_stop_id:
                        record(ride.segments)
                        continue
                    if can_continue:
                        keep(ride, next_frontier)
                    walk_from(ride, next_frontier, can_continue)

        if len(paths) >= max_paths or not next_frontier:
            break
        frontier = next_frontier

    return paths[:max_paths]
