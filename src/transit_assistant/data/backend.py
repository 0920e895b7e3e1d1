"""Transit data backend: filtered GTFS lookups and routing primitives.

The backend is an explicitly owned handle. Open it once, pass it to the
services that need it, close it when done:

    async with TransitBackend(db_path) as backend:
        stops = await backend.get_stops(name="gare")
"""

import asyncio
import logging
from pathlib import Path

import aiosqlite

from transit_assistant.data.cache import KeyedCache
from transit_assistant.data.database import connect_db
from transit_assistant.data.feed_source import resolve_feed
from transit_assistant.data.gtfs_loader import GTFSLoader
from transit_assistant.matching.normalizers import escape_like, fold_text
from transit_assistant.models.gtfs import Route, Stop, StopTime, Trip
from transit_assistant.models.itinerary import ScheduledJourney
from transit_assistant.routing.graph import PathSegment, TransitGraph, build_transit_graph
from transit_assistant.routing.paths import find_all_paths
from transit_assistant.routing.scheduler import find_scheduled_trips
from transit_assistant.services.schedule_service import (
    get_active_service_ids,
    parse_gtfs_date,
)

logger = logging.getLogger(__name__)

DEFAULT_STOP_LIMIT = 10
DEFAULT_ROUTE_LIMIT = 10
DEFAULT_TRIP_LIMIT = 10
DEFAULT_STOP_TIME_LIMIT = 20

# Per-date graphs kept in memory
GRAPH_CACHE_SIZE = 4

STOP_COLUMNS = (
    "s.stop_id, s.stop_code, s.stop_name, s.stop_lat, s.stop_lon, "
    "s.location_type, s.parent_station"
)


class TransitBackendError(Exception):
    """Base class for transit backend failures."""


class BackendUnavailableError(TransitBackendError):
    """The backend is not open or its database is missing."""


def _as_list(value: str | list[str] | None) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return list(value)


def _in_clause(column: str, values: list[str]) -> str:
    return f"{column} IN ({','.join('?' * len(values))})"


def _row_to_stop(row: aiosqlite.Row) -> Stop:
    return Stop(
        stop_id=row["stop_id"],
        stop_code=row["stop_code"],
        stop_name=row["stop_name"],
        stop_lat=float(row["stop_lat"]) if row["stop_lat"] is not None else None,
        stop_lon=float(row["stop_lon"]) if row["stop_lon"] is not None else None,
        location_type=int(row["location_type"]) if row["location_type"] is not None else None,
        parent_station=row["parent_station"],
    )


class TransitBackend:
    """Owned handle on one ingested GTFS feed."""

    def __init__(self, db_path: Path, graph_cache_size: int = GRAPH_CACHE_SIZE):
        """Initialize the backend without opening it.

        Args:
            db_path: SQLite database produced by GTFSLoader.
            graph_cache_size: Number of per-date routing graphs kept in memory.
        """
        self.db_path = Path(db_path)
        self._db: aiosqlite.Connection | None = None
        self._graphs: KeyedCache[TransitGraph] = KeyedCache(graph_cache_size)
        self._stop_names: list[str] | None = None

    async def __aenter__(self) -> "TransitBackend":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def is_ready(self) -> bool:
        return self._db is not None

    async def open(self, feed_location: str | Path | None = None, refresh: bool = False) -> None:
        """Open the database, ingesting the feed first when needed.

        Args:
            feed_location: URL, ZIP or directory. Ingested when the database is
                missing or when refresh is set.
            refresh: Re-ingest even if the database already exists.

        Raises:
            BackendUnavailableError: If there is no database and no feed to build it from.
        """
        if self._db is not None:
            return

        if feed_location is not None and (refresh or not self.db_path.exists()):
            gtfs_path = await resolve_feed(feed_location, self.db_path.parent)
            await GTFSLoader(self.db_path).ingest(gtfs_path)

        try:
            self._db = await connect_db(self.db_path)
        except FileNotFoundError as e:
            raise BackendUnavailableError(str(e)) from e

        self._graphs.clear()
        self._stop_names = None
        logger.info(f"Transit backend opened: {self.db_path}")

    async def close(self) -> None:
        """Close the database connection and drop cached graphs."""
        if self._db is not None:
            await self._db.close()
            self._db = None
            logger.info("Transit backend closed")
        self._graphs.clear()
        self._stop_names = None

    def _require_db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise BackendUnavailableError("Transit data is not loaded")
        return self._db

    async def _fetch(self, sql: str, params: list | tuple = ()) -> list[aiosqlite.Row]:
        db = self._require_db()
        async with db.execute(sql, params) as cursor:
            return list(await cursor.fetchall())

    # Lookups

    async def get_stops(
        self,
        stop_id: str | list[str] | None = None,
        stop_code: str | None = None,
        name: str | None = None,
        trip_id: str | None = None,
        parent_station: str | None = None,
        include_children: bool = False,
        limit: int = DEFAULT_STOP_LIMIT,
    ) -> list[Stop]:
        """Find stops matching every given filter.

        `name` is a case- and accent-insensitive substring match. With `trip_id`,
        stops come back in the trip's stop sequence; otherwise ordered by name.
        `include_children` adds the child stops of every matched station.
        """
        conditions: list[str] = []
        params: list = []
        joins = ""
        order = "s.stop_name, s.stop_id"

        stop_ids = _as_list(stop_id)
        if stop_ids is not None:
            if not stop_ids:
                return []
            conditions.append(_in_clause("s.stop_id", stop_ids))
            params.extend(stop_ids)
        if stop_code:
            conditions.append("s.stop_code = ?")
            params.append(stop_code)
        if name:
            conditions.append("s.stop_name_normalized LIKE ? ESCAPE '\\'")
            params.append(f"%{escape_like(fold_text(name))}%")
        if parent_station:
            conditions.append("s.parent_station = ?")
            params.append(parent_station)
        if trip_id:
            joins = "JOIN stop_times st ON st.stop_id = s.stop_id"
            conditions.append("st.trip_id = ?")
            params.append(trip_id)
            order = "st.stop_sequence"

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        sql = f"SELECT {STOP_COLUMNS} FROM stops s {joins} {where} ORDER BY {order} LIMIT ?"
        rows = await self._fetch(sql, [*params, limit])
        stops = [_row_to_stop(row) for row in rows]

        if include_children and stops:
            known = {s.stop_id for s in stops}
            parents = list(known)
            sql = (
                f"SELECT {STOP_COLUMNS} FROM stops s "
                f"WHERE {_in_clause('s.parent_station', parents)} "
                "ORDER BY s.stop_name, s.stop_id"
            )
            for row in await self._fetch(sql, parents):
                if len(stops) >= limit:
                    break
                if row["stop_id"] not in known:
                    known.add(row["stop_id"])
                    stops.append(_row_to_stop(row))

        return stops

    async def get_routes(
        self,
        route_id: str | list[str] | None = None,
        agency_id: str | list[str] | None = None,
        limit: int = DEFAULT_ROUTE_LIMIT,
    ) -> list[Route]:
        """Find routes by ID(s) and/or agency ID(s)."""
        conditions: list[str] = []
        params: list = []
        for column, value in (("route_id", route_id), ("agency_id", agency_id)):
            values = _as_list(value)
            if values is not None:
                if not values:
                    return []
                conditions.append(_in_clause(column, values))
                params.extend(values)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        sql = f"""
            SELECT route_id, agency_id, route_short_name, route_long_name,
                   route_type, route_color, route_text_color
            FROM routes
            {where}
            ORDER BY route_short_name, route_id
            LIMIT ?
        """
        rows = await self._fetch(sql, [*params, limit])
        return [
            Route(
                route_id=row["route_id"],
                agency_id=row["agency_id"],
                route_short_name=row["route_short_name"],
                route_long_name=row["route_long_name"],
                route_type=int(row["route_type"]),
                route_color=row["route_color"],
                route_text_color=row["route_text_color"],
            )
            for row in rows
        ]

    async def get_trips(
        self,
        trip_id: str | list[str] | None = None,
        route_id: str | list[str] | None = None,
        service_ids: str | list[str] | None = None,
        direction_id: int | None = None,
        limit: int = DEFAULT_TRIP_LIMIT,
    ) -> list[Trip]:
        """Find trips by ID(s), route(s), service(s) and direction."""
        conditions: list[str] = []
        params: list = []
        for column, value in (
            ("trip_id", trip_id),
            ("route_id", route_id),
            ("service_id", service_ids),
        ):
            values = _as_list(value)
            if values is not None:
                if not values:
                    return []
                conditions.append(_in_clause(column, values))
                params.extend(values)
        if direction_id is not None:
            conditions.append("direction_id = ?")
            params.append(direction_id)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        sql = f"""
            SELECT trip_id, route_id, service_id, trip_headsign, direction_id
            FROM trips
            {where}
            ORDER BY trip_id
            LIMIT ?
        """
        rows = await self._fetch(sql, [*params, limit])
        return [
            Trip(
                trip_id=row["trip_id"],
                route_id=row["route_id"],
                service_id=row["service_id"],
                trip_headsign=row["trip_headsign"],
                direction_id=int(row["direction_id"]) if row["direction_id"] is not None else None,
            )
            for row in rows
        ]

    async def get_stop_times(
        self,
        trip_id: str | list[str] | None = None,
        stop_id: str | list[str] | None = None,
        route_id: str | list[str] | None = None,
        service_ids: str | list[str] | None = None,
        limit: int = DEFAULT_STOP_TIME_LIMIT,
    ) -> list[StopTime]:
        """Find stop times, ordered by departure then stop sequence."""
        conditions: list[str] = []
        params: list = []
        for column, value in (
            ("st.trip_id", trip_id),
            ("st.stop_id", stop_id),
            ("t.route_id", route_id),
            ("t.service_id", service_ids),
        ):
            values = _as_list(value)
            if values is not None:
                if not values:
                    return []
                conditions.append(_in_clause(column, values))
                params.extend(values)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        sql = f"""
            SELECT st.trip_id, st.arrival_time, st.departure_time, st.stop_id,
                   st.stop_sequence, st.pickup_type, st.drop_off_type,
                   st.arrival_seconds, st.departure_seconds
            FROM stop_times st
            JOIN trips t ON t.trip_id = st.trip_id
            {where}
            ORDER BY st.departure_seconds, st.stop_sequence, st.trip_id
            LIMIT ?
        """
        rows = await self._fetch(sql, [*params, limit])
        return [
            StopTime(
                trip_id=row["trip_id"],
                arrival_time=row["arrival_time"],
                departure_time=row["departure_time"],
                stop_id=row["stop_id"],
                stop_sequence=int(row["stop_sequence"]),
                pickup_type=int(row["pickup_type"]) if row["pickup_type"] is not None else None,
                drop_off_type=(
                    int(row["drop_off_type"]) if row["drop_off_type"] is not None else None
                ),
                arrival_seconds=row["arrival_seconds"],
                departure_seconds=row["departure_seconds"],
            )
            for row in rows
        ]

    async def get_active_service_ids(self, date: str) -> list[str]:
        """Service IDs running on a YYYYMMDD date, sorted.

        Raises:
            ValueError: If date is not a valid YYYYMMDD date.
        """
        db = self._require_db()
        return sorted(await get_active_service_ids(db, parse_gtfs_date(date)))

    async def get_stop_names(self) -> list[str]:
        """Distinct stop names in the feed (cached until the backend is reopened)."""
        if self._stop_names is None:
            rows = await self._fetch("SELECT DISTINCT stop_name FROM stops ORDER BY stop_name")
            self._stop_names = [row["stop_name"] for row in rows]
        return self._stop_names

    # Routing

    async def build_graph(self, date: str) -> TransitGraph:
        """Get the routing graph for a YYYYMMDD date, building it on first use."""
        graph = self._graphs.get(date)
        if graph is not None:
            return graph

        async with self._graphs.lock:
            graph = self._graphs.get(date)
            if graph is not None:
                return graph

            service_ids = await self.get_active_service_ids(date)
            rows: list[tuple] = []
            if service_ids:
                sql = f"""
                    SELECT t.trip_id, t.route_id, st.stop_id, st.stop_sequence,
                           st.arrival_seconds, st.departure_seconds,
                           st.pickup_type, st.drop_off_type
                    FROM stop_times st
                    JOIN trips t ON t.trip_id = st.trip_id
                    WHERE {_in_clause('t.service_id', service_ids)}
                    ORDER BY t.trip_id, st.stop_sequence
                """
                rows = [tuple(row) for row in await self._fetch(sql, service_ids)]
            parent_rows = [
                (row["stop_id"], row["parent_station"])
                for row in await self._fetch(
                    "SELECT stop_id, parent_station FROM stops "
                    "WHERE parent_station IS NOT NULL AND parent_station != ''"
                )
            ]

            logger.debug(f"Building graph for {date} from {len(rows):,} stop times")
            graph = await asyncio.to_thread(build_transit_graph, date, rows, parent_rows)
            self._graphs.set(date, graph)
            return graph

    async def find_all_paths(
        self,
        graph: TransitGraph,
        start_stop_id: str,
        end_stop_id: str,
        max_transfers: int,
        max_paths: int,
    ) -> list[list[PathSegment]]:
        """Enumerate distinct paths between two stops on a graph."""
        self._require_db()
        return await asyncio.to_thread(
            find_all_paths, graph, start_stop_id, end_stop_id, max_transfers, max_paths
        )

    async def find_scheduled_trips(
        self,
        graph: TransitGraph,
        path: list[PathSegment],
        departure_seconds: int,
        min_transfer_seconds: int,
        max_journeys: int,
    ) -> list[ScheduledJourney]:
        """Bind a path to scheduled trips leaving at or after departure_seconds."""
        self._require_db()
        return await asyncio.to_thread(
            find_scheduled_trips,
            graph,
            path,
            departure_seconds,
            min_transfer_seconds,
            max_journeys,
        )
