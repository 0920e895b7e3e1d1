"""Tests for the transit backend lookups and lifecycle."""

from pathlib import Path

import pytest

from transit_assistant.data.backend import BackendUnavailableError, TransitBackend


class TestLifecycle:
    """Tests for opening and closing the backend."""

    async def test_not_ready_until_opened(self, db_path: Path) -> None:
        """Test that a new backend is not ready."""
        backend = TransitBackend(db_path)

        assert backend.is_ready is False
        with pytest.raises(BackendUnavailableError):
            await backend.get_routes()

    async def test_open_and_close(self, db_path: Path) -> None:
        """Test that open makes the backend ready and close releases it."""
        backend = TransitBackend(db_path)
        await backend.open()
        assert backend.is_ready is True

        await backend.close()
        assert backend.is_ready is False
        with pytest.raises(BackendUnavailableError):
            await backend.get_stops(name="gare")

    async def test_missing_database_without_feed(self, tmp_path: Path) -> None:
        """Test that a missing database with no feed is unavailable."""
        backend = TransitBackend(tmp_path / "missing.db")

        with pytest.raises(BackendUnavailableError):
            await backend.open()
        assert backend.is_ready is False

    async def test_open_ingests_feed_when_database_missing(
        self, sample_gtfs_dir: Path, tmp_path: Path
    ) -> None:
        """Test that open builds the database from a local feed."""
        db_path = tmp_path / "built" / "gtfs.db"

        backend = TransitBackend(db_path)
        await backend.open(sample_gtfs_dir)
        try:
            assert db_path.exists()
            routes = await backend.get_routes()
            assert len(routes) == 3
        finally:
            await backend.close()

    async def test_open_missing_local_feed(self, tmp_path: Path) -> None:
        """Test that a missing local feed path fails to open."""
        backend = TransitBackend(tmp_path / "gtfs.db")

        with pytest.raises(FileNotFoundError):
            await backend.open(tmp_path / "no-such-feed")


class TestGetStops:
    """Tests for stop lookups."""

    async def test_by_name_is_accent_insensitive(self, backend: TransitBackend) -> None:
        """Test that names match regardless of case and accents."""
        stops = await backend.get_stops(name="LIBERTE")

        assert [s.stop_id for s in stops] == ["LIB"]
        assert stops[0].stop_name == "Place Liberté"

    async def test_by_name_substring(self, backend: TransitBackend) -> None:
        """Test that names match as substrings, ordered by name then ID."""
        stops = await backend.get_stops(name="arret")

        assert [s.stop_name for s in stops] == ["Arrêt Est", "Arrêt Nord", "Arrêt Sud"]

    async def test_name_wildcards_are_literal(self, backend: TransitBackend) -> None:
        """Test that LIKE wildcards in names match nothing special."""
        assert await backend.get_stops(name="%") == []
        assert await backend.get_stops(name="_") == []

    async def test_by_ids(self, backend: TransitBackend) -> None:
        """Test lookup by a list of IDs."""
        stops = await backend.get_stops(stop_id=["LIB", "HOTEL"])

        assert {s.stop_id for s in stops} == {"LIB", "HOTEL"}

    async def test_empty_id_list_matches_nothing(self, backend: TransitBackend) -> None:
        """Test that an empty ID list returns nothing rather than everything."""
        assert await backend.get_stops(stop_id=[]) == []

    async def test_by_code(self, backend: TransitBackend) -> None:
        """Test lookup by stop code."""
        stops = await backend.get_stops(stop_code="2001")

        assert [s.stop_id for s in stops] == ["LIB"]

    async def test_by_trip_in_sequence(self, backend: TransitBackend) -> None:
        """Test that a trip's stops come back in stop sequence order."""
        stops = await backend.get_stops(trip_id="T1_1440")

        assert [s.stop_id for s in stops] == ["GARE_A", "HOTEL", "MARCHE", "LIB"]

    async def test_by_parent_station(self, backend: TransitBackend) -> None:
        """Test lookup of the children of a station."""
        stops = await backend.get_stops(parent_station="GARE")

        assert [s.stop_id for s in stops] == ["GARE_A"]
        assert stops[0].parent_station == "GARE"

    async def test_include_children(self, backend: TransitBackend) -> None:
        """Test that children of matched stations are appended."""
        stops = await backend.get_stops(stop_id="GARE", include_children=True)

        assert [s.stop_id for s in stops] == ["GARE", "GARE_A"]
        assert stops[0].location_type == 1

    async def test_limit(self, backend: TransitBackend) -> None:
        """Test that limit caps the result count."""
        assert len(await backend.get_stops(name="a", limit=2)) == 2


class TestGetRoutesAndTrips:
    """Tests for route and trip lookups."""

    async def test_get_routes(self, backend: TransitBackend) -> None:
        """Test that all routes are returned ordered by short name."""
        routes = await backend.get_routes()

        assert [r.route_short_name for r in routes] == ["1", "2", "3"]
        assert routes[0].route_type == 3

    async def test_get_routes_by_ids(self, backend: TransitBackend) -> None:
        """Test lookup by several route IDs."""
        routes = await backend.get_routes(route_id=["R2", "R3"])

        assert [r.route_id for r in routes] == ["R2", "R3"]

    async def test_get_routes_by_agency(self, backend: TransitBackend) -> None:
        """Test lookup by agency."""
        assert len(await backend.get_routes(agency_id="CJ")) == 3
        assert await backend.get_routes(agency_id="OTHER") == []

    async def test_get_trips_by_route_and_service(self, backend: TransitBackend) -> None:
        """Test that trip filters combine."""
        trips = await backend.get_trips(route_id="R2", service_ids=["WEEKDAY"])

        assert [t.trip_id for t in trips] == ["T2_1446", "T2_1510"]
        assert trips[0].trip_headsign == "Place Liberté par Hôtel de Ville"

    async def test_get_trips_empty_service_list(self, backend: TransitBackend) -> None:
        """Test that an empty service list matches no trips."""
        assert await backend.get_trips(service_ids=[]) == []

    async def test_get_trips_by_direction(self, backend: TransitBackend) -> None:
        """Test the direction filter."""
        assert await backend.get_trips(direction_id=1) == []
        assert len(await backend.get_trips(direction_id=0, limit=100)) == 8


class TestGetStopTimes:
    """Tests for stop time lookups."""

    async def test_ordered_by_departure(self, backend: TransitBackend) -> None:
        """Test that stop times at a stop come back in departure order."""
        stop_times = await backend.get_stop_times(stop_id="HOTEL")

        assert [st.departure_time for st in stop_times] == [
            "08:05:00",
            "14:45:00",
            "14:46:00",
            "15:05:00",
            "15:10:00",
            "24:05:00",
        ]

    async def test_by_route(self, backend: TransitBackend) -> None:
        """Test filtering by the route of the trip."""
        stop_times = await backend.get_stop_times(route_id="R3")

        assert {st.trip_id for st in stop_times} == {"T3_1600", "T3_NIGHT"}

    async def test_seconds_fields(self, backend: TransitBackend) -> None:
        """Test that times come with seconds since midnight."""
        stop_times = await backend.get_stop_times(trip_id="T3_NIGHT", stop_id="AERO")

        assert stop_times[0].arrival_seconds == 90600
        assert stop_times[0].stop_sequence == 2

    async def test_service_filter(self, backend: TransitBackend) -> None:
        """Test that services not running exclude their stop times."""
        assert await backend.get_stop_times(service_ids=["WEEKEND"]) == []


class TestServiceIds:
    """Tests for active service IDs by date."""

    async def test_active_service_ids(self, backend: TransitBackend) -> None:
        """Test service IDs for weekday, weekend and holiday dates."""
        assert await backend.get_active_service_ids("20251203") == ["WEEKDAY"]
        assert await backend.get_active_service_ids("20251206") == ["WEEKEND"]
        assert await backend.get_active_service_ids("20251225") == ["HOLIDAY"]

    async def test_invalid_date(self, backend: TransitBackend) -> None:
        """Test that malformed dates raise ValueError."""
        with pytest.raises(ValueError):
            await backend.get_active_service_ids("2025-12-03")

    async def test_stop_names(self, backend: TransitBackend) -> None:
        """Test that stop names are distinct and sorted."""
        names = await backend.get_stop_names()

        assert names.count("Gare Centrale") == 1
        assert names == sorted(names)


class TestGraphCache:
    """Tests for per-date graph caching."""

    async def test_graph_is_cached_per_date(self, backend: TransitBackend) -> None:
        """Test that the same graph object is reused for a date."""
        first = await backend.build_graph("20251203")
        second = await backend.build_graph("20251203")

        assert first is second
        assert first.trip_count == 8

    async def test_graph_without_service(self, backend: TransitBackend) -> None:
        """Test that a date without trips builds an empty graph."""
        graph = await backend.build_graph("20251206")

        assert graph.trip_count == 0
        assert graph.patterns == {}
