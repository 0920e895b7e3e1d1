import zipfile
from pathlib import Path

import aiosqlite
import pytest

from transit_assistant.data.gtfs_loader import GTFSLoader


@pytest.fixture
def sample_gtfs_zip(sample_gtfs_dir: Path, tmp_path: Path) -> Path:
    """Create a sample GTFS ZIP file from the directory, nested in a folder."""
    zip_path = tmp_path / "gtfs.zip"
    with zipfile.ZipFile(zip_path, "w") as zf:
        for file_path in sample_gtfs_dir.iterdir():
            zf.write(file_path, f"feed/{file_path.name}")
    return zip_path


@pytest.fixture
def minimal_gtfs_dir(tmp_path: Path) -> Path:
    """GTFS directory with only required files and columns."""
    gtfs_dir = tmp_path / "minimal"
    gtfs_dir.mkdir()
    (gtfs_dir / "routes.txt").write_text("route_id,route_type\nR1,3\n")
    (gtfs_dir / "stops.txt").write_text("stop_id,stop_name\nA,Étang Salé\nB,Saint-Leu\n")
    (gtfs_dir / "trips.txt").write_text("trip_id,route_id,service_id\nT1,R1,S1\n")
    (gtfs_dir / "stop_times.txt").write_text(
        "trip_id,arrival_time,departure_time,stop_id,stop_sequence\n"
        "T1,07:00:00,,A,1\n"
        "T1,,07:20:00,B,2\n"
    )
    return gtfs_dir


async def _fetch_all(db_path: Path, sql: str) -> list[aiosqlite.Row]:
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(sql) as cursor:
            return list(await cursor.fetchall())


class TestGTFSLoader:
    """Tests for GTFSLoader."""

    async def test_ingest_from_directory(self, sample_gtfs_dir: Path, tmp_path: Path) -> None:
        """Test ingesting GTFS data from a directory."""
        db_path = tmp_path / "test.db"
        loader = GTFSLoader(db_path)

        row_counts = await loader.ingest(sample_gtfs_dir)

        assert db_path.exists()
        assert row_counts["agency"] == 1
        assert row_counts["routes"] == 3
        assert row_counts["stops"] == 13
        assert row_counts["calendar"] == 2
        assert row_counts["calendar_dates"] == 2
        assert row_counts["trips"] == 8
        assert row_counts["stop_times"] == 24
        assert row_counts["feed_info"] == 1

    async def test_ingest_from_zip_with_nested_folder(
        self, sample_gtfs_zip: Path, tmp_path: Path
    ) -> None:
        """Test ingesting a ZIP whose files sit inside a folder."""
        db_path = tmp_path / "test.db"

        row_counts = await GTFSLoader(db_path).ingest(sample_gtfs_zip)

        assert row_counts["routes"] == 3
        assert row_counts["stop_times"] == 24

    async def test_missing_optional_files_and_columns(
        self, minimal_gtfs_dir: Path, tmp_path: Path
    ) -> None:
        """Test that optional files and columns may be absent."""
        db_path = tmp_path / "test.db"

        row_counts = await GTFSLoader(db_path).ingest(minimal_gtfs_dir)

        assert row_counts["agency"] == 0
        assert row_counts["calendar"] == 0
        assert row_counts["feed_info"] == 0
        assert row_counts["stop_times"] == 2

    async def test_missing_required_column_fails(self, minimal_gtfs_dir: Path, tmp_path: Path) -> None:
        """Test that a required column missing from a header fails ingestion."""
        (minimal_gtfs_dir / "stops.txt").write_text("stop_id,stop_code\nA,1\n")
        db_path = tmp_path / "test.db"

        with pytest.raises(ValueError, match="stops.txt missing columns: stop_name"):
            await GTFSLoader(db_path).ingest(minimal_gtfs_dir)

        assert not db_path.exists()
        assert not db_path.with_suffix(".tmp.db").exists()

    async def test_empty_core_table_fails(self, minimal_gtfs_dir: Path, tmp_path: Path) -> None:
        """Test that a feed without stop times is rejected."""
        (minimal_gtfs_dir / "stop_times.txt").write_text(
            "trip_id,arrival_time,departure_time,stop_id,stop_sequence\n"
        )

        with pytest.raises(ValueError, match="No stop_times loaded"):
            await GTFSLoader(tmp_path / "test.db").ingest(minimal_gtfs_dir)

    async def test_rows_missing_required_values_skipped(
        self, minimal_gtfs_dir: Path, tmp_path: Path
    ) -> None:
        """Test that rows with empty required values or bad times are skipped."""
        (minimal_gtfs_dir / "stop_times.txt").write_text(
            "trip_id,arrival_time,departure_time,stop_id,stop_sequence\n"
            "T1,07:00:00,07:00:00,A,1\n"
            "T1,07:10:00,07:10:00,,2\n"
            "T1,7h20,7h20,B,3\n"
            "T1,07:30:00,07:30:00,B,4\n"
        )
        db_path = tmp_path / "test.db"

        row_counts = await GTFSLoader(db_path).ingest(minimal_gtfs_dir)

        assert row_counts["stop_times"] == 2

    async def test_atomic_swap_replaces_existing(
        self, sample_gtfs_dir: Path, tmp_path: Path
    ) -> None:
        """Test that ingestion replaces an existing database."""
        db_path = tmp_path / "test.db"
        loader = GTFSLoader(db_path)
        await loader.ingest(sample_gtfs_dir)

        await loader.ingest(sample_gtfs_dir)

        assert not db_path.with_suffix(".tmp.db").exists()
        rows = await _fetch_all(db_path, "SELECT COUNT(*) AS n FROM routes")
        assert rows[0]["n"] == 3

    async def test_rollback_on_failure(self, tmp_path: Path) -> None:
        """Test that temp DB is cleaned up on failure."""
        db_path = tmp_path / "test.db"

        with pytest.raises(FileNotFoundError):
            await GTFSLoader(db_path).ingest(tmp_path / "nonexistent")

        assert not db_path.exists()
        assert not db_path.with_suffix(".tmp.db").exists()

    async def test_creates_parent_directories(self, sample_gtfs_dir: Path, tmp_path: Path) -> None:
        """Test that parent directories are created if needed."""
        db_path = tmp_path / "subdir" / "nested" / "test.db"

        await GTFSLoader(db_path).ingest(sample_gtfs_dir)

        assert db_path.exists()


class TestDerivedColumns:
    """Tests for values computed at load time."""

    async def test_stop_names_are_folded(self, db_path: Path) -> None:
        """Test that stop names get a lower-case, accent-free copy."""
        rows = await _fetch_all(
            db_path, "SELECT stop_name, stop_name_normalized FROM stops WHERE stop_id = 'HOTEL'"
        )

        assert rows[0]["stop_name"] == "Hôtel de Ville"
        assert rows[0]["stop_name_normalized"] == "hotel de ville"

    async def test_stop_time_seconds(self, db_path: Path) -> None:
        """Test that times past midnight convert without wrapping."""
        rows = await _fetch_all(
            db_path,
            "SELECT arrival_time, arrival_seconds, departure_seconds FROM stop_times "
            "WHERE trip_id = 'T3_NIGHT' ORDER BY stop_sequence",
        )

        assert rows[0]["departure_seconds"] == 24 * 3600 + 30 * 60
        assert rows[1]["arrival_time"] == "25:10:00"
        assert rows[1]["arrival_seconds"] == 25 * 3600 + 10 * 60

    async def test_missing_time_mirrors_the_other(
        self, minimal_gtfs_dir: Path, tmp_path: Path
    ) -> None:
        """Test that a stop time with one side empty copies the other side."""
        db_path = tmp_path / "test.db"
        await GTFSLoader(db_path).ingest(minimal_gtfs_dir)

        rows = await _fetch_all(
            db_path,
            "SELECT arrival_seconds, departure_seconds FROM stop_times ORDER BY stop_sequence",
        )

        assert rows[0]["arrival_seconds"] == rows[0]["departure_seconds"] == 7 * 3600
        assert rows[1]["arrival_seconds"] == rows[1]["departure_seconds"] == 7 * 3600 + 20 * 60


class TestSchemaAndIndexes:
    """Tests for database schema and indexes."""

    async def test_schema_has_all_tables(self, db_path: Path) -> None:
        """Test that all expected tables are created."""
        rows = await _fetch_all(
            db_path, "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )

        assert [row["name"] for row in rows] == [
            "agency",
            "calendar",
            "calendar_dates",
            "feed_info",
            "routes",
            "stop_times",
            "stops",
            "trips",
        ]

    async def test_indexes_created(self, db_path: Path) -> None:
        """Test that lookup indexes are created."""
        rows = await _fetch_all(
            db_path, "SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_%'"
        )
        indexes = {row["name"] for row in rows}

        for idx in (
            "idx_stops_parent",
            "idx_stops_name_normalized",
            "idx_trips_service",
            "idx_stop_times_stop_departure",
            "idx_calendar_dates_date",
        ):
            assert idx in indexes, f"Missing index: {idx}"
