"""Ingest a GTFS feed (directory or ZIP) into a SQLite database."""

import csv
import io
import logging
import zipfile
from collections.abc import Callable, Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from itertools import islice
from pathlib import Path
from typing import Any, TextIO

import aiosqlite

from transit_assistant.matching.normalizers import fold_text
from transit_assistant.services.schedule_service import gtfs_time_to_seconds

logger = logging.getLogger(__name__)

BATCH_SIZE = 10000


@dataclass(frozen=True)
class Column:
    name: str
    sql_type: str = "TEXT"
    required: bool = False


def _derive_stop(row: dict[str, str]) -> list[Any]:
    return [fold_text(row["stop_name"])]


def _derive_stop_time(row: dict[str, str]) -> list[Any]:
    # Non-timepoint stops may leave one side empty; it mirrors the other
    arrival = gtfs_time_to_seconds(row["arrival_time"]) if row.get("arrival_time") else None
    departure = gtfs_time_to_seconds(row["departure_time"]) if row.get("departure_time") else None
    if arrival is None:
        arrival = departure
    if departure is None:
        departure = arrival
    return [arrival, departure]


@dataclass(frozen=True)
class GTFSTable:
    """One feed file and the table it loads into.

    `derived` columns are computed from the parsed row by `derive`, which may
    raise ValueError to reject the row. `core` tables must not end up empty.
    """

    name: str
    columns: tuple[Column, ...]
    primary_key: tuple[str, ...] = ()
    derived: tuple[Column, ...] = ()
    derive: Callable[[dict[str, str]], list[Any]] | None = None
    indexes: tuple[tuple[str, str], ...] = ()
    core: bool = False

    @property
    def filename(self) -> str:
        return f"{self.name}.txt"

    @property
    def csv_columns(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def required(self) -> list[str]:
        return [c.name for c in self.columns if c.required]

    def create_sql(self) -> str:
        parts = [
            f"{c.name} {c.sql_type}{' NOT NULL' if c.required else ''}"
            for c in (*self.columns, *self.derived)
        ]
        if self.primary_key:
            parts.append(f"PRIMARY KEY ({', '.join(self.primary_key)})")
        return f"CREATE TABLE {self.name} ({', '.join(parts)})"

    def index_sql(self) -> list[str]:
        return [
            f"CREATE INDEX idx_{self.name}_{suffix} ON {self.name}({columns})"
            for suffix, columns in self.indexes
        ]

    def insert_sql(self) -> str:
        names = [c.name for c in (*self.columns, *self.derived)]
        placeholders = ", ".join("?" for _ in names)
        return f"INSERT OR REPLACE INTO {self.name} ({', '.join(names)}) VALUES ({placeholders})"


TABLES: tuple[GTFSTable, ...] = (
    GTFSTable(
        "agency",
        (
            Column("agency_id"),
            Column("agency_name", required=True),
            Column("agency_url"),
            Column("agency_timezone"),
        ),
    ),
    GTFSTable(
        "routes",
        (
            Column("route_id", required=True),
            Column("agency_id"),
            Column("route_short_name"),
            Column("route_long_name"),
            Column("route_type", "INTEGER", required=True),
            Column("route_color"),
            Column("route_text_color"),
        ),
        primary_key=("route_id",),
        indexes=(("agency", "agency_id"),),
        core=True,
    ),
    GTFSTable(
        "stops",
        (
            Column("stop_id", required=True),
            Column("stop_code"),
            Column("stop_name", required=True),
            Column("stop_lat", "REAL"),
            Column("stop_lon", "REAL"),
            Column("location_type", "INTEGER"),
            Column("parent_station"),
        ),
        primary_key=("stop_id",),
        derived=(Column("stop_name_normalized", required=True),),
        derive=_derive_stop,
        indexes=(
            ("parent", "parent_station"),
            ("code", "stop_code"),
            ("name_normalized", "stop_name_normalized"),
        ),
        core=True,
    ),
    GTFSTable(
        "calendar",
        (
            Column("service_id", required=True),
            *(
                Column(day, "INTEGER")
                for day in (
                    "monday",
                    "tuesday",
                    "wednesday",
                    "thursday",
                    "friday",
                    "saturday",
                    "sunday",
                )
            ),
            Column("start_date"),
            Column("end_date"),
        ),
        primary_key=("service_id",),
    ),
    GTFSTable(
        "calendar_dates",
        (
            Column("service_id", required=True),
            Column("date", required=True),
            Column("exception_type", "INTEGER", required=True),
        ),
        primary_key=("service_id", "date"),
        indexes=(("date", "date"),),
    ),
    GTFSTable(
        "trips",
        (
            Column("trip_id", required=True),
            Column("route_id", required=True),
            Column("service_id", required=True),
            Column("trip_headsign"),
            Column("direction_id", "INTEGER"),
        ),
        primary_key=("trip_id",),
        indexes=(("route", "route_id"), ("service", "service_id")),
        core=True,
    ),
    GTFSTable(
        "stop_times",
        (
            Column("trip_id", required=True),
            Column("arrival_time"),
            Column("departure_time"),
            Column("stop_id", required=True),
            Column("stop_sequence", "INTEGER", required=True),
            Column("pickup_type", "INTEGER"),
            Column("drop_off_type", "INTEGER"),
        ),
        primary_key=("trip_id", "stop_sequence"),
        derived=(Column("arrival_seconds", "INTEGER"), Column("departure_seconds", "INTEGER")),
        derive=_derive_stop_time,
        indexes=(("stop", "stop_id"), ("stop_departure", "stop_id, departure_seconds")),
        core=True,
    ),
    GTFSTable(
        "feed_info",
        (
            Column("feed_publisher_name"),
            Column("feed_publisher_url"),
            Column("feed_lang"),
            Column("feed_start_date"),
            Column("feed_end_date"),
            Column("feed_version"),
        ),
    ),
)


class FeedFiles:
    """Read access to the text files of a feed directory or ZIP archive.

    Archives are searched by base name, so files nested in a folder are found.
    """

    def __init__(self, path: Path):
        self.path = path
        self._stack = ExitStack()
        self._zip_names: dict[str, str] = {}
        self._zip: zipfile.ZipFile | None = None

    def __enter__(self) -> "FeedFiles":
        if self.path.is_file():
            self._zip = self._stack.enter_context(zipfile.ZipFile(self.path, "r"))
            self._zip_names = {Path(name).name: name for name in self._zip.namelist()}
        return self

    def __exit__(self, *exc_info) -> None:
        self._stack.close()

    @contextmanager
    def open(self, filename: str) -> Iterator[TextIO | None]:
        """Yield a text stream for the file, or None if the feed lacks it."""
        if self._zip is not None:
            member = self._zip_names.get(filename)
            if member is None:
                yield None
                return
            with (
                self._zip.open(member) as raw,
                io.TextIOWrapper(raw, encoding="utf-8-sig", newline="") as text,
            ):
                yield text
            return

        csv_path = self.path / filename
        if not csv_path.exists():
            yield None
            return
        with open(csv_path, encoding="utf-8-sig", newline="") as f:
            yield f


def _read_header(reader: Iterator[list[str]], table: GTFSTable) -> list[str]:
    header = next(reader, None)
    if header is None:
        raise ValueError(f"{table.filename} is empty")
    fields = [name.strip() for name in header]
    missing = [name for name in table.required if name not in fields]
    if missing:
        raise ValueError(f"{table.filename} missing columns: {', '.join(missing)}")
    return fields


def _row_values(table: GTFSTable, fields: list[str], raw: list[str]) -> tuple[Any, ...] | None:
    """Insert values for one CSV row, or None if the row is unusable."""
    row = {name: value.strip() for name, value in zip(fields, raw)}
    if any(not row.get(name) for name in table.required):
        return None
    values = [row.get(name) or None for name in table.csv_columns]
    if table.derive is not None:
        try:
            values.extend(table.derive(row))
        except ValueError:
            return None
    return tuple(values)


class GTFSLoader:
    """Loader for ingesting GTFS data into SQLite."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    async def ingest(self, gtfs_path: Path) -> dict[str, int]:
        """Ingest GTFS data from a directory or ZIP file into SQLite.

        The feed is loaded into a temporary database that replaces the target
        only once every table loaded and passed the integrity check.

        Args:
            gtfs_path: Path to GTFS directory or ZIP file.

        Returns:
            Dictionary with row counts per table.

        Raises:
            FileNotFoundError: If GTFS path doesn't exist.
            ValueError: If required GTFS columns are missing or a core table is empty.
        """
        gtfs_path = Path(gtfs_path)
        if not gtfs_path.exists():
            raise FileNotFoundError(f"GTFS path not found: {gtfs_path}")

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        temp_db = self.db_path.with_suffix(".tmp.db")
        temp_db.unlink(missing_ok=True)

        try:
            async with aiosqlite.connect(temp_db) as db:
                # Bulk load settings
                await db.execute("PRAGMA journal_mode=OFF")
                await db.execute("PRAGMA synchronous=OFF")

                for table in TABLES:
                    await db.execute(table.create_sql())

                row_counts: dict[str, int] = {}
                with FeedFiles(gtfs_path) as feed:
                    for table in TABLES:
                        row_counts[table.name] = await self._load_table(db, table, feed)

                logger.info("Creating indexes...")
                for table in TABLES:
                    for sql in table.index_sql():
                        await db.execute(sql)
                await db.commit()

                self._check_core_tables(row_counts)

            temp_db.replace(self.db_path)
        except Exception:
            temp_db.unlink(missing_ok=True)
            raise

        logger.info(f"GTFS ingestion complete: {self.db_path}")
        return row_counts

    async def _load_table(
        self, db: aiosqlite.Connection, table: GTFSTable, feed: FeedFiles
    ) -> int:
        with feed.open(table.filename) as stream:
            if stream is None:
                logger.warning(f"Optional file {table.filename} not found")
                return 0

            logger.info(f"Loading {table.name} from {table.filename}...")
            reader = csv.reader(stream)
            fields = _read_header(reader, table)
            skipped = 0

            def parsed_rows() -> Iterator[tuple[Any, ...]]:
                nonlocal skipped
                for raw in reader:
                    values = _row_values(table, fields, raw)
                    if values is None:
                        skipped += 1
                    else:
                        yield values

            rows = parsed_rows()
            sql = table.insert_sql()
            loaded = 0
            while batch := list(islice(rows, BATCH_SIZE)):
                await db.executemany(sql, batch)
                loaded += len(batch)

        await db.commit()
        suffix = f" (skipped {skipped:,} invalid)" if skipped else ""
        logger.info(f"  Loaded {loaded:,} rows into {table.name}{suffix}")
        return loaded

    def _check_core_tables(self, row_counts: dict[str, int]) -> None:
        for table in TABLES:
            if table.core and not row_counts[table.name]:
                raise ValueError(f"No {table.name} loaded - check GTFS data")
