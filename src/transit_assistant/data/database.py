"""Connection helper for the GTFS SQLite database."""

from pathlib import Path

import aiosqlite

from transit_assistant.data.config import get_config


async def connect_db(db_path: Path | None = None) -> aiosqlite.Connection:
    """Open a long-lived connection with the Row factory set.

    Args:
        db_path: Database file. Defaults to the configured TRANSIT_DB_PATH.

    Raises:
        FileNotFoundError: If the database file doesn't exist.
    """
    db_path = Path(db_path) if db_path is not None else get_config().db_path
    if not db_path.exists():
        raise FileNotFoundError(
            f"Database not found at {db_path}. Run 'transit-assistant ingest <feed>' to create it."
        )

    db = await aiosqlite.connect(db_path)
    db.row_factory = aiosqlite.Row
    return db
