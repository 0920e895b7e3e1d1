"""GTFS time, date and service-calendar helpers.

GTFS times are measured from the start of the service day and may pass
24:00:00 for trips running after midnight ("25:10:00" is 1:10 the next
morning). Everything here keeps that convention and never wraps.
"""

import re
from datetime import date, datetime

import aiosqlite

# calendar.txt day columns, indexed by date.weekday()
WEEKDAY_COLUMNS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

GTFS_DATE_PATTERN = re.compile(r"^\d{8}$")
GTFS_TIME_PATTERN = re.compile(r"^(\d+):(\d{1,2}):(\d{1,2})$")

EXCEPTION_ADDED = 1
EXCEPTION_REMOVED = 2


def parse_gtfs_time(time_str: str) -> tuple[int, int, int]:
    """Split H:MM:SS (hours may exceed 23) into its parts.

    Raises:
        ValueError: If the string is not three colon-separated numbers.
    """
    match = GTFS_TIME_PATTERN.match(time_str.strip())
    if match is None:
        raise ValueError(f"Invalid GTFS time format: {time_str}")
    hours, minutes, seconds = (int(part) for part in match.groups())
    return hours, minutes, seconds


def gtfs_time_to_seconds(time_str: str) -> int:
    hours, minutes, seconds = parse_gtfs_time(time_str)
    return hours * 3600 + minutes * 60 + seconds


def seconds_to_gtfs_time(total_seconds: int) -> str:
    """Inverse of gtfs_time_to_seconds: 90000 -> "25:00:00"."""
    minutes, seconds = divmod(int(total_seconds), 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def time_to_gtfs_format(dt: datetime) -> str:
    return dt.strftime("%H:%M:%S")


def date_to_gtfs_format(d: date) -> str:
    return d.strftime("%Y%m%d")


def parse_gtfs_date(date_str: str) -> date:
    """Parse a YYYYMMDD service date.

    Raises:
        ValueError: If the string is not 8 digits or not a real calendar date.
    """
    if not GTFS_DATE_PATTERN.match(date_str):
        raise ValueError(f"Invalid date format: {date_str} (expected YYYYMMDD)")
    return datetime.strptime(date_str, "%Y%m%d").date()


async def get_active_service_ids(db: aiosqlite.Connection, query_date: date) -> set[str]:
    """Service IDs running on a date.

    A service runs when calendar.txt covers the date with its weekday flag
    set, unless calendar_dates.txt removes it for that date; calendar_dates
    can also add services that calendar.txt never mentions.
    """
    day = WEEKDAY_COLUMNS[query_date.weekday()]
    sql = f"""
        SELECT service_id FROM calendar
        WHERE :date BETWEEN start_date AND end_date
          AND {day} = 1
          AND service_id NOT IN (
              SELECT service_id FROM calendar_dates
              WHERE date = :date AND exception_type = {EXCEPTION_REMOVED}
          )
        UNION
        SELECT service_id FROM calendar_dates
        WHERE date = :date AND exception_type = {EXCEPTION_ADDED}
    """
    async with db.execute(sql, {"date": date_to_gtfs_format(query_date)}) as cursor:
        rows = await cursor.fetchall()
    return {row[0] for row in rows}
