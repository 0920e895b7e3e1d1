"""Current date and time in the formats the transit tools expect."""

from datetime import datetime
from zoneinfo import ZoneInfo

from pydantic import Field

from transit_assistant.models.base import CamelModel
from transit_assistant.services.schedule_service import (
    WEEKDAY_COLUMNS,
    date_to_gtfs_format,
    time_to_gtfs_format,
)


class CurrentDateTime(CamelModel):
    date: str = Field(description="Local date in YYYY-MM-DD format")
    time: str = Field(description="Local time in HH:MM:SS format")
    date_gtfs: str = Field(alias="dateYYYYMMDD", description="Local date for GTFS filters")
    day_of_week: str = Field(description="Lower-case English weekday name")
    iso_date_time: str
    timezone: str


def get_current_datetime(now: datetime | None = None, tz: str | None = None) -> CurrentDateTime:
    """Describe the current local date and time.

    Args:
        now: Instant to describe (defaults to the current time).
        tz: IANA timezone name. Defaults to the system's local timezone.
    """
    zone = ZoneInfo(tz) if tz else None
    now = (now or datetime.now(zone)).astimezone(zone)

    return CurrentDateTime(
        date=now.date().isoformat(),
        time=time_to_gtfs_format(now),
        date_gtfs=date_to_gtfs_format(now.date()),
        day_of_week=WEEKDAY_COLUMNS[now.weekday()],
        iso_date_time=now.isoformat(),
        timezone=tz or now.tzname() or "UTC",
    )
