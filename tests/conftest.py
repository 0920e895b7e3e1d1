"""Shared fixtures: a small GTFS feed and an open backend over it.

Network of the sample feed (WEEKDAY service, all trips):

    Gare Centrale (station GARE, platform GARE_A)
      route 1:  GARE_A -> HOTEL -> MARCHE -> LIB   (08:00, 14:40, 15:00, 24:00)
      route 2:  HOTEL -> LIB                        (14:46, 15:10)
      route 3:  MARCHE -> AERO                      (16:00, 24:30)

Arrêt Nord/Sud/Est, Parc, Parc Nord, Parc Sud and Port have no service.
"""

from pathlib import Path

import pytest

from transit_assistant.data.backend import TransitBackend
from transit_assistant.data.gtfs_loader import GTFSLoader

# A Wednesday with WEEKDAY service
SERVICE_DATE = "20251203"
# A Saturday: WEEKEND service has no trips
WEEKEND_DATE = "20251206"
# Christmas: WEEKDAY removed, HOLIDAY added
HOLIDAY_DATE = "20251225"


def write_sample_feed(gtfs_dir: Path) -> Path:
    """Write the sample GTFS files into gtfs_dir."""
    gtfs_dir.mkdir(parents=True, exist_ok=True)

    (gtfs_dir / "agency.txt").write_text(
        "agency_id,agency_name,agency_url,agency_timezone\n"
        "CJ,Car Jaune,https://www.carjaune.re,Indian/Reunion\n"
    )

    (gtfs_dir / "routes.txt").write_text(
        "route_id,agency_id,route_short_name,route_long_name,route_type,route_color,route_text_color\n"
        "R1,CJ,1,Gare - Liberté,3,FFCC00,000000\n"
        "R2,CJ,2,Hôtel de Ville - Liberté,3,00AAFF,FFFFFF\n"
        "R3,CJ,3,Marché - Aéroport,3,FF0000,FFFFFF\n"
    )

    (gtfs_dir / "stops.txt").write_text(
        "stop_id,stop_code,stop_name,stop_lat,stop_lon,location_type,parent_station\n"
        "GARE,,Gare Centrale,-20.880,55.450,1,\n"
        "GARE_A,1001,Gare Centrale,-20.880,55.450,0,GARE\n"
        "HOTEL,3001,Hôtel de Ville,-20.882,55.455,0,\n"
        "MARCHE,3002,Marché Central,-20.885,55.460,0,\n"
        "LIB,2001,Place Liberté,-20.890,55.465,0,\n"
        "AERO,4001,Aéroport,-20.890,55.510,0,\n"
        "ARRET_N,5001,Arrêt Nord,-20.870,55.440,0,\n"
        "ARRET_S,5002,Arrêt Sud,-20.871,55.441,0,\n"
        "ARRET_E,5003,Arrêt Est,-20.872,55.442,0,\n"
        "PARC,6001,Parc,-20.900,55.400,0,\n"
        "PARC_N,6002,Parc Nord,-20.901,55.401,0,\n"
        "PARC_S,6003,Parc Sud,-20.902,55.402,0,\n"
        "PORT,7001,Port,-20.930,55.300,0,\n"
    )

    (gtfs_dir / "calendar.txt").write_text(
        "service_id,monday,tuesday,wednesday,thursday,friday,saturday,sunday,start_date,end_date\n"
        "WEEKDAY,1,1,1,1,1,0,0,20250101,20251231\n"
        "WEEKEND,0,0,0,0,0,1,1,20250101,20251231\n"
    )

    (gtfs_dir / "calendar_dates.txt").write_text(
        "service_id,date,exception_type\n"
        "WEEKDAY,20251225,2\n"
        "HOLIDAY,20251225,1\n"
    )

    (gtfs_dir / "trips.txt").write_text(
        "trip_id,route_id,service_id,trip_headsign,direction_id\n"
        "T1_0800,R1,WEEKDAY,Place Liberté,0\n"
        "T1_1440,R1,WEEKDAY,Place Liberté,0\n"
        "T1_1500,R1,WEEKDAY,Place Liberté,0\n"
        "T1_2400,R1,WEEKDAY,Place Liberté,0\n"
        "T2_1446,R2,WEEKDAY,Place Liberté par Hôtel de Ville,0\n"
        "T2_1510,R2,WEEKDAY,Place Liberté par Hôtel de Ville,0\n"
        "T3_1600,R3,WEEKDAY,Aéroport,0\n"
        "T3_NIGHT,R3,WEEKDAY,Aéroport,0\n"
    )

    (gtfs_dir / "stop_times.txt").write_text(
        "trip_id,arrival_time,departure_time,stop_id,stop_sequence,pickup_type,drop_off_type\n"
        "T1_0800,08:00:00,08:00:00,GARE_A,1,0,0\n"
        "T1_0800,08:05:00,08:05:00,HOTEL,2,0,0\n"
        "T1_0800,08:10:00,08:10:00,MARCHE,3,0,0\n"
        "T1_0800,08:15:00,08:15:00,LIB,4,0,0\n"
        "T1_1440,14:40:00,14:40:00,GARE_A,1,0,0\n"
        "T1_1440,14:45:00,14:45:00,HOTEL,2,0,0\n"
        "T1_1440,14:50:00,14:50:00,MARCHE,3,0,0\n"
        "T1_1440,14:55:00,14:55:00,LIB,4,0,0\n"
        "T1_1500,15:00:00,15:00:00,GARE_A,1,0,0\n"
        "T1_1500,15:05:00,15:05:00,HOTEL,2,0,0\n"
        "T1_1500,15:10:00,15:10:00,MARCHE,3,0,0\n"
        "T1_1500,15:15:00,15:15:00,LIB,4,0,0\n"
        "T1_2400,24:00:00,24:00:00,GARE_A,1,0,0\n"
        "T1_2400,24:05:00,24:05:00,HOTEL,2,0,0\n"
        "T1_2400,24:10:00,24:10:00,MARCHE,3,0,0\n"
        "T1_2400,24:15:00,24:15:00,LIB,4,0,0\n"
        "T2_1446,14:46:00,14:46:00,HOTEL,1,0,0\n"
        "T2_1446,14:52:00,14:52:00,LIB,2,0,0\n"
        "T2_1510,15:10:00,15:10:00,HOTEL,1,0,0\n"
        "T2_1510,15:25:00,15:25:00,LIB,2,0,0\n"
        "T3_1600,16:00:00,16:00:00,MARCHE,1,0,0\n"
        "T3_1600,16:40:00,16:40:00,AERO,2,0,0\n"
        "T3_NIGHT,24:30:00,24:30:00,MARCHE,1,0,0\n"
        "T3_NIGHT,25:10:00,25:10:00,AERO,2,0,0\n"
    )

    (gtfs_dir / "feed_info.txt").write_text(
        "feed_publisher_name,feed_publisher_url,feed_lang,feed_start_date,feed_end_date,feed_version\n"
        "Car Jaune,https://www.carjaune.re,fr,20250101,20251231,2025.1\n"
    )

    return gtfs_dir


@pytest.fixture
def sample_gtfs_dir(tmp_path: Path) -> Path:
    """Create the sample GTFS directory."""
    return write_sample_feed(tmp_path / "gtfs")


@pytest.fixture
async def db_path(sample_gtfs_dir: Path, tmp_path: Path) -> Path:
    """Create a test database from the sample GTFS data."""
    db_file = tmp_path / "test.db"
    await GTFSLoader(db_file).ingest(sample_gtfs_dir)
    return db_file


@pytest.fixture
async def backend(db_path: Path):
    """Open backend over the sample database."""
    async with TransitBackend(db_path) as opened:
        yield opened
