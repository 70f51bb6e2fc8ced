from __future__ import annotations

import datetime as dt

import pytest

from weatherfeed.core.locations import Coordinates, Location, StationCode

# 2024-01-01 12:00 in Asia/Jayapura (UTC+9), 10:00 in Asia/Jakarta (UTC+7).
FIXED_NOW = dt.datetime(2024, 1, 1, 3, 0, tzinfo=dt.timezone.utc)


@pytest.fixture
def fixed_now() -> dt.datetime:
    return FIXED_NOW


@pytest.fixture
def ambon() -> Location:
    return Location(
        id="ambon",
        name="Ambon",
        address=Coordinates(-3.6596, 128.1884),
        timezone="Asia/Jayapura",
        provider="open_meteo",
    )


@pytest.fixture
def jakarta_station() -> Location:
    return Location(
        id="jakarta",
        name="Jakarta",
        address=StationCode("31.71.06.1001"),
        timezone="Asia/Jakarta",
        provider="bmkg_json",
    )


@pytest.fixture
def ambon_station() -> Location:
    return Location(
        id="ambon",
        name="Ambon",
        address=StationCode("81.76.01.1001"),
        timezone="Asia/Jayapura",
        provider="bmkg_xml",
    )
