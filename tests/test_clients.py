import datetime as dt

import pytest

from weatherfeed.clients import BmkgJsonClient, BmkgXmlClient, FetchError, NormalizeError, OpenMeteoClient
from weatherfeed.clients.bmkg_json import flatten_entries, select_current_entry
from weatherfeed.clients.bmkg_xml import extract_parameters, forecast_time, read_forecast

from .fakes import (
    BMKG_JSON_JAKARTA,
    BMKG_XML_AMBON,
    OPEN_METEO_AMBON,
    FakeResponse,
    FakeSession,
    connection_error,
)


def no_sleep(_seconds):
    return None


def test_open_meteo_request_parameters(ambon):
    client = OpenMeteoClient(FakeSession(FakeResponse(200, OPEN_METEO_AMBON)), sleep=no_sleep)
    url, params = client.build_request(ambon)

    assert url == "https://api.open-meteo.com/v1/forecast"
    assert params == {
        "latitude": -3.6596,
        "longitude": 128.1884,
        "current_weather": "true",
        "timezone": "Asia/Jayapura",
    }


def test_open_meteo_end_to_end_document(ambon, fixed_now):
    session = FakeSession(FakeResponse(200, OPEN_METEO_AMBON))
    client = OpenMeteoClient(session, sleep=no_sleep)

    record = client.get_current(ambon, now=fixed_now)
    document = record.to_document()

    assert document["timestamp"] == "2024-01-01 12:00:00"
    assert document["location"] == {
        "name": "Ambon",
        "latitude": -3.66,
        "longitude": 128.19,
        "timezone": "Asia/Jayapura",
    }
    current = document["current"]
    assert current["temperature"] == "29.5°C"
    assert current["windSpeed"] == "10 km/h"
    assert current["windDirection"] == "180°"
    assert current["isDay"] == "Ya"
    assert current["weatherCode"] == 1
    assert current["weather"] == "Cerah berawan"
    assert current["time"] == "2024-01-01T12:00"
    assert document["raw"] == OPEN_METEO_AMBON
    assert session.calls[0]["timeout"] == 10.0


def test_open_meteo_night_label(ambon, fixed_now):
    payload = {"current_weather": {"temperature": 24, "is_day": 0}}
    record = OpenMeteoClient(FakeSession(FakeResponse(200, payload))).normalize(payload, ambon, now=fixed_now)
    assert record.extras["isDay"] == "Tidak"
    assert record.wind_speed_kph is None
    assert "windSpeed" not in record.to_document()["current"]


@pytest.mark.parametrize(
    "payload, missing",
    [
        ({"latitude": 1.0}, "current_weather"),
        ({"current_weather": {"windspeed": 3}}, "current_weather.temperature"),
        ({"current_weather": {"temperature": None}}, "current_weather.temperature"),
        ([], "current_weather"),
    ],
)
def test_open_meteo_missing_fields(ambon, payload, missing):
    client = OpenMeteoClient(FakeSession(FakeResponse(200, payload)))
    with pytest.raises(NormalizeError) as excinfo:
        client.normalize(payload, ambon)
    assert excinfo.value.missing_field == missing


def test_non_json_body_is_a_shape_error_and_not_retried(ambon):
    session = FakeSession(FakeResponse(200, text="<html>maintenance</html>"))
    client = OpenMeteoClient(session, sleep=no_sleep)

    with pytest.raises(NormalizeError):
        client.get_current(ambon)
    assert len(session.calls) == 1


def test_fetch_failure_surfaces_fetch_error(ambon):
    sleeps = []
    session = FakeSession(connection_error())
    client = OpenMeteoClient(session, max_attempts=2, base_delay=0.1, sleep=sleeps.append)

    with pytest.raises(FetchError):
        client.fetch(ambon)
    assert len(session.calls) == 2
    assert sleeps == [0.1]


def test_address_type_is_checked(ambon, jakarta_station):
    with pytest.raises(TypeError):
        OpenMeteoClient(FakeSession(FakeResponse())).build_request(jakarta_station)
    with pytest.raises(TypeError):
        BmkgJsonClient(FakeSession(FakeResponse())).build_request(ambon)


def test_bmkg_json_request_uses_adm4(jakarta_station):
    url, params = BmkgJsonClient(FakeSession(FakeResponse())).build_request(jakarta_station)
    assert url == "https://api.bmkg.go.id/publik/prakiraan-cuaca"
    assert params == {"adm4": "31.71.06.1001"}


def test_bmkg_json_picks_most_recent_past_entry(jakarta_station, fixed_now):
    session = FakeSession(FakeResponse(200, BMKG_JSON_JAKARTA))
    record = BmkgJsonClient(session).get_current(jakarta_station, now=fixed_now)
    document = record.to_document()

    # fixed_now is 10:00 in Asia/Jakarta
    assert document["timestamp"] == "2024-01-01 10:00:00"
    assert document["current"] == {
        "temperature": "29°C",
        "windSpeed": "8.1 km/h",
        "windDirection": "200°",
        "humidity": "75%",
        "weather": "Cerah Berawan",
        "windCardinal": "SSW",
        "time": "2024-01-01 10:00:00",
    }
    assert document["location"]["adm4"] == "31.71.06.1001"
    assert document["location"]["latitude"] == -6.17


def test_bmkg_json_uses_earliest_entry_when_all_in_future(jakarta_station):
    entries = flatten_entries(BMKG_JSON_JAKARTA["data"][0]["cuaca"])
    early = dt.datetime(2023, 12, 31, 0, 0, tzinfo=dt.timezone.utc)
    assert select_current_entry(entries, "Asia/Jakarta", early)["t"] == 25


def test_bmkg_json_missing_current_block(jakarta_station):
    client = BmkgJsonClient(FakeSession(FakeResponse()))
    for payload, missing in (
        ({"data": []}, "data[0]"),
        ({"data": [{"lokasi": {}}]}, "data[0].cuaca"),
        ({"data": [{"cuaca": [[]]}]}, "data[0].cuaca"),
        ({"data": [{"cuaca": [[{"hu": 80, "local_datetime": "2024-01-01 07:00:00"}]]}]}, "cuaca.t"),
    ):
        with pytest.raises(NormalizeError) as excinfo:
            client.normalize(payload, jakarta_station)
        assert excinfo.value.missing_field == missing


def test_bmkg_xml_request_path(ambon_station):
    client = BmkgXmlClient(FakeSession(FakeResponse()), base_url="https://mirror.test/xml/")
    url, params = client.build_request(ambon_station)
    assert url == "https://mirror.test/xml/81.76.01.1001.xml"
    assert params == {}


def test_bmkg_xml_uses_earliest_timerange_and_canonical_units():
    values = extract_parameters(BMKG_XML_AMBON)
    assert values == {
        "hu": "85",
        "suhu": "27",
        "cuaca": "3",
        "kecepatan_angin": "9.26",
        "arah_angin": "270",
    }


def test_bmkg_xml_record_keeps_raw_text(ambon_station, fixed_now):
    session = FakeSession(FakeResponse(200, text=BMKG_XML_AMBON))
    record = BmkgXmlClient(session).get_current(ambon_station, now=fixed_now)
    document = record.to_document()

    assert document["raw"] == BMKG_XML_AMBON
    assert document["current"]["temperature"] == "27°C"
    assert document["current"]["windSpeed"] == "9.26 km/h"
    assert document["current"]["windDirection"] == "270°"
    assert document["current"]["weather"] == "Berawan"
    assert document["current"]["time"] == "2024-01-01 09:00:00"
    assert document["location"] == {"name": "Ambon", "adm4": "81.76.01.1001", "timezone": "Asia/Jayapura"}


@pytest.mark.parametrize(
    "document, missing",
    [
        ("not xml at all <", "XML document"),
        ("<weather><forecast/></weather>", "forecast.area"),
        ("<weather><forecast><area id='x'/></forecast></weather>", "forecast.area.parameter"),
        (
            "<weather><forecast><area id='x'><parameter id='cuaca'>"
            "<timerange datetime='1'><value>1</value></timerange></parameter></area></forecast></weather>",
            "suhu",
        ),
    ],
)
def test_bmkg_xml_shape_errors(ambon_station, document, missing):
    with pytest.raises(NormalizeError) as excinfo:
        BmkgXmlClient(FakeSession(FakeResponse())).normalize(document, ambon_station)
    assert excinfo.value.missing_field == missing


def test_bmkg_xml_time_comes_from_forecast_not_clock(ambon_station, fixed_now):
    client = BmkgXmlClient(FakeSession(FakeResponse(200, text=BMKG_XML_AMBON)))
    first = client.normalize(BMKG_XML_AMBON, ambon_station, now=fixed_now)
    later = client.normalize(BMKG_XML_AMBON, ambon_station, now=fixed_now + dt.timedelta(hours=1))

    assert first.observed_at == later.observed_at == "2024-01-01 09:00:00"
    assert first.captured_at != later.captured_at


def test_forecast_time_conversion():
    assert forecast_time("202401010000", "Asia/Jakarta") == "2024-01-01 07:00:00"
    assert forecast_time("soon", "Asia/Jakarta") is None
    assert forecast_time(None, "Asia/Jakarta") is None
    assert read_forecast(BMKG_XML_AMBON)[1]["suhu"] == "202401010000"


@pytest.mark.parametrize("bad_code", ["nan", "inf", "-inf", float("nan")])
def test_open_meteo_non_finite_weather_code_is_ignored(ambon, fixed_now, bad_code):
    payload = {"current_weather": {"temperature": 28, "weathercode": bad_code, "is_day": 1}}
    record = OpenMeteoClient(FakeSession(FakeResponse())).normalize(payload, ambon, now=fixed_now)

    assert "weatherCode" not in record.extras
    assert record.weather_description is None
    assert record.extras["isDay"] == "Ya"


def test_open_meteo_non_finite_temperature_is_a_shape_error(ambon):
    payload = {"current_weather": {"temperature": "nan"}}
    with pytest.raises(NormalizeError):
        OpenMeteoClient(FakeSession(FakeResponse())).normalize(payload, ambon)


def test_bmkg_xml_non_finite_weather_code_is_ignored(ambon_station, fixed_now):
    document = BMKG_XML_AMBON.replace('<value unit="icon">3</value>', '<value unit="icon">inf</value>')
    record = BmkgXmlClient(FakeSession(FakeResponse())).normalize(document, ambon_station, now=fixed_now)

    assert "weatherCode" not in record.extras
    assert record.weather_description is None
    assert record.temperature_c == 27
