"""
Tests for RadioBrowserClient: request shapes and HTTP error classification.
"""

from unittest.mock import MagicMock

import pytest
import requests

from catalog.client import API_SERVERS, RadioBrowserClient
from catalog.errors import (
    CatalogError,
    InvalidRequest,
    NetworkUnavailable,
    NotFound,
    RateLimited,
    ServerUnavailable,
)
from core.models import CatalogQuery, SortOrder

BASE = "https://api.example.org"

STATION_JSON = {
    "stationuuid": "abc-123",
    "name": " Jazz FM ",
    "url": "http://jazz.example/stream.pls",
    "url_resolved": "http://jazz.example/stream",
    "homepage": "https://jazz.example",
    "favicon": "",
    "countrycode": "GB",
    "state": "London",
    "language": "english",
    "tags": "jazz,smooth jazz",
    "codec": "MP3",
    "bitrate": 128,
}


def _response(status=200, payload=None, text=""):
    r = MagicMock()
    r.status_code = status
    r.text = text
    r.json.return_value = payload
    return r


@pytest.fixture
def client():
    c = RadioBrowserClient(base_url=BASE + "/")
    c.session = MagicMock()
    c.session.get.return_value = _response(payload=[])
    return c


class TestRequests:
    def test_default_server_is_a_known_mirror(self) -> None:
        assert RadioBrowserClient().base_url in API_SERVERS

    def test_top_clicked(self, client) -> None:
        client.session.get.return_value = _response(payload=[STATION_JSON])
        stations = client.top_clicked(50)

        url = client.session.get.call_args.args[0]
        assert url == f"{BASE}/json/stations/topclick/50"
        assert stations[0].id == "abc-123"

    def test_search_params(self, client) -> None:
        client.search(CatalogQuery(name="jazz", country_code="GB", limit=10, offset=20))

        url = client.session.get.call_args.args[0]
        params = client.session.get.call_args.kwargs["params"]
        assert url == f"{BASE}/json/stations/search"
        assert params["name"] == "jazz"
        assert params["countrycode"] == "GB"
        assert params["limit"] == 10
        assert params["offset"] == 20
        assert params["order"] == SortOrder.NAME.value

    def test_by_country_code(self, client) -> None:
        client.stations_by_country_code("DE", 25, 50)

        url = client.session.get.call_args.args[0]
        params = client.session.get.call_args.kwargs["params"]
        assert url == f"{BASE}/json/stations/bycountrycodeexact/DE"
        assert params == {"limit": 25, "offset": 50, "hidebroken": "true"}

    def test_by_region_is_quoted(self, client) -> None:
        client.stations_by_region("Baden-Württemberg", 25, 0)
        url = client.session.get.call_args.args[0]
        assert url == f"{BASE}/json/stations/bystateexact/Baden-W%C3%BCrttemberg"

    def test_record_interaction(self, client) -> None:
        client.session.get.return_value = _response(payload={"ok": True})
        client.record_interaction("abc-123")
        assert client.session.get.call_args.args[0] == f"{BASE}/json/url/abc-123"


class TestParsing:
    def test_station_fields(self, client) -> None:
        client.session.get.return_value = _response(payload=[STATION_JSON])
        station = client.top_clicked(1)[0]

        assert station.name == "Jazz FM"
        assert station.stream_url == "http://jazz.example/stream"
        assert station.favicon_url is None
        assert station.bitrate_kbps == 128
        assert station.tag_list() == ["jazz", "smooth jazz"]

    def test_stations_without_stream_are_kept(self, client) -> None:
        """The page length must match what the server paged."""
        broken = dict(STATION_JSON, stationuuid="no-url", url="", url_resolved="")
        client.session.get.return_value = _response(payload=[broken, STATION_JSON])

        stations = client.top_clicked(2)
        assert [s.id for s in stations] == ["no-url", "abc-123"]
        assert stations[0].stream_url == ""

    def test_non_list_payload(self, client) -> None:
        client.session.get.return_value = _response(payload={"error": "nope"})
        assert client.search(CatalogQuery(name="x")) == []

    def test_countries(self, client) -> None:
        client.session.get.return_value = _response(payload=[
            {"name": "Germany", "stationcount": 3000},
            {"name": "", "stationcount": 3},
            {"name": "France", "stationcount": None},
        ])
        assert client.countries() == [("Germany", 3000), ("France", 0)]

    def test_regions(self, client) -> None:
        client.session.get.return_value = _response(payload=[
            {"name": "Bavaria", "country": "Germany", "stationcount": 40},
            {"name": "  ", "country": "Germany", "stationcount": 1},
        ])
        regions = client.regions("DE")

        assert client.session.get.call_args.args[0] == f"{BASE}/json/states/DE/"
        assert len(regions) == 1
        assert regions[0].name == "Bavaria"
        assert regions[0].country_code == "Germany"

    def test_non_dict_entries_are_skipped(self, client) -> None:
        client.session.get.return_value = _response(payload=[
            "Germany",
            None,
            {"name": "Bavaria", "country": "DE", "stationcount": 4},
        ])
        assert [r.name for r in client.regions("DE")] == ["Bavaria"]

        client.session.get.return_value = _response(payload=[
            ["France", 5],
            {"name": "Germany", "stationcount": 3000},
        ])
        assert client.countries() == [("Germany", 3000)]


class TestErrorMapping:
    @pytest.mark.parametrize(
        "status,error",
        [
            (404, NotFound),
            (429, RateLimited),
            (400, InvalidRequest),
            (422, InvalidRequest),
            (500, ServerUnavailable),
            (503, ServerUnavailable),
            (403, CatalogError),
        ],
    )
    def test_status_codes(self, client, status, error) -> None:
        client.session.get.return_value = _response(status=status)
        with pytest.raises(error):
            client.top_clicked(10)

    def test_invalid_request_carries_body(self, client) -> None:
        client.session.get.return_value = _response(status=400, text="unknown order field")
        with pytest.raises(InvalidRequest) as exc_info:
            client.search(CatalogQuery(name="x"))
        assert exc_info.value.reason == "unknown order field"

    def test_connection_error(self, client) -> None:
        client.session.get.side_effect = requests.ConnectionError("no route")
        with pytest.raises(NetworkUnavailable):
            client.countries()

    def test_timeout_is_a_network_error(self, client) -> None:
        client.session.get.side_effect = requests.Timeout("slow")
        with pytest.raises(ServerUnavailable):
            client.countries()

    def test_malformed_json(self, client) -> None:
        r = _response()
        r.json.side_effect = ValueError("not json")
        client.session.get.return_value = r
        with pytest.raises(CatalogError):
            client.countries()
