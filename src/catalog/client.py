from __future__ import annotations

import logging
import random
from typing import Any, Optional
from urllib.parse import quote

import requests

from catalog.errors import (
    CatalogError,
    InvalidRequest,
    NetworkUnavailable,
    NotFound,
    RateLimited,
    ServerUnavailable,
)
from core.models import CatalogQuery, RegionEntry, Station

logger = logging.getLogger(__name__)

# Public radio-browser mirrors; one is picked per client to spread the load.
API_SERVERS = [
    "https://de1.api.radio-browser.info",
    "https://de2.api.radio-browser.info",
    "https://fi1.api.radio-browser.info",
]

DEFAULT_USER_AGENT = "pyradiobrowser/0.1"


class RadioBrowserClient:
    """
    Blocking client for the radio-browser.info JSON API.

    Every call either returns parsed data or raises one of the catalog errors;
    callers run it off the UI thread (see catalog.workers).
    """

    def __init__(
        self,
        base_url: str | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 15,
        hide_broken: bool = True,
    ):
        self.base_url = (base_url or random.choice(API_SERVERS)).rstrip("/")
        self.timeout = timeout
        self.hide_broken = hide_broken
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    # ----------------------------
    # Transport
    # ----------------------------

    def _get(self, path: str, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("GET %s params=%s", url, params)
        try:
            r = self.session.get(url, params=params, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise NetworkUnavailable(str(e)) from e
        except requests.RequestException as e:
            raise CatalogError(str(e)) from e

        status = r.status_code
        if status == 404:
            raise NotFound(url)
        if status == 429:
            raise RateLimited(url)
        if status in (400, 422):
            reason = (r.text or "").strip() or f"Invalid request ({status})"
            raise InvalidRequest(reason)
        if status >= 500:
            raise ServerUnavailable(f"HTTP {status} from {self.base_url}")
        if status >= 400:
            raise CatalogError(f"HTTP {status} from {self.base_url}")

        try:
            return r.json()
        except ValueError as e:
            raise CatalogError(f"Malformed response from {self.base_url}") from e

    def _stations(self, path: str, params: Optional[dict] = None) -> list[Station]:
        data = self._get(path, params)
        if not isinstance(data, list):
            return []
        # keep every record: paging follows the server's page size, and a station
        # without a usable stream URL is rejected when it is played
        return [Station.from_api(item) for item in data if isinstance(item, dict)]

    def _paging(self, limit: int, offset: int) -> dict:
        return {
            "limit": int(limit),
            "offset": int(offset),
            "hidebroken": "true" if self.hide_broken else "false",
        }

    # ----------------------------
    # Stations
    # ----------------------------

    def top_clicked(self, count: int) -> list[Station]:
        # GET /json/stations/topclick/{count}  (no offset support)
        return self._stations(
            f"/json/stations/topclick/{int(count)}",
            {"hidebroken": "true" if self.hide_broken else "false"},
        )

    def search(self, query: CatalogQuery) -> list[Station]:
        return self._stations("/json/stations/search", query.to_params())

    def stations_by_country_code(self, code: str, limit: int, offset: int) -> list[Station]:
        return self._stations(
            f"/json/stations/bycountrycodeexact/{quote(code, safe='')}",
            self._paging(limit, offset),
        )

    def stations_by_region(self, name: str, limit: int, offset: int) -> list[Station]:
        return self._stations(
            f"/json/stations/bystateexact/{quote(name, safe='')}",
            self._paging(limit, offset),
        )

    # ----------------------------
    # Countries / regions
    # ----------------------------

    def countries(self) -> list[tuple[str, int]]:
        data = self._get("/json/countries")
        out: list[tuple[str, int]] = []
        for item in data if isinstance(data, list) else []:
            if not isinstance(item, dict):
                continue
            name = (item.get("name") or "").strip()
            if name:
                out.append((name, int(item.get("stationcount") or 0)))
        return out

    def regions(self, country_code: str) -> list[RegionEntry]:
        # the endpoint is not reliably filtered server side; callers filter again
        data = self._get(f"/json/states/{quote(country_code, safe='')}/")
        out: list[RegionEntry] = []
        for item in data if isinstance(data, list) else []:
            if not isinstance(item, dict):
                continue
            name = (item.get("name") or "").strip()
            if not name:
                continue
            out.append(RegionEntry(
                name=name,
                station_count=int(item.get("stationcount") or 0),
                country_code=(item.get("country") or "").strip(),
            ))
        return out

    # ----------------------------
    # Interaction
    # ----------------------------

    def record_interaction(self, station_id: str) -> None:
        # GET /json/url/{stationuuid} counts a click for the station
        self._get(f"/json/url/{quote(station_id, safe='')}")
