# catalog/browser.py
"""
Station list engine behind every browsing tab.

One load mode is active at a time (top clicked, search, by country, by region).
Selecting a mode clears the list and fetches its first page; load_more()
appends the next page of whatever mode is current.

Fetches run through a task runner (see catalog.workers) and land back on the
owner thread. Every reset bumps a generation counter so that pages arriving
for an abandoned mode are dropped instead of being mixed into the new list.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, Signal

from catalog.errors import error_message_for
from core.countries import (
    CountryCodeResolver,
    build_country_entries,
    dedupe_countries,
    normalize_country_code,
)
from core.models import (
    ByCountryCode,
    ByRegion,
    CatalogQuery,
    CountryEntry,
    LoadMode,
    PaginationCursor,
    RegionEntry,
    Search,
    Station,
    TopClicked,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


class CatalogBrowser(QObject):
    stationsChanged = Signal(object)     # list[Station]
    loadingChanged = Signal(bool)
    errorChanged = Signal(object)        # str | None
    countriesChanged = Signal(object)    # list[CountryEntry]
    regionsChanged = Signal(object)      # list[RegionEntry]
    selectedCountryChanged = Signal(object)  # str | None

    def __init__(
        self,
        client,
        runner,
        resolver: CountryCodeResolver | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        hide_broken: bool = True,
        parent=None,
    ):
        super().__init__(parent)
        self.client = client
        self.runner = runner
        self.resolver = resolver or CountryCodeResolver()
        self.page_size = max(1, int(page_size))
        self.hide_broken = hide_broken

        self.mode: LoadMode | None = None
        self.cursor = PaginationCursor(offset=0, page_size=self.page_size, has_more=False)
        self.stations: list[Station] = []
        self.is_loading = False
        self.is_loading_more = False
        self.error_message: str | None = None

        self.countries: list[CountryEntry] = []
        self.regions: list[RegionEntry] = []
        self.selected_country_code: str | None = None
        self.is_loading_countries = False
        self.is_loading_regions = False

        self._generation = 0
        self._regions_generation = 0

    # ----------------------------
    # Public API: load modes
    # ----------------------------

    def load_top_clicked(self) -> None:
        self._start(TopClicked())

    def search(self, query: CatalogQuery | str) -> None:
        if isinstance(query, str):
            text = query.strip()
            if not text:
                self.load_top_clicked()
                return
            query = CatalogQuery(name=text, hide_broken=self.hide_broken)
        self._start(Search(query))

    def load_by_country_code(self, code: str | None) -> None:
        normalized = self._select_country(code)
        if normalized is None:
            return
        self._start(ByCountryCode(normalized))

    def load_by_region(self, name: str) -> None:
        name = (name or "").strip()
        if not name:
            return
        self._start(ByRegion(name))

    def search_within_country(self, code: str | None, text: str) -> None:
        normalized = self._select_country(code)
        if normalized is None:
            return
        text = (text or "").strip()
        if not text:
            self._start(ByCountryCode(normalized))
            return
        query = CatalogQuery(name=text, country_code=normalized, hide_broken=self.hide_broken)
        self._start(Search(query))

    def reload(self) -> None:
        if self.mode is not None:
            self._start(self.mode)

    @property
    def has_more(self) -> bool:
        return self.cursor.has_more

    # ----------------------------
    # Public API: pagination
    # ----------------------------

    def load_more(self) -> None:
        if self.mode is None or self.is_loading or self.is_loading_more:
            return
        if not self.cursor.has_more:
            return

        self.is_loading_more = True
        gen = self._generation
        mode = self.mode

        if isinstance(mode, TopClicked):
            # the top list has no offset parameter: ask for more and keep the tail
            count = self.cursor.offset + self.page_size
            fn = lambda: self.client.top_clicked(count)
        else:
            fn = self._page_call(mode, self.cursor.offset)

        logger.debug("load_more mode=%s offset=%d", mode, self.cursor.offset)
        self.runner.submit(
            fn,
            lambda result: self._on_more_loaded(gen, mode, result),
            lambda exc: self._on_failed(gen, exc),
        )

    # ----------------------------
    # Public API: countries / regions
    # ----------------------------

    def load_countries(self) -> None:
        if self.is_loading_countries:
            return
        self.is_loading_countries = True

        def fetch():
            named_counts = self.client.countries()
            return build_country_entries(named_counts, self.resolver, self.resolver.local_code())

        self.runner.submit(fetch, self._on_countries_loaded, self._on_countries_failed)

    def load_regions(self, code: str | None) -> None:
        normalized = normalize_country_code(code, self.countries)
        self._regions_generation += 1
        gen = self._regions_generation

        self._set_regions([])
        if normalized is None:
            self.is_loading_regions = False
            return

        self.is_loading_regions = True
        self.runner.submit(
            lambda: self.client.regions(normalized),
            lambda result: self._on_regions_loaded(gen, normalized, result),
            lambda exc: self._on_regions_failed(gen, exc),
        )

    # ----------------------------
    # Internals
    # ----------------------------

    def _select_country(self, code: str | None) -> Optional[str]:
        normalized = normalize_country_code(code, self.countries)
        if normalized is None:
            logger.info("Rejected country selection %r", code)
            self._set_selected_country(None)
            self._invalidate()
            self.mode = None
            self._set_stations([])
            return None
        self._set_selected_country(normalized)
        return normalized

    def _invalidate(self) -> None:
        self._generation += 1
        self.is_loading_more = False
        self.cursor = PaginationCursor(offset=0, page_size=self.page_size, has_more=False)
        self._set_loading(False)

    def _start(self, mode: LoadMode) -> None:
        self._invalidate()
        gen = self._generation
        self.mode = mode
        self.cursor = PaginationCursor(offset=0, page_size=self.page_size, has_more=True)
        self._set_stations([])
        self._set_error(None)
        self._set_loading(True)

        logger.info("Loading stations: %s", mode)
        self.runner.submit(
            self._page_call(mode, 0),
            lambda result: self._on_first_page(gen, result),
            lambda exc: self._on_failed(gen, exc),
        )

    def _page_call(self, mode: LoadMode, offset: int) -> Callable[[], Any]:
        limit = self.page_size
        client = self.client

        if isinstance(mode, TopClicked):
            return lambda: client.top_clicked(offset + limit)
        if isinstance(mode, Search):
            query = dataclasses.replace(mode.query, limit=limit, offset=offset)
            return lambda: client.search(query)
        if isinstance(mode, ByCountryCode):
            return lambda: client.stations_by_country_code(mode.code, limit, offset)
        if isinstance(mode, ByRegion):
            return lambda: client.stations_by_region(mode.name, limit, offset)
        raise TypeError(f"Unknown load mode: {mode!r}")

    def _on_first_page(self, gen: int, result: list[Station]) -> None:
        if gen != self._generation:
            return
        page = list(result or [])
        self.cursor.offset = len(page)
        self.cursor.has_more = len(page) >= self.page_size
        self._set_error(None)
        self._set_stations(page)
        self._set_loading(False)

    def _on_more_loaded(self, gen: int, mode: LoadMode, result: list[Station]) -> None:
        if gen != self._generation:
            return
        self.is_loading_more = False
        result = list(result or [])

        if isinstance(mode, TopClicked):
            new_items = result[len(self.stations):]
            self.cursor.has_more = len(new_items) >= self.page_size
        else:
            new_items = result
            self.cursor.has_more = len(new_items) == self.page_size

        self.cursor.offset += len(new_items)
        self._set_error(None)
        if new_items:
            self._set_stations(self.stations + new_items)

    def _on_failed(self, gen: int, exc: BaseException) -> None:
        if gen != self._generation:
            return
        message = error_message_for(exc)
        if message:
            logger.warning("Station fetch failed (%s): %s", self.mode, exc)

        self.is_loading_more = False
        self.cursor.has_more = False
        self._set_stations([])
        self._set_error(message)
        self._set_loading(False)

    def _on_countries_loaded(self, entries: list[CountryEntry]) -> None:
        self.is_loading_countries = False
        self.countries = dedupe_countries(entries or [])
        self.countriesChanged.emit(list(self.countries))

        # pick the local country the first time the list arrives
        if self.selected_country_code is None:
            local = next((c for c in self.countries if c.is_local and c.code), None)
            if local is not None:
                self._set_selected_country(local.code)

    def _on_countries_failed(self, exc: BaseException) -> None:
        self.is_loading_countries = False
        message = error_message_for(exc)
        self.countries = []
        self.countriesChanged.emit([])
        self._set_error(f"Failed to load countries: {message}" if message else None)

    def _on_regions_loaded(self, gen: int, code: str, result: list[RegionEntry]) -> None:
        if gen != self._regions_generation:
            return
        self.is_loading_regions = False
        # the region endpoint labels entries by code or by country name
        wanted = {code.lower()}
        wanted.update(c.name.lower() for c in self.countries if c.code == code)
        seen: set[str] = set()
        regions = []
        for region in result or []:
            if (region.country_code or "").lower() not in wanted or region.name in seen:
                continue
            seen.add(region.name)
            regions.append(region)
        self._set_regions(regions)

    def _on_regions_failed(self, gen: int, exc: BaseException) -> None:
        if gen != self._regions_generation:
            return
        self.is_loading_regions = False
        self._set_regions([])
        self._set_error(error_message_for(exc))

    # ----------------------------
    # Setters with change signals
    # ----------------------------

    def _set_stations(self, stations: list[Station]) -> None:
        self.stations = stations
        self.stationsChanged.emit(list(stations))

    def _set_loading(self, loading: bool) -> None:
        if self.is_loading != loading:
            self.is_loading = loading
            self.loadingChanged.emit(loading)

    def _set_error(self, message: str | None) -> None:
        if self.error_message != message:
            self.error_message = message
            self.errorChanged.emit(message)

    def _set_regions(self, regions: list[RegionEntry]) -> None:
        self.regions = regions
        self.regionsChanged.emit(list(regions))

    def _set_selected_country(self, code: str | None) -> None:
        if self.selected_country_code != code:
            self.selected_country_code = code
            self.selectedCountryChanged.emit(code)
