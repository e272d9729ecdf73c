from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional, Union


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class Station:
    id: str                       # radio-browser stationuuid
    name: str
    stream_url: str
    homepage_url: str | None = None
    favicon_url: str | None = None
    country_code: str | None = None
    state: str | None = None
    language: str | None = None
    tags: str | None = None       # comma separated, as delivered by the API
    codec: str | None = None
    bitrate_kbps: int | None = None

    @staticmethod
    def from_api(data: dict) -> "Station":
        bitrate = data.get("bitrate")
        try:
            bitrate = int(bitrate) if bitrate else None
        except (TypeError, ValueError):
            bitrate = None

        return Station(
            id=str(data.get("stationuuid") or ""),
            name=(data.get("name") or "").strip(),
            stream_url=(data.get("url_resolved") or data.get("url") or "").strip(),
            homepage_url=_opt_str(data.get("homepage")),
            favicon_url=_opt_str(data.get("favicon")),
            country_code=_opt_str(data.get("countrycode")),
            state=_opt_str(data.get("state")),
            language=_opt_str(data.get("language")),
            tags=_opt_str(data.get("tags")),
            codec=_opt_str(data.get("codec")),
            bitrate_kbps=bitrate,
        )

    def tag_list(self) -> list[str]:
        if not self.tags:
            return []
        return [t.strip() for t in self.tags.split(",") if t.strip()]


class SortOrder(Enum):
    NAME = "name"
    URL = "url"
    HOMEPAGE = "homepage"
    FAVICON = "favicon"
    TAGS = "tags"
    COUNTRY = "country"
    STATE = "state"
    LANGUAGE = "language"
    VOTES = "votes"
    CODEC = "codec"
    BITRATE = "bitrate"
    LAST_CHECK_OK = "lastcheckok"
    LAST_CHECK_TIME = "lastchecktime"
    CLICK_COUNT = "clickcount"
    CLICK_TREND = "clicktrend"
    CHANGE_TIMESTAMP = "changetimestamp"
    RANDOM = "random"


@dataclass(frozen=True)
class CatalogQuery:
    name: str | None = None
    country_code: str | None = None
    language: str | None = None
    tag: str | None = None
    codec: str | None = None
    bitrate_min: int | None = None
    bitrate_max: int | None = None
    is_https: bool | None = None
    order: SortOrder = SortOrder.NAME
    reverse: bool = False
    hide_broken: bool = True
    limit: int | None = None
    offset: int | None = None

    def to_params(self) -> dict[str, Any]:
        """Render as radio-browser `/json/stations/search` query parameters."""
        params: dict[str, Any] = {
            "order": self.order.value,
            "reverse": "true" if self.reverse else "false",
            "hidebroken": "true" if self.hide_broken else "false",
        }
        if self.name:
            params["name"] = self.name
        if self.country_code:
            params["countrycode"] = self.country_code
        if self.language:
            params["language"] = self.language
        if self.tag:
            params["tag"] = self.tag
        if self.codec:
            params["codec"] = self.codec
        if self.bitrate_min is not None:
            params["bitrateMin"] = int(self.bitrate_min)
        if self.bitrate_max is not None:
            params["bitrateMax"] = int(self.bitrate_max)
        if self.is_https is not None:
            params["is_https"] = "true" if self.is_https else "false"
        if self.limit is not None:
            params["limit"] = int(self.limit)
        if self.offset is not None:
            params["offset"] = int(self.offset)
        return params


# ---- Load modes (one active per browser) ----

@dataclass(frozen=True)
class TopClicked:
    pass


@dataclass(frozen=True)
class Search:
    query: CatalogQuery


@dataclass(frozen=True)
class ByCountryCode:
    code: str


@dataclass(frozen=True)
class ByRegion:
    name: str


LoadMode = Union[TopClicked, Search, ByCountryCode, ByRegion]


@dataclass
class PaginationCursor:
    offset: int = 0
    page_size: int = 50
    has_more: bool = True


# ---- Playback ----

class PlaybackStatus(Enum):
    IDLE = auto()
    LOADING = auto()
    PLAYING = auto()
    PAUSED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class PlaybackState:
    status: PlaybackStatus = PlaybackStatus.IDLE
    station: Station | None = None
    error: str | None = None

    @staticmethod
    def idle() -> "PlaybackState":
        return PlaybackState()

    @staticmethod
    def loading(station: Station) -> "PlaybackState":
        return PlaybackState(PlaybackStatus.LOADING, station)

    @staticmethod
    def playing(station: Station) -> "PlaybackState":
        return PlaybackState(PlaybackStatus.PLAYING, station)

    @staticmethod
    def paused(station: Station) -> "PlaybackState":
        return PlaybackState(PlaybackStatus.PAUSED, station)

    @staticmethod
    def failed(station: Station | None, error: str) -> "PlaybackState":
        return PlaybackState(PlaybackStatus.FAILED, station, error)

    @property
    def is_playing(self) -> bool:
        return self.status == PlaybackStatus.PLAYING

    @property
    def is_loading(self) -> bool:
        return self.status == PlaybackStatus.LOADING


@dataclass(frozen=True)
class StreamMetadata:
    title: str | None = None
    artist: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.title is None and self.artist is None

    def merged(self, update: "StreamMetadata") -> "StreamMetadata":
        # fields missing from the update keep their last known value
        return StreamMetadata(
            title=update.title if update.title is not None else self.title,
            artist=update.artist if update.artist is not None else self.artist,
        )


# ---- Countries / regions ----

@dataclass(frozen=True)
class CountryEntry:
    name: str
    code: str | None
    station_count: int
    is_local: bool = False


@dataclass(frozen=True)
class RegionEntry:
    name: str
    station_count: int
    country_code: str
