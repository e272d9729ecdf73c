from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import sqlite3

from core.models import Station


def station_from_row(row: sqlite3.Row) -> Station:
    return Station(
        id=row["station_id"],
        name=row["name"],
        stream_url=row["url"],
        homepage_url=row["homepage"],
        favicon_url=row["favicon"],
        country_code=row["countrycode"],
        state=row["state"],
        language=row["language"],
        tags=row["tags"],
        codec=row["codec"],
        bitrate_kbps=row["bitrate"],
    )


def station_to_params(station: Station) -> tuple:
    return (
        station.id,
        station.name,
        station.stream_url,
        station.homepage_url,
        station.favicon_url,
        station.country_code,
        station.state,
        station.language,
        station.tags,
        station.codec,
        station.bitrate_kbps,
    )


@dataclass
class FavoriteStation:
    station: Station
    added_date: float

    @staticmethod
    def from_row(row: sqlite3.Row) -> "FavoriteStation":
        return FavoriteStation(station=station_from_row(row), added_date=float(row["added_date"]))


@dataclass
class RecentStation:
    station: Station
    played_date: float

    @staticmethod
    def from_row(row: sqlite3.Row) -> "RecentStation":
        return RecentStation(station=station_from_row(row), played_date=float(row["played_date"]))


@dataclass
class Config:
    api_base_url: Optional[str]
    page_size: int
    volume: float
    hide_broken: bool
    icy_metadata: bool
    user_agent: str
