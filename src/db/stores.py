from __future__ import annotations

import sqlite3
from typing import List

from core.models import Station
from db.database import (
    MAX_RECENTS,
    add_favorite,
    add_recent,
    clear_recents,
    get_favorites,
    get_recents,
    is_favorite,
    remove_favorite,
)


class HistoryStore:
    """Most recently played stations, newest first, unique by station id."""

    def __init__(self, db: sqlite3.Connection, capacity: int = MAX_RECENTS):
        self.db = db
        self.capacity = capacity

    def record(self, station: Station) -> None:
        add_recent(self.db, station, max_recents=self.capacity)

    def list(self) -> List[Station]:
        return [r.station for r in get_recents(self.db)]

    def clear(self) -> None:
        clear_recents(self.db)


class FavoritesStore:
    def __init__(self, db: sqlite3.Connection):
        self.db = db

    def contains(self, station_id: str) -> bool:
        return is_favorite(self.db, station_id)

    def add(self, station: Station) -> None:
        add_favorite(self.db, station)

    def remove(self, station_id: str) -> None:
        remove_favorite(self.db, station_id)

    def toggle(self, station: Station) -> bool:
        """Returns True when the station is a favorite afterwards."""
        if self.contains(station.id):
            self.remove(station.id)
            return False
        self.add(station)
        return True

    def list(self) -> List[Station]:
        return [f.station for f in get_favorites(self.db)]
