from __future__ import annotations

import sqlite3
import time
from typing import List, Optional

from core.models import Station
from db.models import Config, FavoriteStation, RecentStation, station_to_params

MAX_RECENTS = 10

_STATION_FIELDS = "station_id, name, url, homepage, favicon, countrycode, state, language, tags, codec, bitrate"


# -------------------------------
# CONFIG
# -------------------------------
def get_config(db: sqlite3.Connection) -> Config:
    row = db.execute("""
        SELECT api_base_url,
               page_size,
               volume,
               hide_broken,
               icy_metadata,
               user_agent
        FROM config_data
        LIMIT 1
    """).fetchone()

    return Config(
        api_base_url=row["api_base_url"] or None,
        page_size=int(row["page_size"] or 50),
        volume=float(row["volume"] if row["volume"] is not None else 1.0),
        hide_broken=bool(row["hide_broken"]),
        icy_metadata=bool(row["icy_metadata"]),
        user_agent=row["user_agent"] or "pyradiobrowser/0.1",
    )


def set_config(db: sqlite3.Connection, config: Config) -> None:
    db.execute("""
        UPDATE config_data
        SET api_base_url = ?,
            page_size = ?,
            volume = ?,
            hide_broken = ?,
            icy_metadata = ?,
            user_agent = ?
        WHERE 1
    """, (
        config.api_base_url,
        int(config.page_size),
        float(config.volume),
        config.hide_broken,
        config.icy_metadata,
        config.user_agent,
    ))
    db.commit()


def set_volume(db: sqlite3.Connection, volume: float) -> None:
    db.execute("UPDATE config_data SET volume = ? WHERE 1", (float(volume),))
    db.commit()


# -------------------------------
# FAVORITES
# -------------------------------
def is_favorite(db: sqlite3.Connection, station_id: str) -> bool:
    row = db.execute("SELECT 1 FROM favorites WHERE station_id = ?", (station_id,)).fetchone()
    return row is not None


def add_favorite(db: sqlite3.Connection, station: Station) -> None:
    db.execute(
        f"INSERT OR REPLACE INTO favorites ({_STATION_FIELDS}, added_date) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        station_to_params(station) + (time.time(),),
    )
    db.commit()


def remove_favorite(db: sqlite3.Connection, station_id: str) -> None:
    db.execute("DELETE FROM favorites WHERE station_id = ?", (station_id,))
    db.commit()


def get_favorites(db: sqlite3.Connection) -> List[FavoriteStation]:
    rows = db.execute(f"""
        SELECT {_STATION_FIELDS}, added_date
        FROM favorites
        ORDER BY added_date DESC, rowid DESC
    """).fetchall()
    return [FavoriteStation.from_row(row) for row in rows]


# -------------------------------
# RECENTS
# -------------------------------
def add_recent(db: sqlite3.Connection, station: Station, max_recents: int = MAX_RECENTS) -> None:
    # re-adding moves the station to the front instead of duplicating it
    db.execute("DELETE FROM recents WHERE station_id = ?", (station.id,))
    db.execute(
        f"INSERT INTO recents ({_STATION_FIELDS}, played_date) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        station_to_params(station) + (time.time(),),
    )
    db.execute("""
        DELETE FROM recents
        WHERE station_id NOT IN (
            SELECT station_id FROM recents
            ORDER BY played_date DESC, rowid DESC
            LIMIT ?
        )
    """, (int(max_recents),))
    db.commit()


def get_recents(db: sqlite3.Connection, limit: Optional[int] = None) -> List[RecentStation]:
    q = f"""
        SELECT {_STATION_FIELDS}, played_date
        FROM recents
        ORDER BY played_date DESC, rowid DESC
    """
    params: tuple = ()
    if limit is not None:
        q += " LIMIT ?"
        params = (int(limit),)
    rows = db.execute(q, params).fetchall()
    return [RecentStation.from_row(row) for row in rows]


def clear_recents(db: sqlite3.Connection) -> None:
    db.execute("DELETE FROM recents")
    db.commit()
