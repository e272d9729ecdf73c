from __future__ import annotations

STATION_COLUMNS_SQL = """
    station_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    url TEXT NOT NULL,
    homepage TEXT,
    favicon TEXT,
    countrycode TEXT,
    state TEXT,
    language TEXT,
    tags TEXT,
    codec TEXT,
    bitrate INTEGER
"""

SCHEMA_V1_SQL = f"""
CREATE TABLE config_data (
    id INTEGER PRIMARY KEY,
    api_base_url TEXT,
    page_size INTEGER DEFAULT 50,
    volume REAL DEFAULT 1.0,
    hide_broken BOOLEAN DEFAULT 1,
    icy_metadata BOOLEAN DEFAULT 1,
    user_agent TEXT DEFAULT 'pyradiobrowser/0.1'
);

CREATE TABLE favorites (
    {STATION_COLUMNS_SQL},
    added_date REAL NOT NULL
);

CREATE TABLE recents (
    {STATION_COLUMNS_SQL},
    played_date REAL NOT NULL
);

CREATE INDEX idx_favorites_added_date ON favorites(added_date);
CREATE INDEX idx_recents_played_date ON recents(played_date);

INSERT INTO config_data (api_base_url, page_size, volume, hide_broken, icy_metadata)
VALUES (NULL, 50, 1.0, 1, 1);
"""
