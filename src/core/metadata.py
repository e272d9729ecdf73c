# core/metadata.py
"""
Title/artist extraction for internet radio streams.

Three shapes of metadata reach the player:
  - timed metadata items coming from the audio backend, as (key, value) pairs
  - the ICY response headers of the stream (icy-name, icy-description, ...)
  - raw in-band ICY blocks: StreamTitle='Artist - Title';StreamUrl='';

Nothing here raises; anything we can't make sense of yields empty fields.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from core.models import StreamMetadata

SEPARATORS = (" - ", " – ", " — ", " | ", " / ")

TITLE_KEYS = {"title", "icy-title", "streamtitle"}
ARTIST_KEYS = {"artist", "icy-artist", "streamartist"}

# payload ends at the "';" terminator so titles like "Guns N' Roses - ..." survive
_STREAM_TITLE_RE = re.compile(r"StreamTitle='(.*?)'(?:;|$)", re.DOTALL)


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def split_artist_title(text: str | None) -> StreamMetadata:
    """
    Splits "Artist - Title" on the first separator that gives two non-empty parts.
    Without a usable separator the whole string is the title.
    """
    trimmed = (text or "").strip()

    for sep in SEPARATORS:
        if sep not in trimmed:
            continue
        parts = trimmed.split(sep)
        artist = parts[0].strip()
        title = parts[1].strip()
        if artist and title:
            return StreamMetadata(title=title, artist=artist)

    return StreamMetadata(title=trimmed or None, artist=None)


def parse_metadata_items(items: Iterable[tuple[str | None, Any]]) -> StreamMetadata:
    title: str | None = None
    artist: str | None = None

    for key, raw_value in items:
        if not key:
            continue
        value = _clean(raw_value)
        key = str(key).strip().lower()

        if key in TITLE_KEYS:
            if title is None:
                title = value
        elif key in ARTIST_KEYS:
            if artist is None:
                artist = value
        elif value:
            parsed = split_artist_title(value)
            if title is None:
                title = parsed.title
            if artist is None:
                artist = parsed.artist

    return StreamMetadata(title=title, artist=artist)


def parse_http_headers(headers: Mapping[str, Any]) -> StreamMetadata:
    lowered = {str(k).lower(): v for k, v in headers.items()}

    title = _clean(lowered.get("icy-name"))
    artist = None

    description = _clean(lowered.get("icy-description"))
    if description:
        parsed = split_artist_title(description)
        if title is None:
            title = parsed.title
        if artist is None:
            artist = parsed.artist

    return StreamMetadata(title=title, artist=artist)


def parse_icy_metadata(raw: str | None) -> StreamMetadata:
    if not raw:
        return StreamMetadata()
    match = _STREAM_TITLE_RE.search(raw)
    if not match:
        return StreamMetadata()
    return split_artist_title(match.group(1))


def parse_metadata(payload: Any) -> StreamMetadata:
    """Dispatches whatever the transport delivered to the matching parser."""
    if payload is None:
        return StreamMetadata()
    if isinstance(payload, str):
        return parse_icy_metadata(payload)
    if isinstance(payload, Mapping):
        return parse_http_headers(payload)
    try:
        return parse_metadata_items(payload)
    except (TypeError, ValueError):
        return StreamMetadata()
