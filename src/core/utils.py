import re
import unicodedata
from urllib.parse import urlsplit


def lower_lay_string(s: str) -> str:
    """
    Lowercases the string and strips diacritics ("Réunion" -> "reunion").
    """
    normalized = unicodedata.normalize('NFKD', s)
    return ''.join(c for c in normalized if not unicodedata.combining(c)).lower()


def collapse(s: str) -> str:
    """
    Collapses runs of whitespace into a single space and trims the ends.
    """
    return re.sub(r'\s+', ' ', s).strip()


def fold_name(s: str) -> str:
    # typographic apostrophes show up in both API and locale names
    return collapse(lower_lay_string(s).replace("’", "'"))


def is_stream_url(url: str | None) -> bool:
    if not url:
        return False
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False
    return parts.scheme.lower() in ("http", "https") and bool(parts.netloc)
