# core/countries.py
from __future__ import annotations

import logging
import string
from typing import Iterable, Optional

from PySide6.QtCore import QLocale

from core.models import CountryEntry
from core.utils import fold_name

logger = logging.getLogger(__name__)

# radio-browser spells a number of countries the ISO way ("The Russian Federation",
# "Korea, Republic of"), which no locale uses as a display name.
FALLBACK_CODES: dict[str, str] = {
    "the united states of america": "US",
    "united states of america": "US",
    "usa": "US",
    "the united kingdom of great britain and northern ireland": "GB",
    "united kingdom of great britain and northern ireland": "GB",
    "great britain": "GB",
    "uk": "GB",
    "the russian federation": "RU",
    "russian federation": "RU",
    "the netherlands": "NL",
    "netherlands (the)": "NL",
    "holland": "NL",
    "korea, republic of": "KR",
    "the republic of korea": "KR",
    "republic of korea": "KR",
    "korea": "KR",
    "korea, democratic people's republic of": "KP",
    "the democratic people's republic of korea": "KP",
    "iran, islamic republic of": "IR",
    "the islamic republic of iran": "IR",
    "taiwan, province of china": "TW",
    "taiwan, republic of china": "TW",
    "viet nam": "VN",
    "the plurinational state of bolivia": "BO",
    "bolivia, plurinational state of": "BO",
    "the bolivarian republic of venezuela": "VE",
    "venezuela, bolivarian republic of": "VE",
    "the czech republic": "CZ",
    "czech republic": "CZ",
    "turkiye": "TR",
    "the philippines": "PH",
    "the united arab emirates": "AE",
    "the dominican republic": "DO",
    "the democratic republic of the congo": "CD",
    "congo, the democratic republic of the": "CD",
    "the congo": "CG",
    "cote d'ivoire": "CI",
    "the united republic of tanzania": "TZ",
    "tanzania, united republic of": "TZ",
    "the republic of moldova": "MD",
    "moldova, republic of": "MD",
    "the republic of north macedonia": "MK",
    "republic of north macedonia": "MK",
    "macedonia": "MK",
    "lao people's democratic republic": "LA",
    "the lao people's democratic republic": "LA",
    "the syrian arab republic": "SY",
    "syrian arab republic": "SY",
    "state of palestine": "PS",
    "palestine, state of": "PS",
    "the holy see": "VA",
    "holy see (vatican city state)": "VA",
    "the bahamas": "BS",
    "the gambia": "GM",
    "the sudan": "SD",
    "the niger": "NE",
    "the central african republic": "CF",
    "the comoros": "KM",
    "the cayman islands": "KY",
    "the faroe islands": "FO",
    "the falkland islands malvinas": "FK",
    "the marshall islands": "MH",
    "the turks and caicos islands": "TC",
    "brunei darussalam": "BN",
    "cabo verde": "CV",
    "eswatini": "SZ",
    "micronesia, federated states of": "FM",
    "the federated states of micronesia": "FM",
    "reunion": "RE",
}


def territory_names_from_locale() -> dict[str, list[str]]:
    """
    ISO code -> names known to Qt's locale database for that territory:
    the English territory name plus the native name of every matching locale.
    """
    table: dict[str, list[str]] = {}
    for a in string.ascii_uppercase:
        for b in string.ascii_uppercase:
            code = a + b
            territory = QLocale.codeToTerritory(code)
            if territory == QLocale.Country.AnyTerritory:
                continue

            names = [QLocale.territoryToString(territory)]
            for loc in QLocale.matchingLocales(
                QLocale.Language.AnyLanguage, QLocale.Script.AnyScript, territory
            ):
                native = loc.nativeTerritoryName()
                if native and native not in names:
                    names.append(native)
            table[code] = names
    return table


class CountryCodeResolver:
    """Maps free-text country names to ISO 3166-1 alpha-2 codes."""

    def __init__(
        self,
        territory_names: dict[str, list[str]] | None = None,
        fallback: dict[str, str] | None = None,
    ):
        self._territory_names = territory_names
        self._fallback = {fold_name(k): v for k, v in (fallback or FALLBACK_CODES).items()}
        self._exact: dict[str, str] | None = None
        self._folded: dict[str, str] = {}

    def _ensure_index(self) -> None:
        if self._exact is not None:
            return
        names = self._territory_names
        if names is None:
            names = territory_names_from_locale()
            logger.debug("Loaded %d territories from locale data", len(names))

        self._exact = {}
        for code, variants in names.items():
            for name in variants:
                if not name:
                    continue
                self._exact.setdefault(name.strip().lower(), code.upper())
                self._folded.setdefault(fold_name(name), code.upper())

    def resolve(self, name: str | None) -> Optional[str]:
        if not name or not name.strip():
            return None
        self._ensure_index()

        key = name.strip().lower()
        code = self._exact.get(key)
        if code:
            return code

        folded = fold_name(name)
        return self._folded.get(folded) or self._fallback.get(folded)

    @staticmethod
    def local_code() -> Optional[str]:
        territory = QLocale.system().territory()
        if territory == QLocale.Country.AnyTerritory:
            return None
        code = QLocale.territoryToCode(territory)
        return code.upper() if code else None


def dedupe_countries(entries: Iterable[CountryEntry]) -> list[CountryEntry]:
    seen: set[str] = set()
    out: list[CountryEntry] = []
    for entry in entries:
        if entry.name in seen:
            continue
        seen.add(entry.name)
        out.append(entry)
    return out


def build_country_entries(
    named_counts: Iterable[tuple[str, int]],
    resolver: CountryCodeResolver,
    local_code: str | None = None,
) -> list[CountryEntry]:
    """Resolved, de-duplicated country list: local country first, then by name."""
    entries = []
    for name, count in named_counts:
        code = resolver.resolve(name)
        entries.append(CountryEntry(
            name=name,
            code=code,
            station_count=int(count or 0),
            is_local=bool(code) and code == local_code,
        ))

    entries = dedupe_countries(entries)
    entries.sort(key=lambda e: (not e.is_local, e.name.lower()))
    return entries


def _is_alpha2(code: str) -> bool:
    return len(code) == 2 and code.isascii() and code.isalpha()


def normalize_country_code(
    raw: str | None, known: Iterable[CountryEntry] = ()
) -> Optional[str]:
    """
    Turns whatever the caller selected into an ISO alpha-2 code, or None.

    Accepts "DE", "de", "Germany-DE", or a name/code present in `known`.
    Anything that does not end up as exactly two letters is rejected.
    """
    if not raw:
        return None
    value = raw.strip()
    if not value:
        return None

    if _is_alpha2(value):
        return value.upper()

    if "-" in value:
        tail = value.rsplit("-", 1)[1].strip()
        if _is_alpha2(tail):
            return tail.upper()

    lowered = value.lower()
    for entry in known:
        if entry.code and (entry.name.lower() == lowered or entry.code.lower() == lowered):
            code = entry.code.strip()
            return code.upper() if _is_alpha2(code) else None

    return None
