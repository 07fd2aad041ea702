"""
Code and name normalizers.

Closed vocabulary tables (status, category, surface, country codes) and the
name/location heuristics shared by the cleaner, the formatter and the
historical-row transforms. Every lookup has an explicit fallback arm.
"""

import re
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from tennis_pipeline.core.constants import (
    MatchStatus,
    TournamentCategory,
    Surface,
    Handedness,
    UNKNOWN_COUNTRY_CODE,
    INTERNATIONAL_COUNTRY_CODE,
    UNKNOWN_NATIONALITY,
    DEFAULT_LOCATION,
    DEFAULT_TOURNAMENT_NAME,
    TOURNAMENT_NAME_QUALIFIER,
    MIN_TOURNAMENT_NAME_LENGTH,
)


STATUS_VOCABULARY: Mapping[str, MatchStatus] = MappingProxyType({
    "ft": MatchStatus.COMPLETED,
    "finished": MatchStatus.COMPLETED,
    "final": MatchStatus.COMPLETED,
    "ended": MatchStatus.COMPLETED,
    "completed": MatchStatus.COMPLETED,
    "closed": MatchStatus.COMPLETED,
    "live": MatchStatus.LIVE,
    "inprogress": MatchStatus.LIVE,
    "in progress": MatchStatus.LIVE,
    "in_progress": MatchStatus.LIVE,
    "scheduled": MatchStatus.SCHEDULED,
    "upcoming": MatchStatus.SCHEDULED,
    "not_started": MatchStatus.SCHEDULED,
    "not started": MatchStatus.SCHEDULED,
    "cancelled": MatchStatus.CANCELLED,
    "canceled": MatchStatus.CANCELLED,
    "walkover": MatchStatus.WALKOVER,
    "wo": MatchStatus.WALKOVER,
    "w/o": MatchStatus.WALKOVER,
    "retired": MatchStatus.RETIRED,
    "ret": MatchStatus.RETIRED,
})

CATEGORY_VOCABULARY: Mapping[str, TournamentCategory] = MappingProxyType({
    "atp": TournamentCategory.ATP,
    "wta": TournamentCategory.WTA,
    "challenger": TournamentCategory.CHALLENGER,
    "atp challenger": TournamentCategory.CHALLENGER,
    "itf": TournamentCategory.ITF,
    "itf men": TournamentCategory.ITF,
    "itf women": TournamentCategory.ITF,
    "exhibition": TournamentCategory.EXHIBITION,
})

SURFACE_VOCABULARY: Mapping[str, Surface] = MappingProxyType({
    "hard": Surface.HARD,
    "hard court": Surface.HARD,
    "hardcourt": Surface.HARD,
    "hard_court": Surface.HARD,
    "hardcourt_outdoor": Surface.HARD,
    "outdoor hard": Surface.HARD,
    "clay": Surface.CLAY,
    "red clay": Surface.CLAY,
    "red_clay": Surface.CLAY,
    "green clay": Surface.CLAY,
    "green_clay": Surface.CLAY,
    "clay court": Surface.CLAY,
    "grass": Surface.GRASS,
    "grass court": Surface.GRASS,
    "synthetic_grass": Surface.GRASS,
    "indoor": Surface.INDOOR,
    "indoor hard": Surface.INDOOR,
    "hardcourt_indoor": Surface.INDOOR,
    "hard (indoor)": Surface.INDOOR,
    "synthetic_indoor": Surface.INDOOR,
    "carpet": Surface.CARPET,
    "carpet_indoor": Surface.CARPET,
})

# Historical archive tourney_level codes
TOURNAMENT_LEVEL_NAMES: Mapping[str, str] = MappingProxyType({
    "G": "Grand Slam",
    "M": "Masters 1000",
    "A": "ATP Tour",
    "250": "ATP 250",
    "500": "ATP 500",
    "C": "Challenger",
    "S": "ITF Futures",
    "F": "Tour Finals",
    "D": "Davis Cup",
    "O": "Olympics",
})

# Sort order for competition listings (lower is more prestigious)
LEVEL_PRESTIGE: Mapping[str, int] = MappingProxyType({
    "G": 1,
    "M": 2,
    "F": 3,
    "A": 4,
    "500": 4,
    "250": 5,
    "C": 6,
    "D": 7,
    "O": 7,
    "S": 8,
})

COUNTRY_NAME_TO_CODE: Mapping[str, str] = MappingProxyType({
    "Great Britain": "GB",
    "United Kingdom": "GB",
    "England": "GB",
    "Scotland": "GB",
    "Wales": "GB",
    "United States": "US",
    "USA": "US",
    "America": "US",
    "Czechia": "CZ",
    "Czech Republic": "CZ",
    "Russia": "RU",
    "Russian Federation": "RU",
    "Korea": "KR",
    "South Korea": "KR",
    "Taiwan": "TW",
    "Chinese Taipei": "TW",
    "Qatar": "QA",
    "Switzerland": "CH",
    "Australia": "AU",
    "India": "IN",
    "New Zealand": "NZ",
    "Croatia": "HR",
    "France": "FR",
    "UAE": "AE",
    "United Arab Emirates": "AE",
    "Netherlands": "NL",
    "Mexico": "MX",
    "Argentina": "AR",
    "Morocco": "MA",
    "Spain": "ES",
    "Germany": "DE",
    "Italy": "IT",
    "Sweden": "SE",
    "Canada": "CA",
    "Romania": "RO",
    "China": "CN",
    "Japan": "JP",
    "Monaco": "MC",
    "Austria": "AT",
    "Serbia": "RS",
    "Malaysia": "MY",
    "Brazil": "BR",
    "Colombia": "CO",
    "Turkey": "TR",
    "Ecuador": "EC",
    "Portugal": "PT",
    "Bulgaria": "BG",
    "Chile": "CL",
    "Poland": "PL",
    "Kazakhstan": "KZ",
    "Tunisia": "TN",
    "Belgium": "BE",
    "Hungary": "HU",
    "Slovakia": "SK",
    "Slovenia": "SI",
    "Finland": "FI",
    "Greece": "GR",
    "Norway": "NO",
    "Denmark": "DK",
    "Israel": "IL",
    "Thailand": "TH",
    "Indonesia": "ID",
    "Philippines": "PH",
    "Vietnam": "VN",
    "Singapore": "SG",
    "Hong Kong": "HK",
    "Ukraine": "UA",
    "Belarus": "BY",
    "Lithuania": "LT",
    "Latvia": "LV",
    "Estonia": "EE",
    "Moldova": "MD",
    "Georgia": "GE",
    "Armenia": "AM",
    "Azerbaijan": "AZ",
    "Uzbekistan": "UZ",
    "Cyprus": "CY",
    "Malta": "MT",
    "Luxembourg": "LU",
    "Ireland": "IE",
    "Iceland": "IS",
    "Uruguay": "UY",
    "Paraguay": "PY",
    "Venezuela": "VE",
    "Peru": "PE",
    "Bolivia": "BO",
    "South Africa": "ZA",
    "Egypt": "EG",
    "Algeria": "DZ",
    "Jordan": "JO",
    "Lebanon": "LB",
    "Iran": "IR",
    "Pakistan": "PK",
    "Bangladesh": "BD",
    "Sri Lanka": "LK",
    "Nepal": "NP",
    "Maldives": "MV",
    "Bosnia and Herzegovina": "BA",
    "Montenegro": "ME",
    "North Macedonia": "MK",
})

# Country name for a code, first table entry wins ("GB" -> "Great Britain")
CODE_TO_COUNTRY_NAME: Mapping[str, str] = MappingProxyType(
    {code: name for name, code in reversed(list(COUNTRY_NAME_TO_CODE.items()))}
)

IOC_TO_ISO: Mapping[str, str] = MappingProxyType({
    "USA": "US", "GBR": "GB", "GER": "DE", "ESP": "ES", "FRA": "FR",
    "ITA": "IT", "AUS": "AU", "CAN": "CA", "RUS": "RU", "JPN": "JP",
    "CHN": "CN", "IND": "IN", "BRA": "BR", "ARG": "AR", "MEX": "MX",
    "SUI": "CH", "NED": "NL", "BEL": "BE", "SWE": "SE", "NOR": "NO",
    "DEN": "DK", "FIN": "FI", "AUT": "AT", "CZE": "CZ", "POL": "PL",
    "HUN": "HU", "CRO": "HR", "SRB": "RS", "SVK": "SK", "SLO": "SI",
    "UKR": "UA", "ROU": "RO", "BUL": "BG", "GRE": "GR", "POR": "PT",
    "ISR": "IL", "EGY": "EG", "RSA": "ZA", "KOR": "KR", "TPE": "TW",
    "THA": "TH", "INA": "ID", "MAS": "MY", "SGP": "SG", "PHI": "PH",
    "VIE": "VN", "UAE": "AE", "QAT": "QA", "KUW": "KW", "LIB": "LB",
    "TUN": "TN", "MAR": "MA", "ALG": "DZ", "NGR": "NG", "ZIM": "ZW",
    "KEN": "KE", "ETH": "ET", "GHA": "GH", "CIV": "CI", "SEN": "SN",
    "CAM": "CM", "ANG": "AO", "COL": "CO", "CHI": "CL", "ECU": "EC",
    "PER": "PE", "URU": "UY", "PAR": "PY", "VEN": "VE", "BOL": "BO",
    "KAZ": "KZ", "BLR": "BY", "GEO": "GE", "LTU": "LT", "LAT": "LV",
    "EST": "EE", "MDA": "MD", "BIH": "BA", "MNE": "ME", "MKD": "MK",
    "CYP": "CY", "IRL": "IE", "NZL": "NZ", "MON": "MC", "LUX": "LU",
    "TUR": "TR", "UZB": "UZ", "ARM": "AM", "HKG": "HK",
})

INVALID_COUNTRY_CODES = frozenset({"", "Neutral", "N/A", "NA", "-", UNKNOWN_COUNTRY_CODE, "None", "null"})
INVALID_NATIONALITIES = frozenset({"", "Neutral", "N/A", "-", "None", "null", "\U0001F3F3\uFE0F", "\U0001F3F3"})

# Known tournaments whose name does not carry the city/country
KNOWN_TOURNAMENT_LOCATIONS: Mapping[str, Tuple[Optional[str], str]] = MappingProxyType({
    "Wimbledon": ("London", "Great Britain"),
    "Australian Open": ("Melbourne", "Australia"),
    "French Open": ("Paris", "France"),
    "Roland Garros": ("Paris", "France"),
    "US Open": ("New York", "United States"),
    "ATP Finals": ("Turin", "Italy"),
    "Next Gen ATP Finals": ("Jeddah", "Saudi Arabia"),
    "Olympic Tournament": (None, "International"),
    "Olympics": (None, "International"),
})

COUNTRY_CODE_PATTERN = re.compile(r"^[A-Z]{2}$")

# Regional-indicator pairs, white/black flag sequences, question mark ornament, U+FFFD
FLAG_ARTIFACTS = re.compile(
    "[\U0001F1E6-\U0001F1FF]"
    "|[\U0001F3F3\U0001F3F4][\uFE0F\u200D\U0001F308\u26A7\U000E0020-\U000E007F]*"
    "|[\u2753\uFFFD]"
)
NAME_SUFFIX = re.compile(r"\b(?:Jr|Sr)\b\.?|\b(?:II|III|IV)\b")
SURFACE_SUFFIX = re.compile(r"\s*•\s*(?:Hard|Clay|Grass|Indoor|Carpet).*$", re.IGNORECASE)
LOCATION_SEPARATORS = " ,•|-"
WHITESPACE = re.compile(r"\s+")

TOURNAMENT_NAME_FIXES: Tuple[Tuple[re.Pattern, str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), replacement)
    for pattern, replacement in (
        (r"\brounament\b", "tournament"),
        (r"\bournament\b", "tournament"),
        (r"\btournamen\b", "tournament"),
        (r"\btourname\b", "tournament"),
        (r"\bchampio\b", "championship"),
        (r"\bchampionshi\b", "championship"),
        (r"\bmasters ser\b", "masters series"),
        (r"\bgrand sl\b", "grand slam"),
    )
)
TOURNAMENT_KEYWORDS = re.compile(
    r"\b(?:tournament|championships?|open|cup|masters|slam|finals?|games|trophy|classic"
    r"|atp|wta|challenger|itf)\b",
    re.IGNORECASE
)
TRUNCATION_MARKERS = ("...", "…", "-")


def clean_string(value: Any) -> Optional[str]:
    """Strip a string; non-strings and blank strings become None."""
    if isinstance(value, str):
        cleaned = value.strip()
        return cleaned or None
    return None


# Vocabulary lookups

def normalize_status(status: Any) -> MatchStatus:
    """Map a free-text status to the closed status enum (default: scheduled)."""
    if isinstance(status, MatchStatus):
        return status
    if status is None:
        return MatchStatus.SCHEDULED
    return STATUS_VOCABULARY.get(str(status).lower().strip(), MatchStatus.SCHEDULED)


def normalize_category(category: Any) -> TournamentCategory:
    """Map a free-text category to the closed category enum (default: Unknown)."""
    if isinstance(category, TournamentCategory):
        return category
    if category is None:
        return TournamentCategory.UNKNOWN
    return CATEGORY_VOCABULARY.get(str(category).lower().strip(), TournamentCategory.UNKNOWN)


def normalize_surface(surface: Any) -> Surface:
    """Map a free-text surface to the closed surface enum (default: Hard)."""
    if isinstance(surface, Surface):
        return surface
    if surface is None:
        return Surface.HARD
    return SURFACE_VOCABULARY.get(str(surface).lower().strip(), Surface.HARD)


def normalize_handedness(handedness: Any) -> Optional[Handedness]:
    if handedness is None:
        return None
    hand = str(handedness).lower().strip()
    if "left" in hand or hand == "l":
        return Handedness.LEFT
    if "right" in hand or hand == "r":
        return Handedness.RIGHT
    return None


def tournament_level_name(level: Optional[str]) -> str:
    """Display name for a historical tourney_level code; unknown codes pass through."""
    if not level:
        return "Unknown"
    return TOURNAMENT_LEVEL_NAMES.get(level, level)


def infer_tournament_level(category: TournamentCategory, name: Optional[str]) -> Optional[str]:
    """Guess the tournament tier from its category and name."""
    if category == TournamentCategory.UNKNOWN or not name:
        return None

    lower_name = name.lower()

    if any(slam in lower_name for slam in (
        "grand slam", "wimbledon", "us open", "french open", "roland garros", "australian open"
    )):
        return "Grand Slam"

    if category == TournamentCategory.ATP:
        if "masters" in lower_name or "1000" in lower_name:
            return "Masters 1000"
        if "500" in lower_name:
            return "ATP 500"
        if "250" in lower_name:
            return "ATP 250"

    if category == TournamentCategory.WTA:
        if "1000" in lower_name:
            return "WTA 1000"
        if "500" in lower_name:
            return "WTA 500"
        if "250" in lower_name:
            return "WTA 250"

    return None


# Country codes and nationality

def is_valid_country_code(code: Any) -> bool:
    return isinstance(code, str) and bool(COUNTRY_CODE_PATTERN.match(code))


def ioc_to_iso(code: Any) -> str:
    """Convert a 3-letter IOC code to ISO alpha-2; unknown codes give 'XX'."""
    if not isinstance(code, str):
        return UNKNOWN_COUNTRY_CODE
    code = code.strip().upper()
    if COUNTRY_CODE_PATTERN.match(code):
        return code
    return IOC_TO_ISO.get(code, UNKNOWN_COUNTRY_CODE)


def infer_country_code(nationality: Any) -> str:
    """Derive a country code from free-text nationality, else 'XX'."""
    text = clean_string(nationality)
    if text is None:
        return UNKNOWN_COUNTRY_CODE

    if text in COUNTRY_NAME_TO_CODE:
        return COUNTRY_NAME_TO_CODE[text]

    lowered = text.lower()
    for name, code in COUNTRY_NAME_TO_CODE.items():
        if name.lower() == lowered:
            return code

    if lowered == "international":
        return INTERNATIONAL_COUNTRY_CODE

    return IOC_TO_ISO.get(text.upper(), UNKNOWN_COUNTRY_CODE)


def _is_invalid_code(code: Optional[str]) -> bool:
    return code is None or code in INVALID_COUNTRY_CODES or bool(FLAG_ARTIFACTS.search(code))


def resolve_country_code(code: Any, nationality: Any = None) -> str:
    """
    Country code inference cascade.

    An explicit two-uppercase-letter code wins. A known 3-letter IOC code is
    mapped. Sentinels, flag emoji and malformed values fall back to the
    nationality text; the final fallback is 'XX', never an empty string.
    """
    text = clean_string(code) if isinstance(code, str) else None

    if not _is_invalid_code(text):
        if COUNTRY_CODE_PATTERN.match(text):
            return text
        if text.upper() in IOC_TO_ISO:
            return IOC_TO_ISO[text.upper()]

    return infer_country_code(nationality)


def clean_nationality(nationality: Any, country: Any = None) -> str:
    value = clean_string(nationality) or clean_string(country)
    if value is None or value in INVALID_NATIONALITIES or not FLAG_ARTIFACTS.sub("", value).strip():
        return UNKNOWN_NATIONALITY
    return value


def country_name_for_code(code: str) -> Optional[str]:
    return CODE_TO_COUNTRY_NAME.get(code)


# Player names

def strip_name_artifacts(name: str) -> str:
    """Remove flag emoji / replacement characters and collapse whitespace."""
    return WHITESPACE.sub(" ", FLAG_ARTIFACTS.sub("", name)).strip()


def split_last_first(name: str) -> Optional[Tuple[str, str]]:
    """Return (last, first) if `name` uses a 'Last, First' pattern."""
    if name.count(",") != 1 or NAME_SUFFIX.search(name):
        return None
    last, first = (part.strip() for part in name.split(","))
    if not last or not first:
        return None
    return last, first


def clean_player_name(name: Any, player_number: int, normalize: bool = True) -> str:
    """
    Clean a player display name.

    Empty or placeholder ('-') names become 'Player N'; with `normalize`,
    'Last, First' is reordered to 'First Last'.
    """
    placeholder = f"Player {player_number}"
    text = clean_string(name)
    if text is None or text == "-":
        return placeholder

    cleaned = strip_name_artifacts(text)
    if not re.search(r"\w", cleaned):
        return placeholder

    if normalize:
        parts = split_last_first(cleaned)
        if parts:
            last, first = parts
            cleaned = f"{first} {last}"

    return cleaned or placeholder


def surname(full_name: str) -> str:
    """Single surname token: 'Last, First' -> 'Last', otherwise the last word."""
    parts = split_last_first(full_name)
    if parts:
        return parts[0]
    tokens = full_name.split()
    return tokens[-1] if tokens else full_name


# Tournaments and locations

def _match_case(fragment: str, replacement: str) -> str:
    if fragment.isupper():
        return replacement.upper()
    if fragment[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


def _looks_truncated(name: str) -> bool:
    if len(name) < MIN_TOURNAMENT_NAME_LENGTH or name.endswith(TRUNCATION_MARKERS):
        return True
    # Proper tournament names are title-cased; an all-lowercase tail is a fragment
    last_word = name.split()[-1]
    return last_word.isalpha() and last_word.islower()


def clean_tournament_name(name: Any) -> str:
    """Repair known truncations and qualify names that still look cut off."""
    cleaned = clean_string(name)
    if cleaned is None:
        return DEFAULT_TOURNAMENT_NAME

    for pattern, replacement in TOURNAMENT_NAME_FIXES:
        cleaned = pattern.sub(lambda m, r=replacement: _match_case(m.group(0), r), cleaned)

    if _looks_truncated(cleaned) and not TOURNAMENT_KEYWORDS.search(cleaned):
        for marker in TRUNCATION_MARKERS:
            if cleaned.endswith(marker):
                cleaned = cleaned[:-len(marker)].rstrip()
        cleaned = f"{cleaned} {TOURNAMENT_NAME_QUALIFIER}".strip()

    return cleaned


def clean_location(
    location: Any,
    city: Any = None,
    country: Any = None,
    fallback: str = DEFAULT_LOCATION
) -> str:
    """
    Repair a tournament location.

    City and country fields win over the composite location string. A string
    starting with a separator is discarded; a leaked '• <surface>' suffix is
    stripped.
    """
    city = clean_string(city)
    country = clean_string(country)
    fallback = fallback or DEFAULT_LOCATION

    if city and country:
        return f"{city}, {country}"
    if city:
        return city
    if country:
        return country

    cleaned = clean_string(location)
    if cleaned is None or cleaned[0] in ",•":
        return fallback

    cleaned = SURFACE_SUFFIX.sub("", cleaned).strip(LOCATION_SEPARATORS)
    if not cleaned or not re.search(r"\w", cleaned):
        return fallback
    return cleaned


def extract_tournament_location(name: Any) -> Tuple[Optional[str], Optional[str]]:
    """
    Derive (city, country) from a tournament name.

    Handles known events without a place in their name and the feed pattern
    'ATP City, Country Men Singles' / 'WTA City, Country Women Singles'.
    """
    text = clean_string(name)
    if text is None:
        return None, None

    for known, (city, country) in KNOWN_TOURNAMENT_LOCATIONS.items():
        if known.lower() in text.lower():
            return city, country

    pattern = re.match(r"^(?:ATP|WTA)\s+([^,]+),\s+(.+?)\s+(?:Men|Women)\b", text)
    if pattern:
        return pattern.group(1).strip(), pattern.group(2).strip()

    return None, None
