"""
Constants and Enums for the Tennis Data Pipeline

Centralizes the closed vocabularies of the canonical match shape and the
default configuration values used by the loaders, cleaner and validator.
"""

from enum import Enum
from typing import Final


class MatchStatus(str, Enum):
    """Canonical match status."""
    SCHEDULED = "scheduled"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    WALKOVER = "walkover"
    RETIRED = "retired"


class TournamentCategory(str, Enum):
    """Tournament category (circuit)."""
    ATP = "ATP"
    WTA = "WTA"
    CHALLENGER = "Challenger"
    ITF = "ITF"
    EXHIBITION = "Exhibition"
    UNKNOWN = "Unknown"


class Surface(str, Enum):
    """Tennis court surface types."""
    HARD = "Hard"
    CLAY = "Clay"
    GRASS = "Grass"
    INDOOR = "Indoor"
    CARPET = "Carpet"  # Rarely used now, but historical data may include it


class QualityTier(str, Enum):
    """Summary of a validation result."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class Handedness(str, Enum):
    """Playing hand."""
    RIGHT = "right"
    LEFT = "left"


class Tour(str, Enum):
    """Tennis tour types."""
    ATP = "atp"
    WTA = "wta"


# Country code sentinels
UNKNOWN_COUNTRY_CODE: Final[str] = "XX"
INTERNATIONAL_COUNTRY_CODE: Final[str] = "UN"
UNKNOWN_NATIONALITY: Final[str] = "Unknown"

# Cleaner defaults
DEFAULT_LOCATION: Final[str] = "Unknown Location"
DEFAULT_TOURNAMENT_ID: Final[str] = "unknown-tournament"
DEFAULT_TOURNAMENT_NAME: Final[str] = "Unknown Tournament"
DEFAULT_ROUND: Final[str] = "Round 1"
TOURNAMENT_NAME_QUALIFIER: Final[str] = "Tournament"
MIN_TOURNAMENT_NAME_LENGTH: Final[int] = 5
MAX_SETS: Final[int] = 5

# Cache configuration
DEFAULT_VALIDATION_CACHE_TTL_MINUTES: Final[float] = 5.0
DEFAULT_DATA_CACHE_TTL_MINUTES: Final[float] = 60.0
DEFAULT_ANALYTICS_CACHE_TTL_MINUTES: Final[float] = 60.0

# File paths
DEFAULT_DATA_DIR: Final[str] = "data"
DEFAULT_TOUR: Final[str] = Tour.ATP.value

# Date formats
COMPACT_DATE_FORMAT: Final[str] = "%Y%m%d"
HYPHENATED_DATE_FORMAT: Final[str] = "%Y-%m-%d"

# Round label denoting a tournament final in the historical archive
FINAL_ROUND: Final[str] = "F"

# Number of seasons considered for a player profile / head-to-head lookup
PROFILE_HISTORY_YEARS: Final[int] = 5

# Historical archive score markers
RETIRED_MARKERS: Final[tuple] = ("RET", "RET.", "ABD", "ABN")
WALKOVER_MARKERS: Final[tuple] = ("W/O", "WO", "WALKOVER")
DEFAULT_MARKERS: Final[tuple] = ("DEF", "DEF.", "DEFAULT")
