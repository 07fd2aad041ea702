"""
Tennis-specific utility functions.

Date conversions between the archive's compact form and the hyphenated
display form, timestamp parsing, numeric coercion of loosely-typed fields,
and parsing of the archive's free-text score strings.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Optional, Tuple

from tennis_pipeline.core.constants import (
    MatchStatus,
    COMPACT_DATE_FORMAT,
    HYPHENATED_DATE_FORMAT,
    RETIRED_MARKERS,
    WALKOVER_MARKERS,
    DEFAULT_MARKERS,
)

logger = logging.getLogger(__name__)

MISSING_MARKERS = frozenset({"", "-", "N/A", "n/a", "NA", "nan", "NaN", "None", "null"})
SET_TOKEN = re.compile(r"^(\d+)-(\d+)(?:\((\d+)(?:-(\d+))?\))?$")
TIEBREAK_TARGET = 7


def get_current_tennis_year() -> int:
    """
    Get the current tennis year.

    Tennis season runs year-round, so we use calendar year.

    Returns:
        int: The current calendar year
    """
    return datetime.now().year


def get_years_to_check(count: int = 2) -> List[int]:
    """
    Get the most recent `count` tennis years, oldest first.

    Returns:
        List[int]: e.g. [previous_year, current_year]
    """
    current_year = get_current_tennis_year()
    return list(range(current_year - count + 1, current_year + 1))


def format_date(date_str: str) -> str:
    """
    Convert a compact archive date to hyphenated form.

    Args:
        date_str: Date as YYYYMMDD

    Returns:
        str: YYYY-MM-DD, or the input unchanged if it is not 8 characters long
    """
    if len(date_str) != 8:
        return date_str
    return f"{date_str[:4]}-{date_str[4:6]}-{date_str[6:]}"


def parse_date(date_str: str) -> str:
    """
    Convert a hyphenated date to the archive's compact form.

    Args:
        date_str: Date as YYYY-MM-DD

    Returns:
        str: YYYYMMDD
    """
    return date_str.replace("-", "")


def is_hyphenated_date(date_str: str) -> bool:
    """Check that a string is a real calendar date in YYYY-MM-DD form."""
    if not isinstance(date_str, str) or not re.fullmatch(r"\d{4}-\d{2}-\d{2}", date_str):
        return False
    try:
        datetime.strptime(date_str, HYPHENATED_DATE_FORMAT)
    except ValueError:
        return False
    return True


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a loosely-formatted timestamp into an aware UTC datetime.

    Accepts datetimes, epoch seconds or milliseconds, ISO-8601 strings
    (with or without a trailing 'Z') and compact archive dates.

    Returns:
        Optional[datetime]: None when the value cannot be interpreted
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        seconds = value / 1000 if abs(value) > 1e12 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        parsed = None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for fmt in (COMPACT_DATE_FORMAT, "%Y-%m-%d %H:%M:%S", "%d/%m/%Y %H:%M", "%d/%m/%Y"):
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
        if parsed is None:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_timestamp(value: Any) -> Optional[str]:
    """
    Render a parseable timestamp as a UTC ISO string.

    Unparseable non-empty strings pass through unchanged, for the validator
    to flag; anything else unparseable becomes None.
    """
    parsed = parse_timestamp(value)
    if parsed is not None:
        return parsed.isoformat()
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def to_optional_int(value: Any) -> Optional[int]:
    """
    Coerce a loosely-typed count into an int.

    Integers, integral floats and numeric strings are accepted; missing-value
    markers ('-', 'N/A', '', NaN) and anything else give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text in MISSING_MARKERS:
            return None
        try:
            return int(float(text))
        except (ValueError, OverflowError):
            return None
    return None


def to_optional_float(value: Any) -> Optional[float]:
    """Coerce a loosely-typed number into a float (None when missing)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        if value.strip() in MISSING_MARKERS:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a person would (2.5 -> 3), unlike the builtin banker's rounding."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


@dataclass
class ParsedSet:
    """One set from an archive score string, from the match winner's side."""
    winner_games: int
    loser_games: int
    tiebreak: Optional[Tuple[int, int]] = None


@dataclass
class ParsedScore:
    """Sets parsed from an archive score string plus the outcome marker."""
    sets: List[ParsedSet] = field(default_factory=list)
    status: MatchStatus = MatchStatus.COMPLETED


def _tiebreak_points(first: str, second: Optional[str], winner_games: int, loser_games: int) -> Tuple[int, int]:
    """Tiebreak points as (winner side, loser side) for the set's games winner."""
    if second is not None:
        return int(first), int(second)

    # Single number is the tiebreak loser's points; winner needs 7 and a 2-point margin.
    # Long match tiebreaks (to 10) are reconstructed with the same rule.
    loser_points = int(first)
    winner_points = max(TIEBREAK_TARGET, loser_points + 2)
    if winner_games >= loser_games:
        return winner_points, loser_points
    return loser_points, winner_points


def parse_score_string(score: Any) -> Optional[ParsedScore]:
    """
    Parse an archive score string such as '7-6(4) 3-6 6-2 RET'.

    Games are reported from the match winner's perspective. Unparseable set
    tokens are skipped; 'RET', 'W/O' and 'DEF' set the outcome status.

    Args:
        score: The raw score field

    Returns:
        Optional[ParsedScore]: None for an empty or absent score string
    """
    if not isinstance(score, str) or score.strip() in MISSING_MARKERS:
        return None

    parsed = ParsedScore()
    for token in score.split():
        marker = token.upper()
        if marker in RETIRED_MARKERS or marker in DEFAULT_MARKERS:
            parsed.status = MatchStatus.RETIRED
            continue
        if marker in WALKOVER_MARKERS:
            parsed.status = MatchStatus.WALKOVER
            continue

        match = SET_TOKEN.match(token)
        if not match:
            logger.debug(f"Skipping unrecognized score token: {token}")
            continue

        winner_games, loser_games = int(match.group(1)), int(match.group(2))
        tiebreak = None
        if match.group(3) is not None:
            tiebreak = _tiebreak_points(match.group(3), match.group(4), winner_games, loser_games)
        parsed.sets.append(ParsedSet(winner_games, loser_games, tiebreak))

    return parsed
