"""
Match Cleaner

Narrows loosely-typed raw match records from the live feed or the archive
into canonical Match objects. Cleaning is total: every input, including
non-mappings, yields a structurally valid Match with closed-world defaults.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from tennis_pipeline.core.constants import (
    MatchStatus,
    TournamentCategory,
    UNKNOWN_COUNTRY_CODE,
    UNKNOWN_NATIONALITY,
    DEFAULT_LOCATION,
    DEFAULT_TOURNAMENT_ID,
    DEFAULT_TOURNAMENT_NAME,
    DEFAULT_ROUND,
    MAX_SETS,
)
from tennis_pipeline.core.domain_models import (
    GamePair,
    LiveIndicators,
    LiveUpdate,
    Match,
    Player,
    RawGamePair,
    RawMatch,
    RawPlayer,
    RawScore,
    RawSet,
    RawTournament,
    Score,
    SetScore,
    Tiebreak,
    Tournament,
)
from tennis_pipeline.core.normalizers import (
    FLAG_ARTIFACTS,
    INVALID_NATIONALITIES,
    clean_location,
    clean_nationality,
    clean_player_name,
    clean_string,
    clean_tournament_name,
    country_name_for_code,
    extract_tournament_location,
    infer_tournament_level,
    normalize_category,
    normalize_handedness,
    normalize_status,
    normalize_surface,
    resolve_country_code,
)
from tennis_pipeline.core.tennis_utils import normalize_timestamp, to_optional_int

logger = logging.getLogger(__name__)

RawInput = Union[RawMatch, Mapping[str, Any], Any]

TRUE_STRINGS = frozenset({"true", "1", "yes", "y"})


@dataclass
class CleaningOptions:
    """
    Switches for optional cleaning steps.

    Attributes:
        fill_missing_data: Infer derivable fields (tournament level, city and
            country of known events, nationality from country code)
        validate_scores: Treat negative game counts as missing values
        normalize_names: Reorder 'Last, First' player names
        default_location: Location used when none can be recovered
    """
    fill_missing_data: bool = True
    validate_scores: bool = True
    normalize_names: bool = True
    default_location: str = DEFAULT_LOCATION


@dataclass
class DataQualityReport:
    """Counts of raw records with each class of data problem."""
    total_matches: int
    missing_data: Dict[str, int] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_matches": self.total_matches,
            "missing_data": dict(self.missing_data),
            "recommendations": list(self.recommendations),
        }


def generate_match_id() -> str:
    return f"match-{uuid.uuid4().hex[:12]}"


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return value is True or value == 1


class MatchCleaner:
    """
    Converts raw match records into canonical matches.

    Instances hold only default options; every call produces fresh objects.
    """

    def __init__(self, options: Optional[CleaningOptions] = None):
        self.options = options or CleaningOptions()

    def clean(self, raw: RawInput, options: Optional[CleaningOptions] = None) -> Match:
        """
        Clean one raw match record.

        Args:
            raw: A RawMatch, a mapping in the raw match shape, or anything else
            options: Per-call options (instance defaults if None)

        Returns:
            Match: Fully populated canonical match
        """
        opts = options or self.options
        record = RawMatch.from_dict(raw)

        match = Match(
            id=self._clean_id(record.id) or generate_match_id(),
            tournament=self.clean_tournament(record.tournament, opts),
            round=clean_string(record.round) or DEFAULT_ROUND,
            status=normalize_status(record.status),
            players=self.clean_players(record.players, opts),
            score=self.clean_score(record.score, opts),
            start_time=normalize_timestamp(record.start_time),
            end_time=normalize_timestamp(record.end_time),
            court=clean_string(record.court),
            live_indicators=self.clean_live_indicators(record.live_indicators)
        )

        logger.debug(f"Cleaned match {match.id} ({match.status.value})")
        return match

    def clean_many(self, raws: List[RawInput], options: Optional[CleaningOptions] = None) -> List[Match]:
        return [self.clean(raw, options) for raw in raws]

    def clean_live_update(self, raw: Any, options: Optional[CleaningOptions] = None) -> LiveUpdate:
        """Clean a live-feed delta; a missing timestamp becomes 'now'."""
        opts = options or self.options
        data = raw if isinstance(raw, Mapping) else {}

        live_raw = data.get("liveIndicators", data.get("live_indicators"))

        return LiveUpdate(
            match_id=self._clean_id(data.get("matchId", data.get("match_id"))) or "",
            status=normalize_status(data.get("status")),
            timestamp=normalize_timestamp(data.get("timestamp")),
            score=self.clean_score(RawScore.from_dict(data.get("score")), opts),
            live_indicators=self.clean_live_indicators(live_raw) if isinstance(live_raw, Mapping) else None,
            last_action=clean_string(data.get("lastAction", data.get("last_action")))
        )

    # Tournament

    def clean_tournament(self, raw: Optional[RawTournament], opts: CleaningOptions) -> Tournament:
        """Clean tournament metadata, defaulting everything that is missing."""
        if raw is None:
            return Tournament(
                id=DEFAULT_TOURNAMENT_ID,
                name=DEFAULT_TOURNAMENT_NAME,
                category=TournamentCategory.UNKNOWN,
                surface=normalize_surface(None),
                location=opts.default_location or DEFAULT_LOCATION
            )

        name = clean_tournament_name(raw.name)
        category = normalize_category(raw.category)
        city = clean_string(raw.city)
        country = clean_string(raw.country)

        if opts.fill_missing_data and not (city or country or clean_string(raw.location)):
            city, country = extract_tournament_location(name)

        level = clean_string(raw.level)
        if level is None and opts.fill_missing_data:
            level = infer_tournament_level(category, name)

        return Tournament(
            id=self._clean_id(raw.id) or DEFAULT_TOURNAMENT_ID,
            name=name,
            category=category,
            surface=normalize_surface(raw.surface),
            location=clean_location(raw.location, city, country, opts.default_location),
            city=city,
            country=country,
            start_date=normalize_timestamp(raw.start_date),
            end_date=normalize_timestamp(raw.end_date),
            level=level
        )

    # Players

    def clean_players(self, raw_players: Optional[List[Optional[RawPlayer]]], opts: CleaningOptions) -> List[Player]:
        """Clean the players list, always returning exactly two players."""
        raw_players = list(raw_players or [])[:2]
        if len(raw_players) > 0 and len(raw_players) < 2:
            logger.debug(f"Padding players list of length {len(raw_players)} with a placeholder")
        raw_players.extend([None] * (2 - len(raw_players)))

        return [
            self.clean_player(raw_player, number, opts)
            for number, raw_player in enumerate(raw_players, start=1)
        ]

    def clean_player(self, raw: Optional[RawPlayer], number: int, opts: CleaningOptions) -> Player:
        """Clean one player; `number` (1 or 2) drives placeholder values."""
        if raw is None:
            return Player(
                id=f"player-{number}",
                name=f"Player {number}",
                nationality=UNKNOWN_NATIONALITY,
                country_code=UNKNOWN_COUNTRY_CODE
            )

        nationality = clean_nationality(raw.nationality, raw.country)
        country_code = resolve_country_code(
            raw.country_code,
            nationality if nationality != UNKNOWN_NATIONALITY else raw.country
        )

        if opts.fill_missing_data and nationality == UNKNOWN_NATIONALITY:
            nationality = country_name_for_code(country_code) or UNKNOWN_NATIONALITY

        return Player(
            id=self._clean_id(raw.id) or f"player-{number}",
            name=clean_player_name(raw.name, number, opts.normalize_names),
            nationality=nationality,
            country_code=country_code,
            abbreviation=clean_string(raw.abbreviation),
            ranking=to_optional_int(raw.ranking),
            age=to_optional_int(raw.age),
            height=to_optional_int(raw.height),
            weight=to_optional_int(raw.weight),
            handedness=normalize_handedness(raw.handedness),
            seed=to_optional_int(raw.seed)
        )

    # Score

    def _parse_count(self, value: Any, opts: CleaningOptions) -> Optional[int]:
        count = to_optional_int(value)
        if count is not None and count < 0 and opts.validate_scores:
            return None
        return count

    def clean_set(self, raw: Optional[RawSet], opts: CleaningOptions) -> Optional[SetScore]:
        """Clean one set; None if neither side has a usable game count."""
        if raw is None:
            return None

        player1 = self._parse_count(raw.player1, opts)
        player2 = self._parse_count(raw.player2, opts)
        if player1 is None and player2 is None:
            return None

        return SetScore(
            player1=player1 if player1 is not None else 0,
            player2=player2 if player2 is not None else 0,
            tiebreak=self._clean_pair(raw.tiebreak, opts, Tiebreak)
        )

    def _clean_pair(self, raw: Optional[RawGamePair], opts: CleaningOptions, cls):
        if raw is None:
            return None
        player1 = self._parse_count(raw.player1, opts)
        player2 = self._parse_count(raw.player2, opts)
        if player1 is None and player2 is None:
            return None
        return cls(
            player1=player1 if player1 is not None else 0,
            player2=player2 if player2 is not None else 0
        )

    def clean_score(self, raw: Optional[RawScore], opts: CleaningOptions) -> Optional[Score]:
        """
        Clean a score block.

        Unrecoverable sets are dropped, the set count is capped, and a score
        with no sets and no current games collapses to None.
        """
        if raw is None:
            return None

        sets = [s for s in (self.clean_set(raw_set, opts) for raw_set in raw.sets or []) if s is not None]
        if len(sets) > MAX_SETS:
            logger.info(f"Truncating score with {len(sets)} sets to the first {MAX_SETS}")
            sets = sets[:MAX_SETS]

        current_games = self._clean_pair(raw.current_set or raw.games, opts, GamePair)

        if not sets and current_games is None:
            return None
        return Score(sets=sets, current_games=current_games)

    # Misc

    def clean_live_indicators(self, raw: Optional[Mapping]) -> LiveIndicators:
        if not raw:
            return LiveIndicators()

        serving = to_optional_int(raw.get("serving"))
        return LiveIndicators(
            serving=serving if serving in (1, 2) else None,
            set_point=_flag(raw.get("setPoint", raw.get("set_point"))),
            match_point=_flag(raw.get("matchPoint", raw.get("match_point"))),
            break_point=_flag(raw.get("breakPoint", raw.get("break_point")))
        )

    @staticmethod
    def _clean_id(value: Any) -> Optional[str]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, float) and not math.isfinite(value):
            return None
        if isinstance(value, (int, float)):
            return str(value)
        return clean_string(value)

    # Data quality

    def analyze_data_quality(self, raw_matches: List[Any]) -> DataQualityReport:
        """
        Count raw records with location, score, player-name and country problems.

        Args:
            raw_matches: Raw records, before cleaning

        Returns:
            DataQualityReport: Issue counts and remediation hints
        """
        issues = {
            "location": 0,
            "scores": 0,
            "player_names": 0,
            "country_data": 0,
        }

        for raw in raw_matches:
            record = RawMatch.from_dict(raw)
            tournament = record.tournament
            players = [p for p in record.players or [] if p is not None]

            location = clean_string(tournament.location) if tournament else None
            if location is None or location[0] in ",•" or ", •" in location:
                issues["location"] += 1

            sets = record.score.sets if record.score and record.score.sets else []
            if any(
                s is None or to_optional_int(s.player1) is None or to_optional_int(s.player2) is None
                for s in sets
            ):
                issues["scores"] += 1

            if len(players) < 2 or any(
                clean_string(p.name) in (None, "-") or FLAG_ARTIFACTS.search(str(p.name))
                for p in players
            ):
                issues["player_names"] += 1

            if any(
                resolve_country_code(p.country_code) == UNKNOWN_COUNTRY_CODE
                or clean_string(p.nationality) in INVALID_NATIONALITIES
                or clean_string(p.nationality) == UNKNOWN_NATIONALITY
                for p in players
            ):
                issues["country_data"] += 1

        recommendations = []
        if issues["location"]:
            recommendations.append("Improve tournament location data parsing")
        if issues["scores"]:
            recommendations.append("Handle missing or invalid scores gracefully")
        if issues["player_names"]:
            recommendations.append("Add fallbacks for missing player names")
        if issues["country_data"]:
            recommendations.append("Enhance country code inference from nationality")

        return DataQualityReport(
            total_matches=len(raw_matches),
            missing_data=issues,
            recommendations=recommendations
        )
