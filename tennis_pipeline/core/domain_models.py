"""
Domain Models - canonical and raw tennis entities

Canonical models are the fully-populated shapes produced by the cleaner.
Raw models mirror the loosely-typed feed records: every field is optional,
and narrowing them into the canonical shape is the cleaner's job.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from tennis_pipeline.core.constants import (
    MatchStatus,
    QualityTier,
    Surface,
    TournamentCategory,
    Handedness,
    DEFAULT_LOCATION,
)


def to_plain(value: Any) -> Any:
    """Convert enums nested in dataclass dicts to their values."""
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    return value


# Canonical models

@dataclass
class Player:
    """A match participant."""
    id: str
    name: str
    nationality: str
    country_code: str
    abbreviation: Optional[str] = None
    ranking: Optional[int] = None
    age: Optional[int] = None
    height: Optional[int] = None
    weight: Optional[int] = None
    handedness: Optional[Handedness] = None
    seed: Optional[int] = None


@dataclass
class Tournament:
    """Tournament context of a match."""
    id: str
    name: str
    category: TournamentCategory
    surface: Surface
    location: str = DEFAULT_LOCATION
    city: Optional[str] = None
    country: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    level: Optional[str] = None


@dataclass
class Tiebreak:
    """Tiebreak points of a set."""
    player1: int
    player2: int


@dataclass
class SetScore:
    """Games won by each player in one set."""
    player1: int
    player2: int
    tiebreak: Optional[Tiebreak] = None

    @property
    def winner(self) -> Optional[int]:
        """Player number (1 or 2) with strictly more games, else None."""
        if self.player1 > self.player2:
            return 1
        if self.player2 > self.player1:
            return 2
        return None


@dataclass
class GamePair:
    """Games in the set currently being played."""
    player1: int
    player2: int


@dataclass
class Score:
    """Chronologically ordered sets plus the in-progress games, if any."""
    sets: List[SetScore] = field(default_factory=list)
    current_games: Optional[GamePair] = None

    def sets_won(self) -> Tuple[int, int]:
        """Count sets won by each player."""
        player1_sets = sum(1 for s in self.sets if s.winner == 1)
        player2_sets = sum(1 for s in self.sets if s.winner == 2)
        return player1_sets, player2_sets


@dataclass
class LiveIndicators:
    """In-play flags passed through from the live feed."""
    serving: Optional[int] = None
    set_point: bool = False
    match_point: bool = False
    break_point: bool = False


@dataclass
class Match:
    """Canonical tennis match."""
    id: str
    tournament: Tournament
    round: str
    status: MatchStatus
    players: List[Player]
    score: Optional[Score] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    court: Optional[str] = None
    live_indicators: LiveIndicators = field(default_factory=LiveIndicators)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain JSON-compatible types."""
        return to_plain(asdict(self))


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a match or a live update."""
    is_valid: bool
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]
    data_quality: QualityTier

    @classmethod
    def from_findings(cls, errors: List[str], warnings: List[str]) -> 'ValidationResult':
        """Build a result, deriving validity and the quality tier."""
        if errors:
            quality = QualityTier.POOR
        elif not warnings:
            quality = QualityTier.EXCELLENT
        elif len(warnings) <= 2:
            quality = QualityTier.GOOD
        else:
            quality = QualityTier.FAIR

        return cls(
            is_valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
            data_quality=quality
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "data_quality": self.data_quality.value,
        }


@dataclass
class LiveUpdate:
    """A live-feed delta for a match already known to the caller."""
    match_id: str
    status: MatchStatus
    timestamp: Optional[str] = None
    score: Optional[Score] = None
    live_indicators: Optional[LiveIndicators] = None
    last_action: Optional[str] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc).isoformat()


# Raw models

def _pick(data: Mapping, *keys: str) -> Any:
    """Return the first value under `keys` that is neither None nor ''."""
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_mapping(obj: Any) -> Optional[Mapping]:
    return obj if isinstance(obj, Mapping) else None


@dataclass
class RawGamePair:
    """Unparsed two-sided count (games or tiebreak points)."""
    player1: Any = None
    player2: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional['RawGamePair']:
        data = _as_mapping(data)
        if data is None:
            return None
        return cls(player1=data.get("player1"), player2=data.get("player2"))


@dataclass
class RawSet:
    """Unparsed set score."""
    player1: Any = None
    player2: Any = None
    tiebreak: Optional[RawGamePair] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional['RawSet']:
        data = _as_mapping(data)
        if data is None:
            return None
        return cls(
            player1=data.get("player1"),
            player2=data.get("player2"),
            tiebreak=RawGamePair.from_dict(data.get("tiebreak"))
        )


@dataclass
class RawScore:
    """Unparsed score block."""
    sets: Optional[List[Optional[RawSet]]] = None
    games: Optional[RawGamePair] = None
    current_set: Optional[RawGamePair] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional['RawScore']:
        data = _as_mapping(data)
        if data is None:
            return None
        raw_sets = data.get("sets")
        sets = [RawSet.from_dict(s) for s in raw_sets] if isinstance(raw_sets, (list, tuple)) else None
        return cls(
            sets=sets,
            games=RawGamePair.from_dict(data.get("games")),
            current_set=RawGamePair.from_dict(_pick(data, "currentSet", "current_set", "current_games"))
        )


@dataclass
class RawPlayer:
    """Unparsed player record."""
    id: Any = None
    name: Any = None
    nationality: Any = None
    country: Any = None
    country_code: Any = None
    abbreviation: Any = None
    ranking: Any = None
    age: Any = None
    height: Any = None
    weight: Any = None
    handedness: Any = None
    seed: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional['RawPlayer']:
        data = _as_mapping(data)
        if data is None:
            return None
        return cls(
            id=data.get("id"),
            name=data.get("name"),
            nationality=data.get("nationality"),
            country=data.get("country"),
            country_code=_pick(data, "countryCode", "country_code"),
            abbreviation=data.get("abbreviation"),
            ranking=data.get("ranking"),
            age=data.get("age"),
            height=data.get("height"),
            weight=data.get("weight"),
            handedness=data.get("handedness"),
            seed=_pick(data, "seedNumber", "seed_number", "seed")
        )


@dataclass
class RawTournament:
    """Unparsed tournament record."""
    id: Any = None
    name: Any = None
    category: Any = None
    surface: Any = None
    location: Any = None
    city: Any = None
    country: Any = None
    start_date: Any = None
    end_date: Any = None
    level: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional['RawTournament']:
        data = _as_mapping(data)
        if data is None:
            return None
        return cls(
            id=data.get("id"),
            name=data.get("name"),
            category=data.get("category"),
            surface=data.get("surface"),
            location=data.get("location"),
            city=data.get("city"),
            country=data.get("country"),
            start_date=_pick(data, "startDate", "start_date"),
            end_date=_pick(data, "endDate", "end_date"),
            level=data.get("level")
        )


@dataclass
class RawMatch:
    """
    Unparsed match record from either source.

    Every field may be missing or malformed. `players` keeps the source
    order; entries that are not mappings become None.
    """
    id: Any = None
    tournament: Optional[RawTournament] = None
    round: Any = None
    status: Any = None
    players: Optional[List[Optional[RawPlayer]]] = None
    score: Optional[RawScore] = None
    start_time: Any = None
    end_time: Any = None
    court: Any = None
    live_indicators: Optional[Mapping] = None

    @classmethod
    def from_dict(cls, data: Any) -> 'RawMatch':
        """Build a raw match from any object; non-mappings give an empty record."""
        if isinstance(data, RawMatch):
            return data
        data = _as_mapping(data)
        if data is None:
            return cls()

        raw_players = data.get("players")
        players = (
            [RawPlayer.from_dict(p) for p in raw_players]
            if isinstance(raw_players, (list, tuple)) else None
        )

        return cls(
            id=data.get("id"),
            tournament=RawTournament.from_dict(data.get("tournament")),
            round=data.get("round"),
            status=data.get("status"),
            players=players,
            score=RawScore.from_dict(data.get("score")),
            start_time=_pick(data, "startTime", "start_time"),
            end_time=_pick(data, "endTime", "end_time"),
            court=data.get("court"),
            live_indicators=_as_mapping(_pick(data, "liveIndicators", "live_indicators"))
        )
