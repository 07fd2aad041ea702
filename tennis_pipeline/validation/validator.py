"""
Match Validator

Checks canonical matches and live-feed deltas against tennis scoring rules.
Rule violations are reported in a ValidationResult, never raised. Results
for identical content are served from a TTL cache keyed by a fingerprint of
the match id and the serialized record.
"""

import hashlib
import json
import logging
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from tennis_pipeline.core.constants import (
    MatchStatus,
    Surface,
    TournamentCategory,
    DEFAULT_VALIDATION_CACHE_TTL_MINUTES,
    MAX_SETS,
)
from tennis_pipeline.core.domain_models import (
    LiveUpdate,
    Match,
    Score,
    ValidationResult,
)
from tennis_pipeline.core.interfaces import ICacheStorage
from tennis_pipeline.core.normalizers import COUNTRY_CODE_PATTERN
from tennis_pipeline.core.tennis_utils import parse_timestamp
from tennis_pipeline.infrastructure.cache import InMemoryCacheStorage

logger = logging.getLogger(__name__)

# Allowed status changes between two live snapshots; other states are terminal
STATUS_TRANSITIONS: Mapping[MatchStatus, FrozenSet[MatchStatus]] = MappingProxyType({
    MatchStatus.SCHEDULED: frozenset({MatchStatus.LIVE, MatchStatus.CANCELLED}),
    MatchStatus.LIVE: frozenset({MatchStatus.COMPLETED, MatchStatus.RETIRED, MatchStatus.CANCELLED}),
    MatchStatus.COMPLETED: frozenset(),
    MatchStatus.CANCELLED: frozenset(),
    MatchStatus.RETIRED: frozenset(),
    MatchStatus.WALKOVER: frozenset(),
})

KNOWN_CATEGORIES = frozenset(c for c in TournamentCategory if c != TournamentCategory.UNKNOWN)
TIEBREAK_TARGET = 7
MAX_CURRENT_GAMES = 7


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _label(value: Any) -> str:
    return value.value if isinstance(value, (MatchStatus, Surface, TournamentCategory)) else str(value)


def _has_sets(score: Optional[Score]) -> bool:
    return score is not None and bool(score.sets)


def match_fingerprint(match: Match) -> str:
    """Content fingerprint: match id plus a digest of the serialized record."""
    payload = json.dumps(match.to_dict(), sort_keys=True, default=str)
    digest = hashlib.sha1(payload.encode("utf-8")).hexdigest()
    return f"{match.id}:{digest}"


class MatchValidator:
    """Rule engine for canonical matches."""

    def __init__(
        self,
        cache: Optional[ICacheStorage] = None,
        ttl_minutes: float = DEFAULT_VALIDATION_CACHE_TTL_MINUTES
    ):
        self.ttl_minutes = ttl_minutes
        self.cache = cache if cache is not None else InMemoryCacheStorage(ttl_minutes)

    def validate(self, match: Match) -> ValidationResult:
        """
        Validate a canonical match.

        Args:
            match: Canonical match

        Returns:
            ValidationResult: Cached result when the same content was validated
                within the TTL
        """
        key = f"validation:{match_fingerprint(match)}"
        return self.cache.get_or_set(key, lambda: self._perform_validation(match), self.ttl_minutes)

    def _perform_validation(self, match: Match) -> ValidationResult:
        errors: List[str] = []
        warnings: List[str] = []

        self._validate_structure(match, errors, warnings)
        self._validate_tournament(match, errors, warnings)
        self._validate_players(match, errors, warnings)
        if match.score is not None:
            self._validate_score(match.score, match.status, errors, warnings)
        self._validate_status_consistency(match, errors, warnings)

        result = ValidationResult.from_findings(errors, warnings)
        if not result.is_valid:
            logger.debug(f"Match {match.id} failed validation: {errors}")
        return result

    # Match rules

    def _validate_structure(self, match: Match, errors: List[str], warnings: List[str]) -> None:
        if not match.id:
            errors.append("Missing match ID")
        if not match.status:
            errors.append("Missing match status")
        elif not isinstance(match.status, MatchStatus):
            warnings.append(f"Unknown match status: {match.status}")

    def _validate_tournament(self, match: Match, errors: List[str], warnings: List[str]) -> None:
        tournament = match.tournament
        if tournament is None:
            errors.append("Missing tournament information")
            return

        if not tournament.name:
            errors.append("Missing tournament name")
        if not tournament.category:
            warnings.append("Missing tournament category")
        elif tournament.category not in KNOWN_CATEGORIES:
            warnings.append(f"Unknown tournament category: {_label(tournament.category)}")
        if not tournament.surface:
            warnings.append("Missing surface information")
        elif not isinstance(tournament.surface, Surface):
            warnings.append(f"Unknown surface type: {tournament.surface}")
        if not tournament.location:
            warnings.append("Missing tournament location")

    def _validate_players(self, match: Match, errors: List[str], warnings: List[str]) -> None:
        players = match.players
        if not isinstance(players, list):
            errors.append("Invalid players array")
            return
        if len(players) != 2:
            errors.append(f"Expected 2 players, got {len(players)}")
            return

        for number, player in enumerate(players, start=1):
            if not player.name:
                errors.append(f"Player {number} missing name")
            if not player.nationality:
                warnings.append(f"Player {number} missing nationality")
            if not player.country_code:
                warnings.append(f"Player {number} missing country code")
            elif not COUNTRY_CODE_PATTERN.match(player.country_code):
                warnings.append(f"Player {number} has invalid country code format: {player.country_code}")
            if player.ranking is not None and (not _is_count(player.ranking) or player.ranking < 1):
                warnings.append(f"Player {number} has invalid ranking: {player.ranking}")

    def _validate_score(self, score: Score, status: MatchStatus, errors: List[str], warnings: List[str]) -> None:
        for number, set_score in enumerate(score.sets, start=1):
            self._validate_set(set_score, number, errors, warnings)

        if len(score.sets) > MAX_SETS:
            errors.append(f"Too many sets: {len(score.sets)} (maximum {MAX_SETS})")

        if status == MatchStatus.LIVE and score.current_games is not None:
            self._validate_current_games(score, errors, warnings)

        if status == MatchStatus.COMPLETED and score.sets:
            self._validate_completed_match(score, warnings)

    def _validate_set(self, set_score, number: int, errors: List[str], warnings: List[str]) -> None:
        """Apply the game-count rules of a standard set."""
        player1, player2 = set_score.player1, set_score.player2
        if not _is_count(player1) or not _is_count(player2):
            errors.append(f"Set {number} has non-numeric scores")
            return
        if player1 < 0 or player2 < 0:
            errors.append(f"Set {number} has negative scores")
            return

        high, low = max(player1, player2), min(player1, player2)
        result = f"{player1}-{player2}"

        if high < 6:
            if high - low > 2:
                warnings.append(f"Set {number} has unusual score gap: {result}")
        elif high == 6:
            if low > 4:
                warnings.append(f"Set {number} should go to tiebreak or continue: {result}")
        elif high == 7:
            if low < 5:
                errors.append(f"Set {number} invalid 7-game set: {result}")
            elif low == 6 and set_score.tiebreak is None:
                warnings.append(f"Set {number} 7-6 result missing tiebreak score")
        elif high - low != 2:
            errors.append(f"Set {number} invalid long set: {result}")

        if set_score.tiebreak is not None:
            self._validate_tiebreak(set_score.tiebreak, number, errors, warnings)

    def _validate_tiebreak(self, tiebreak, number: int, errors: List[str], warnings: List[str]) -> None:
        player1, player2 = tiebreak.player1, tiebreak.player2
        if not _is_count(player1) or not _is_count(player2):
            errors.append(f"Set {number} tiebreak has non-numeric scores")
            return

        high, low = max(player1, player2), min(player1, player2)
        if high < TIEBREAK_TARGET:
            warnings.append(f"Set {number} tiebreak incomplete: {player1}-{player2}")
        elif high - low < 2:
            warnings.append(f"Set {number} tiebreak should continue: {player1}-{player2}")

    def _validate_current_games(self, score: Score, errors: List[str], warnings: List[str]) -> None:
        games = score.current_games
        if not _is_count(games.player1) or not _is_count(games.player2):
            errors.append("Current games have non-numeric scores")
            return
        if games.player1 < 0 or games.player2 < 0:
            errors.append("Current games have negative scores")
            return
        if games.player1 > MAX_CURRENT_GAMES or games.player2 > MAX_CURRENT_GAMES:
            warnings.append(f"Unusual current game score: {games.player1}-{games.player2}")

    def _validate_completed_match(self, score: Score, warnings: List[str]) -> None:
        player1_sets, player2_sets = score.sets_won()
        total_sets = player1_sets + player2_sets
        winner_sets = max(player1_sets, player2_sets)

        if winner_sets < 2:
            warnings.append("Completed match has fewer than 2 sets won by winner")
        if total_sets < 2:
            warnings.append("Completed match has very few completed sets")

        best_of_three = winner_sets == 2 and total_sets <= 3
        best_of_five = winner_sets == 3 and total_sets <= 5
        if not (best_of_three or best_of_five):
            warnings.append(f"Unusual set count for completed match: {player1_sets}-{player2_sets}")

    def _validate_status_consistency(self, match: Match, errors: List[str], warnings: List[str]) -> None:
        start = parse_timestamp(match.start_time) if match.start_time else None
        end = parse_timestamp(match.end_time) if match.end_time else None

        if match.start_time and start is None:
            warnings.append("Invalid start time format")
        if match.end_time and end is None:
            warnings.append("Invalid end time format")
        if start is not None and end is not None and end <= start:
            errors.append("End time is before or equal to start time")

        if match.status == MatchStatus.SCHEDULED and _has_sets(match.score):
            warnings.append("Scheduled match has score data")
        if match.status == MatchStatus.COMPLETED and not _has_sets(match.score):
            warnings.append("Completed match missing score data")
        if match.status == MatchStatus.LIVE and not _has_sets(match.score):
            warnings.append("Live match missing score data")

    # Live updates

    def validate_live_update(self, update: LiveUpdate, previous: Match) -> ValidationResult:
        """
        Validate a live delta against the previous snapshot of the match.

        Args:
            update: Incoming delta
            previous: Last accepted snapshot

        Returns:
            ValidationResult: Not cached, since it depends on two records
        """
        errors: List[str] = []
        warnings: List[str] = []

        if parse_timestamp(update.timestamp) is None:
            errors.append("Invalid update timestamp")

        if previous.score is not None and update.score is not None:
            self._validate_score_progression(previous.score, update.score, errors, warnings)

        self._validate_status_transition(previous.status, update.status, errors)

        return ValidationResult.from_findings(errors, warnings)

    def _validate_score_progression(self, old: Score, new: Score, errors: List[str], warnings: List[str]) -> None:
        if len(new.sets) < len(old.sets):
            errors.append("Set count decreased in score update")
            return

        for index, old_set in enumerate(old.sets):
            new_set = new.sets[index] if index < len(new.sets) else None
            if new_set is None:
                errors.append(f"Set {index + 1} disappeared in update")
                continue
            if new_set.player1 < old_set.player1 or new_set.player2 < old_set.player2:
                errors.append(f"Set {index + 1} score decreased in update")

        old_games, new_games = old.current_games, new.current_games
        if old_games is not None and new_games is not None:
            decreased = new_games.player1 < old_games.player1 or new_games.player2 < old_games.player2
            # Game counts reset when a new set starts
            if decreased and len(new.sets) <= len(old.sets):
                warnings.append("Games score decreased without new set")

    def _validate_status_transition(self, old: MatchStatus, new: MatchStatus, errors: List[str]) -> None:
        if old == new:
            return
        allowed = STATUS_TRANSITIONS.get(old, frozenset())
        if new not in allowed:
            errors.append(f"Invalid status transition: {_label(old)} -> {_label(new)}")

    # Cache management

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Validation cache cleared")

    def cache_stats(self) -> Dict[str, Any]:
        return {
            "cache_size": len(self.cache.keys()),
            "ttl_minutes": self.ttl_minutes,
        }
