"""
Match Formatter

Derives presentation-ready views from canonical matches: set and match
winners, status labels, location fallbacks, relative time phrases and
live-indicator passthrough. Player numbers are 1-based throughout.
"""

import math
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from tennis_pipeline.core.constants import MatchStatus, DEFAULT_LOCATION
from tennis_pipeline.core.domain_models import GamePair, Match, Player, Score, SetScore, Tournament
from tennis_pipeline.core.normalizers import clean_string, split_last_first, surname
from tennis_pipeline.core.tennis_utils import parse_timestamp


@dataclass(frozen=True)
class StatusView:
    display: str
    color: str
    icon: str
    is_live: bool = False


STATUS_VIEWS: Mapping[MatchStatus, StatusView] = MappingProxyType({
    MatchStatus.LIVE: StatusView("LIVE", "red", "🔴", True),
    MatchStatus.COMPLETED: StatusView("FINISHED", "green", "✅"),
    MatchStatus.SCHEDULED: StatusView("UPCOMING", "blue", "🕒"),
    MatchStatus.CANCELLED: StatusView("CANCELLED", "gray", "❌"),
    MatchStatus.WALKOVER: StatusView("WALKOVER", "yellow", "⚠️"),
    MatchStatus.RETIRED: StatusView("RETIRED", "orange", "🔄"),
})
UNKNOWN_STATUS_VIEW = StatusView("UNKNOWN", "gray", "❓")


@dataclass
class TournamentView:
    name: str
    category: str
    surface: str
    location: str
    round: str


@dataclass
class PlayerView:
    name: str
    display_name: str
    country: str
    country_code: str
    ranking: Optional[int] = None
    is_serving: bool = False
    is_winner: bool = False


@dataclass
class SetView:
    player1: int
    player2: int
    winner: Optional[int] = None
    tiebreak: Optional[Dict[str, int]] = None


@dataclass
class ScoreView:
    sets: List[SetView]
    sets_won: Tuple[int, int]
    match_winner: Optional[int] = None
    current_games: Optional[Dict[str, int]] = None


@dataclass
class TimeView:
    status: str
    start: Optional[str] = None
    duration: Optional[str] = None


@dataclass
class IndicatorsView:
    set_point: bool = False
    match_point: bool = False
    break_point: bool = False
    serving: Optional[int] = None


@dataclass
class DisplayView:
    """Presentation view of one match."""
    match_id: str
    status: StatusView
    tournament: TournamentView
    players: List[PlayerView]
    score: Optional[ScoreView]
    time: TimeView
    indicators: IndicatorsView

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SetChange:
    set_index: int
    player: int
    change: int


@dataclass
class GameChange:
    player: int
    change: int


@dataclass
class ScoreDelta:
    """What advanced between two score snapshots."""
    sets: List[SetChange] = field(default_factory=list)
    games: Optional[GameChange] = None
    new_set: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def set_winner(set_score: SetScore) -> Optional[int]:
    """Player number with strictly more games, None on a tie."""
    return set_score.winner


def sets_won(score: Optional[Score]) -> Tuple[int, int]:
    if score is None:
        return 0, 0
    return score.sets_won()


def match_winner(score: Optional[Score]) -> Optional[int]:
    """
    Player number who has won the match, judged from the sets alone.

    With up to three decided sets the winner needs two; beyond that, three.
    """
    if score is None or not score.sets:
        return None

    player1_sets, player2_sets = score.sets_won()
    needed = 2 if player1_sets + player2_sets <= 3 else 3

    if player1_sets >= needed and player1_sets > player2_sets:
        return 1
    if player2_sets >= needed and player2_sets > player1_sets:
        return 2
    return None


def _rounded_hours(delta_seconds: float) -> int:
    # Halves round up (towards positive infinity)
    return math.floor(delta_seconds / 3600 + 0.5)


def _pair(pair: Optional[GamePair]) -> Optional[Dict[str, int]]:
    if pair is None:
        return None
    return {"player1": pair.player1, "player2": pair.player2}


class MatchFormatter:
    """Builds DisplayView objects; holds no state between calls."""

    def format(self, match: Match, now: Optional[datetime] = None) -> DisplayView:
        """
        Format one match for display.

        Args:
            match: Canonical match
            now: Reference time for relative phrases (current UTC time if None)
        """
        now = now or datetime.now(timezone.utc)
        winner = match_winner(match.score)
        indicators = self.format_indicators(match)

        return DisplayView(
            match_id=match.id,
            status=self.format_status(match.status),
            tournament=self.format_tournament(match),
            players=[
                self.format_player(player, number, indicators.serving, winner)
                for number, player in enumerate(match.players, start=1)
            ],
            score=self.format_score(match.score),
            time=self.format_time(match, now),
            indicators=indicators
        )

    def format_compact(self, match: Match, now: Optional[datetime] = None) -> DisplayView:
        """Like format(), with each display name reduced to a surname."""
        view = self.format(match, now)
        for player in view.players:
            player.display_name = surname(player.name)
        return view

    def format_list(
        self,
        matches: List[Match],
        compact: bool = False,
        group_by_status: bool = False,
        now: Optional[datetime] = None
    ) -> Union[List[DisplayView], Dict[str, List[DisplayView]]]:
        """
        Format several matches, optionally grouped.

        Groups are 'live', 'upcoming', 'completed' and 'other'.
        """
        render = self.format_compact if compact else self.format
        views = [render(match, now) for match in matches]

        if not group_by_status:
            return views

        groups: Dict[str, List[DisplayView]] = {"live": [], "upcoming": [], "completed": [], "other": []}
        for view in views:
            if view.status.is_live:
                groups["live"].append(view)
            elif view.status.display == "UPCOMING":
                groups["upcoming"].append(view)
            elif view.status.display == "FINISHED":
                groups["completed"].append(view)
            else:
                groups["other"].append(view)
        return groups

    # Sections

    @staticmethod
    def format_status(status: Any) -> StatusView:
        return STATUS_VIEWS.get(status, UNKNOWN_STATUS_VIEW)

    def format_tournament(self, match: Match) -> TournamentView:
        tournament = match.tournament
        return TournamentView(
            name=tournament.name,
            category=getattr(tournament.category, "value", str(tournament.category)),
            surface=getattr(tournament.surface, "value", str(tournament.surface)),
            location=self.format_location(tournament),
            round=match.round
        )

    @staticmethod
    def format_location(tournament: Tournament) -> str:
        """City and country, else the location string, else the default."""
        city = clean_string(tournament.city)
        country = clean_string(tournament.country)
        if city and country:
            return f"{city}, {country}"
        return clean_string(tournament.location) or DEFAULT_LOCATION

    @staticmethod
    def format_player(
        player: Player,
        number: int,
        serving: Optional[int],
        winner: Optional[int]
    ) -> PlayerView:
        parts = split_last_first(player.name)
        display_name = f"{parts[1]} {parts[0]}" if parts else player.name

        return PlayerView(
            name=player.name,
            display_name=display_name,
            country=player.nationality,
            country_code=player.country_code,
            ranking=player.ranking,
            is_serving=serving == number,
            is_winner=winner == number
        )

    @staticmethod
    def format_score(score: Optional[Score]) -> Optional[ScoreView]:
        if score is None:
            return None

        return ScoreView(
            sets=[
                SetView(
                    player1=s.player1,
                    player2=s.player2,
                    winner=set_winner(s),
                    tiebreak=_pair(s.tiebreak)
                )
                for s in score.sets
            ],
            sets_won=sets_won(score),
            match_winner=match_winner(score),
            current_games=_pair(score.current_games)
        )

    def format_time(self, match: Match, now: datetime) -> TimeView:
        start = parse_timestamp(match.start_time)
        end = parse_timestamp(match.end_time)

        duration = None
        if start is not None and end is not None and end > start:
            duration = self.format_duration(int((end - start).total_seconds() // 60))

        return TimeView(
            status=self.relative_time(match, now),
            start=start.strftime("%H:%M") if start is not None else None,
            duration=duration
        )

    @staticmethod
    def format_duration(minutes: int) -> str:
        hours, mins = divmod(minutes, 60)
        return f"{hours}h {mins}m" if hours > 0 else f"{mins}m"

    @staticmethod
    def relative_time(match: Match, now: datetime) -> str:
        """
        Hour-bucketed phrase relative to `now`.

        Scheduled matches count down to the start, finished ones count up
        from the end.
        """
        start = parse_timestamp(match.start_time)
        if start is not None and match.status == MatchStatus.SCHEDULED:
            hours = _rounded_hours((start - now).total_seconds())
            if hours < 0:
                return "Should have started"
            if hours == 0:
                return "Starting soon"
            if hours < 24:
                return f"In {hours}h"
            return f"In {math.floor(hours / 24 + 0.5)}d"

        end = parse_timestamp(match.end_time)
        if end is not None:
            hours = _rounded_hours((now - end).total_seconds())
            if hours < 1:
                return "Just finished"
            if hours < 24:
                return f"{hours}h ago"
            return f"{math.floor(hours / 24 + 0.5)}d ago"

        return "In progress" if match.status == MatchStatus.LIVE else "Time unknown"

    @staticmethod
    def format_indicators(match: Match) -> IndicatorsView:
        live = match.live_indicators
        if live is None:
            return IndicatorsView()
        return IndicatorsView(
            set_point=bool(live.set_point),
            match_point=bool(live.match_point),
            break_point=bool(live.break_point),
            serving=live.serving or None
        )

    # Incremental updates

    @staticmethod
    def score_delta(old: Optional[Score], new: Optional[Score]) -> Optional[ScoreDelta]:
        """
        Report which sets and sides advanced between two snapshots.

        Returns:
            Optional[ScoreDelta]: None if either snapshot is missing
        """
        if old is None or new is None:
            return None

        delta = ScoreDelta()
        for index in range(max(len(old.sets), len(new.sets))):
            old_set = old.sets[index] if index < len(old.sets) else None
            new_set = new.sets[index] if index < len(new.sets) else None

            if old_set is None and new_set is not None:
                delta.new_set = True
            elif old_set is not None and new_set is not None:
                if new_set.player1 > old_set.player1:
                    delta.sets.append(SetChange(index, 1, new_set.player1 - old_set.player1))
                if new_set.player2 > old_set.player2:
                    delta.sets.append(SetChange(index, 2, new_set.player2 - old_set.player2))

        old_games, new_games = old.current_games, new.current_games
        if old_games is not None and new_games is not None:
            if new_games.player1 > old_games.player1:
                delta.games = GameChange(1, new_games.player1 - old_games.player1)
            elif new_games.player2 > old_games.player2:
                delta.games = GameChange(2, new_games.player2 - old_games.player2)

        return delta
