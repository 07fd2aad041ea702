"""
Player Service

Rankings, player profiles, head-to-head records and the competition list,
built from the historical archive.
"""

import logging
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Any, Dict, List, Optional

from tennis_pipeline.analytics.performance import PerformanceAnalyzer, PlayerPerformance
from tennis_pipeline.core.constants import (
    UNKNOWN_COUNTRY_CODE,
    UNKNOWN_NATIONALITY,
    PROFILE_HISTORY_YEARS,
)
from tennis_pipeline.core.domain_models import Player, to_plain
from tennis_pipeline.core.exceptions import CompetitionNotFoundError, PlayerNotFoundError
from tennis_pipeline.core.normalizers import (
    LEVEL_PRESTIGE,
    normalize_handedness,
    resolve_country_code,
    tournament_level_name,
)
from tennis_pipeline.core.tennis_utils import format_date, get_years_to_check, parse_date
from tennis_pipeline.data.historical_loader import HistoricalDataLoader, PlayerRecord

logger = logging.getLogger(__name__)

DEFAULT_LEVEL_PRESTIGE = max(LEVEL_PRESTIGE.values()) + 1


@dataclass
class RankingEntry:
    rank: int
    player: Player
    points: Optional[int] = None


@dataclass
class RankingsTable:
    """One ranking snapshot."""
    tour: str
    ranking_date: Optional[str]
    rankings: List[RankingEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(asdict(self))


@dataclass
class PlayerProfile:
    """Registry data of a player plus analytics over recent seasons."""
    player: Player
    date_of_birth: Optional[str]
    current_ranking: Optional[int]
    current_points: Optional[int]
    highest_ranking: Optional[int]
    highest_ranking_date: Optional[str]
    performance: PlayerPerformance

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(asdict(self))


@dataclass
class Meeting:
    """One past match between two players."""
    match_id: str
    date: Optional[str]
    tournament: str
    surface: str
    round: str
    winner_id: str
    score: str


@dataclass
class HeadToHead:
    player1: Player
    player2: Player
    player1_wins: int = 0
    player2_wins: int = 0
    meetings: List[Meeting] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(asdict(self))


@dataclass
class Competition:
    id: str
    name: str
    level: str
    level_name: str
    surface: str
    date: Optional[str]


def calculate_age(dob: str, today: Optional[date] = None) -> Optional[int]:
    """Age in whole years from a YYYYMMDD birth date."""
    if not dob or len(dob) != 8 or not dob.isdigit():
        return None
    today = today or date.today()
    try:
        born = date(int(dob[:4]), int(dob[4:6]), int(dob[6:]))
    except ValueError:
        return None
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


class PlayerService:
    """Service for player-centric queries over the archive."""

    def __init__(self, loader: HistoricalDataLoader, analyzer: PerformanceAnalyzer):
        self.loader = loader
        self.analyzer = analyzer

    def to_player(self, record: PlayerRecord, today: Optional[date] = None) -> Player:
        """Canonical player for a registry entry."""
        return Player(
            id=record.player_id,
            name=record.full_name or f"Player {record.player_id}",
            nationality=record.ioc or UNKNOWN_NATIONALITY,
            country_code=resolve_country_code(record.ioc, record.ioc),
            abbreviation=record.abbreviation or None,
            age=calculate_age(record.dob, today),
            height=record.height,
            handedness=normalize_handedness(record.hand)
        )

    def _player_or_placeholder(self, player_id: str) -> Player:
        record = self.loader.find_player(player_id)
        if record is not None:
            return self.to_player(record)
        return Player(
            id=player_id,
            name=f"Player {player_id}",
            nationality=UNKNOWN_NATIONALITY,
            country_code=UNKNOWN_COUNTRY_CODE
        )

    def _require_player(self, player_id: str) -> PlayerRecord:
        record = self.loader.find_player(player_id)
        if record is None:
            raise PlayerNotFoundError(player_id)
        return record

    def rankings(self, limit: Optional[int] = None, ranking_date: Optional[str] = None) -> RankingsTable:
        """
        Ranking snapshot, latest by default.

        Args:
            limit: Maximum number of entries
            ranking_date: Snapshot date, YYYY-MM-DD or YYYYMMDD
        """
        if ranking_date:
            compact = parse_date(ranking_date)
            year = int(compact[:4]) if compact[:4].isdigit() else None
            all_rankings = self.loader.rankings_for_year(year) if year else []
            snapshot = self.loader.rankings_by_date(all_rankings, compact)
        else:
            snapshot = self.loader.current_rankings(self.loader.rankings())

        if limit:
            snapshot = snapshot[:limit]

        entries = [
            RankingEntry(
                rank=r.rank,
                player=self._player_or_placeholder(r.player_id),
                points=r.points
            )
            for r in snapshot
        ]
        for entry in entries:
            entry.player.ranking = entry.rank

        snapshot_date = snapshot[0].ranking_date if snapshot else None
        return RankingsTable(
            tour=self.loader.tour,
            ranking_date=format_date(snapshot_date) if snapshot_date else None,
            rankings=entries
        )

    def profile(self, player_id: str, today: Optional[date] = None) -> PlayerProfile:
        """
        Build a player profile.

        Raises:
            PlayerNotFoundError: If the id is not in the player registry
        """
        record = self._require_player(player_id)
        player = self.to_player(record, today)

        current = next(
            (r for r in self.loader.current_rankings(self.loader.rankings()) if r.player_id == record.player_id),
            None
        )
        if current is not None:
            player.ranking = current.rank

        history = [
            r for r in self.loader.rankings_multi_year(self.loader.available_ranking_years())
            if r.player_id == record.player_id
        ]
        best = min(history, key=lambda r: (r.rank, r.ranking_date), default=None)

        rows = self.loader.matches_for_years(get_years_to_check(PROFILE_HISTORY_YEARS))
        performance = self.analyzer.player_summary(record.player_id, rows)

        return PlayerProfile(
            player=player,
            date_of_birth=format_date(record.dob) if record.dob else None,
            current_ranking=current.rank if current else None,
            current_points=current.points if current else None,
            highest_ranking=best.rank if best else None,
            highest_ranking_date=format_date(best.ranking_date) if best else None,
            performance=performance
        )

    def head_to_head(self, player1_id: str, player2_id: str) -> HeadToHead:
        """
        Past meetings of two players over recent seasons, most recent first.

        Raises:
            PlayerNotFoundError: If either id is not in the player registry
        """
        first = self._require_player(player1_id)
        second = self._require_player(player2_id)
        ids = {first.player_id, second.player_id}

        rows = [
            row for row in self.loader.matches_for_years(get_years_to_check(PROFILE_HISTORY_YEARS))
            if {row.get("winner_id"), row.get("loser_id")} == ids
        ]
        rows.sort(key=lambda row: row.get("tourney_date", ""), reverse=True)

        h2h = HeadToHead(player1=self.to_player(first), player2=self.to_player(second))
        for row in rows:
            if row.get("winner_id") == first.player_id:
                h2h.player1_wins += 1
            else:
                h2h.player2_wins += 1
            h2h.meetings.append(Meeting(
                match_id=f"{row.get('tourney_id', '')}_{row.get('match_num', '')}",
                date=format_date(row["tourney_date"]) if row.get("tourney_date") else None,
                tournament=row.get("tourney_name", ""),
                surface=row.get("surface", ""),
                round=row.get("round", ""),
                winner_id=row.get("winner_id", ""),
                score=row.get("score", "")
            ))

        return h2h

    def competitions(self, years: Optional[List[int]] = None) -> List[Competition]:
        """
        Unique tournaments of recent seasons, most prestigious first.

        Args:
            years: Seasons to scan (current and previous year by default)
        """
        tournaments: Dict[str, Competition] = {}
        for row in self.loader.matches_for_years(years or get_years_to_check()):
            tourney_id = row.get("tourney_id")
            if not tourney_id or tourney_id in tournaments:
                continue
            level = row.get("tourney_level", "")
            tournaments[tourney_id] = Competition(
                id=tourney_id,
                name=row.get("tourney_name", ""),
                level=level,
                level_name=tournament_level_name(level),
                surface=row.get("surface", ""),
                date=format_date(row["tourney_date"]) if row.get("tourney_date") else None
            )

        return sorted(
            tournaments.values(),
            key=lambda c: (LEVEL_PRESTIGE.get(c.level, DEFAULT_LEVEL_PRESTIGE), c.name)
        )

    def competition(self, competition_id: str, years: Optional[List[int]] = None) -> Competition:
        """
        Look up one tournament by its archive id.

        Raises:
            CompetitionNotFoundError: If no scanned season holds the id
        """
        for competition in self.competitions(years):
            if competition.id == competition_id:
                return competition
        raise CompetitionNotFoundError(competition_id)
