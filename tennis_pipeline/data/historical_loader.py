"""
Historical Data Loader

Loads the historical tennis archive from flat CSV files:

    {tour}_players.csv            player registry
    {tour}_rankings_current.csv   current ranking snapshots
    {tour}_rankings_{year}.csv    ranking snapshots of past seasons
    {tour}_matches_{year}.csv     one row per completed match of a season

Missing season files degrade to empty results with a logged warning. Loaded
files are cached per loader instance with a TTL.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

from tennis_pipeline.core.constants import (
    DEFAULT_DATA_DIR,
    DEFAULT_TOUR,
    DEFAULT_DATA_CACHE_TTL_MINUTES,
)
from tennis_pipeline.core.exceptions import DataSourceError, RankingDataUnavailableError
from tennis_pipeline.core.interfaces import ICacheStorage
from tennis_pipeline.core.tennis_utils import (
    get_current_tennis_year,
    parse_date,
    to_optional_int,
)
from tennis_pipeline.data.tabular import read_csv_file
from tennis_pipeline.infrastructure.cache import InMemoryCacheStorage

logger = logging.getLogger(__name__)

# One archive row: column name -> raw string field
HistoricalRow = Dict[str, str]

T = TypeVar("T")


@dataclass(frozen=True)
class PlayerRecord:
    """Entry of the player registry."""
    player_id: str
    name_first: str
    name_last: str
    hand: str = ""
    dob: str = ""
    ioc: str = ""
    height: Optional[int] = None
    wikidata_id: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.name_first} {self.name_last}".strip()

    @property
    def abbreviation(self) -> str:
        return f"{self.name_first[:1]}{self.name_last[:1]}".upper()

    @classmethod
    def from_row(cls, row: HistoricalRow) -> 'PlayerRecord':
        return cls(
            player_id=row.get("player_id", ""),
            name_first=row.get("name_first", ""),
            name_last=row.get("name_last", ""),
            hand=row.get("hand", ""),
            dob=row.get("dob", ""),
            ioc=row.get("ioc", ""),
            height=to_optional_int(row.get("height")),
            wikidata_id=row.get("wikidata_id") or None
        )


@dataclass(frozen=True)
class RankingRecord:
    """One player's position in a dated ranking snapshot."""
    ranking_date: str
    rank: int
    player_id: str
    points: Optional[int] = None

    @classmethod
    def from_row(cls, row: HistoricalRow) -> Optional['RankingRecord']:
        """Type a ranking row; rows without a usable rank give None."""
        rank = to_optional_int(row.get("rank"))
        if rank is None:
            return None
        return cls(
            ranking_date=row.get("ranking_date", ""),
            rank=rank,
            player_id=row.get("player", ""),
            points=to_optional_int(row.get("points"))
        )


@dataclass
class PlayerMatchStats:
    """Per-side statistic columns of one archive row."""
    aces: Optional[int] = None
    double_faults: Optional[int] = None
    serve_points: Optional[int] = None
    first_serve_in: Optional[int] = None
    first_serve_won: Optional[int] = None
    second_serve_won: Optional[int] = None
    service_games: Optional[int] = None
    break_points_saved: Optional[int] = None
    break_points_faced: Optional[int] = None
    rank_at_time: Optional[int] = None
    points_at_time: Optional[int] = None


@dataclass
class MatchStats:
    """Typed statistics of one archive row."""
    winner: PlayerMatchStats
    loser: PlayerMatchStats
    minutes: Optional[int] = None


def _side_stats(row: HistoricalRow, prefix: str, rank_prefix: str) -> PlayerMatchStats:
    return PlayerMatchStats(
        aces=to_optional_int(row.get(f"{prefix}_ace")),
        double_faults=to_optional_int(row.get(f"{prefix}_df")),
        serve_points=to_optional_int(row.get(f"{prefix}_svpt")),
        first_serve_in=to_optional_int(row.get(f"{prefix}_1stIn")),
        first_serve_won=to_optional_int(row.get(f"{prefix}_1stWon")),
        second_serve_won=to_optional_int(row.get(f"{prefix}_2ndWon")),
        service_games=to_optional_int(row.get(f"{prefix}_SvGms")),
        break_points_saved=to_optional_int(row.get(f"{prefix}_bpSaved")),
        break_points_faced=to_optional_int(row.get(f"{prefix}_bpFaced")),
        rank_at_time=to_optional_int(row.get(f"{rank_prefix}_rank")),
        points_at_time=to_optional_int(row.get(f"{rank_prefix}_rank_points")),
    )


def parse_match_stats(row: HistoricalRow) -> MatchStats:
    """
    Type the optional statistic columns of an archive row.

    Blank or absent columns become None, never 0.
    """
    return MatchStats(
        winner=_side_stats(row, "w", "winner"),
        loser=_side_stats(row, "l", "loser"),
        minutes=to_optional_int(row.get("minutes"))
    )


class HistoricalDataLoader:
    """
    Reader for one tour of the historical archive.

    Attributes:
        data_dir: Directory holding the archive files
        tour: Tour prefix of the file names ('atp' or 'wta')
    """

    def __init__(
        self,
        data_dir: str = DEFAULT_DATA_DIR,
        tour: str = DEFAULT_TOUR,
        cache: Optional[ICacheStorage] = None
    ):
        """
        Initialize the loader.

        Args:
            data_dir: Directory containing the CSV files
            tour: Tour prefix ('atp' or 'wta')
            cache: Cache for loaded files (a private in-memory cache by default)
        """
        self.data_dir = Path(data_dir)
        self.tour = tour.lower()
        self.cache = cache if cache is not None else InMemoryCacheStorage(DEFAULT_DATA_CACHE_TTL_MINUTES)

    # File access

    def _file_path(self, suffix: str) -> Path:
        return self.data_dir / f"{self.tour}_{suffix}.csv"

    def _read_rows(self, path: Path) -> List[HistoricalRow]:
        """
        Read one archive file.

        Raises:
            FileNotFoundError: If the file is missing
            DataSourceError: If the file exists but cannot be read
        """
        try:
            rows = read_csv_file(path)
        except FileNotFoundError:
            raise
        except (OSError, UnicodeDecodeError) as e:
            raise DataSourceError(f"Cannot read archive file {path}: {e}") from e

        logger.info(f"Loaded {len(rows)} rows from {path.name}")
        return rows

    def _read_optional(self, path: Path, description: str) -> List[HistoricalRow]:
        """Read a file whose absence is expected; failures degrade to []."""
        try:
            return self._read_rows(path)
        except FileNotFoundError:
            logger.warning(f"No {description} file found at {path}")
        except DataSourceError as e:
            logger.warning(str(e))
        return []

    def _cached(self, key: str, loader: Callable[[], T]) -> T:
        return self.cache.get_or_set(f"{self.tour}:{key}", loader)

    # Players

    def players(self) -> List[PlayerRecord]:
        """Load the player registry."""
        def load() -> List[PlayerRecord]:
            rows = self._read_optional(self._file_path("players"), "player registry")
            return [PlayerRecord.from_row(row) for row in rows if row.get("player_id")]

        return self._cached("players", load)

    def player_index(self) -> Dict[str, PlayerRecord]:
        """Registry keyed by player id."""
        return self._cached("player_index", lambda: {p.player_id: p for p in self.players()})

    def find_player(self, player_id: str) -> Optional[PlayerRecord]:
        return self.player_index().get(str(player_id))

    # Rankings

    def load_current_rankings(self) -> List[RankingRecord]:
        """
        Load the current ranking file.

        Raises:
            RankingDataUnavailableError: If the current ranking file is missing
        """
        path = self._file_path("rankings_current")

        def load() -> List[RankingRecord]:
            try:
                rows = self._read_rows(path)
            except FileNotFoundError as e:
                raise RankingDataUnavailableError(f"Current rankings file not found: {path}") from e
            return self._type_rankings(rows)

        return self._cached("rankings_current", load)

    def rankings(self) -> List[RankingRecord]:
        """
        Current rankings, or [] when they cannot be loaded.

        An empty result means "no data", not an error.
        """
        try:
            return self.load_current_rankings()
        except (RankingDataUnavailableError, DataSourceError) as e:
            logger.error(f"Error loading {self.tour.upper()} rankings: {e}")
            return []

    def rankings_for_year(self, year: int) -> List[RankingRecord]:
        """Rankings of a season; the current file stands in for the current year."""
        path = self._file_path(f"rankings_{year}")
        if not path.exists() and year == get_current_tennis_year():
            return self.rankings()

        def load() -> List[RankingRecord]:
            rows = self._read_optional(path, f"rankings {year}")
            return self._type_rankings(rows)

        return self._cached(f"rankings_{year}", load)

    def rankings_multi_year(self, years: Iterable[int]) -> List[RankingRecord]:
        rankings: List[RankingRecord] = []
        for year in years:
            rankings.extend(self.rankings_for_year(year))
        return rankings

    def available_ranking_years(self) -> List[int]:
        """Years with ranking data by file presence, most recent first."""
        if not self.data_dir.is_dir():
            logger.warning(f"Data directory {self.data_dir} does not exist")
            return []

        pattern = re.compile(rf"^{re.escape(self.tour)}_rankings_(\d{{4}})\.csv$")
        years = set()
        for file in self.data_dir.iterdir():
            match = pattern.match(file.name)
            if match:
                years.add(int(match.group(1)))
            elif file.name == f"{self.tour}_rankings_current.csv":
                years.add(get_current_tennis_year())

        return sorted(years, reverse=True)

    @staticmethod
    def _type_rankings(rows: List[HistoricalRow]) -> List[RankingRecord]:
        records = [RankingRecord.from_row(row) for row in rows]
        return [r for r in records if r is not None]

    # Ranking snapshot queries

    @staticmethod
    def latest_ranking_date(rankings: List[RankingRecord]) -> str:
        """Most recent snapshot date (YYYYMMDD), '' when there are no rankings."""
        dates = [r.ranking_date for r in rankings if r.ranking_date.isdigit()]
        if not dates:
            return ""
        return max(dates, key=int)

    @classmethod
    def current_rankings(cls, rankings: List[RankingRecord]) -> List[RankingRecord]:
        """Entries of the latest snapshot, ordered by rank."""
        latest = cls.latest_ranking_date(rankings)
        return sorted(
            (r for r in rankings if r.ranking_date == latest),
            key=lambda r: r.rank
        )

    @staticmethod
    def rankings_by_date(rankings: List[RankingRecord], date: str) -> List[RankingRecord]:
        """Entries of the snapshot taken on `date` (either date form)."""
        target = parse_date(date)
        return sorted(
            (r for r in rankings if r.ranking_date == target),
            key=lambda r: r.rank
        )

    @staticmethod
    def available_ranking_dates(rankings: List[RankingRecord]) -> List[str]:
        """Distinct snapshot dates, most recent first."""
        dates = {r.ranking_date for r in rankings if r.ranking_date.isdigit()}
        return sorted(dates, key=int, reverse=True)

    # Matches

    def matches(self, year: int) -> List[HistoricalRow]:
        """Archive rows of one season; a missing file gives []."""
        path = self._file_path(f"matches_{year}")
        return self._cached(
            f"matches_{year}",
            lambda: self._read_optional(path, f"matches {year}")
        )

    def matches_for_years(self, years: Iterable[int]) -> List[HistoricalRow]:
        rows: List[HistoricalRow] = []
        for year in years:
            rows.extend(self.matches(year))
        return rows

    def available_match_years(self) -> List[int]:
        """Seasons with a match file, most recent first."""
        if not self.data_dir.is_dir():
            return []
        pattern = re.compile(rf"^{re.escape(self.tour)}_matches_(\d{{4}})\.csv$")
        years = {int(m.group(1)) for m in (pattern.match(f.name) for f in self.data_dir.iterdir()) if m}
        return sorted(years, reverse=True)

    def matches_on_date(self, date: str) -> List[HistoricalRow]:
        """
        Rows of tournaments starting on `date`.

        Args:
            date: YYYY-MM-DD or YYYYMMDD
        """
        target = parse_date(date)
        year = to_optional_int(target[:4])
        if year is None:
            return []
        return [row for row in self.matches(year) if row.get("tourney_date") == target]

    # Cache management

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Historical data cache cleared")

    def cache_stats(self) -> Dict[str, object]:
        keys = self.cache.keys()
        return {
            "entries": len(keys),
            "keys": sorted(keys),
        }
