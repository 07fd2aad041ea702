"""
Performance Analytics

Aggregates historical archive rows into per-player statistics: career
record, per-surface and per-tier records (with titles) and serve/return
metrics. A metric whose inputs are missing is reported as None rather than
a misleading zero.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

import pandas as pd

from tennis_pipeline.core.constants import FINAL_ROUND, DEFAULT_ANALYTICS_CACHE_TTL_MINUTES
from tennis_pipeline.core.interfaces import ICacheStorage
from tennis_pipeline.core.normalizers import tournament_level_name
from tennis_pipeline.core.tennis_utils import round_half_up
from tennis_pipeline.data.historical_loader import HistoricalRow
from tennis_pipeline.infrastructure.cache import InMemoryCacheStorage

logger = logging.getLogger(__name__)

# Per-side statistic columns, without the w_/l_ prefix
STAT_COLUMNS = ("ace", "df", "svpt", "1stIn", "1stWon", "2ndWon", "SvGms", "bpSaved", "bpFaced")
FRAME_COLUMNS = (
    ["won", "surface", "level", "round"]
    + [f"own_{c}" for c in STAT_COLUMNS]
    + [f"opp_{c}" for c in STAT_COLUMNS]
)


@dataclass
class PerformanceRecord:
    """Win/loss record of one slice of a player's matches."""
    wins: int = 0
    losses: int = 0
    total_matches: int = 0
    win_percentage: float = 0.0
    titles: Optional[int] = None


@dataclass
class ServeMetrics:
    """Serve and return metrics; None means undetermined."""
    first_serve_percentage: Optional[float] = None
    aces_per_service_game: Optional[float] = None
    break_point_conversion: Optional[float] = None


@dataclass
class PlayerPerformance:
    """Full analytics summary of one player."""
    player_id: str
    career: PerformanceRecord
    surfaces: Dict[str, PerformanceRecord] = field(default_factory=dict)
    tiers: Dict[str, PerformanceRecord] = field(default_factory=dict)
    serve: ServeMetrics = field(default_factory=ServeMetrics)
    total_titles: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _record(wins: int, total: int, titles: Optional[int] = None) -> PerformanceRecord:
    wins, total = int(wins), int(total)
    return PerformanceRecord(
        wins=wins,
        losses=total - wins,
        total_matches=total,
        win_percentage=round_half_up(wins / total * 100, 2) if total else 0.0,
        titles=None if titles is None else int(titles)
    )


def _ratio(frame: pd.DataFrame, numerator: str, denominator: str, scale: float = 1.0) -> Optional[float]:
    """Sum ratio over rows where both columns are present and the denominator is positive."""
    usable = frame[[numerator, denominator]].dropna()
    usable = usable[usable[denominator] > 0]
    if usable.empty:
        return None
    return round_half_up(float(usable[numerator].sum() / usable[denominator].sum() * scale), 2)


class PerformanceAnalyzer:
    """
    Computes player statistics from archive rows.

    Rows of matches the player did not take part in are ignored.
    """

    def __init__(
        self,
        cache: Optional[ICacheStorage] = None,
        ttl_minutes: float = DEFAULT_ANALYTICS_CACHE_TTL_MINUTES
    ):
        self.ttl_minutes = ttl_minutes
        self.cache = cache if cache is not None else InMemoryCacheStorage(ttl_minutes)

    def player_frame(self, player_id: str, rows: List[HistoricalRow]) -> pd.DataFrame:
        """
        One DataFrame row per match of `player_id`, from the player's side.

        Statistic columns are numeric with NaN for missing values.
        """
        player_id = str(player_id)
        records = []
        for row in rows:
            if row.get("winner_id") == player_id:
                won, own, opp = True, "w", "l"
            elif row.get("loser_id") == player_id:
                won, own, opp = False, "l", "w"
            else:
                continue

            record = {
                "won": won,
                "surface": (row.get("surface") or "").strip() or "Unknown",
                "level": tournament_level_name(row.get("tourney_level")),
                "round": (row.get("round") or "").strip(),
            }
            for column in STAT_COLUMNS:
                record[f"own_{column}"] = row.get(f"{own}_{column}")
                record[f"opp_{column}"] = row.get(f"{opp}_{column}")
            records.append(record)

        frame = pd.DataFrame.from_records(records, columns=FRAME_COLUMNS)
        for column in FRAME_COLUMNS[4:]:
            frame[column] = pd.to_numeric(frame[column], errors="coerce")
        frame["won"] = frame["won"].astype(bool)
        return frame

    def career_record(self, player_id: str, rows: List[HistoricalRow]) -> PerformanceRecord:
        frame = self.player_frame(player_id, rows)
        return _record(frame["won"].sum(), len(frame))

    def surface_performance(self, player_id: str, rows: List[HistoricalRow]) -> Dict[str, PerformanceRecord]:
        """Win/loss record per surface."""
        frame = self.player_frame(player_id, rows)
        if frame.empty:
            return {}

        grouped = frame.groupby("surface")["won"].agg(["sum", "count"])
        return {
            surface: _record(stats["sum"], stats["count"])
            for surface, stats in grouped.iterrows()
        }

    def tier_performance(self, player_id: str, rows: List[HistoricalRow]) -> Dict[str, PerformanceRecord]:
        """Win/loss record and titles (finals won) per tournament tier."""
        frame = self.player_frame(player_id, rows)
        if frame.empty:
            return {}

        frame["title"] = frame["won"] & (frame["round"] == FINAL_ROUND)
        grouped = frame.groupby("level").agg(
            wins=("won", "sum"),
            total=("won", "count"),
            titles=("title", "sum")
        )
        return {
            level: _record(stats["wins"], stats["total"], stats["titles"])
            for level, stats in grouped.iterrows()
        }

    def _serve_metrics(self, frame: pd.DataFrame) -> ServeMetrics:
        if frame.empty:
            return ServeMetrics()

        frame = frame.assign(bp_converted=frame["opp_bpFaced"] - frame["opp_bpSaved"])
        return ServeMetrics(
            first_serve_percentage=_ratio(frame, "own_1stIn", "own_svpt", 100),
            aces_per_service_game=_ratio(frame, "own_ace", "own_SvGms"),
            break_point_conversion=_ratio(frame, "bp_converted", "opp_bpFaced", 100)
        )

    def match_insights(self, player_id: str, row: HistoricalRow) -> ServeMetrics:
        """Serve metrics of `player_id` in a single match."""
        return self._serve_metrics(self.player_frame(player_id, [row]))

    def serve_summary(self, player_id: str, rows: List[HistoricalRow]) -> ServeMetrics:
        """Serve metrics over all matches in which each metric is determined."""
        return self._serve_metrics(self.player_frame(player_id, rows))

    def player_summary(self, player_id: str, rows: List[HistoricalRow]) -> PlayerPerformance:
        """Full summary, cached by player id and a fingerprint of the rows."""
        payload = json.dumps(rows, sort_keys=True, default=str)
        key = f"analytics:{player_id}:{hashlib.sha1(payload.encode('utf-8')).hexdigest()}"
        return self.cache.get_or_set(key, lambda: self._summarize(player_id, rows), self.ttl_minutes)

    def _summarize(self, player_id: str, rows: List[HistoricalRow]) -> PlayerPerformance:
        tiers = self.tier_performance(player_id, rows)
        summary = PlayerPerformance(
            player_id=str(player_id),
            career=self.career_record(player_id, rows),
            surfaces=self.surface_performance(player_id, rows),
            tiers=tiers,
            serve=self.serve_summary(player_id, rows),
            total_titles=sum(record.titles or 0 for record in tiers.values())
        )
        logger.debug(f"Computed performance summary for player {player_id} "
                     f"({summary.career.total_matches} matches)")
        return summary

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> Dict[str, Any]:
        return {
            "cache_size": len(self.cache.keys()),
            "ttl_minutes": self.ttl_minutes,
        }
