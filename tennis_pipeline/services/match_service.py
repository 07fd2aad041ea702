"""
Match Service

Runs records through the clean -> validate -> format pipeline and turns
historical archive rows into raw match records.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from tennis_pipeline.cleaning.cleaner import CleaningOptions, DataQualityReport, MatchCleaner
from tennis_pipeline.core.constants import MatchStatus, Tour, TournamentCategory
from tennis_pipeline.core.domain_models import LiveUpdate, Match, ValidationResult, to_plain
from tennis_pipeline.core.normalizers import ioc_to_iso, tournament_level_name
from tennis_pipeline.core.tennis_utils import format_date, parse_score_string
from tennis_pipeline.data.historical_loader import HistoricalDataLoader, HistoricalRow
from tennis_pipeline.formatting.formatter import DisplayView, MatchFormatter, ScoreDelta
from tennis_pipeline.validation.validator import MatchValidator

logger = logging.getLogger(__name__)


@dataclass
class ProcessedMatch:
    """A cleaned match with its validation result and display view."""
    match: Match
    validation: ValidationResult
    display: DisplayView

    def to_dict(self) -> Dict[str, Any]:
        return {
            "match": self.match.to_dict(),
            "validation": self.validation.to_dict(),
            "display": self.display.to_dict(),
        }


@dataclass
class ProcessedLiveUpdate:
    """A cleaned live delta checked against the previous snapshot."""
    previous: Match
    update: LiveUpdate
    validation: ValidationResult
    delta: Optional[ScoreDelta] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "match_id": self.update.match_id or self.previous.id,
            "accepted": self.validation.is_valid,
            "update": to_plain(asdict(self.update)),
            "validation": self.validation.to_dict(),
            "delta": self.delta.to_dict() if self.delta is not None else None,
        }


class MatchService:
    """
    Service for match processing.

    Composes the cleaner, validator and formatter; historical matches come
    from the loader.
    """

    def __init__(
        self,
        cleaner: MatchCleaner,
        validator: MatchValidator,
        formatter: MatchFormatter,
        loader: HistoricalDataLoader
    ):
        self.cleaner = cleaner
        self.validator = validator
        self.formatter = formatter
        self.loader = loader

    def process_raw(self, raw: Any, options: Optional[CleaningOptions] = None) -> ProcessedMatch:
        """
        Clean, validate and format one raw record.

        Args:
            raw: Raw match record in any shape
            options: Cleaning options (cleaner defaults if None)
        """
        match = self.cleaner.clean(raw, options)
        return ProcessedMatch(
            match=match,
            validation=self.validator.validate(match),
            display=self.formatter.format(match)
        )

    def process_many(self, raws: List[Any], options: Optional[CleaningOptions] = None) -> List[ProcessedMatch]:
        return [self.process_raw(raw, options) for raw in raws]

    def process_live_update(self, previous_raw: Any, update_raw: Any) -> ProcessedLiveUpdate:
        """Validate a live delta against the cleaned previous snapshot."""
        previous = self.cleaner.clean(previous_raw)
        update = self.cleaner.clean_live_update(update_raw)
        validation = self.validator.validate_live_update(update, previous)

        if not validation.is_valid:
            logger.warning(f"Rejected live update for match {update.match_id or previous.id}: "
                           f"{list(validation.errors)}")

        return ProcessedLiveUpdate(
            previous=previous,
            update=update,
            validation=validation,
            delta=self.formatter.score_delta(previous.score, update.score)
        )

    def data_quality(self, raws: List[Any]) -> DataQualityReport:
        return self.cleaner.analyze_data_quality(raws)

    # Historical archive

    def matches_on_date(self, date: str) -> List[ProcessedMatch]:
        """
        Process all archive matches of tournaments starting on `date`.

        Args:
            date: YYYY-MM-DD
        """
        rows = self.loader.matches_on_date(date)
        logger.info(f"Found {len(rows)} archive matches for {date}")
        return [self.process_raw(self.row_to_raw_match(row)) for row in rows]

    def _row_player(self, row: HistoricalRow, side: str) -> Dict[str, Any]:
        """Registry player for one side of a row, else a placeholder from the row."""
        player_id = row.get(f"{side}_id", "")
        record = self.loader.find_player(player_id) if player_id else None
        ioc = row.get(f"{side}_ioc", "")

        player: Dict[str, Any] = {
            "id": player_id or None,
            "name": row.get(f"{side}_name"),
            "nationality": ioc,
            "countryCode": ioc_to_iso(ioc),
            "handedness": row.get(f"{side}_hand"),
            "height": row.get(f"{side}_ht"),
        }
        if record is not None:
            player.update({
                "name": record.full_name,
                "nationality": record.ioc or ioc,
                "countryCode": ioc_to_iso(record.ioc or ioc),
                "abbreviation": record.abbreviation,
                "handedness": record.hand,
                "height": record.height,
            })

        player.update({
            "ranking": row.get(f"{side}_rank"),
            "age": row.get(f"{side}_age"),
            "seed": row.get(f"{side}_seed"),
        })
        return player

    def _row_category(self, row: HistoricalRow) -> TournamentCategory:
        level = (row.get("tourney_level") or "").upper()
        name = (row.get("tourney_name") or "").lower()
        if level == "C" or "challenger" in name:
            return TournamentCategory.CHALLENGER
        if level == "S" or "itf" in name:
            return TournamentCategory.ITF
        if self.loader.tour == Tour.WTA.value or "wta" in name:
            return TournamentCategory.WTA
        return TournamentCategory.ATP

    def row_to_raw_match(self, row: HistoricalRow) -> Dict[str, Any]:
        """
        Convert an archive row into a raw match record.

        The match winner is player 1. Unknown player ids fall back to the
        name and country fields of the row.
        """
        tourney_date = row.get("tourney_date", "")
        parsed = parse_score_string(row.get("score"))

        score = None
        status = MatchStatus.COMPLETED
        if parsed is not None:
            status = parsed.status
            score = {
                "sets": [
                    {
                        "player1": s.winner_games,
                        "player2": s.loser_games,
                        "tiebreak": (
                            {"player1": s.tiebreak[0], "player2": s.tiebreak[1]}
                            if s.tiebreak else None
                        ),
                    }
                    for s in parsed.sets
                ]
            }

        match_id = None
        if row.get("tourney_id") and row.get("match_num"):
            match_id = f"{row['tourney_id']}_{row['match_num']}"

        return {
            "id": match_id,
            "tournament": {
                "id": row.get("tourney_id"),
                "name": row.get("tourney_name"),
                "category": self._row_category(row).value,
                "surface": row.get("surface"),
                "level": tournament_level_name(row.get("tourney_level")) if row.get("tourney_level") else None,
                "startDate": format_date(tourney_date) if tourney_date else None,
            },
            "round": row.get("round"),
            "status": status.value,
            "players": [self._row_player(row, "winner"), self._row_player(row, "loser")],
            "score": score,
            "startTime": format_date(tourney_date) if tourney_date else None,
        }
