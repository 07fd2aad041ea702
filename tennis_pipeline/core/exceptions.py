"""
Custom Exceptions for the Tennis Data Pipeline

Data-quality problems are never raised: the cleaner defaults them and the
validator reports them. These exceptions cover the lookup and
source failures that callers must handle explicitly.
"""


class TennisPipelineError(Exception):
    """Base exception for tennis pipeline errors."""
    pass


class DataSourceError(TennisPipelineError):
    """A historical data file exists but could not be read."""
    pass


class RankingDataUnavailableError(DataSourceError):
    """The current ranking file is missing."""
    pass


class PlayerNotFoundError(TennisPipelineError):
    """Requested player id is absent from the player registry."""

    def __init__(self, player_id: str):
        super().__init__(f"Player not found: {player_id}")
        self.player_id = player_id


class CompetitionNotFoundError(TennisPipelineError):
    """Requested tournament id is absent from the scanned seasons."""

    def __init__(self, competition_id: str):
        super().__init__(f"Competition not found: {competition_id}")
        self.competition_id = competition_id


class ConfigurationError(TennisPipelineError):
    """Error related to configuration issues."""
    pass
