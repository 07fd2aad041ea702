"""
Tests for the Match Validator.

Tests validation rules including:
- Set and tiebreak scoring rules
- Completed match consistency
- Status and time consistency
- Live update progression and status transitions
- Result caching
"""

import pytest

from tennis_pipeline.core.constants import MatchStatus, QualityTier
from tennis_pipeline.core.domain_models import GamePair, SetScore, ValidationResult
from tennis_pipeline.infrastructure.cache import InMemoryCacheStorage
from tennis_pipeline.validation.validator import MatchValidator, match_fingerprint


def with_sets(raw_match, sets, status="finished"):
    raw_match["score"] = {"sets": sets}
    raw_match["status"] = status
    return raw_match


class TestMatchRules:
    """Test validation of complete matches."""

    def test_clean_match_is_excellent(self, cleaner, validator, raw_match):
        """Test that a complete, consistent record passes without findings."""
        result = validator.validate(cleaner.clean(raw_match))

        assert result.is_valid
        assert result.errors == ()
        assert result.warnings == ()
        assert result.data_quality == QualityTier.EXCELLENT

    def test_seven_six_without_tiebreak(self, cleaner, validator, raw_match):
        """Test that a 7-6 set without tiebreak points is a warning."""
        with_sets(raw_match, [{"player1": 7, "player2": 6}, {"player1": 6, "player2": 3}])
        result = validator.validate(cleaner.clean(raw_match))

        assert result.is_valid
        assert any("missing tiebreak score" in w for w in result.warnings)

    def test_invalid_long_set(self, cleaner, validator, raw_match):
        """Test that 9-6 is an error."""
        with_sets(raw_match, [{"player1": 9, "player2": 6}, {"player1": 6, "player2": 3}])
        result = validator.validate(cleaner.clean(raw_match))

        assert not result.is_valid
        assert "Set 1 invalid long set: 9-6" in result.errors
        assert result.data_quality == QualityTier.POOR

    def test_valid_long_set(self, cleaner, validator, raw_match):
        """Test that an advantage set decided by two games is accepted."""
        with_sets(raw_match, [{"player1": 10, "player2": 8}, {"player1": 6, "player2": 3}])
        result = validator.validate(cleaner.clean(raw_match))
        assert result.is_valid

    def test_invalid_seven_game_set(self, cleaner, validator, raw_match):
        """Test that 7-4 is an error."""
        with_sets(raw_match, [{"player1": 7, "player2": 4}, {"player1": 6, "player2": 3}])
        result = validator.validate(cleaner.clean(raw_match))
        assert "Set 1 invalid 7-game set: 7-4" in result.errors

    def test_six_five_should_continue(self, cleaner, validator, raw_match):
        """Test that 6-5 is flagged as unfinished."""
        with_sets(raw_match, [{"player1": 6, "player2": 5}], status="live")
        result = validator.validate(cleaner.clean(raw_match))
        assert any("should go to tiebreak or continue" in w for w in result.warnings)

    @pytest.mark.parametrize("tiebreak,message", [
        ({"player1": 6, "player2": 4}, "tiebreak incomplete"),
        ({"player1": 8, "player2": 7}, "tiebreak should continue"),
    ])
    def test_tiebreak_rules(self, cleaner, validator, raw_match, tiebreak, message):
        """Test tiebreak target and margin."""
        with_sets(raw_match, [{"player1": 7, "player2": 6, "tiebreak": tiebreak}, {"player1": 6, "player2": 3}])
        result = validator.validate(cleaner.clean(raw_match))
        assert any(message in w for w in result.warnings)

    def test_completed_match_with_one_set(self, cleaner, validator, raw_match):
        """Test that a completed match needs a decided winner."""
        with_sets(raw_match, [{"player1": 6, "player2": 3}])
        result = validator.validate(cleaner.clean(raw_match))

        assert result.is_valid
        assert "Completed match has fewer than 2 sets won by winner" in result.warnings

    def test_completed_match_without_score(self, cleaner, validator, raw_match):
        """Test that a completed match with no sets is flagged."""
        raw_match.pop("score")
        result = validator.validate(cleaner.clean(raw_match))
        assert "Completed match missing score data" in result.warnings

    def test_scheduled_match_with_score(self, cleaner, validator, raw_match):
        """Test that a scheduled match carrying sets is flagged."""
        raw_match["status"] = "scheduled"
        raw_match.pop("endTime")
        result = validator.validate(cleaner.clean(raw_match))
        assert "Scheduled match has score data" in result.warnings

    def test_end_before_start(self, cleaner, validator, raw_match):
        """Test that inverted match times are an error."""
        raw_match["endTime"] = "2024-10-13T08:00:00Z"
        result = validator.validate(cleaner.clean(raw_match))
        assert "End time is before or equal to start time" in result.errors

    def test_invalid_time_format(self, cleaner, validator, raw_match):
        """Test that an unparseable time is a warning."""
        raw_match["startTime"] = "half past nine"
        result = validator.validate(cleaner.clean(raw_match))
        assert "Invalid start time format" in result.warnings

    def test_missing_id(self, cleaner, validator, raw_match):
        """Test that an empty id is an error."""
        match = cleaner.clean(raw_match)
        match.id = ""
        assert "Missing match ID" in validator.validate(match).errors

    def test_too_many_sets(self, cleaner, validator, raw_match):
        """Test the set ceiling on a match built outside the cleaner."""
        match = cleaner.clean(raw_match)
        match.score.sets = [SetScore(6, 4) for _ in range(6)]
        assert "Too many sets: 6 (maximum 5)" in validator.validate(match).errors

    def test_malformed_country_code(self, cleaner, validator, raw_match):
        """Test that a code other than two uppercase letters is a warning."""
        match = cleaner.clean(raw_match)
        match.players[0].country_code = "ita"
        result = validator.validate(match)

        assert result.is_valid
        assert "Player 1 has invalid country code format: ita" in result.warnings

    def test_short_set_with_wide_gap(self, cleaner, validator, raw_match):
        """Test that an unfinished set with a gap above two games is a warning."""
        with_sets(raw_match, [{"player1": 6, "player2": 3}, {"player1": 5, "player2": 1}], status="live")
        result = validator.validate(cleaner.clean(raw_match))

        assert result.is_valid
        assert "Set 2 has unusual score gap: 5-1" in result.warnings

    @pytest.mark.parametrize("ranking", [0, -3])
    def test_non_positive_ranking(self, cleaner, validator, raw_match, ranking):
        """Test that a ranking below 1 is a warning."""
        match = cleaner.clean(raw_match)
        match.players[1].ranking = ranking
        result = validator.validate(match)

        assert result.is_valid
        assert f"Player 2 has invalid ranking: {ranking}" in result.warnings

    def test_live_match_without_score(self, cleaner, validator):
        """Test that a live match with no sets is flagged."""
        result = validator.validate(cleaner.clean({"status": "live"}))
        assert "Live match missing score data" in result.warnings

    def test_unusual_current_games(self, cleaner, validator, raw_match):
        """Test that more than seven games in the current set is a warning."""
        with_sets(raw_match, [{"player1": 6, "player2": 3}], status="live")
        match = cleaner.clean(raw_match)
        match.score.current_games = GamePair(8, 1)
        result = validator.validate(match)

        assert result.is_valid
        assert "Unusual current game score: 8-1" in result.warnings

    @pytest.mark.parametrize("games,message", [
        (GamePair(-1, 2), "Current games have negative scores"),
        (GamePair("two", 2), "Current games have non-numeric scores"),
    ])
    def test_malformed_current_games(self, cleaner, validator, raw_match, games, message):
        """Test that impossible current game counts are errors."""
        with_sets(raw_match, [{"player1": 6, "player2": 3}], status="live")
        match = cleaner.clean(raw_match)
        match.score.current_games = games
        result = validator.validate(match)

        assert not result.is_valid
        assert message in result.errors

    def test_current_games_ignored_when_not_live(self, cleaner, validator, raw_match):
        """Test that current games are only checked for live matches."""
        match = cleaner.clean(raw_match)
        match.score.current_games = GamePair(8, 1)
        assert validator.validate(match).warnings == ()

    def test_completed_match_split_sets(self, cleaner, validator, raw_match):
        """Test that a completed match level at two sets each is flagged."""
        with_sets(raw_match, [
            {"player1": 6, "player2": 4},
            {"player1": 4, "player2": 6},
            {"player1": 6, "player2": 4},
            {"player1": 4, "player2": 6},
        ])
        result = validator.validate(cleaner.clean(raw_match))

        assert result.is_valid
        assert result.warnings == ("Unusual set count for completed match: 2-2",)

    def test_placeholder_match(self, cleaner, validator):
        """Test that a fully defaulted match is still structurally valid."""
        result = validator.validate(cleaner.clean(None))

        assert result.is_valid
        assert "Unknown tournament category: Unknown" in result.warnings


class TestQualityTiers:
    """Test derivation of the quality tier."""

    def test_tiers(self):
        """Test the tier thresholds."""
        assert ValidationResult.from_findings([], []).data_quality == QualityTier.EXCELLENT
        assert ValidationResult.from_findings([], ["a", "b"]).data_quality == QualityTier.GOOD
        assert ValidationResult.from_findings([], ["a", "b", "c"]).data_quality == QualityTier.FAIR
        assert ValidationResult.from_findings(["e"], []).data_quality == QualityTier.POOR


class TestValidationCache:
    """Test caching of validation results."""

    def test_same_content_returns_cached_result(self, cleaner, validator, raw_match):
        """Test that identical content is served from the cache."""
        first = validator.validate(cleaner.clean(raw_match))
        second = validator.validate(cleaner.clean(raw_match))

        assert first is second
        assert validator.cache_stats()["cache_size"] == 1

    def test_changed_content_is_revalidated(self, cleaner, validator, raw_match):
        """Test that a content change produces a new fingerprint."""
        match = cleaner.clean(raw_match)
        before = match_fingerprint(match)
        match.score.sets[1].player2 = 4

        assert match_fingerprint(match) != before
        assert validator.validate(match).is_valid

    def test_expired_results_are_recomputed(self, cleaner, raw_match):
        """Test that results expire with the TTL."""
        now = [0.0]
        validator = MatchValidator(cache=InMemoryCacheStorage(5, clock=lambda: now[0]), ttl_minutes=5)
        match = cleaner.clean(raw_match)

        first = validator.validate(match)
        now[0] = 301
        assert validator.validate(match) is not first

    def test_clear_cache(self, cleaner, validator, raw_match):
        """Test that clearing empties the cache."""
        validator.validate(cleaner.clean(raw_match))
        validator.clear_cache()
        assert validator.cache_stats()["cache_size"] == 0


@pytest.fixture
def live_previous():
    return {
        "id": "live-1",
        "status": "live",
        "tournament": {"name": "Vienna Open", "category": "ATP", "location": "Vienna, Austria"},
        "players": [{"name": "A"}, {"name": "B"}],
        "score": {
            "sets": [{"player1": 6, "player2": 4}, {"player1": 3, "player2": 2}],
            "currentSet": {"player1": 2, "player2": 1},
        },
    }


class TestLiveUpdates:
    """Test validation of live deltas."""

    def test_forward_progress_is_accepted(self, cleaner, validator, live_previous):
        """Test a normal game increment."""
        update = cleaner.clean_live_update({
            "matchId": "live-1",
            "status": "live",
            "timestamp": "2024-10-13T10:00:00Z",
            "score": {
                "sets": [{"player1": 6, "player2": 4}, {"player1": 4, "player2": 2}],
                "currentSet": {"player1": 3, "player2": 1},
            },
        })

        result = validator.validate_live_update(update, cleaner.clean(live_previous))

        assert result.is_valid
        assert result.warnings == ()

    def test_games_reset_with_new_set(self, cleaner, validator, live_previous):
        """Test that games may drop when a new set starts."""
        update = cleaner.clean_live_update({
            "status": "live",
            "score": {
                "sets": [{"player1": 6, "player2": 4}, {"player1": 6, "player2": 2}, {"player1": 0, "player2": 0}],
                "currentSet": {"player1": 0, "player2": 0},
            },
        })

        result = validator.validate_live_update(update, cleaner.clean(live_previous))

        assert result.is_valid
        assert result.warnings == ()

    def test_games_decrease_without_new_set(self, cleaner, validator, live_previous):
        """Test that games dropping within a set is a warning."""
        update = cleaner.clean_live_update({
            "status": "live",
            "score": {
                "sets": [{"player1": 6, "player2": 4}, {"player1": 3, "player2": 2}],
                "currentSet": {"player1": 0, "player2": 0},
            },
        })

        result = validator.validate_live_update(update, cleaner.clean(live_previous))
        assert "Games score decreased without new set" in result.warnings

    def test_set_score_decrease_is_rejected(self, cleaner, validator, live_previous):
        """Test that a set score going backwards is an error."""
        update = cleaner.clean_live_update({
            "status": "live",
            "score": {"sets": [{"player1": 6, "player2": 4}, {"player1": 2, "player2": 2}]},
        })

        result = validator.validate_live_update(update, cleaner.clean(live_previous))

        assert not result.is_valid
        assert "Set 2 score decreased in update" in result.errors

    def test_set_count_decrease_is_rejected(self, cleaner, validator, live_previous):
        """Test that losing a set is an error."""
        update = cleaner.clean_live_update({"status": "live", "score": {"sets": [{"player1": 6, "player2": 4}]}})
        result = validator.validate_live_update(update, cleaner.clean(live_previous))
        assert "Set count decreased in score update" in result.errors

    def test_invalid_status_transition(self, cleaner, validator, live_previous):
        """Test that a finished match cannot go live again."""
        live_previous["status"] = "finished"
        update = cleaner.clean_live_update({"status": "live"})

        result = validator.validate_live_update(update, cleaner.clean(live_previous))
        assert "Invalid status transition: completed -> live" in result.errors

    @pytest.mark.parametrize("final_status,update_status,message", [
        (MatchStatus.WALKOVER, "finished", "Invalid status transition: walkover -> completed"),
        (MatchStatus.RETIRED, "live", "Invalid status transition: retired -> live"),
        (MatchStatus.CANCELLED, "live", "Invalid status transition: cancelled -> live"),
    ])
    def test_terminal_statuses_cannot_change(self, cleaner, validator, live_previous,
                                             final_status, update_status, message):
        """Test that walkover, retired and cancelled matches stay final."""
        previous = cleaner.clean(live_previous)
        previous.status = final_status
        update = cleaner.clean_live_update({"status": update_status})

        result = validator.validate_live_update(update, previous)

        assert not result.is_valid
        assert message in result.errors

    def test_allowed_status_transition(self, cleaner, validator, live_previous):
        """Test that a live match may finish."""
        update = cleaner.clean_live_update({"status": "finished"})
        result = validator.validate_live_update(update, cleaner.clean(live_previous))
        assert result.is_valid

    def test_invalid_timestamp(self, cleaner, validator, live_previous):
        """Test that an unparseable timestamp is an error."""
        update = cleaner.clean_live_update({"status": "live", "timestamp": "yesterday-ish"})
        result = validator.validate_live_update(update, cleaner.clean(live_previous))
        assert "Invalid update timestamp" in result.errors
