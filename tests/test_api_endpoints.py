"""
Tests for Tennis Data Pipeline API Endpoints.

Tests all API endpoints including:
- Health checks
- Rankings, player profiles and head-to-head records
- Competitions
- Match cleaning, live updates and archive matches by date
- Cache management
"""

import pytest
from fastapi import status

from conftest import CURRENT_YEAR, SINNER_ID, DJOKOVIC_ID, ALCARAZ_ID


class TestGeneralEndpoints:
    """Test general API endpoints."""

    def test_root_endpoint(self, client):
        """Test root endpoint lists the endpoints."""
        response = client.get("/")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["message"] == "Tennis Data Pipeline API"
        assert "rankings" in data["endpoints"]

    def test_health_endpoint(self, client):
        """Test health check endpoint."""
        response = client.get("/api/v2/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()

        assert data["status"] == "healthy"
        assert data["service"] == "tennis-data-pipeline"
        assert data["tour"] == "atp"
        assert data["data_available"] is True
        assert "timestamp" in data

    def test_reset_endpoint(self, client):
        """Test the development reset endpoint."""
        response = client.post("/api/v2/reset")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Container reset successfully"


class TestRankingsEndpoint:
    """Test the rankings endpoint."""

    def test_latest_rankings(self, client):
        """Test the latest snapshot."""
        response = client.get("/api/v2/rankings")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()

        assert data["tour"] == "atp"
        assert data["ranking_date"] == f"{CURRENT_YEAR}-01-08"
        assert [r["rank"] for r in data["rankings"]] == [1, 2, 3, 4]
        assert data["rankings"][0]["player"]["name"] == "Novak Djokovic"

    def test_rankings_limit(self, client):
        """Test limiting the snapshot."""
        response = client.get("/api/v2/rankings?limit=2")

        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()["rankings"]) == 2

    def test_rankings_by_date(self, client):
        """Test an older snapshot."""
        response = client.get(f"/api/v2/rankings?date={CURRENT_YEAR}-01-01")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["rankings"][0]["player"]["id"] == ALCARAZ_ID

    def test_invalid_date(self, client):
        """Test that a compact date is rejected."""
        response = client.get(f"/api/v2/rankings?date={CURRENT_YEAR}0101")
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_invalid_limit(self, client):
        """Test that the limit must be positive."""
        response = client.get("/api/v2/rankings?limit=0")
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestPlayerEndpoints:
    """Test player profile and head-to-head endpoints."""

    def test_player_profile(self, client):
        """Test a registered player."""
        response = client.get(f"/api/v2/players/{SINNER_ID}")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()

        assert data["player"]["name"] == "Jannik Sinner"
        assert data["current_ranking"] == 3
        assert data["highest_ranking"] == 1
        assert data["performance"]["career"]["wins"] == 2
        assert data["performance"]["tiers"]["Grand Slam"]["titles"] == 1

    def test_unknown_player(self, client):
        """Test that an unknown id gives 404."""
        response = client.get("/api/v2/players/1")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Player not found: 1"

    def test_head_to_head(self, client):
        """Test a head-to-head record."""
        response = client.get(f"/api/v2/head-to-head?player1={SINNER_ID}&player2={DJOKOVIC_ID}")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()

        assert (data["player1_wins"], data["player2_wins"]) == (1, 0)
        assert data["meetings"][0]["tournament"] == "Australian Open"

    def test_head_to_head_same_player(self, client):
        """Test that a player cannot be compared with themselves."""
        response = client.get(f"/api/v2/head-to-head?player1={SINNER_ID}&player2={SINNER_ID}")
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_head_to_head_missing_parameter(self, client):
        """Test that both ids are required."""
        response = client.get(f"/api/v2/head-to-head?player1={SINNER_ID}")
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_head_to_head_unknown_player(self, client):
        """Test that an unknown id gives 404."""
        response = client.get(f"/api/v2/head-to-head?player1={SINNER_ID}&player2=1")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestCompetitionsEndpoint:
    """Test the competitions endpoint."""

    def test_competitions(self, client):
        """Test the default seasons."""
        response = client.get("/api/v2/competitions")

        assert response.status_code == status.HTTP_200_OK
        assert [c["name"] for c in response.json()] == ["Australian Open", "Rotterdam", "Rome Challenger"]

    def test_competitions_for_years(self, client):
        """Test explicit seasons."""
        response = client.get("/api/v2/competitions?years=1990&years=1991")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == []

    def test_unreadable_season(self, client, archive_dir):
        """Test that an unreadable season file is skipped."""
        (archive_dir / "atp_matches_2000.csv").mkdir()
        response = client.get("/api/v2/competitions?years=2000")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == []

    def test_competition_detail(self, client):
        """Test looking up one tournament."""
        response = client.get(f"/api/v2/competitions/{CURRENT_YEAR}-580")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["name"] == "Australian Open"
        assert data["level_name"] == "Grand Slam"
        assert data["date"] == f"{CURRENT_YEAR}-01-15"

    def test_competition_not_found(self, client):
        """Test that an unknown tournament id gives 404."""
        response = client.get(f"/api/v2/competitions/{CURRENT_YEAR}-999")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == f"Competition not found: {CURRENT_YEAR}-999"


class TestMatchEndpoints:
    """Test match processing endpoints."""

    def test_clean_matches(self, client, raw_match):
        """Test that every record is processed, malformed ones included."""
        response = client.post("/api/v2/matches/clean", json={"matches": [raw_match, "garbage"]})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()

        assert len(data["matches"]) == 2
        assert data["matches"][0]["match"]["players"][0]["name"] == "Jannik Sinner"
        assert data["matches"][0]["validation"]["data_quality"] == "excellent"
        assert data["matches"][1]["match"]["tournament"]["name"] == "Unknown Tournament"
        assert data["data_quality"]["total_matches"] == 2

    def test_clean_matches_with_options(self, client, raw_match):
        """Test that cleaning options are applied."""
        payload = {
            "matches": [{"players": [{"name": "Daniel, Taro"}]}],
            "options": {"normalize_names": False, "default_location": "TBD"},
        }
        response = client.post("/api/v2/matches/clean", json=payload)

        assert response.status_code == status.HTTP_200_OK
        match = response.json()["matches"][0]["match"]
        assert match["players"][0]["name"] == "Daniel, Taro"
        assert match["tournament"]["location"] == "TBD"

    def test_live_update_accepted(self, client, raw_match):
        """Test a valid live delta."""
        raw_match["status"] = "live"
        payload = {
            "previous": raw_match,
            "update": {"matchId": "m-1", "status": "finished", "timestamp": "2024-10-13T11:45:00Z"},
        }
        response = client.post("/api/v2/matches/live-update", json=payload)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["accepted"] is True
        assert data["update"]["status"] == "completed"

    def test_live_update_rejected(self, client, raw_match):
        """Test that a backwards status change is rejected, not an HTTP error."""
        payload = {"previous": raw_match, "update": {"status": "live"}}
        response = client.post("/api/v2/matches/live-update", json=payload)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["accepted"] is False
        assert data["match_id"] == "m-1"
        assert "Invalid status transition: completed -> live" in data["validation"]["errors"]

    def test_matches_by_date(self, client):
        """Test archive matches of a start date."""
        response = client.get(f"/api/v2/matches/{CURRENT_YEAR}-01-15")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data) == 3
        assert data[0]["display"]["status"]["display"] == "FINISHED"

    @pytest.mark.parametrize("date", ["yesterday", "2024-13-01", "20240115"])
    def test_matches_by_invalid_date(self, client, date):
        """Test that malformed dates give 400."""
        response = client.get(f"/api/v2/matches/{date}")
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestCacheEndpoints:
    """Test cache management endpoints."""

    def test_cache_status(self, client):
        """Test that loaded files show up in the data cache."""
        client.get("/api/v2/rankings")
        response = client.get("/api/v2/cache/status")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()

        assert data["enabled"] is True
        assert set(data["caches"]) == {"data", "validation", "analytics"}
        assert "atp:rankings_current" in data["caches"]["data"]["cached_keys"]
        assert data["size"] >= data["caches"]["data"]["size"]

    def test_clear_all(self, client):
        """Test clearing every cache."""
        client.get("/api/v2/rankings")
        response = client.delete("/api/v2/cache/clear")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Cleared all caches"
        assert client.get("/api/v2/cache/status").json()["size"] == 0

    def test_clear_named_cache(self, client):
        """Test clearing one cache."""
        client.get("/api/v2/rankings")
        response = client.delete("/api/v2/cache/clear?cache=data")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Cleared data cache"
        assert client.get("/api/v2/cache/status").json()["caches"]["data"]["size"] == 0

    def test_clear_key(self, client):
        """Test clearing a single key."""
        client.get("/api/v2/rankings")
        response = client.delete("/api/v2/cache/clear?cache=data&key=atp:rankings_current")

        assert response.status_code == status.HTTP_200_OK
        keys = client.get("/api/v2/cache/status").json()["caches"]["data"]["cached_keys"]
        assert "atp:rankings_current" not in keys

    def test_clear_unknown_cache(self, client):
        """Test that only known cache names are accepted."""
        response = client.delete("/api/v2/cache/clear?cache=everything")
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
