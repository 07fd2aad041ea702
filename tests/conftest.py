"""
Pytest configuration and shared fixtures for tennis pipeline tests.
"""

import pytest
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, List

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from fastapi.testclient import TestClient
from tennis_pipeline.api.main import app
from tennis_pipeline.analytics.performance import PerformanceAnalyzer
from tennis_pipeline.cleaning.cleaner import MatchCleaner
from tennis_pipeline.data.historical_loader import HistoricalDataLoader
from tennis_pipeline.formatting.formatter import MatchFormatter
from tennis_pipeline.infrastructure.settings import Settings
from tennis_pipeline.services.dependency_container import get_container, reset_container
from tennis_pipeline.services.match_service import MatchService
from tennis_pipeline.services.player_service import PlayerService
from tennis_pipeline.validation.validator import MatchValidator

CURRENT_YEAR = datetime.now().year
PREVIOUS_YEAR = CURRENT_YEAR - 1

SINNER_ID = "206173"
DJOKOVIC_ID = "104925"
ALCARAZ_ID = "207989"
MEDVEDEV_ID = "106421"

STAT_COLUMNS = ["ace", "df", "svpt", "1stIn", "1stWon", "2ndWon", "SvGms", "bpSaved", "bpFaced"]
MATCH_COLUMNS = (
    ["tourney_id", "tourney_name", "surface", "draw_size", "tourney_level", "tourney_date", "match_num"]
    + [f"winner_{c}" for c in ("id", "seed", "entry", "name", "hand", "ht", "ioc", "age")]
    + [f"loser_{c}" for c in ("id", "seed", "entry", "name", "hand", "ht", "ioc", "age")]
    + ["score", "best_of", "round", "minutes"]
    + [f"w_{c}" for c in STAT_COLUMNS]
    + [f"l_{c}" for c in STAT_COLUMNS]
    + ["winner_rank", "winner_rank_points", "loser_rank", "loser_rank_points"]
)


def _stats(prefix: str, values: List[int]) -> Dict[str, str]:
    return {f"{prefix}_{c}": str(v) for c, v in zip(STAT_COLUMNS, values)}


def _write_csv(path: Path, columns: List[str], rows: List[Dict[str, Any]], extra_lines: List[str] = ()) -> None:
    lines = [",".join(columns)]
    for row in rows:
        lines.append(",".join(str(row.get(c, "")) for c in columns))
    lines.extend(extra_lines)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _side(prefix: str, player_id: str, name: str, ioc: str, height: int, age: float) -> Dict[str, Any]:
    return {
        f"{prefix}_id": player_id,
        f"{prefix}_name": name,
        f"{prefix}_hand": "R",
        f"{prefix}_ht": height,
        f"{prefix}_ioc": ioc,
        f"{prefix}_age": age,
    }


def archive_match_rows() -> List[Dict[str, Any]]:
    """Four archive rows: two Grand Slam matches, one ATP final, one Challenger walkover."""
    australian_open = {
        "tourney_id": f"{CURRENT_YEAR}-580",
        "tourney_name": "Australian Open",
        "surface": "Hard",
        "draw_size": 128,
        "tourney_level": "G",
        "tourney_date": f"{CURRENT_YEAR}0115",
        "best_of": 5,
    }
    final = {
        **australian_open,
        "match_num": 701,
        **_side("winner", SINNER_ID, "Jannik Sinner", "ITA", 191, 24.4),
        **_side("loser", DJOKOVIC_ID, "Novak Djokovic", "SRB", 188, 38.6),
        "score": "6-3 6-7(4) 6-3 6-4",
        "round": "F",
        "minutes": 200,
        **_stats("w", [10, 2, 100, 60, 45, 20, 20, 3, 4]),
        **_stats("l", [8, 3, 110, 70, 50, 18, 19, 5, 9]),
        "winner_rank": 2, "winner_rank_points": 8000, "loser_rank": 1, "loser_rank_points": 9000,
    }
    semifinal = {
        **australian_open,
        "match_num": 601,
        **_side("winner", SINNER_ID, "Jannik Sinner", "ITA", 191, 24.4),
        **_side("loser", ALCARAZ_ID, "Carlos Alcaraz", "ESP", 183, 22.7),
        "score": "7-6(5) 6-4 RET",
        "round": "SF",
        "winner_rank": 2, "loser_rank": 3,
    }
    rotterdam = {
        "tourney_id": f"{CURRENT_YEAR}-407",
        "tourney_name": "Rotterdam",
        "surface": "Hard",
        "draw_size": 32,
        "tourney_level": "A",
        "tourney_date": f"{CURRENT_YEAR}0210",
        "match_num": 300,
        **_side("winner", ALCARAZ_ID, "Carlos Alcaraz", "ESP", 183, 22.8),
        **_side("loser", SINNER_ID, "Jannik Sinner", "ITA", 191, 24.5),
        "score": "6-4 6-4",
        "best_of": 3,
        "round": "F",
        "minutes": 95,
        **_stats("w", [7, 0, 55, 35, 28, 12, 10, 2, 2]),
        **_stats("l", [4, 1, 60, 40, 30, 10, 10, 1, 3]),
    }
    challenger = {
        "tourney_id": f"{CURRENT_YEAR}-2001",
        "tourney_name": "Rome Challenger",
        "surface": "Clay",
        "draw_size": 32,
        "tourney_level": "C",
        "tourney_date": f"{CURRENT_YEAR}0115",
        "match_num": 1,
        **_side("winner", "555555", "Unknown Qualifier", "ARG", 180, 21.0),
        **_side("loser", MEDVEDEV_ID, "Daniil Medvedev", "RUS", 198, 29.9),
        "score": "W/O",
        "best_of": 3,
        "round": "R32",
    }
    return [final, semifinal, rotterdam, challenger]


@pytest.fixture
def archive_dir(tmp_path) -> Path:
    """Temporary archive directory with players, rankings and one season of matches."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()

    _write_csv(
        data_dir / "atp_players.csv",
        ["player_id", "name_first", "name_last", "hand", "dob", "ioc", "height", "wikidata_id"],
        [
            {"player_id": DJOKOVIC_ID, "name_first": "Novak", "name_last": "Djokovic", "hand": "R",
             "dob": "19870522", "ioc": "SRB", "height": 188, "wikidata_id": "Q5812"},
            {"player_id": ALCARAZ_ID, "name_first": "Carlos", "name_last": "Alcaraz", "hand": "R",
             "dob": "20030505", "ioc": "ESP", "height": 183},
            {"player_id": SINNER_ID, "name_first": "Jannik", "name_last": "Sinner", "hand": "R",
             "dob": "20010816", "ioc": "ITA", "height": 191},
            {"player_id": MEDVEDEV_ID, "name_first": "Daniil", "name_last": "Medvedev", "hand": "R",
             "dob": "19960211", "ioc": "RUS", "height": 198},
        ],
        extra_lines=["999,Broken"]
    )

    _write_csv(
        data_dir / "atp_rankings_current.csv",
        ["ranking_date", "rank", "player", "points"],
        [
            {"ranking_date": f"{CURRENT_YEAR}0108", "rank": 1, "player": DJOKOVIC_ID, "points": 9855},
            {"ranking_date": f"{CURRENT_YEAR}0108", "rank": 2, "player": ALCARAZ_ID, "points": 8805},
            {"ranking_date": f"{CURRENT_YEAR}0108", "rank": 3, "player": SINNER_ID, "points": 8310},
            {"ranking_date": f"{CURRENT_YEAR}0108", "rank": 4, "player": "999999", "points": 5000},
            {"ranking_date": f"{CURRENT_YEAR}0101", "rank": 1, "player": ALCARAZ_ID, "points": 9000},
            {"ranking_date": f"{CURRENT_YEAR}0101", "rank": 2, "player": DJOKOVIC_ID, "points": 8900},
        ]
    )

    _write_csv(
        data_dir / f"atp_rankings_{PREVIOUS_YEAR}.csv",
        ["ranking_date", "rank", "player", "points"],
        [{"ranking_date": f"{PREVIOUS_YEAR}0601", "rank": 1, "player": SINNER_ID, "points": 11000}]
    )

    _write_csv(data_dir / f"atp_matches_{CURRENT_YEAR}.csv", MATCH_COLUMNS, archive_match_rows())

    return data_dir


@pytest.fixture
def loader(archive_dir) -> HistoricalDataLoader:
    """Loader over the temporary archive."""
    return HistoricalDataLoader(data_dir=str(archive_dir), tour="atp")


@pytest.fixture
def cleaner() -> MatchCleaner:
    return MatchCleaner()


@pytest.fixture
def validator() -> MatchValidator:
    return MatchValidator()


@pytest.fixture
def formatter() -> MatchFormatter:
    return MatchFormatter()


@pytest.fixture
def analyzer() -> PerformanceAnalyzer:
    return PerformanceAnalyzer()


@pytest.fixture
def match_service(cleaner, validator, formatter, loader) -> MatchService:
    return MatchService(cleaner=cleaner, validator=validator, formatter=formatter, loader=loader)


@pytest.fixture
def player_service(loader, analyzer) -> PlayerService:
    return PlayerService(loader=loader, analyzer=analyzer)


@pytest.fixture
def client(archive_dir):
    """FastAPI test client bound to the temporary archive."""
    reset_container()
    get_container(Settings(data_dir=str(archive_dir), tour="atp"))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def reset_container_after_test():
    """Reset dependency container after each test."""
    yield
    reset_container()


@pytest.fixture
def raw_match() -> Dict[str, Any]:
    """A completed live-feed record in the raw shape."""
    return {
        "id": "m-1",
        "tournament": {
            "id": "t-1",
            "name": "Shanghai Masters",
            "category": "ATP",
            "surface": "hard",
            "city": "Shanghai",
            "country": "China",
        },
        "round": "Final",
        "status": "finished",
        "players": [
            {"id": "p1", "name": "Sinner, Jannik", "nationality": "Italy", "countryCode": "IT", "ranking": 1},
            {"id": "p2", "name": "Novak Djokovic", "nationality": "Serbia", "countryCode": "RS", "ranking": 4},
        ],
        "score": {
            "sets": [
                {"player1": 7, "player2": 6, "tiebreak": {"player1": 7, "player2": 4}},
                {"player1": 6, "player2": 3},
            ]
        },
        "startTime": "2024-10-13T09:30:00Z",
        "endTime": "2024-10-13T11:45:00Z",
    }
