"""
Tennis Data Pipeline REST API

Serves the historical archive (rankings, player profiles, head-to-head,
competitions, matches by date) and runs raw live-feed records through the
clean -> validate -> format pipeline.
"""

import sys
from pathlib import Path
from datetime import datetime
from typing import List, Dict, Optional, Any
from contextlib import asynccontextmanager
import logging

# Add project root to path
project_root = Path(__file__).resolve().parent.parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from tennis_pipeline.cleaning.cleaner import CleaningOptions
from tennis_pipeline.core.exceptions import CompetitionNotFoundError, PlayerNotFoundError
from tennis_pipeline.core.tennis_utils import is_hyphenated_date
from tennis_pipeline.infrastructure.settings import load_env_file
from tennis_pipeline.services.dependency_container import get_container, reset_container
from tennis_pipeline.services.match_service import MatchService
from tennis_pipeline.services.player_service import PlayerService

# Load environment variables
load_env_file()

# Setup logger
logger = logging.getLogger(__name__)

API_VERSION = "2.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    startup_event()
    yield
    shutdown_event()


# Initialize FastAPI app with lifespan
app = FastAPI(
    title="Tennis Data Pipeline API",
    description="Cleaning, validation and formatting of tennis match data, plus historical ATP/WTA archive queries",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def startup_event():
    """Startup event - report configuration and archive availability."""
    logger.info("🚀 Starting Tennis Data Pipeline API...")

    settings = get_container().settings
    data_dir = Path(settings.data_dir)
    if data_dir.is_dir():
        logger.info(f"✓ Historical data directory: {data_dir} ({settings.tour.upper()})")
    else:
        logger.warning(f"⚠️  Historical data directory {data_dir} not found, archive endpoints will return empty results")


def shutdown_event():
    """Shutdown event - drop components and caches."""
    reset_container()
    logger.info("Dependency container reset")


# API Models (DTOs)

class HealthResponseDTO(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    service: str
    version: str
    tour: str
    data_available: bool


class RankingEntryDTO(BaseModel):
    """Data Transfer Object for one ranking position."""
    rank: int
    points: Optional[int] = None
    player: Dict[str, Any]


class RankingsResponseDTO(BaseModel):
    """Data Transfer Object for a ranking snapshot."""
    tour: str
    ranking_date: Optional[str] = None
    rankings: List[RankingEntryDTO] = []


class PlayerProfileDTO(BaseModel):
    """Data Transfer Object for a player profile."""
    player: Dict[str, Any]
    date_of_birth: Optional[str] = None
    current_ranking: Optional[int] = None
    current_points: Optional[int] = None
    highest_ranking: Optional[int] = None
    highest_ranking_date: Optional[str] = None
    performance: Dict[str, Any]


class MeetingDTO(BaseModel):
    """Data Transfer Object for one past meeting."""
    match_id: str
    date: Optional[str] = None
    tournament: str
    surface: str
    round: str
    winner_id: str
    score: str


class HeadToHeadDTO(BaseModel):
    """Data Transfer Object for a head-to-head record."""
    player1: Dict[str, Any]
    player2: Dict[str, Any]
    player1_wins: int
    player2_wins: int
    meetings: List[MeetingDTO] = []


class CompetitionDTO(BaseModel):
    """Data Transfer Object for a tournament of the archive."""
    id: str
    name: str
    level: str
    level_name: str
    surface: str
    date: Optional[str] = None


class ValidationDTO(BaseModel):
    """Data Transfer Object for a validation result."""
    is_valid: bool
    errors: List[str] = []
    warnings: List[str] = []
    data_quality: str


class ProcessedMatchDTO(BaseModel):
    """Cleaned match with its validation result and display view."""
    match: Dict[str, Any]
    validation: ValidationDTO
    display: Dict[str, Any]


class CleaningOptionsDTO(BaseModel):
    """Optional cleaning switches."""
    fill_missing_data: bool = True
    validate_scores: bool = True
    normalize_names: bool = True
    default_location: Optional[str] = None


class CleanRequestDTO(BaseModel):
    """Raw match records to clean."""
    matches: List[Any] = Field(default_factory=list, description="Raw match records in any shape")
    options: Optional[CleaningOptionsDTO] = None


class DataQualityDTO(BaseModel):
    """Issue counts over the raw records."""
    total_matches: int
    missing_data: Dict[str, int] = {}
    recommendations: List[str] = []


class CleanResponseDTO(BaseModel):
    """Processed matches plus the data-quality report of the raw input."""
    matches: List[ProcessedMatchDTO]
    data_quality: DataQualityDTO


class LiveUpdateRequestDTO(BaseModel):
    """Previous snapshot of a match plus the incoming live delta."""
    previous: Dict[str, Any]
    update: Dict[str, Any]


class LiveUpdateResponseDTO(BaseModel):
    """Outcome of checking a live delta."""
    match_id: str
    accepted: bool
    update: Dict[str, Any]
    validation: ValidationDTO
    delta: Optional[Dict[str, Any]] = None


class CacheStatusDTO(BaseModel):
    """Cache status response."""
    enabled: bool
    size: int
    caches: Dict[str, Dict[str, Any]] = {}


# Dependency Injection Helpers

def get_match_service() -> MatchService:
    """Get match service instance from container."""
    return get_container().match_service()


def get_player_service() -> PlayerService:
    """Get player service instance from container."""
    return get_container().player_service()


def _require_date(date: str) -> None:
    if not is_hyphenated_date(date):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid date format: {date}. Expected YYYY-MM-DD"
        )


# API Endpoints

@app.get("/", tags=["General"])
async def root():
    """Root endpoint - lists the available endpoints."""
    return {
        "message": "Tennis Data Pipeline API",
        "version": API_VERSION,
        "endpoints": {
            "health": "/api/v2/health",
            "rankings": "/api/v2/rankings",
            "player": "/api/v2/players/{player_id}",
            "head_to_head": "/api/v2/head-to-head",
            "competitions": "/api/v2/competitions",
            "competition": "/api/v2/competitions/{competition_id}",
            "matches_by_date": "/api/v2/matches/{date}",
            "clean_matches": "/api/v2/matches/clean (POST)",
            "live_update": "/api/v2/matches/live-update (POST)",
            "cache_status": "/api/v2/cache/status",
            "cache_clear": "/api/v2/cache/clear (DELETE)",
            "docs": "/docs"
        }
    }


@app.get("/api/v2/health", response_model=HealthResponseDTO, tags=["General"])
async def health_check():
    """Health check endpoint."""
    settings = get_container().settings

    return HealthResponseDTO(
        status="healthy",
        timestamp=datetime.now().isoformat(),
        service="tennis-data-pipeline",
        version=API_VERSION,
        tour=settings.tour,
        data_available=Path(settings.data_dir).is_dir()
    )


@app.get("/api/v2/rankings", response_model=RankingsResponseDTO, tags=["Players"])
async def get_rankings(
    limit: Optional[int] = Query(None, description="Limit number of results", ge=1),
    date: Optional[str] = Query(None, description="Ranking snapshot date (YYYY-MM-DD), latest if omitted")
):
    """
    Get a ranking snapshot.

    Args:
        limit: Maximum number of results to return
        date: Snapshot date; an unknown date gives an empty list
    """
    if date is not None:
        _require_date(date)

    table = get_player_service().rankings(limit=limit, ranking_date=date)
    return table.to_dict()


@app.get("/api/v2/players/{player_id}", response_model=PlayerProfileDTO, tags=["Players"])
async def get_player(player_id: str):
    """Get a player profile with performance analytics over recent seasons."""
    return get_player_service().profile(player_id).to_dict()


@app.get("/api/v2/head-to-head", response_model=HeadToHeadDTO, tags=["Players"])
async def get_head_to_head(
    player1: str = Query(..., description="First player id"),
    player2: str = Query(..., description="Second player id")
):
    """Get the head-to-head record of two players."""
    if player1 == player2:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Players must be different"
        )
    return get_player_service().head_to_head(player1, player2).to_dict()


@app.get("/api/v2/competitions", response_model=List[CompetitionDTO], tags=["Competitions"])
async def get_competitions(
    years: Optional[List[int]] = Query(None, description="Seasons to scan (current and previous by default)")
):
    """Get the tournaments of recent seasons, most prestigious first."""
    competitions = get_player_service().competitions(years)
    return [CompetitionDTO(**vars(c)) for c in competitions]


@app.get("/api/v2/competitions/{competition_id}", response_model=CompetitionDTO, tags=["Competitions"])
async def get_competition(
    competition_id: str,
    years: Optional[List[int]] = Query(None, description="Seasons to scan (current and previous by default)")
):
    """Get one tournament by its archive id."""
    competition = get_player_service().competition(competition_id, years)
    return CompetitionDTO(**vars(competition))


@app.post("/api/v2/matches/clean", response_model=CleanResponseDTO, tags=["Matches"])
async def clean_matches(request: CleanRequestDTO):
    """
    Clean, validate and format raw match records.

    Records of any shape are accepted; problems are reported in each
    validation result, never as an HTTP error.
    """
    service = get_match_service()

    options = None
    if request.options is not None:
        defaults = service.cleaner.options
        options = CleaningOptions(
            fill_missing_data=request.options.fill_missing_data,
            validate_scores=request.options.validate_scores,
            normalize_names=request.options.normalize_names,
            default_location=request.options.default_location or defaults.default_location
        )

    processed = service.process_many(request.matches, options)
    report = service.data_quality(request.matches)

    return {
        "matches": [p.to_dict() for p in processed],
        "data_quality": report.to_dict(),
    }


@app.post("/api/v2/matches/live-update", response_model=LiveUpdateResponseDTO, tags=["Matches"])
async def apply_live_update(request: LiveUpdateRequestDTO):
    """
    Check a live delta against the previous snapshot of a match.

    A rejected update is reported with accepted=false and the reasons in
    validation.errors.
    """
    result = get_match_service().process_live_update(request.previous, request.update)
    return result.to_dict()


@app.get("/api/v2/matches/{date}", response_model=List[ProcessedMatchDTO], tags=["Matches"])
async def get_matches_by_date(date: str):
    """
    Get archive matches of tournaments starting on a date.

    Args:
        date: Date in YYYY-MM-DD format
    """
    _require_date(date)
    return [p.to_dict() for p in get_match_service().matches_on_date(date)]


@app.get("/api/v2/cache/status", response_model=CacheStatusDTO, tags=["Cache"])
async def get_cache_status():
    """Get status of the data, validation and analytics caches."""
    caches = get_container().caches()

    details = {}
    total = 0
    for name, cache in caches.items():
        keys = cache.keys()
        total += len(keys)
        details[name] = {
            "size": len(keys),
            "cached_keys": sorted(keys),
        }

    return CacheStatusDTO(
        enabled=True,
        size=total,
        caches=details
    )


@app.delete("/api/v2/cache/clear", tags=["Cache"])
async def clear_cache(
    cache: Optional[str] = Query(None, description="Cache to clear", pattern="^(data|validation|analytics)$"),
    key: Optional[str] = Query(None, description="Specific key to clear")
):
    """Clear cache entries."""
    container = get_container()

    if cache is None and key is None:
        container.clear_caches()
        return {"message": "Cleared all caches"}

    targets = container.caches()
    if cache is not None:
        targets = {cache: targets[cache]}

    if key:
        for storage in targets.values():
            storage.delete(key)
        return {"message": f"Cleared cache key: {key}"}

    for storage in targets.values():
        storage.clear()
    return {"message": f"Cleared {cache} cache"}


@app.post("/api/v2/reset", tags=["Development"])
async def reset_dependencies():
    """Reset all dependencies (useful for testing)."""
    reset_container()
    return {"message": "Container reset successfully", "timestamp": datetime.now().isoformat()}


# Error Handlers

@app.exception_handler(PlayerNotFoundError)
async def player_not_found_handler(request: Request, exc: PlayerNotFoundError):
    """Handle unknown player ids."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)}
    )


@app.exception_handler(CompetitionNotFoundError)
async def competition_not_found_handler(request: Request, exc: CompetitionNotFoundError):
    """Handle unknown tournament ids."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
