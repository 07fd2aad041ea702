"""
Environment configuration.

Loads variables from a .env file if it exists and reads the pipeline
settings from the environment.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from tennis_pipeline.core.constants import (
    Tour,
    DEFAULT_DATA_DIR,
    DEFAULT_TOUR,
    DEFAULT_LOCATION,
    DEFAULT_VALIDATION_CACHE_TTL_MINUTES,
    DEFAULT_DATA_CACHE_TTL_MINUTES,
)
from tennis_pipeline.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def load_env_file(env_file: Optional[str] = None) -> None:
    """
    Load environment variables from .env file.

    Variables already present in the environment are left untouched.

    Args:
        env_file: Path to .env file (default: .env in project root)
    """
    if env_file is None:
        # Project root, two levels above tennis_pipeline/infrastructure
        env_file = Path(__file__).resolve().parent.parent.parent / ".env"

    env_path = Path(env_file)
    if not env_path.exists():
        return

    try:
        with open(env_path, 'r', encoding='utf-8') as f:
            lines = f.readlines()
    except OSError as e:
        logger.warning(f"Could not read {env_path}: {e}")
        return

    for line in lines:
        line = line.strip()

        # Skip empty lines and comments
        if not line or line.startswith('#') or '=' not in line:
            continue

        key, value = line.split('=', 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")

        if key and key not in os.environ:
            os.environ[key] = value


def _positive_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime configuration of the pipeline."""
    data_dir: str = DEFAULT_DATA_DIR
    tour: str = DEFAULT_TOUR
    validation_cache_ttl_minutes: float = DEFAULT_VALIDATION_CACHE_TTL_MINUTES
    data_cache_ttl_minutes: float = DEFAULT_DATA_CACHE_TTL_MINUTES
    default_location: str = DEFAULT_LOCATION

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Read settings from environment variables.

        Args:
            environ: Variable mapping (os.environ if None)

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        environ = os.environ if environ is None else environ

        tour = environ.get("TENNIS_TOUR", DEFAULT_TOUR).strip().lower()
        if tour not in {t.value for t in Tour}:
            raise ConfigurationError(f"TENNIS_TOUR must be 'atp' or 'wta', got {tour!r}")

        return cls(
            data_dir=environ.get("TENNIS_DATA_DIR") or DEFAULT_DATA_DIR,
            tour=tour,
            validation_cache_ttl_minutes=_positive_float(
                environ, "VALIDATION_CACHE_TTL_MINUTES", DEFAULT_VALIDATION_CACHE_TTL_MINUTES
            ),
            data_cache_ttl_minutes=_positive_float(
                environ, "DATA_CACHE_TTL_MINUTES", DEFAULT_DATA_CACHE_TTL_MINUTES
            ),
            default_location=environ.get("DEFAULT_LOCATION") or DEFAULT_LOCATION
        )
