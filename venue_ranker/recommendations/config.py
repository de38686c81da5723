from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data" / "processed"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ScoringWeights:
    """Relative importance of the five sub-scores. Must sum to 1.0."""

    preference: float = 0.30
    popularity: float = 0.20
    rating: float = 0.20
    location: float = 0.15
    availability: float = 0.15

    def __post_init__(self) -> None:
        values = self.as_dict()
        negative = [k for k, v in values.items() if v < 0]
        if negative:
            raise ValueError(f"Scoring weights must be non-negative: {negative}")
        total = sum(values.values())
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Scoring weights must sum to 1.0, got {total}")

    def as_dict(self) -> dict[str, float]:
        return {
            "preference": self.preference,
            "popularity": self.popularity,
            "rating": self.rating,
            "location": self.location,
            "availability": self.availability,
        }


@dataclass(frozen=True)
class ScoringConfig:
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    max_bookings: int = 1000
    max_distance_km: float = 50.0
    earth_radius_km: float = 6371.0
    max_rating: float = 5.0
    neutral_preference: float = 0.5
    unmatched_preference: float = 0.3
    neutral_location: float = 0.5

    def __post_init__(self) -> None:
        for name in ("max_bookings", "max_distance_km", "earth_radius_km", "max_rating"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")


@dataclass(frozen=True)
class ServiceConfig:
    data_dir: Path = Path(os.getenv("VENUE_RANKER_DATA_DIR", str(_DEFAULT_DATA_DIR)))
    default_limit: int = 15
    max_limit: int = 100
    cache_ttl: float = float(os.getenv("VENUE_RANKER_CACHE_TTL", "300"))
    exclude_fully_booked: bool = _env_flag("VENUE_RANKER_EXCLUDE_FULLY_BOOKED", "true")
    max_workers: int = int(os.getenv("VENUE_RANKER_MAX_WORKERS", "1"))


DEFAULT_SCORING_CONFIG = ScoringConfig()
DEFAULT_SERVICE_CONFIG = ServiceConfig()
