"""Cache key builders and TTL policy for location read models."""

from __future__ import annotations

from dataclasses import dataclass

from lettuce.config import settings

NEARBY_PREFIX = "nearby:"
LOCATION_PREFIX = "location:"
GENERATION_PREFIX = "generation:"


def canonical_coordinate(value: float) -> float:
    """Round to the 4 decimal places (~11 m) nearby keys are built from."""
    return round(float(value), 4) + 0.0


def _canonical_number(value: float) -> str:
    """Format to at most 4 decimal places, trimming zeros and normalizing -0."""
    rounded = canonical_coordinate(value)
    text = f"{rounded:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


class CacheKeys:
    """Key layout shared by every cache store.

    All per-location views live under ``location:{id}:`` so one prefix
    delete evicts everything cached for that location. The generation
    counter sits outside that prefix so an eviction never resets it.
    """

    @staticmethod
    def nearby(lat: float, lng: float, radius_meters: float) -> str:
        return (
            f"{NEARBY_PREFIX}{_canonical_number(lat)}:"
            f"{_canonical_number(lng)}:{_canonical_number(radius_meters)}"
        )

    @staticmethod
    def location_prefix(location_id: str) -> str:
        return f"{LOCATION_PREFIX}{location_id}:"

    @staticmethod
    def detail(location_id: str) -> str:
        return f"{CacheKeys.location_prefix(location_id)}detail"

    @staticmethod
    def score(location_id: str) -> str:
        return f"{CacheKeys.location_prefix(location_id)}score"

    @staticmethod
    def summary(location_id: str) -> str:
        return f"{CacheKeys.location_prefix(location_id)}summary"

    @staticmethod
    def time_analysis(location_id: str) -> str:
        return f"{CacheKeys.location_prefix(location_id)}time"

    @staticmethod
    def generation(location_id: str) -> str:
        return f"{GENERATION_PREFIX}{location_id}"


@dataclass(frozen=True, slots=True)
class CacheTTL:
    """Seconds each cached result type stays valid."""

    nearby: int = 300
    detail: int = 600
    score: int = 60
    summary: int = 300
    time_analysis: int = 3600

    @classmethod
    def from_settings(cls) -> CacheTTL:
        return cls(**settings.cache_ttls())

    @property
    def longest(self) -> int:
        return max(self.nearby, self.detail, self.score, self.summary, self.time_analysis)
