"""
Cache layer.

Key layout, TTL policy, the soft-failing read-through adapter and an
in-memory store for tests and local runs. The Redis store lives in
``lettuce.services.redis_client``.
"""

from .keys import NEARBY_PREFIX, CacheKeys, CacheTTL, canonical_coordinate
from .location_cache import CacheStore, LocationCache
from .memory_store import InMemoryCacheStore

__all__ = [
    "NEARBY_PREFIX",
    "CacheKeys",
    "CacheStore",
    "CacheTTL",
    "InMemoryCacheStore",
    "LocationCache",
    "canonical_coordinate",
]
