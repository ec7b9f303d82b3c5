"""Persistent resource cache.

A single durable store shared by two caching policies: permanent entries for
content-addressed artifacts and TTL entries for runtime lookups.
"""

from .store import CachedEntry, PersistentStore
from .policies import FreshnessCache, FreshnessMetadata, PermanentCache, PinnedMetadata

__all__ = [
    "CachedEntry",
    "PersistentStore",
    "FreshnessCache",
    "FreshnessMetadata",
    "PermanentCache",
    "PinnedMetadata",
]
