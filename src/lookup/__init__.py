"""Runtime package lookups backed by the freshness cache policy."""

from .service import FetchResult, LookupResult, LookupService

__all__ = [
    "FetchResult",
    "LookupResult",
    "LookupService",
]
