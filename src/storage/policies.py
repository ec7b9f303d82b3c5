"""Typed caching policies layered over one :class:`PersistentStore`.

Two policies share the store:

* ``PermanentCache`` holds content-addressed CDN artifacts. An entry, once
  written, is never replaced.
* ``FreshnessCache`` holds lookup responses that expire at ``fresh_until``
  and may only be served stale when a refresh fails.

Keys are namespaced per policy so the two metadata shapes never collide.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Dict, Optional, Tuple

from common.errors import CacheReadError
from common.logging_utils import extra_context, is_debug_enabled, safe_url

from .store import PersistentStore

logger = logging.getLogger(__name__)


@dataclass
class PinnedMetadata:
    """Metadata for permanently cached artifacts."""

    pinned_url: str
    types_url: Optional[str] = None


@dataclass
class FreshnessMetadata:
    """Metadata for TTL cached responses."""

    headers: Dict[str, str] = field(default_factory=dict)
    status_code: int = 200
    fresh_until: float = 0.0

    def is_fresh(self, now: Optional[float] = None) -> bool:
        """True while ``fresh_until`` has not passed."""
        current = time.time() if now is None else now
        return self.fresh_until >= current


class PermanentCache:
    """Write-once cache for immutable, hash-addressed URLs."""

    NAMESPACE = "permanent"

    def __init__(self, store: PersistentStore):
        self._store = store

    def _key(self, url: str) -> str:
        return f"{self.NAMESPACE}:{url}"

    async def get(self, url: str) -> Optional[Tuple[str, PinnedMetadata]]:
        """Return ``(text, metadata)`` or None; read failures and undecodable bodies count as a miss."""
        try:
            entry = await self._store.get(self._key(url))
            pinned_url = entry.metadata["pinned_url"]
            if not isinstance(pinned_url, str) or not pinned_url:
                raise CacheReadError(url, "corrupt metadata")
            metadata = PinnedMetadata(
                pinned_url=pinned_url,
                types_url=entry.metadata.get("types_url"),
            )
            text = entry.body.decode("utf-8")
        except (CacheReadError, KeyError, UnicodeDecodeError) as exc:
            if is_debug_enabled(logger):
                logger.debug(
                    "Permanent cache miss",
                    extra=extra_context(
                        event="cache_miss",
                        component="permanent_cache",
                        target=safe_url(url),
                        reason=str(exc),
                    ),
                )
            return None
        return text, metadata

    async def put(self, url: str, body: bytes, metadata: PinnedMetadata) -> bool:
        """Store an artifact unless one is already recorded for ``url``."""
        written = await self._store.add(self._key(url), body, asdict(metadata))
        if is_debug_enabled(logger):
            logger.debug(
                "Permanent cache write",
                extra=extra_context(
                    event="cache_write",
                    component="permanent_cache",
                    target=safe_url(url),
                    outcome="written" if written else "exists",
                ),
            )
        return written


class FreshnessCache:
    """TTL cache whose expired entries serve only as an error fallback."""

    NAMESPACE = "fresh"

    def __init__(self, store: PersistentStore):
        self._store = store

    def _key(self, url: str) -> str:
        return f"{self.NAMESPACE}:{url}"

    async def get(self, url: str) -> Optional[Tuple[str, FreshnessMetadata]]:
        """Return ``(text, metadata)`` whether fresh or not; None on any read failure."""
        try:
            entry = await self._store.get(self._key(url))
            metadata = FreshnessMetadata(
                headers=dict(entry.metadata.get("headers") or {}),
                status_code=int(entry.metadata["status_code"]),
                fresh_until=float(entry.metadata["fresh_until"]),
            )
            text = entry.body.decode("utf-8")
        except (CacheReadError, KeyError, TypeError, ValueError) as exc:
            if is_debug_enabled(logger):
                logger.debug(
                    "Freshness cache miss",
                    extra=extra_context(
                        event="cache_miss",
                        component="freshness_cache",
                        target=safe_url(url),
                        reason=str(exc),
                    ),
                )
            return None
        return text, metadata

    async def put(self, url: str, body: bytes, metadata: FreshnessMetadata) -> None:
        """Store a response, replacing whatever was there (last write wins)."""
        await self._store.put(self._key(url), body, asdict(metadata))
