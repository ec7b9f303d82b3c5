"""Durable key/value store for fetched module bodies.

Entries live in a :mod:`diskcache` directory so they survive across runs.
Every operation runs in a worker thread, which keeps the event loop free
while SQLite and the filesystem are busy.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import diskcache

from common.errors import CacheReadError, CacheWriteError

logger = logging.getLogger(__name__)


@dataclass
class CachedEntry:
    """A stored body blob plus arbitrary metadata."""

    body: bytes
    metadata: Dict[str, Any] = field(default_factory=dict)


class PersistentStore:
    """Async key/value store on durable storage, keyed by absolute URL."""

    def __init__(self, directory: str):
        """Open (or create) the store.

        Args:
            directory: Cache directory; ``~`` is expanded.
        """
        self._directory = os.path.expanduser(directory)
        self._cache: Optional[diskcache.Cache] = None

    @property
    def directory(self) -> str:
        """Filesystem location of the store."""
        return self._directory

    def _ensure_cache(self) -> diskcache.Cache:
        if self._cache is None:
            self._cache = diskcache.Cache(self._directory)
        return self._cache

    async def get(self, key: str) -> CachedEntry:
        """Read an entry.

        Raises:
            CacheReadError: The entry is missing, corrupt or unreadable.
        """
        return await asyncio.to_thread(self._get_sync, key)

    async def add(self, key: str, body: bytes, metadata: Dict[str, Any]) -> bool:
        """Store an entry only if ``key`` is absent. Returns True if written."""
        return await asyncio.to_thread(self._write_sync, key, body, metadata, False)

    async def put(self, key: str, body: bytes, metadata: Dict[str, Any]) -> None:
        """Store an entry, replacing any previous value."""
        await asyncio.to_thread(self._write_sync, key, body, metadata, True)

    async def clear(self) -> int:
        """Remove every entry. Returns the number of entries removed."""
        removed = await asyncio.to_thread(self._ensure_cache().clear)
        logger.info("Cleared %d cached resources from %s", removed, self._directory)
        return removed

    def close(self) -> None:
        """Close the underlying cache handle."""
        if self._cache is not None:
            self._cache.close()
            self._cache = None

    def _get_sync(self, key: str) -> CachedEntry:
        try:
            record = self._ensure_cache().get(key, default=None)
        except Exception as exc:  # sqlite, filesystem and unpickling errors alike
            raise CacheReadError(key, f"unreadable entry ({exc})") from exc
        if record is None:
            raise CacheReadError(key, "missing entry")
        if (
            not isinstance(record, dict)
            or not isinstance(record.get("body"), bytes)
            or not isinstance(record.get("metadata"), dict)
        ):
            raise CacheReadError(key, "corrupt entry")
        return CachedEntry(body=record["body"], metadata=record["metadata"])

    def _write_sync(
        self, key: str, body: bytes, metadata: Dict[str, Any], overwrite: bool
    ) -> bool:
        record = {"body": body, "metadata": metadata}
        cache = self._ensure_cache()
        try:
            if overwrite:
                return bool(cache.set(key, record))
            return bool(cache.add(key, record))
        except Exception as exc:
            raise CacheWriteError(key, f"write failed ({exc})") from exc
