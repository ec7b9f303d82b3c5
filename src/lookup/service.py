"""Runtime package lookup with TTL caching and stale-on-error fallback."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Set

from cdn.client import CDNClient
from cdn.response import CDNResponse
from common.errors import CacheWriteError, NetworkError
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from constants import CDNHeaders
from resolver.specifier import parse_specifier
from storage.policies import FreshnessCache, FreshnessMetadata
from storage.store import PersistentStore

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """A CDN resource plus where it came from."""

    body: str
    headers: Dict[str, str] = field(default_factory=dict)
    status_code: int = 200
    is_cached: bool = False
    is_stale: bool = False


@dataclass
class LookupResult(FetchResult):
    """A lookup response with the CDN build signals pulled out."""

    import_status: Optional[str] = None
    import_url: Optional[str] = None
    pinned_url: Optional[str] = None
    types_url: Optional[str] = None


class LookupService:
    """Read-mostly lookups served through the freshness cache policy.

    Fresh entries are returned without touching the network. Expired
    entries are only served when the CDN cannot be reached. Successful
    responses are written back in background tasks so a slow or failing
    cache never delays the caller; write failures are collected in
    :attr:`diagnostics`.
    """

    def __init__(
        self,
        client: CDNClient,
        store: PersistentStore,
        clock: Callable[[], float] = time.time,
    ):
        self._client = client
        self._store = store
        self._cache = FreshnessCache(store)
        self._clock = clock
        self._pending_writes: Set[asyncio.Task] = set()
        self.diagnostics: List[CacheWriteError] = []

    async def fetch_cdn(self, url: str) -> FetchResult:
        """Fetch a CDN resource through the freshness cache.

        Raises:
            NetworkError: The CDN is unreachable and nothing is cached.
        """
        resource_url = self._client.normalize_url(url)
        cached = await self._cache.get(resource_url)
        if cached is not None:
            body, metadata = cached
            if metadata.is_fresh(self._clock()):
                return self._from_cache(body, metadata, is_stale=False)

        try:
            response = await self._client.fetch(resource_url)
        except NetworkError:
            if cached is not None:
                body, metadata = cached
                logger.warning("CDN unreachable, serving stale copy of %s", safe_url(resource_url))
                return self._from_cache(body, metadata, is_stale=True)
            raise

        max_age = response.max_age
        if max_age is not None:
            metadata = FreshnessMetadata(
                headers=dict(response.headers),
                status_code=response.status_code,
                fresh_until=self._clock() + max_age,
            )
            self._spawn_write(resource_url, response, metadata)

        return FetchResult(
            body=response.body,
            headers=dict(response.headers),
            status_code=response.status_code,
        )

    async def lookup_by_specifier(
        self,
        specifier: str,
        semver_map: Optional[Mapping[str, str]] = None,
    ) -> LookupResult:
        """Look up a raw package import, optionally pinned to a semver range.

        ``semver_map`` is keyed by package name, not by full specifier.
        """
        parts = parse_specifier(specifier)
        semver = semver_map.get(parts.package_name) if semver_map else None
        lookup_url = f"/{parts.package_name}"
        if semver:
            lookup_url += f"@{semver}"
        if parts.sub_path:
            lookup_url += f"/{parts.sub_path}"

        result = await self.fetch_cdn(lookup_url)
        headers = result.headers
        return LookupResult(
            body=result.body,
            headers=headers,
            status_code=result.status_code,
            is_cached=result.is_cached,
            is_stale=result.is_stale,
            import_status=headers.get(CDNHeaders.IMPORT_STATUS),
            import_url=headers.get(CDNHeaders.IMPORT_URL),
            pinned_url=headers.get(CDNHeaders.PINNED_URL),
            types_url=headers.get(CDNHeaders.TYPESCRIPT_TYPES),
        )

    async def load_by_url(self, url: str) -> FetchResult:
        """Load a CDN resource by URL or path."""
        return await self.fetch_cdn(url)

    async def clear_cache(self) -> int:
        """Remove every entry from the persistent store."""
        await self.drain()
        return await self._store.clear()

    async def drain(self) -> None:
        """Wait for outstanding background cache writes."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    @property
    def pending_writes(self) -> int:
        return len(self._pending_writes)

    def _spawn_write(self, url: str, response: CDNResponse, metadata: FreshnessMetadata) -> None:
        task = asyncio.create_task(
            self._cache.put(url, response.body.encode("utf-8"), metadata)
        )
        self._pending_writes.add(task)
        task.add_done_callback(lambda done: self._on_write_done(url, done))

    def _on_write_done(self, url: str, task: asyncio.Task) -> None:
        self._pending_writes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        error = exc if isinstance(exc, CacheWriteError) else CacheWriteError(url, str(exc))
        self.diagnostics.append(error)
        if is_debug_enabled(logger):
            logger.debug(
                "Background cache write failed",
                extra=extra_context(
                    event="cache_write",
                    component="lookup_service",
                    outcome="failure",
                    target=safe_url(url),
                    reason=str(exc),
                ),
            )

    @staticmethod
    def _from_cache(body: str, metadata: FreshnessMetadata, is_stale: bool) -> FetchResult:
        return FetchResult(
            body=body,
            headers=dict(metadata.headers),
            status_code=metadata.status_code,
            is_cached=True,
            is_stale=is_stale,
        )
