"""Resolution of already-known CDN URLs through the permanent cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from cdn.client import CDNClient
from common.errors import CacheWriteError, ResolutionFailed
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from constants import CDNHeaders
from storage.policies import PermanentCache, PinnedMetadata

logger = logging.getLogger(__name__)


@dataclass
class ResolutionResult:
    """Module source plus the canonical URL to record in the import map."""

    body: str
    pinned_url: str
    types_url: Optional[str] = None


class UrlResolver:
    """Resolves content-addressed CDN URLs, cache first.

    Hashed CDN URLs never change content, so a cached entry is served
    without any network request.
    """

    def __init__(self, client: CDNClient, cache: PermanentCache):
        self._client = client
        self._cache = cache

    async def resolve_by_url(self, url: str, specifier: Optional[str] = None) -> ResolutionResult:
        """Resolve ``url`` (absolute or origin-relative).

        Args:
            url: CDN URL or path.
            specifier: Specifier being resolved, attached to errors.

        Raises:
            ResolutionFailed: The CDN answered with a non-200 status.
            NetworkError: The CDN could not be reached.
        """
        install_url = self._client.normalize_url(url)

        cached = await self._cache.get(install_url)
        if cached is not None:
            body, metadata = cached
            if is_debug_enabled(logger):
                logger.debug(
                    "Resolved from permanent cache",
                    extra=extra_context(
                        event="cache_hit",
                        component="url_resolver",
                        target=safe_url(install_url),
                    ),
                )
            return ResolutionResult(
                body=body,
                pinned_url=metadata.pinned_url,
                types_url=metadata.types_url,
            )

        response = await self._client.fetch(install_url)
        if not response.ok:
            logger.warning(
                "Failed to resolve [%s]: %s (%s)",
                response.status_code,
                install_url,
                response.body,
            )
            raise ResolutionFailed(response.status_code, install_url, response.body, specifier)

        types_path = response.header(CDNHeaders.TYPESCRIPT_TYPES)
        types_url = self._client.normalize_url(types_path) if types_path else None

        if response.max_age is not None:
            try:
                await self._cache.put(
                    install_url,
                    response.body.encode("utf-8"),
                    PinnedMetadata(pinned_url=install_url, types_url=types_url),
                )
            except CacheWriteError as exc:
                # Still fetchable from the CDN, so the resolution stands.
                logger.warning("Could not cache %s: %s", safe_url(install_url), exc)

        return ResolutionResult(body=response.body, pinned_url=install_url, types_url=types_url)
