"""Resolution of ``(specifier, semver)`` pairs into pinned CDN URLs."""

from __future__ import annotations

import logging
from typing import Optional

from cdn.client import CDNClient
from common.errors import BuildFailed, ProtocolError, ResolutionFailed
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from constants import CDNHeaders, Constants, ImportStatus

from .import_map import ImportMap
from .specifier import build_lookup_path, validate_semver
from .url_resolver import ResolutionResult, UrlResolver

logger = logging.getLogger(__name__)


class SpecifierResolver:
    """Turns a specifier and semver range into a concrete CDN URL.

    A lockfile pin short-circuits to the :class:`UrlResolver`. Otherwise the
    CDN lookup protocol runs: a lookup may report the package as still
    building, in which case the build is polled once and the lookup retried
    once more.
    """

    def __init__(
        self,
        client: CDNClient,
        url_resolver: UrlResolver,
        max_attempts: int = Constants.MAX_LOOKUP_ATTEMPTS,
    ):
        self._client = client
        self._url_resolver = url_resolver
        self._max_attempts = max_attempts

    async def resolve(
        self,
        specifier: str,
        semver: str,
        lockfile: Optional[ImportMap] = None,
        allow_retry: bool = True,
    ) -> ResolutionResult:
        """Resolve one specifier.

        Args:
            specifier: Package import, e.g. ``react`` or ``@scope/pkg/sub``.
            semver: Semver range passed through to the CDN.
            lockfile: Existing import map whose pins skip the lookup.
            allow_retry: Whether a still-building package may be retried.

        Raises:
            ValidationError, ResolutionFailed, ProtocolError, BuildFailed,
            NetworkError.
        """
        pinned = lockfile.get(specifier) if lockfile is not None else None
        if pinned:
            if is_debug_enabled(logger):
                logger.debug(
                    "Using lockfile pin",
                    extra=extra_context(
                        event="decision",
                        component="specifier_resolver",
                        action="pin",
                        specifier=specifier,
                        target=safe_url(pinned),
                    ),
                )
            return await self._url_resolver.resolve_by_url(pinned, specifier)

        if semver == Constants.LATEST:
            logger.warning(
                'warn(%s): Not found in "dependencies". Using latest package version...',
                specifier,
            )
        version = validate_semver(specifier, semver)
        lookup_url = self._client.normalize_url(build_lookup_path(specifier, semver))
        attempts = self._max_attempts if allow_retry else 1

        for attempt in range(1, attempts + 1):
            if is_debug_enabled(logger):
                logger.debug(
                    "CDN lookup",
                    extra=extra_context(
                        event="lookup",
                        component="specifier_resolver",
                        specifier=specifier,
                        semver_mode=version.mode.value,
                        attempt=attempt,
                        target=safe_url(lookup_url),
                    ),
                )
            response = await self._client.fetch(lookup_url, refresh=attempt > 1)
            if not response.ok:
                raise ResolutionFailed(response.status_code, lookup_url, response.body, specifier)

            status = response.header(CDNHeaders.IMPORT_STATUS)
            if status == ImportStatus.SUCCESS.value:
                return self._success(specifier, response.body, response.header(CDNHeaders.PINNED_URL),
                                     response.header(CDNHeaders.TYPESCRIPT_TYPES))

            if status == ImportStatus.FAIL.value or attempt >= attempts:
                raise BuildFailed(f"Failed to build: {specifier}@{semver}", specifier)

            logger.info(
                "Building %s@%s... (This takes a moment, but will be cached for future use)",
                specifier,
                semver,
            )
            import_url = response.header(CDNHeaders.IMPORT_URL)
            if not import_url:
                raise ProtocolError("X-Import-URL header expected, but none received.", specifier)
            poll = await self._client.fetch(import_url)
            if not poll.ok:
                raise ProtocolError(
                    f"Unexpected response [{poll.status_code}]: {self._client.normalize_url(import_url)}",
                    specifier,
                )

        # attempts is always >= 1, so the loop returns or raises first
        raise BuildFailed(f"Failed to build: {specifier}@{semver}", specifier)

    def _success(
        self,
        specifier: str,
        body: str,
        pinned_path: Optional[str],
        types_path: Optional[str],
    ) -> ResolutionResult:
        if not pinned_path:
            raise ProtocolError("X-Pinned-URL header expected, but none received.", specifier)
        return ResolutionResult(
            body=body,
            pinned_url=self._client.normalize_url(pinned_path),
            types_url=self._client.normalize_url(types_path) if types_path else None,
        )
