"""HTTP client for the CDN origin."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

from common.errors import NetworkError
from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from constants import CDNHeaders, Constants, ImportStatus

from .memo import ResponseMemo
from .response import CDNResponse, normalize_headers

logger = logging.getLogger(__name__)


class CDNClient:
    """Issues GET requests against a configured CDN origin.

    Responses carrying a cache TTL signal are memoized in the injected
    :class:`ResponseMemo`, so repeated requests for the same URL during one
    run never hit the network twice.
    """

    def __init__(
        self,
        origin: str = Constants.CDN_ORIGIN,
        memo: Optional[ResponseMemo] = None,
        timeout: Optional[float] = Constants.REQUEST_TIMEOUT,
        user_agent: str = Constants.USER_AGENT,
    ):
        """Initialize the CDN client.

        Args:
            origin: CDN origin, e.g. ``https://cdn.skypack.dev``.
            memo: Response memo; None disables memoization.
            timeout: Total request timeout in seconds; None or 0 disables it.
            user_agent: Identifying User-Agent header sent with every request.
        """
        self._origin = origin.rstrip("/")
        self._memo = memo
        self._timeout = aiohttp.ClientTimeout(total=timeout or None)
        self._headers = {"User-Agent": user_agent, "Accept": "*/*"}
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def origin(self) -> str:
        return self._origin

    @property
    def memo(self) -> Optional[ResponseMemo]:
        return self._memo

    def normalize_url(self, url: str) -> str:
        """Qualify a path with the origin; absolute URLs pass through."""
        if url.startswith(("http://", "https://")):
            return url
        path = url if url.startswith("/") else f"/{url}"
        return f"{self._origin}{path}"

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=100)
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                connector=connector,
                headers=self._headers,
            )

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def fetch(self, url: str, refresh: bool = False) -> CDNResponse:
        """GET ``url`` and return the response whatever its status.

        Args:
            url: Absolute URL or origin-relative path.
            refresh: Skip the memo lookup and always hit the network. The
                response is still memoized when eligible.

        Raises:
            NetworkError: The request failed before a response arrived.
        """
        target = self.normalize_url(url)
        safe_target = safe_url(target)

        if self._memo is not None and not refresh:
            memoized = self._memo.get(target)
            if memoized is not None:
                if is_debug_enabled(logger):
                    logger.debug(
                        "CDN memo hit",
                        extra=extra_context(
                            event="cache_hit",
                            component="cdn_client",
                            action="GET",
                            target=safe_target,
                        ),
                    )
                return memoized

        if self._session is None:
            await self.start()
        assert self._session is not None

        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="cdn_client",
                        action="GET",
                        target=safe_target,
                    ),
                )
            try:
                async with self._session.get(target, headers=self._headers) as raw:
                    body = await raw.read()
                    response = CDNResponse(
                        url=target,
                        status_code=raw.status,
                        headers=normalize_headers(raw.headers),
                        body=body.decode("utf-8", errors="replace"),
                    )
            except asyncio.TimeoutError as exc:
                logger.debug("CDN request timed out: %s", safe_target)
                raise NetworkError(target, "request timed out") from exc
            except (aiohttp.ClientError, ValueError) as exc:
                # yarl rejects malformed URLs (bad port, bad host) with ValueError
                logger.debug("CDN connection error for %s: %s", safe_target, exc)
                raise NetworkError(target, str(exc) or type(exc).__name__) from exc

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="cdn_client",
                        action="GET",
                        status_code=response.status_code,
                        duration_ms=t.duration_ms(),
                        target=safe_target,
                    ),
                )

        if self._memo is not None and self._is_memoizable(response):
            self._memo.set(target, response)
        return response

    @staticmethod
    def _is_memoizable(response: CDNResponse) -> bool:
        """Only responses with a TTL signal, and never an in-progress build."""
        if response.max_age is None:
            return False
        return response.header(CDNHeaders.IMPORT_STATUS) != ImportStatus.PENDING.value

    async def __aenter__(self) -> "CDNClient":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
