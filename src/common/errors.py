"""Error kinds shared by the resolvers, the CDN client and the cache."""

from __future__ import annotations

from typing import Optional


class WebpinError(Exception):
    """Base class for all webpin errors."""


class ResolutionError(WebpinError):
    """A resolution chain failed; fatal for that specifier."""

    def __init__(self, message: str, specifier: Optional[str] = None):
        super().__init__(message)
        self.specifier = specifier


class ValidationError(ResolutionError):
    """Unsupported semver syntax or a deprecated workaround package. Never retried."""


class ResolutionFailed(ResolutionError):
    """The CDN answered a lookup or direct URL fetch with a non-200 status."""

    def __init__(
        self,
        status_code: int,
        url: str,
        body: str = "",
        specifier: Optional[str] = None,
    ):
        super().__init__(f"Failed to resolve [{status_code}]: {url} ({body})", specifier)
        self.status_code = status_code
        self.url = url
        self.body = body


class ProtocolError(ResolutionError):
    """The CDN broke the build/poll protocol."""


class BuildFailed(ResolutionError):
    """The CDN reported a failed build, or the single retry was used up."""


class NetworkError(ResolutionError):
    """The request never produced an HTTP response (connection error, timeout)."""

    def __init__(self, url: str, reason: str, specifier: Optional[str] = None):
        super().__init__(f"Network error for {url}: {reason}", specifier)
        self.url = url
        self.reason = reason


class CacheError(WebpinError):
    """Base class for persistent cache failures."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"{reason}: {key}")
        self.key = key
        self.reason = reason


class CacheReadError(CacheError):
    """Missing, corrupt or unreadable cache entry; always treated as a miss."""


class CacheWriteError(CacheError):
    """A cache write failed."""


class LockfileError(WebpinError):
    """A lockfile document is malformed."""


class ConfigError(WebpinError):
    """The config file is unreadable or invalid."""
