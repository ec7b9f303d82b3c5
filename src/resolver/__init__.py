"""Dependency resolution against the CDN.

Resolves import specifiers into content-addressed CDN URLs, either from a
lockfile pin or through the CDN lookup protocol, and assembles the results
into a lockfile (import map).
"""

from common.errors import (
    BuildFailed,
    LockfileError,
    NetworkError,
    ProtocolError,
    ResolutionError,
    ResolutionFailed,
    ValidationError,
    WebpinError,
)
from .import_map import ImportMap, load_lockfile, write_lockfile
from .url_resolver import ResolutionResult, UrlResolver
from .specifier_resolver import SpecifierResolver
from .lockfile import LockfileGenerator

__all__ = [
    "BuildFailed",
    "LockfileError",
    "NetworkError",
    "ProtocolError",
    "ResolutionError",
    "ResolutionFailed",
    "ValidationError",
    "WebpinError",
    "ImportMap",
    "load_lockfile",
    "write_lockfile",
    "ResolutionResult",
    "UrlResolver",
    "SpecifierResolver",
    "LockfileGenerator",
]
