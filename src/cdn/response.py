"""CDN response model and header helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from constants import CDNHeaders

_MAX_AGE_PATTERN = re.compile(r"max-age=(\d+)")


def normalize_headers(headers: Mapping[str, Any]) -> Dict[str, str]:
    """Lowercase header names so lookups are case-insensitive."""
    return {str(key).lower(): str(value) for key, value in headers.items()}


def parse_max_age(headers: Mapping[str, str]) -> Optional[int]:
    """Return the ``max-age`` seconds of a cache-control header, or None."""
    cache_control = headers.get(CDNHeaders.CACHE_CONTROL)
    if not cache_control:
        return None
    match = _MAX_AGE_PATTERN.search(cache_control)
    if not match:
        return None
    return int(match.group(1))


@dataclass
class CDNResponse:
    """A fully read CDN response. Status codes are data, never exceptions."""

    url: str
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    @property
    def max_age(self) -> Optional[int]:
        """Cache TTL signal carried by the response, if any."""
        return parse_max_age(self.headers)

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup; empty values count as absent."""
        return self.headers.get(name.lower()) or None

    @property
    def size(self) -> int:
        return len(self.body.encode("utf-8"))
