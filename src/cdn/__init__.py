"""CDN access: the HTTP client and its in-process response memo."""

from .response import CDNResponse, parse_max_age
from .memo import ResponseMemo
from .client import CDNClient

__all__ = [
    "CDNResponse",
    "parse_max_age",
    "ResponseMemo",
    "CDNClient",
]
