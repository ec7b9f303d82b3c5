"""In-process memo of cacheable CDN responses."""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Dict, Optional

from constants import Constants

from .response import CDNResponse


class ResponseMemo:
    """Memo of CDN responses keyed by exact URL.

    Entries never expire; they are only evicted, oldest first, when the entry
    or byte ceiling chosen by the caller is exceeded. All methods are
    synchronous, so concurrent coroutines on one event loop cannot interleave
    inside them.
    """

    def __init__(
        self,
        max_entries: int = Constants.MEMO_MAX_ENTRIES,
        max_bytes: int = Constants.MEMO_MAX_BYTES,
    ):
        """Initialize the memo.

        Args:
            max_entries: Maximum number of memoized responses.
            max_bytes: Maximum total body size in bytes.
        """
        self._max_entries = max_entries
        self._max_bytes = max_bytes
        self._entries: "OrderedDict[str, CDNResponse]" = OrderedDict()
        self._current_bytes = 0
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def get(self, url: str) -> Optional[CDNResponse]:
        """Return the memoized response for ``url`` or None."""
        response = self._entries.get(url)
        if response is None:
            self._misses += 1
            return None
        self._hits += 1
        return response

    def set(self, url: str, response: CDNResponse) -> None:
        """Memoize a response, evicting the oldest entries to stay in bounds."""
        body_size = response.size
        if self._max_entries <= 0 or body_size > self._max_bytes:
            return

        if url in self._entries:
            self._remove_entry(url)

        while self._entries and (
            self._current_bytes + body_size > self._max_bytes
            or len(self._entries) >= self._max_entries
        ):
            self._evict_oldest()

        self._entries[url] = response
        self._current_bytes += body_size

    def clear(self) -> None:
        """Drop every memoized response."""
        self._entries.clear()
        self._current_bytes = 0

    def stats(self) -> Dict[str, Any]:
        """Get memo statistics."""
        return {
            "total_entries": len(self._entries),
            "current_bytes": self._current_bytes,
            "max_bytes": self._max_bytes,
            "max_entries": self._max_entries,
            "hits": self._hits,
            "misses": self._misses,
        }

    def _remove_entry(self, url: str) -> None:
        response = self._entries.pop(url, None)
        if response is not None:
            self._current_bytes -= response.size

    def _evict_oldest(self) -> None:
        oldest_url = next(iter(self._entries))
        self._remove_entry(oldest_url)
