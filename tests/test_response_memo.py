"""Tests for the in-process response memo."""

from cdn.memo import ResponseMemo
from cdn.response import CDNResponse


def _response(url, body="x"):
    return CDNResponse(url=url, status_code=200, headers={"cache-control": "max-age=60"}, body=body)


class TestResponseMemo:
    """Tests for memo storage and bounds."""

    def test_get_set(self):
        memo = ResponseMemo()
        response = _response("https://cdn/a")
        memo.set("https://cdn/a", response)
        assert memo.get("https://cdn/a") is response
        assert memo.get("https://cdn/b") is None

    def test_exact_url_keys(self):
        memo = ResponseMemo()
        memo.set("https://cdn/a", _response("https://cdn/a"))
        assert memo.get("https://cdn/a?x=1") is None

    def test_entry_ceiling_evicts_oldest(self):
        memo = ResponseMemo(max_entries=2)
        memo.set("a", _response("a"))
        memo.set("b", _response("b"))
        memo.set("c", _response("c"))
        assert "a" not in memo
        assert "b" in memo
        assert "c" in memo
        assert len(memo) == 2

    def test_byte_ceiling_evicts_oldest(self):
        memo = ResponseMemo(max_bytes=10)
        memo.set("a", _response("a", body="12345"))
        memo.set("b", _response("b", body="12345"))
        memo.set("c", _response("c", body="123"))
        assert "a" not in memo
        assert memo.stats()["current_bytes"] == 8

    def test_oversized_body_not_stored(self):
        memo = ResponseMemo(max_bytes=4)
        memo.set("a", _response("a", body="too large"))
        assert len(memo) == 0

    def test_zero_entries_disables_memo(self):
        memo = ResponseMemo(max_entries=0)
        memo.set("a", _response("a"))
        assert len(memo) == 0

    def test_replacing_entry_keeps_byte_count(self):
        memo = ResponseMemo()
        memo.set("a", _response("a", body="1234"))
        memo.set("a", _response("a", body="12"))
        assert memo.stats()["current_bytes"] == 2
        assert memo.get("a").body == "12"

    def test_stats_and_clear(self):
        memo = ResponseMemo(max_entries=5, max_bytes=100)
        memo.set("a", _response("a"))
        memo.get("a")
        memo.get("missing")
        stats = memo.stats()
        assert stats["total_entries"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["max_entries"] == 5
        memo.clear()
        assert len(memo) == 0
        assert memo.stats()["current_bytes"] == 0
