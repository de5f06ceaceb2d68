"""Tests for slackseek.models helpers and wire shapes."""

from slackseek.models import (
    NormalizedMessage,
    SearchResult,
    ThreadMessage,
    ThreadResult,
    parse_slack_ts,
    slack_ts_to_iso,
    thread_ts_from_permalink,
)


class TestTimestamps:
    def test_parse(self):
        assert parse_slack_ts("1508284197.000015") == 1508284197.000015

    def test_parse_rejects_garbage(self):
        assert parse_slack_ts("") is None
        assert parse_slack_ts("   ") is None
        assert parse_slack_ts(None) is None
        assert parse_slack_ts("abc") is None

    def test_iso(self):
        assert slack_ts_to_iso("0") == "1970-01-01T00:00:00.000Z"
        assert slack_ts_to_iso("1.5") == "1970-01-01T00:00:01.500Z"

    def test_iso_failure_is_empty_string(self):
        assert slack_ts_to_iso("nope") == ""
        assert slack_ts_to_iso("1e400") == ""


class TestPermalink:
    def test_extracts_thread_ts(self):
        url = "https://acme.slack.com/archives/C1/p1700000001000200?thread_ts=1700000000.000100&cid=C1"
        assert thread_ts_from_permalink(url) == "1700000000.000100"

    def test_no_thread_ts(self):
        assert thread_ts_from_permalink("https://acme.slack.com/archives/C1/p1700000001000200") is None

    def test_empty(self):
        assert thread_ts_from_permalink(None) is None
        assert thread_ts_from_permalink("") is None


class TestWireShapes:
    def test_search_result_camel_case(self):
        result = SearchResult(
            messages=[NormalizedMessage(text="t", timestamp="", channel_id="C1", user_id="U1", score=1.0)],
            total_result_count=3,
            has_more_results=True,
        )

        data = result.to_dict()

        assert data == {
            "messages": [{"text": "t", "timestamp": "", "channelId": "C1", "userId": "U1", "score": 1.0}],
            "total": 3,
            "hasMore": True,
        }

    def test_empty_search_result_has_list(self):
        assert SearchResult().to_dict()["messages"] == []

    def test_thread_result_without_parent(self):
        reply = ThreadMessage(text="r", timestamp="", ts="2", channel_id="C1")
        data = ThreadResult(replies=[reply]).to_dict()

        assert "parent" not in data
        assert "nextCursor" not in data
        assert data["hasMore"] is False
        assert data["replies"][0] == {
            "text": "r",
            "timestamp": "",
            "ts": "2",
            "channelId": "C1",
            "isEdited": False,
            "isDeleted": False,
        }

    def test_thread_result_with_cursor(self):
        parent = ThreadMessage(text="p", timestamp="", ts="1", channel_id="C1")
        data = ThreadResult(parent=parent, next_cursor="abc", has_more=True).to_dict()

        assert data["parent"]["ts"] == "1"
        assert data["nextCursor"] == "abc"
        assert data["hasMore"] is True
