"""Request and result types shared by the resolvers, plus timestamp helpers."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

VALID_ORDERS = {"oldest", "newest"}


def parse_slack_ts(ts: str | None) -> float | None:
    """Parse a Slack ``"1508284197.000015"`` timestamp into float seconds."""
    if not ts or not ts.strip():
        return None
    try:
        return float(ts)
    except ValueError:
        return None


def slack_ts_to_iso(ts: str | None) -> str:
    """Convert a Slack timestamp to ISO-8601 UTC, or ``""`` if it won't parse."""
    seconds = parse_slack_ts(ts)
    if seconds is None:
        return ""
    try:
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return ""
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def thread_ts_from_permalink(permalink: str | None) -> str | None:
    """Best-effort thread_ts lookup from a search-result permalink.

    Slack only puts ``thread_ts`` in the query string for replies, and the
    permalink format is not part of the API contract, so a ``None`` here says
    nothing about whether the message is threaded.
    """
    if not permalink:
        return None
    try:
        query = parse_qs(urlparse(permalink).query)
    except ValueError:
        return None
    values = query.get("thread_ts")
    return values[0] if values and values[0] else None


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _to_wire(obj) -> dict:
    return {_camel(k): v for k, v in asdict(obj).items() if v is not None}


@dataclass(frozen=True)
class SearchRequest:
    query: str
    channel_ids: list[str] | None = None
    max_result_count: int | None = None
    team_id: str | None = None


@dataclass(frozen=True)
class ThreadRequest:
    channel_id: str
    thread_ts: str
    limit: int | None = None
    cursor: str | None = None
    order: str = "oldest"


@dataclass
class NormalizedMessage:
    """A search hit in the shape returned to tool callers."""

    text: str
    timestamp: str
    channel_id: str
    user_id: str
    channel_name: str | None = None
    user_name: str | None = None
    score: float | None = None
    thread_ts: str | None = None

    def to_dict(self) -> dict:
        return _to_wire(self)


@dataclass
class ThreadMessage:
    """A message inside a thread.  ``ts`` keeps Slack's native timestamp."""

    text: str
    timestamp: str
    ts: str
    channel_id: str
    user_id: str | None = None
    user_name: str | None = None
    thread_ts: str | None = None
    is_edited: bool = False
    edited_timestamp: str | None = None
    is_deleted: bool = False

    @property
    def sort_key(self) -> float:
        seconds = parse_slack_ts(self.ts)
        return seconds if seconds is not None else float("-inf")

    def to_dict(self) -> dict:
        return _to_wire(self)


@dataclass
class SearchResult:
    messages: list[NormalizedMessage] = field(default_factory=list)
    total_result_count: int = 0
    has_more_results: bool = False

    def to_dict(self) -> dict:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "total": self.total_result_count,
            "hasMore": self.has_more_results,
        }


@dataclass
class ThreadResult:
    parent: ThreadMessage | None = None
    replies: list[ThreadMessage] = field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False

    def to_dict(self) -> dict:
        data: dict = {}
        if self.parent is not None:
            data["parent"] = self.parent.to_dict()
        data["replies"] = [r.to_dict() for r in self.replies]
        if self.next_cursor:
            data["nextCursor"] = self.next_cursor
        data["hasMore"] = self.has_more
        return data
