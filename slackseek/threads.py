"""Thread retrieval: one page of ``conversations.replies`` per call.

Large threads are never aggregated here.  The caller gets ``next_cursor``
back and asks for the following page explicitly.
"""

import logging
from time import monotonic

from .errors import (
    CHANNEL_ACCESS_CODES,
    AuthenticationError,
    RateLimitError,
    SlackSeekError,
    UpstreamError,
    ValidationError,
)
from .events import EventLog
from .gateway import SlackGateway
from .models import VALID_ORDERS, ThreadMessage, ThreadRequest, ThreadResult, parse_slack_ts, slack_ts_to_iso

logger = logging.getLogger(__name__)

DELETED_SUBTYPE = "message_deleted"


def to_thread_message(raw: dict, channel_id: str, thread_ts: str) -> ThreadMessage:
    ts = raw.get("ts") or ""
    edited = raw.get("edited")
    is_edited = edited is not None
    edited_ts = edited.get("ts") if isinstance(edited, dict) else None
    if is_edited and parse_slack_ts(edited_ts) is None:
        # Slack occasionally sends an edit marker without its own ts.
        edited_ts = ts
    return ThreadMessage(
        text=raw.get("text") or "",
        timestamp=slack_ts_to_iso(ts),
        ts=ts,
        channel_id=channel_id,
        user_id=raw.get("user"),
        user_name=raw.get("username"),
        thread_ts=thread_ts,
        is_edited=is_edited,
        edited_timestamp=slack_ts_to_iso(edited_ts) if is_edited else None,
        is_deleted=raw.get("subtype") == DELETED_SUBTYPE or bool(raw.get("deleted")),
    )


def split_thread(messages: list[ThreadMessage], thread_ts: str, order: str) -> tuple[ThreadMessage | None, list[ThreadMessage]]:
    """Pull out the root message and order the replies by numeric ts."""
    parent = next((m for m in messages if m.ts == thread_ts), None)
    replies = sorted((m for m in messages if m.ts != thread_ts), key=lambda m: m.sort_key)
    if order == "newest":
        replies.reverse()
    return parent, replies


class ThreadResolver:
    def __init__(self, gateway: SlackGateway, events: EventLog) -> None:
        self._gateway = gateway
        self._events = events

    async def thread_replies(self, request: ThreadRequest) -> ThreadResult:
        channel_id, thread_ts = self._validate(request)
        start = monotonic()

        try:
            page = await self._gateway.thread_page(channel_id, thread_ts, request.limit, request.cursor)
        except SlackSeekError as exc:
            self._log_failure(channel_id, thread_ts, exc)
            raise

        messages = [to_thread_message(raw, channel_id, thread_ts) for raw in page.messages]
        parent, replies = split_thread(messages, thread_ts, request.order)
        result = ThreadResult(
            parent=parent,
            replies=replies,
            next_cursor=page.next_cursor,
            has_more=page.next_cursor is not None,
        )

        self._record(channel_id, thread_ts, len(replies), page.next_cursor, (monotonic() - start) * 1000)
        return result

    def _validate(self, request: ThreadRequest) -> tuple[str, str]:
        problem = None
        if not request.channel_id or not request.channel_id.strip():
            problem = "channelId is required."
        elif not request.thread_ts or not request.thread_ts.strip():
            problem = "threadTs is required."
        elif request.order not in VALID_ORDERS:
            problem = f"order must be 'oldest' or 'newest', got {request.order!r}."
        elif request.limit is not None and request.limit < 1:
            problem = "limit must be a positive integer."

        if problem:
            error = ValidationError(problem)
            self._events.error(error, "get_thread_replies request validation failed")
            raise error
        return request.channel_id.strip(), request.thread_ts.strip()

    def _record(self, channel_id: str, thread_ts: str, reply_count: int, cursor: str | None, latency_ms: float) -> None:
        try:
            self._events.thread_success(channel_id, thread_ts, reply_count, latency_ms)
            if cursor:
                self._events.thread_pagination(channel_id, thread_ts, cursor)
        except Exception:
            logger.exception("Failed to record thread metrics for %s/%s", channel_id, thread_ts)

    def _log_failure(self, channel_id: str, thread_ts: str, exc: SlackSeekError) -> None:
        context = f"get_thread_replies {channel_id}/{thread_ts}"
        try:
            if isinstance(exc, RateLimitError):
                logger.warning("[RATE_LIMIT_ERROR] %s: %s", context, exc)
            elif isinstance(exc, AuthenticationError):
                logger.error("[AUTH_ERROR] %s: %s", context, exc)
            elif isinstance(exc, UpstreamError) and exc.code in CHANNEL_ACCESS_CODES:
                logger.error("[API_ERROR] %s: channel not accessible (%s)", context, exc.code)
            self._events.thread_failure(channel_id, thread_ts, exc)
        except Exception:
            logger.exception("Failed to record thread failure for %s/%s", channel_id, thread_ts)
