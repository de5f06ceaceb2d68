"""Upstream gateway: every Slack Web API call goes through here.

Owns the retry loop: rate limits and connectivity failures are retried with
exponential backoff (or Slack's Retry-After when given), authentication
failures fail immediately, and anything else is surfaced as an upstream
error.  Raw responses are normalised into small envelope dataclasses so the
resolvers never depend on the SDK's response type.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from .errors import (
    AuthenticationError,
    ConnectivityError,
    RateLimitError,
    UpstreamError,
    classify,
)
from .events import EventLog

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
BACKOFF_MULTIPLIER = 2

# search.messages rejects count > 100.
MAX_SEARCH_PAGE_SIZE = 100


def create_client(token: str) -> AsyncWebClient:
    """Build the SDK client with its own retry handlers disabled.

    The gateway's loop is the only retry layer, so the attempt ceiling holds.
    """
    return AsyncWebClient(token=token, retry_handlers=[])


@dataclass
class RetryState:
    """Attempt bookkeeping for one gateway call."""

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    multiplier: int = BACKOFF_MULTIPLIER
    attempt: int = 0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_retries

    def backoff_ms(self) -> float:
        return self.base_delay_ms * self.multiplier**self.attempt


@dataclass(frozen=True)
class Paging:
    page: int = 1
    pages: int = 1

    @property
    def has_more(self) -> bool:
        return self.page < self.pages


@dataclass
class SearchEnvelope:
    """Normalised ``search.messages`` response.

    ``matches`` is None when Slack's payload lacks a usable match list; the
    search resolver treats that as contract drift rather than "no results".
    """

    ok: bool
    total: int | None
    matches: list[dict] | None
    paging: Paging | None = None


@dataclass
class ThreadEnvelope:
    messages: list[dict] = field(default_factory=list)
    next_cursor: str | None = None


def _payload(response: Any) -> dict:
    data = getattr(response, "data", response)
    return data if isinstance(data, dict) else {}


def _as_int(value: Any, default: int) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) else default


def _normalise_match(match: dict) -> dict:
    channel = match.get("channel") or {}
    return {
        "type": match.get("type") or "message",
        "channel": {"id": channel.get("id") or "", "name": channel.get("name") or ""},
        "user": match.get("user") or "",
        "username": match.get("username"),
        "text": match.get("text") or "",
        "ts": match.get("ts") or "",
        "permalink": match.get("permalink") or "",
        "score": match.get("score"),
    }


def _search_envelope(data: dict) -> SearchEnvelope:
    messages = data.get("messages")
    if not isinstance(messages, dict):
        messages = {}
    raw_matches = messages.get("matches")
    matches = None
    if isinstance(raw_matches, list):
        matches = [_normalise_match(m) for m in raw_matches if isinstance(m, dict)]

    paging = None
    raw_paging = messages.get("paging")
    if isinstance(raw_paging, dict):
        paging = Paging(
            page=_as_int(raw_paging.get("page"), 1),
            pages=_as_int(raw_paging.get("pages"), 1),
        )

    total = messages.get("total")
    return SearchEnvelope(
        ok=data.get("ok") is True,
        total=total if isinstance(total, int) and not isinstance(total, bool) else None,
        matches=matches,
        paging=paging,
    )


class SlackGateway:
    """Retrying wrapper around the three Slack endpoints the resolvers need."""

    def __init__(
        self,
        client: AsyncWebClient,
        events: EventLog,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    ) -> None:
        self._client = client
        self._events = events
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms

    async def search(
        self,
        query: str,
        count: int | None = None,
        sort: str | None = None,
        team_id: str | None = None,
        page: int | None = None,
        highlight: bool | None = None,
    ) -> SearchEnvelope:
        kwargs: dict = {"query": query}
        if count is not None:
            kwargs["count"] = min(count, MAX_SEARCH_PAGE_SIZE)
        if page is not None:
            kwargs["page"] = page
        if sort:
            kwargs["sort"] = sort
        if highlight is not None:
            kwargs["highlight"] = highlight
        if team_id:
            kwargs["team_id"] = team_id
        response = await self._call("search.messages", self._client.search_messages, **kwargs)
        return _search_envelope(_payload(response))

    async def thread_page(
        self,
        channel_id: str,
        root_ts: str,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> ThreadEnvelope:
        kwargs: dict = {"channel": channel_id, "ts": root_ts}
        if limit is not None:
            kwargs["limit"] = limit
        if cursor:
            kwargs["cursor"] = cursor
        response = await self._call("conversations.replies", self._client.conversations_replies, **kwargs)
        data = _payload(response)
        messages = data.get("messages")
        metadata = data.get("response_metadata") or {}
        return ThreadEnvelope(
            messages=[m for m in messages if isinstance(m, dict)] if isinstance(messages, list) else [],
            next_cursor=metadata.get("next_cursor") or None,
        )

    async def channel_name(self, channel_id: str) -> str:
        response = await self._call("conversations.info", self._client.conversations_info, channel=channel_id)
        channel = _payload(response).get("channel") or {}
        name = channel.get("name")
        if not name:
            raise UpstreamError(f"Channel {channel_id} has no name in the conversations.info response.")
        return name

    async def _call(self, method_name: str, method: Callable[..., Awaitable[Any]], **kwargs: Any) -> Any:
        """Invoke *method* with bounded retries; see the module docstring."""
        state = RetryState(max_retries=self.max_retries, base_delay_ms=self.base_delay_ms)
        context = f"Slack API {method_name}"
        while True:
            try:
                response = await method(**kwargs)
                if _payload(response).get("ok") is False:
                    raise SlackApiError(f"{method_name} returned ok=false", response)
                return response
            except Exception as exc:
                error = classify(exc)
                cause = exc

            attempt_label = f"{context} (attempt {state.attempt + 1}/{state.max_attempts})"

            if isinstance(error, AuthenticationError):
                self._events.authentication_error(error, context)
                raise error from (None if error is cause else cause)

            if isinstance(error, RateLimitError):
                self._events.rate_limit_error(error, context, state.attempt + 1)
                if state.exhausted:
                    raise RateLimitError(
                        f"Slack API rate limit persisted after {state.max_attempts} attempts. "
                        "Wait a moment and try again.",
                        retry_after=error.retry_after,
                    ) from cause
                if error.retry_after is not None:
                    delay_ms = error.retry_after * 1000
                else:
                    delay_ms = state.backoff_ms()
            elif isinstance(error, ConnectivityError):
                self._events.api_error(error, attempt_label)
                if state.exhausted:
                    raise ConnectivityError(
                        f"Could not reach the Slack API after {state.max_attempts} attempts. "
                        f"Check the network connection. Details: {cause}"
                    ) from cause
                delay_ms = state.backoff_ms()
            else:
                self._events.api_error(error, context)
                raise error from (None if error is cause else cause)

            logger.debug("%s failed, retrying in %.0fms", attempt_label, delay_ms)
            await asyncio.sleep(delay_ms / 1000)
            state.attempt += 1
