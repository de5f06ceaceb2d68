"""Message search: validation, per-channel fan-out, merge and paging flags."""

import asyncio
import logging
from time import monotonic

from .channels import resolve_channel_names
from .errors import INVALID_CHANNEL_CODES, SlackSeekError, UpstreamError, ValidationError
from .events import EventLog
from .gateway import SearchEnvelope, SlackGateway
from .models import NormalizedMessage, SearchRequest, SearchResult, slack_ts_to_iso, thread_ts_from_permalink

logger = logging.getLogger(__name__)

DEFAULT_SCORE = 0.0


def scoped_query(query: str, channel_name: str) -> str:
    """search.messages has no OR across channels, so each name gets its own query."""
    return f"{query} in:{channel_name}"


def _score(value) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def match_to_message(match: dict) -> NormalizedMessage:
    channel = match.get("channel") or {}
    return NormalizedMessage(
        text=match.get("text") or "",
        timestamp=slack_ts_to_iso(match.get("ts")),
        channel_id=channel.get("id") or "",
        channel_name=channel.get("name") or None,
        user_id=match.get("user") or "",
        user_name=match.get("username"),
        score=_score(match.get("score")),
        thread_ts=thread_ts_from_permalink(match.get("permalink")),
    )


def is_valid_envelope(envelope: SearchEnvelope | None) -> bool:
    return envelope is not None and envelope.ok and isinstance(envelope.matches, list)


def merge_envelopes(envelopes: list[SearchEnvelope], max_result_count: int | None) -> SearchResult:
    """Merge already-validated envelopes into one ranked result.

    Messages are ordered by descending score (missing counts as zero); ties
    keep envelope order, then Slack's order within an envelope.  The total is
    the sum of each envelope's reported total, which can overcount if Slack
    ever returns the same message for two channel-scoped queries.
    """
    messages = [match_to_message(m) for envelope in envelopes for m in envelope.matches]
    messages.sort(key=lambda m: m.score if m.score is not None else DEFAULT_SCORE, reverse=True)

    total = sum(
        envelope.total if envelope.total is not None else len(envelope.matches)
        for envelope in envelopes
    )
    has_more = any(envelope.paging is not None and envelope.paging.has_more for envelope in envelopes)
    if max_result_count is not None:
        has_more = has_more or len(messages) > max_result_count
        messages = messages[:max_result_count]

    return SearchResult(messages=messages, total_result_count=total, has_more_results=has_more)


class SearchResolver:
    def __init__(self, gateway: SlackGateway, events: EventLog) -> None:
        self._gateway = gateway
        self._events = events

    async def search(self, request: SearchRequest) -> SearchResult:
        """Run a search, fanning out per channel when channel IDs are given.

        Raises ValidationError for bad input or malformed responses, and the
        gateway's typed errors when the upstream call(s) fail outright.
        """
        query = self._validate(request)
        start = monotonic()

        try:
            names: list[str] = []
            if request.channel_ids:
                channel_ids = [c.strip() for c in request.channel_ids]
                names = await resolve_channel_names(self._gateway, channel_ids, self._events)

            if names:
                result = await self._search_channels(query, names, request)
            else:
                result = await self._search_unscoped(query, request)
        except SlackSeekError as exc:
            self._events.search_failure(query, exc)
            raise

        latency_ms = (monotonic() - start) * 1000
        self._events.search_success(query, len(result.messages), latency_ms)
        return result

    def _validate(self, request: SearchRequest) -> str:
        if not request.query or not request.query.strip():
            raise ValidationError("Search query is empty. Provide a non-empty query.")

        if request.channel_ids:
            invalid = [repr(c) for c in request.channel_ids if not c or not c.strip()]
            if invalid:
                error = ValidationError(
                    "Invalid channel ID(s) supplied. Provide non-empty channel IDs. "
                    f"Invalid: {', '.join(invalid)}"
                )
                self._events.error(error, "Rejected search with blank channel IDs")
                raise error

        if request.max_result_count is not None and request.max_result_count < 1:
            raise ValidationError("maxResultCount must be a positive integer.")

        return request.query.strip()

    async def _search_unscoped(self, query: str, request: SearchRequest) -> SearchResult:
        try:
            envelope = await self._gateway.search(
                query, count=request.max_result_count, team_id=request.team_id
            )
        except UpstreamError as exc:
            if exc.code in INVALID_CHANNEL_CODES:
                raise UpstreamError(
                    "The configured channel ID is invalid or not accessible. "
                    f"Check SLACK_CHANNEL_IDS. Details: {exc.code}",
                    code=exc.code,
                ) from exc
            raise

        if not is_valid_envelope(envelope):
            error = ValidationError("Slack API returned a malformed search response.")
            self._events.error(error, f"Search response validation failed for {query!r}")
            raise error

        return merge_envelopes([envelope], request.max_result_count)

    async def _search_channel(
        self, query: str, channel_name: str, request: SearchRequest
    ) -> SearchEnvelope | SlackSeekError:
        try:
            return await self._gateway.search(
                scoped_query(query, channel_name),
                count=request.max_result_count,
                team_id=request.team_id,
            )
        except SlackSeekError as exc:
            self._events.error(exc, f"Search in channel {channel_name!r} failed")
            return exc

    async def _search_channels(self, query: str, names: list[str], request: SearchRequest) -> SearchResult:
        outcomes = await asyncio.gather(
            *(self._search_channel(query, name, request) for name in names)
        )

        envelopes: list[SearchEnvelope] = []
        failures: list[SlackSeekError] = []
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, SlackSeekError):
                failures.append(outcome)
            elif not is_valid_envelope(outcome):
                logger.warning("Discarding malformed search response for channel %r", name)
            else:
                envelopes.append(outcome)

        if not envelopes:
            if failures:
                raise failures[0]
            raise ValidationError("Slack API returned a malformed search response for every channel.")

        return merge_envelopes(envelopes, request.max_result_count)
