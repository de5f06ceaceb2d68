"""Categorised log lines for search/thread events, with matching metrics.

Every line goes through the stdlib logger (stderr under MCP stdio).  Only
query text, channel IDs and timestamps are logged, never the token.
"""

import logging

from .metrics import Metrics

logger = logging.getLogger(__name__)


class EventLog:
    def __init__(self, metrics: Metrics, log: logging.Logger | None = None) -> None:
        self.metrics = metrics
        self._log = log or logger

    def error(self, exc: BaseException, context: str) -> None:
        self._log.error("[ERROR] %s: %s", context, exc)

    def authentication_error(self, exc: BaseException, context: str) -> None:
        self._log.error(
            "[AUTH_ERROR] %s: %s -- verify SLACK_USER_TOKEN is valid and has the search:read "
            "and channels:history scopes.",
            context, exc,
        )

    def api_error(self, exc: BaseException, context: str) -> None:
        self._log.error("[API_ERROR] %s: %s", context, exc)

    def rate_limit_error(self, exc: BaseException, context: str, attempt: int) -> None:
        self.metrics.record_rate_limit_event()
        self._log.warning("[RATE_LIMIT_ERROR] %s (attempt %d): %s", context, attempt, exc)

    def search_success(self, query: str, result_count: int, latency_ms: float) -> None:
        self.metrics.record_success()
        self.metrics.record_latency(latency_ms)
        self._log.info("[SEARCH_SUCCESS] query=%r results=%d (%.0fms)", query, result_count, latency_ms)

    def search_failure(self, query: str, exc: BaseException) -> None:
        self.metrics.record_failure()
        self._log.error("[SEARCH_FAILURE] query=%r: %s", query, exc)

    def thread_success(self, channel_id: str, thread_ts: str, reply_count: int, latency_ms: float) -> None:
        self.metrics.record_success()
        self.metrics.record_latency(latency_ms)
        self._log.info(
            "[THREAD_SUCCESS] %s/%s replies=%d (%.0fms)", channel_id, thread_ts, reply_count, latency_ms
        )

    def thread_pagination(self, channel_id: str, thread_ts: str, cursor: str) -> None:
        self.metrics.record_pagination_event()
        self._log.info("[THREAD_PAGINATION] %s/%s next_cursor=%s", channel_id, thread_ts, cursor)

    def thread_failure(self, channel_id: str, thread_ts: str, exc: BaseException) -> None:
        self.metrics.record_failure()
        self._log.error("[THREAD_FAILURE] %s/%s: %s", channel_id, thread_ts, exc)
