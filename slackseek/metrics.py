"""Process-wide request counters for search and thread calls."""

import math
import threading
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Stats:
    total_requests: int
    successful_requests: int
    failed_requests: int
    success_rate: float
    average_latency_ms: int
    latency_p50: float
    latency_p99: float
    rate_limit_events: int
    pagination_events: int

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "totalRequests": data["total_requests"],
            "successfulRequests": data["successful_requests"],
            "failedRequests": data["failed_requests"],
            "successRate": data["success_rate"],
            "averageLatencyMs": data["average_latency_ms"],
            "latencyPercentiles": {"p50": data["latency_p50"], "p99": data["latency_p99"]},
            "rateLimitEvents": data["rate_limit_events"],
            "paginationEvents": data["pagination_events"],
        }


def _nearest_rank(sorted_values: list[float], fraction: float) -> float:
    index = math.ceil(len(sorted_values) * fraction) - 1
    index = max(0, min(len(sorted_values) - 1, index))
    return sorted_values[index]


class Metrics:
    """Counters shared by every in-flight request.

    One instance is created at startup and handed to whoever records events.
    Increments are guarded by a lock so concurrent callers never lose counts.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0
        self._successful = 0
        self._failed = 0
        self._latencies: list[float] = []
        self._rate_limit_events = 0
        self._pagination_events = 0

    def record_success(self) -> None:
        with self._lock:
            self._total += 1
            self._successful += 1

    def record_failure(self) -> None:
        with self._lock:
            self._total += 1
            self._failed += 1

    def record_latency(self, latency_ms: float) -> None:
        with self._lock:
            self._latencies.append(latency_ms)

    def record_rate_limit_event(self) -> None:
        with self._lock:
            self._rate_limit_events += 1

    def record_pagination_event(self) -> None:
        with self._lock:
            self._pagination_events += 1

    def stats(self) -> Stats:
        with self._lock:
            total = self._total
            successful = self._successful
            failed = self._failed
            latencies = sorted(self._latencies)
            rate_limit_events = self._rate_limit_events
            pagination_events = self._pagination_events

        success_rate = round(successful / total * 100, 2) if total else 0
        if latencies:
            average = round(sum(latencies) / len(latencies))
            p50 = _nearest_rank(latencies, 0.5)
            p99 = _nearest_rank(latencies, 0.99)
        else:
            average, p50, p99 = 0, 0, 0

        return Stats(
            total_requests=total,
            successful_requests=successful,
            failed_requests=failed,
            success_rate=success_rate,
            average_latency_ms=average,
            latency_p50=p50,
            latency_p99=p99,
            rate_limit_events=rate_limit_events,
            pagination_events=pagination_events,
        )
