"""
Cache performance monitoring for Kilnbook (hit/miss accounting and latency).

Purpose
-------
Instrument the cached read paths with per-data-type hit/miss counters and a
running mean of response times, independent of cache correctness.

Responsibilities
----------------
- Open and close read timings through opaque ``TimingToken`` handles
- Fold each closed timing into its data type's ``PerformanceMetric``
- Aggregate a request-weighted summary across data types
- Export metrics as JSON and log the summary

Non-Responsibilities
--------------------
- Cache storage (``CacheManager``)
- Persistence: metrics live for the process lifetime only

Architecture Notes
------------------
- Timings are looked up by token, so overlapping reads for the same data
  type are never cross-attributed.
- A timing is closed only when its token is open, its data type matches and
  it started within the timing window; anything else is a silent no-op.
- Writes are never recorded.
- ``perf_counter`` (seconds, monotonic) and ``clock`` (epoch seconds) are
  injectable for tests.
"""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from src.core.cache.keys import CacheDataType
from src.core.logging.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMING_WINDOW_SECONDS = 10


@dataclass
class PerformanceMetric:
    """Cumulative counters for one data type. Times are milliseconds."""

    hits: int = 0
    misses: int = 0
    total_requests: int = 0
    average_response_time: float = 0.0
    last_updated: float = 0.0

    @property
    def hit_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests * 100

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TimingToken:
    """Opaque handle returned by ``start_timing``."""

    value: str
    data_type: CacheDataType


@dataclass
class _OpenTiming:
    start_ms: float
    data_type: CacheDataType


class PerformanceMonitor:
    """
    Per-data-type hit/miss and latency tracker.

    Parameters
    ----------
    timing_window_seconds:
        Maximum age of an open timing that ``end_timing`` will still close.
    perf_counter:
        Monotonic clock in seconds.
    clock:
        Wall clock in epoch seconds, used for ``last_updated``.
    """

    def __init__(
        self,
        timing_window_seconds: float = DEFAULT_TIMING_WINDOW_SECONDS,
        perf_counter: Callable[[], float] = time.perf_counter,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._window_ms = timing_window_seconds * 1000.0
        self._perf_counter = perf_counter
        self._clock = clock
        self._metrics: Dict[CacheDataType, PerformanceMetric] = {}
        self._timings: Dict[str, _OpenTiming] = {}

    def _now_ms(self) -> float:
        return self._perf_counter() * 1000.0

    # =========================================================================
    # Timing
    # =========================================================================

    def start_timing(self, data_type: CacheDataType) -> TimingToken:
        now_ms = self._now_ms()
        # Drop timings nobody will close any more
        stale = [
            key
            for key, timing in self._timings.items()
            if now_ms - timing.start_ms >= self._window_ms
        ]
        for key in stale:
            del self._timings[key]

        token = TimingToken(value=f"{data_type.value}_{uuid.uuid4().hex}", data_type=data_type)
        self._timings[token.value] = _OpenTiming(start_ms=now_ms, data_type=data_type)
        return token

    def end_timing(
        self,
        token: TimingToken,
        from_cache: bool,
        data_type: CacheDataType,
    ) -> Optional[float]:
        """
        Close a timing and record it.

        Returns
        -------
        Optional[float]
            The response time in milliseconds, or None when nothing matched.
        """
        timing = self._timings.get(token.value)
        if timing is None or timing.data_type is not data_type:
            return None

        end_ms = self._now_ms()
        del self._timings[token.value]
        if end_ms - timing.start_ms >= self._window_ms:
            return None

        response_time = end_ms - timing.start_ms
        self.record_metric(data_type, from_cache, response_time)
        return response_time

    @property
    def open_timings(self) -> int:
        return len(self._timings)

    # =========================================================================
    # Recording & queries
    # =========================================================================

    def record_metric(
        self,
        data_type: CacheDataType,
        from_cache: bool,
        response_time_ms: float,
    ) -> PerformanceMetric:
        metric = self._metrics.setdefault(data_type, PerformanceMetric())

        if from_cache:
            metric.hits += 1
        else:
            metric.misses += 1

        metric.total_requests += 1
        n = metric.total_requests
        metric.average_response_time = (
            metric.average_response_time * (n - 1) + response_time_ms
        ) / n
        metric.last_updated = self._clock()
        return metric

    def get_metrics(self, data_type: CacheDataType) -> Optional[PerformanceMetric]:
        return self._metrics.get(data_type)

    def get_all_metrics(self) -> Dict[CacheDataType, PerformanceMetric]:
        return dict(self._metrics)

    def get_hit_rate(self, data_type: CacheDataType) -> float:
        metric = self._metrics.get(data_type)
        return metric.hit_rate if metric else 0.0

    def get_performance_summary(self) -> Dict[str, Any]:
        """
        Aggregate every data type.

        ``overall_hit_rate`` is a percentage (0 with no requests);
        ``average_response_time`` is weighted by each type's request count.
        """
        total_requests = 0
        total_hits = 0
        total_misses = 0
        weighted_time = 0.0

        for metric in self._metrics.values():
            total_requests += metric.total_requests
            total_hits += metric.hits
            total_misses += metric.misses
            weighted_time += metric.average_response_time * metric.total_requests

        return {
            "total_requests": total_requests,
            "total_hits": total_hits,
            "total_misses": total_misses,
            "overall_hit_rate": (total_hits / total_requests * 100) if total_requests else 0,
            "average_response_time": (weighted_time / total_requests) if total_requests else 0,
            "data_types": [data_type.value for data_type in self._metrics],
        }

    # =========================================================================
    # Reporting
    # =========================================================================

    def export_metrics(self) -> str:
        return json.dumps(
            {
                "summary": self.get_performance_summary(),
                "detailed_metrics": {
                    data_type.value: metric.to_dict()
                    for data_type, metric in self._metrics.items()
                },
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            indent=2,
        )

    def log_performance(self) -> None:
        summary = self.get_performance_summary()
        logger.info(
            "Cache performance: %d requests, %.2f%% hit rate, %.2fms average",
            summary["total_requests"],
            summary["overall_hit_rate"],
            summary["average_response_time"],
            extra={"summary": summary},
        )
        for data_type, metric in self._metrics.items():
            logger.info(
                "Cache performance for %s: %.2f%% hit rate, %.2fms average",
                data_type.value,
                metric.hit_rate,
                metric.average_response_time,
            )

    def clear_metrics(self) -> None:
        self._metrics.clear()
        self._timings.clear()
        logger.info("Cache performance metrics cleared")
