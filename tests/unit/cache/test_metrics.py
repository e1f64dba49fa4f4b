"""
Unit tests for PerformanceMonitor.
"""

import json

import pytest

from src.core.cache.keys import CacheDataType
from src.core.cache.metrics import PerformanceMetric, PerformanceMonitor


class TestTiming:
    def test_end_timing_records_elapsed_ms(self, monitor, perf_clock):
        token = monitor.start_timing(CacheDataType.GLAZES)
        perf_clock.advance(0.25)

        elapsed = monitor.end_timing(token, True, CacheDataType.GLAZES)

        assert elapsed == pytest.approx(250.0)
        metric = monitor.get_metrics(CacheDataType.GLAZES)
        assert metric.hits == 1
        assert metric.misses == 0
        assert metric.average_response_time == pytest.approx(250.0)

    def test_overlapping_timings_are_not_cross_attributed(self, monitor, perf_clock):
        first = monitor.start_timing(CacheDataType.KILNS)
        perf_clock.advance(0.1)
        second = monitor.start_timing(CacheDataType.KILNS)
        perf_clock.advance(0.1)

        assert monitor.end_timing(second, True, CacheDataType.KILNS) == pytest.approx(100.0)
        assert monitor.end_timing(first, False, CacheDataType.KILNS) == pytest.approx(200.0)

    def test_mismatched_data_type_is_ignored(self, monitor):
        token = monitor.start_timing(CacheDataType.KILNS)

        assert monitor.end_timing(token, True, CacheDataType.GLAZES) is None
        assert monitor.get_metrics(CacheDataType.GLAZES) is None
        assert monitor.open_timings == 1

    def test_closing_twice_records_once(self, monitor):
        token = monitor.start_timing(CacheDataType.KILNS)
        monitor.end_timing(token, True, CacheDataType.KILNS)

        assert monitor.end_timing(token, True, CacheDataType.KILNS) is None
        assert monitor.get_metrics(CacheDataType.KILNS).total_requests == 1

    def test_timing_outside_window_is_dropped(self, monitor, perf_clock):
        token = monitor.start_timing(CacheDataType.FIRING_LOGS)
        perf_clock.advance(11)

        assert monitor.end_timing(token, False, CacheDataType.FIRING_LOGS) is None
        assert monitor.get_metrics(CacheDataType.FIRING_LOGS) is None
        assert monitor.open_timings == 0

    def test_stale_timings_pruned_on_start(self, monitor, perf_clock):
        monitor.start_timing(CacheDataType.GLAZES)
        perf_clock.advance(10)

        monitor.start_timing(CacheDataType.GLAZES)

        assert monitor.open_timings == 1


class TestRecording:
    def test_running_mean(self, monitor):
        monitor.record_metric(CacheDataType.GLAZES, True, 10.0)
        monitor.record_metric(CacheDataType.GLAZES, False, 30.0)
        metric = monitor.record_metric(CacheDataType.GLAZES, True, 50.0)

        assert metric.total_requests == 3
        assert metric.hits == 2
        assert metric.misses == 1
        assert metric.average_response_time == pytest.approx(30.0)
        assert metric.hit_rate == pytest.approx(200 / 3)

    def test_last_updated_uses_wall_clock(self, monitor, clock):
        metric = monitor.record_metric(CacheDataType.KILNS, True, 1.0)

        assert metric.last_updated == clock.now

    def test_hit_rate_without_requests(self, monitor):
        assert monitor.get_hit_rate(CacheDataType.KILNS) == 0.0
        assert PerformanceMetric().hit_rate == 0.0


class TestSummary:
    def test_empty_summary(self, monitor):
        summary = monitor.get_performance_summary()

        assert summary == {
            "total_requests": 0,
            "total_hits": 0,
            "total_misses": 0,
            "overall_hit_rate": 0,
            "average_response_time": 0,
            "data_types": [],
        }

    def test_summary_weights_by_request_count(self, monitor):
        for _ in range(3):
            monitor.record_metric(CacheDataType.GLAZES, True, 10.0)
        monitor.record_metric(CacheDataType.KILNS, False, 50.0)

        summary = monitor.get_performance_summary()

        assert summary["total_requests"] == 4
        assert summary["total_hits"] == 3
        assert summary["total_misses"] == 1
        assert summary["overall_hit_rate"] == pytest.approx(75.0)
        assert summary["average_response_time"] == pytest.approx(20.0)
        assert summary["data_types"] == ["glazes", "kilns"]

    def test_export_metrics_is_json(self, monitor):
        monitor.record_metric(CacheDataType.GLAZES, True, 5.0)

        exported = json.loads(monitor.export_metrics())

        assert exported["summary"]["total_requests"] == 1
        assert exported["detailed_metrics"]["glazes"]["hits"] == 1
        assert "timestamp" in exported

    def test_clear_metrics(self, monitor):
        monitor.start_timing(CacheDataType.GLAZES)
        monitor.record_metric(CacheDataType.GLAZES, True, 5.0)

        monitor.clear_metrics()

        assert monitor.get_all_metrics() == {}
        assert monitor.open_timings == 0

    def test_log_performance_does_not_raise(self, monitor):
        monitor.record_metric(CacheDataType.GLAZES, True, 5.0)

        monitor.log_performance()


def test_default_monitor_uses_real_clocks():
    monitor = PerformanceMonitor()
    token = monitor.start_timing(CacheDataType.KILNS)

    elapsed = monitor.end_timing(token, False, CacheDataType.KILNS)

    assert elapsed is not None and elapsed >= 0
