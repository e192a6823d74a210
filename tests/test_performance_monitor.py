"""
Tests for run-level performance monitoring.
"""

from datetime import datetime, timedelta, timezone
from threading import Thread

import pytest
from hypothesis import given, strategies as st

from performance_monitor import PerformanceMonitor, detect_regression, track_memory_usage
from schemas import PerformanceSample


def _sample(ms: float, status: int = 200, offset_s: float = 0.0) -> PerformanceSample:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return PerformanceSample(
        response_time_ms=ms,
        status_code=status,
        endpoint="/posts/1",
        observed_at=start + timedelta(seconds=offset_s),
    )


class TestSummary:

    def test_empty_monitor(self):
        summary = PerformanceMonitor().summary()
        assert summary.total_requests == 0
        assert summary.error_rate == 0.0

    def test_statistics(self):
        monitor = PerformanceMonitor()
        for i, ms in enumerate([100, 200, 300, 400]):
            monitor.track(_sample(ms, 500 if i == 3 else 200, offset_s=i))

        summary = monitor.summary()

        assert summary.total_requests == 4
        assert summary.average_response_time == 250
        assert summary.min_response_time == 100
        assert summary.max_response_time == 400
        assert summary.p95_response_time == 400
        assert summary.error_rate == 25.0
        assert summary.throughput == pytest.approx(4 / 3, abs=0.01)
        assert len(monitor.errors) == 1

    def test_throughput_falls_back_to_count(self):
        monitor = PerformanceMonitor()
        monitor.track(_sample(10))
        monitor.track(_sample(20))
        assert monitor.summary().throughput == 2.0

    def test_track_request_builds_sample(self):
        monitor = PerformanceMonitor()
        sample = monitor.track_request("/users/1", 404, 35.5)
        assert sample.is_error
        assert monitor.samples == [sample]

    def test_reset(self):
        monitor = PerformanceMonitor()
        monitor.track_request("/x", 500, 1)
        monitor.reset()
        assert monitor.samples == []
        assert monitor.errors == []

    def test_concurrent_tracking(self):
        monitor = PerformanceMonitor()

        def worker():
            for _ in range(200):
                monitor.track_request("/x", 200, 5)

        threads = [Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert monitor.summary().total_requests == 800

    @given(st.lists(st.floats(min_value=0, max_value=10_000, allow_nan=False), min_size=1, max_size=40))
    def test_summary_bounds(self, times):
        monitor = PerformanceMonitor()
        for ms in times:
            monitor.track(_sample(ms))

        summary = monitor.summary()

        assert summary.min_response_time <= summary.p95_response_time <= summary.max_response_time
        assert summary.p95_response_time <= summary.p99_response_time


class TestThresholds:

    def test_pass_and_fail(self):
        monitor = PerformanceMonitor()
        monitor.track(_sample(100))
        monitor.track(_sample(300, 500, offset_s=1))

        results = {r.metric: r for r in monitor.check_thresholds({
            "avg_response_time": 250,
            "max_response_time": 200,
            "error_rate": 10,
            "min_throughput": 1,
        })}

        assert results["avg_response_time"].passed
        assert not results["max_response_time"].passed
        assert not results["error_rate"].passed
        assert results["min_throughput"].passed

    def test_unknown_metric_fails(self, caplog):
        monitor = PerformanceMonitor()
        monitor.track(_sample(100))

        (result,) = monitor.check_thresholds({"p42": 1.0})

        assert not result.passed
        assert result.actual is None
        assert "Unknown threshold metric" in caplog.text


class TestRegression:

    def test_detects_growth_above_threshold(self):
        regressions = detect_regression(
            {"avg_response_time": 150, "error_rate": 1.1},
            {"avg_response_time": 100, "error_rate": 1.0},
            threshold=0.2,
        )
        assert [r.metric for r in regressions] == ["avg_response_time"]
        assert regressions[0].regression == pytest.approx(50.0)

    def test_missing_or_zero_baseline_is_skipped(self):
        assert detect_regression({"a": 10, "b": 5}, {"b": 0}, threshold=0.1) == []


def test_memory_usage_snapshot():
    usage = track_memory_usage()
    assert usage.rss_bytes > 0
    assert 0 <= usage.system_percent <= 100
