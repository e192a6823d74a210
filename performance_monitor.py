"""
Performance monitoring for load-test runs

Collects per-request samples for the duration of one run and derives
summary statistics, threshold verdicts and regressions against a baseline.
Nothing is persisted; samples are discarded with the monitor.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import List, Mapping, Optional

import psutil

from config import config
from schemas import PerformanceSample
from utils import percentile

logger = logging.getLogger(__name__)


@dataclass
class PerformanceSummary:
    """Aggregated statistics for one run"""
    total_requests: int = 0
    average_response_time: float = 0.0
    min_response_time: float = 0.0
    max_response_time: float = 0.0
    p95_response_time: float = 0.0
    p99_response_time: float = 0.0
    error_rate: float = 0.0  # percent
    throughput: float = 0.0  # requests per second of observed wall time, else request count


@dataclass
class ThresholdResult:
    metric: str
    threshold: float
    actual: Optional[float]
    passed: bool


@dataclass
class Regression:
    metric: str
    baseline: float
    current: float
    regression: float  # percent above baseline


@dataclass
class MemoryUsage:
    rss_bytes: int
    vms_bytes: int
    percent: float
    system_percent: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PerformanceMonitor:
    """
    Thread-safe sample collector.

    Supported threshold metrics: ``avg_response_time``, ``max_response_time``
    and ``error_rate`` (upper bounds) and ``min_throughput`` (lower bound).
    """

    def __init__(self):
        self._lock = Lock()
        self.samples: List[PerformanceSample] = []
        self.errors: List[PerformanceSample] = []

    def track(self, sample: PerformanceSample) -> PerformanceSample:
        with self._lock:
            self.samples.append(sample)
            if sample.is_error:
                self.errors.append(sample)
        return sample

    def track_request(self, endpoint: str, status_code: int, response_time_ms: float) -> PerformanceSample:
        return self.track(PerformanceSample(
            endpoint=endpoint,
            status_code=status_code,
            response_time_ms=response_time_ms,
        ))

    def reset(self) -> None:
        with self._lock:
            self.samples.clear()
            self.errors.clear()

    def summary(self) -> PerformanceSummary:
        with self._lock:
            samples = list(self.samples)
            error_count = len(self.errors)

        if not samples:
            return PerformanceSummary()

        times = [s.response_time_ms for s in samples]
        total = len(samples)

        # Fall back to the raw count when every sample shares one timestamp.
        span = (max(s.observed_at for s in samples) - min(s.observed_at for s in samples)).total_seconds()
        throughput = total / span if span > 0 else float(total)

        return PerformanceSummary(
            total_requests=total,
            average_response_time=round(sum(times) / total, 2),
            min_response_time=min(times),
            max_response_time=max(times),
            p95_response_time=percentile(times, 0.95),
            p99_response_time=percentile(times, 0.99),
            error_rate=round(error_count / total * 100, 2),
            throughput=round(throughput, 2),
        )

    def check_thresholds(self, thresholds: Mapping[str, float]) -> List[ThresholdResult]:
        summary = self.summary()
        results = []

        for metric, threshold in thresholds.items():
            if metric == "avg_response_time":
                actual = summary.average_response_time
                passed = actual <= threshold
            elif metric == "max_response_time":
                actual = summary.max_response_time
                passed = actual <= threshold
            elif metric == "error_rate":
                actual = summary.error_rate
                passed = actual <= threshold
            elif metric == "min_throughput":
                actual = summary.throughput
                passed = actual >= threshold
            else:
                logger.warning(f"Unknown threshold metric: {metric}")
                actual = None
                passed = False

            results.append(ThresholdResult(metric=metric, threshold=threshold, actual=actual, passed=passed))

        return results


def detect_regression(
    current: Mapping[str, float],
    baseline: Mapping[str, float],
    threshold: Optional[float] = None,
) -> List[Regression]:
    """Metrics that grew more than ``threshold`` (fraction) over their baseline"""
    threshold = threshold if threshold is not None else config.analysis.regression_threshold
    regressions = []

    for metric, current_value in current.items():
        baseline_value = baseline.get(metric)
        if not baseline_value:
            continue
        if current_value > baseline_value * (1 + threshold):
            regressions.append(Regression(
                metric=metric,
                baseline=baseline_value,
                current=current_value,
                regression=(current_value - baseline_value) / baseline_value * 100,
            ))

    return regressions


def track_memory_usage() -> MemoryUsage:
    """Memory footprint of the load generator process"""
    process = psutil.Process(os.getpid())
    info = process.memory_info()
    return MemoryUsage(
        rss_bytes=info.rss,
        vms_bytes=info.vms,
        percent=round(process.memory_percent(), 2),
        system_percent=psutil.virtual_memory().percent,
    )
