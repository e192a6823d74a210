"""
Deterministic fallback results used when the remote model is unavailable,
over budget, or returns something that cannot be decoded.
"""

from typing import Any, Dict, List

from schemas import (
    AnalysisSource,
    PerformanceAnalysis,
    PerformanceInsights,
    TestResults,
    ThresholdMap,
    ThresholdRecommendation,
)
from utils import format_number

DURATION_P95_MULTIPLIER = 2
DURATION_P99_MULTIPLIER = 3
ERROR_RATE_MULTIPLIER = 2
MIN_ERROR_RATE_LIMIT = 0.01
CHECKS_RULE = "rate>0.95"

DEFAULT_THRESHOLDS: ThresholdMap = {
    "http_req_duration": ["p(95)<500", "p(99)<1000"],
    "http_req_failed": ["rate<0.05"],
    "checks": [CHECKS_RULE],
}

DEFAULT_RECOMMENDATIONS = [
    "Monitor error rates and investigate failures",
    "Check response time thresholds",
    "Review system resources during peak load",
]

FALLBACK_TEST_DATA: List[Dict[str, Any]] = [
    {"id": 1, "title": "Performance Test Data", "content": "Generated for testing purposes", "userId": 1},
    {"id": 2, "title": "Load Test Sample", "content": "Sample data for load testing", "userId": 2},
]


def scaled_thresholds(results: TestResults) -> ThresholdMap:
    """
    Thresholds as multiples of the observed aggregates.

    p95 < 2x and p99 < 3x the mean response time; failure rate below twice
    the observed error fraction, floored at 1% and capped at 100%.
    """
    response_time = round(results.avg_response_time)
    error_limit = min(1.0, max(MIN_ERROR_RATE_LIMIT, results.error_fraction * ERROR_RATE_MULTIPLIER))
    return {
        "http_req_duration": [
            f"p(95)<{format_number(response_time * DURATION_P95_MULTIPLIER)}",
            f"p(99)<{format_number(response_time * DURATION_P99_MULTIPLIER)}",
        ],
        "http_req_failed": [f"rate<{format_number(round(error_limit, 4))}"],
        "checks": [CHECKS_RULE],
    }


def fallback_analysis(results: TestResults) -> PerformanceAnalysis:
    return PerformanceAnalysis(
        summary=(
            f"Performance test completed. Response time: {round(results.avg_response_time)}ms, "
            f"Error rate: {format_number(round(results.error_rate, 2))}%"
        ),
        recommendations=list(DEFAULT_RECOMMENDATIONS),
        thresholds=scaled_thresholds(results),
        source=AnalysisSource.FALLBACK,
    )


def calculated_threshold_recommendation(results: TestResults) -> ThresholdRecommendation:
    return ThresholdRecommendation(
        thresholds=scaled_thresholds(results),
        reasoning="AI analysis unavailable - using calculated defaults",
        source=AnalysisSource.FALLBACK,
    )


def default_threshold_recommendation() -> ThresholdRecommendation:
    return ThresholdRecommendation(
        thresholds={metric: list(rules) for metric, rules in DEFAULT_THRESHOLDS.items()},
        reasoning="AI analysis unavailable - using default thresholds",
        source=AnalysisSource.FALLBACK,
    )


def fallback_insights() -> PerformanceInsights:
    return PerformanceInsights(
        summary="Performance analysis unavailable - review results manually",
        actionable=["Check error rates and response times"],
        source=AnalysisSource.FALLBACK,
    )


def fallback_test_data() -> List[Dict[str, Any]]:
    return [dict(record) for record in FALLBACK_TEST_DATA]
