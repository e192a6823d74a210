"""
Response checks applied to every request of a load run.

Durations are measured by the caller around the request. ``response.elapsed``
is only consulted when no measurement is passed, and httpx sets it only once
the response stream has been closed.
"""

from typing import Any, Dict, Optional, Sequence

import httpx

from config import config
from schemas import PerformanceSample
from utils import json_loads


def response_time_ms(response: httpx.Response, measured_ms: Optional[float] = None) -> float:
    if measured_ms is not None:
        return measured_ms
    return response.elapsed.total_seconds() * 1000.0


def validate_response(
    response: httpx.Response,
    expected_status: int = 200,
    max_duration_ms: Optional[float] = None,
    elapsed_ms: Optional[float] = None,
) -> Dict[str, bool]:
    """
    Named pass/fail checks for one response.

    The JSON check is only reported when the status matched.
    """
    limit = max_duration_ms if max_duration_ms is not None else config.load.slow_response_ms
    checks = {
        "status is correct": response.status_code == expected_status,
        f"response time < {limit:.0f}ms": response_time_ms(response, elapsed_ms) < limit,
        "response has body": len(response.content) > 0,
    }

    if response.status_code == expected_status:
        try:
            json_loads(response.content)
            checks["response is JSON"] = True
        except ValueError:
            checks["response is JSON"] = False

    return checks


def is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    remaining = response.headers.get("X-RateLimit-Remaining")
    return remaining is not None and remaining.strip() == "0"


def sample_from_response(
    response: httpx.Response,
    endpoint: str,
    elapsed_ms: Optional[float] = None,
) -> PerformanceSample:
    return PerformanceSample(
        response_time_ms=response_time_ms(response, elapsed_ms),
        status_code=response.status_code,
        endpoint=endpoint,
    )


def create_test_summary(samples: Sequence[PerformanceSample]) -> Dict[str, Any]:
    """Pass/fail counts and response-time range for a batch of samples"""
    if not samples:
        return {"total_tests": 0, "passed_tests": 0, "failed_tests": 0}

    times = [s.response_time_ms for s in samples]
    failed = sum(1 for s in samples if s.is_error)
    return {
        "total_tests": len(samples),
        "passed_tests": len(samples) - failed,
        "failed_tests": failed,
        "average_response_time": round(sum(times) / len(times), 2),
        "min_response_time": min(times),
        "max_response_time": max(times),
    }
