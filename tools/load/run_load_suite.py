#!/usr/bin/env python3
"""
Lightweight load suite with optional AI analysis of the collected samples.

Imports the toolkit modules as installed packages, so install the project
first (`pip install -e .`); running the file directly puts only
`tools/load` on sys.path. Then, from the repository root:
    python tools/load/run_load_suite.py --requests 50 --concurrency 5
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from ai_analysis import AIAnalysisClient
from config import config, configure_logging
from errors import ConfigurationError
from http_transport import create_async_client
from performance_monitor import PerformanceMonitor, track_memory_usage
from response_checks import create_test_summary, is_rate_limited, sample_from_response, validate_response
from schemas import PerformanceSample
from utils import json_dumps, percentile

logger = logging.getLogger("load_suite")


@dataclass
class ScenarioResult:
    name: str
    requests: int
    successes: int
    failures: int
    rate_limited: int
    checks_passed: int
    checks_total: int
    p50_ms: float
    p95_ms: float
    p99_ms: float
    error_rate: float


async def _hit_endpoint(client: httpx.AsyncClient, base_url: str, path: str) -> tuple[PerformanceSample, Dict[str, bool], bool]:
    start = time.perf_counter()
    try:
        resp = await client.get(f"{base_url}{path}")
    except httpx.HTTPError as exc:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.debug(f"{path}: {exc.__class__.__name__}")
        return PerformanceSample(response_time_ms=elapsed_ms, status_code=0, endpoint=path), {}, False
    elapsed_ms = (time.perf_counter() - start) * 1000.0
    return (
        sample_from_response(resp, path, elapsed_ms),
        validate_response(resp, elapsed_ms=elapsed_ms),
        is_rate_limited(resp),
    )


async def run_scenario(
    client: httpx.AsyncClient,
    monitor: PerformanceMonitor,
    base_url: str,
    path: str,
    requests: int,
    concurrency: int,
) -> ScenarioResult:
    sem = asyncio.Semaphore(concurrency)
    samples: List[PerformanceSample] = []
    checks_passed = 0
    checks_total = 0
    rate_limited = 0

    async def one():
        nonlocal checks_passed, checks_total, rate_limited
        async with sem:
            sample, checks, limited = await _hit_endpoint(client, base_url, path)
            monitor.track(sample)
            samples.append(sample)
            checks_total += len(checks)
            checks_passed += sum(1 for ok in checks.values() if ok)
            rate_limited += int(limited)

    await asyncio.gather(*[one() for _ in range(requests)])

    latencies = [s.response_time_ms for s in samples]
    failures = sum(1 for s in samples if s.status_code == 0 or s.is_error)
    return ScenarioResult(
        name=path,
        requests=requests,
        successes=requests - failures,
        failures=failures,
        rate_limited=rate_limited,
        checks_passed=checks_passed,
        checks_total=checks_total,
        p50_ms=round(percentile(latencies, 0.50), 2),
        p95_ms=round(percentile(latencies, 0.95), 2),
        p99_ms=round(percentile(latencies, 0.99), 2),
        error_rate=round(failures / requests, 4) if requests else 0.0,
    )


async def run_ai_analysis(samples: List[PerformanceSample]) -> Optional[Dict[str, Any]]:
    if not config.features.performance_insights:
        logger.info("AI insights disabled (AI_INSIGHTS!=true)")
        return None
    if len(samples) < config.analysis.min_samples_for_analysis:
        logger.info(f"Not enough samples for AI analysis ({len(samples)})")
        return None

    try:
        client = AIAnalysisClient.from_config()
    except ConfigurationError as exc:
        logger.warning(f"AI analysis skipped: {exc}")
        return None

    async with client:
        analysis = await client.analyze_with_recommendations(samples)
        usage = client.get_usage_stats()

    return {"analysis": analysis.model_dump(mode="json"), "usage": usage.model_dump()}


async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--base-url", default=config.load.base_url)
    parser.add_argument("--requests", type=int, default=50)
    parser.add_argument("--concurrency", type=int, default=5)
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--out", default="reports/load/load_suite_result.json")
    args = parser.parse_args()

    configure_logging(args.log_level)
    config.log_configuration()
    validation = config.validate_ai_config()
    for problem in validation["errors"]:
        logger.warning(problem)

    monitor = PerformanceMonitor()
    results: List[ScenarioResult] = []
    async with create_async_client(
        total_timeout=config.load.request_timeout,
        headers=config.load.default_headers,
    ) as client:
        for path in config.load.endpoints:
            results.append(
                await run_scenario(client, monitor, args.base_url.rstrip("/"), path, args.requests, args.concurrency)
            )

    payload = {
        "base_url": args.base_url,
        "requests_per_scenario": args.requests,
        "concurrency": args.concurrency,
        "results": [asdict(r) for r in results],
        "summary": asdict(monitor.summary()),
        "tests": create_test_summary(monitor.samples),
        "memory": asdict(track_memory_usage()),
        "ai": await run_ai_analysis(monitor.samples),
    }

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json_dumps(payload, indent=True) + "\n", encoding="utf-8")
    print(json_dumps(payload))


if __name__ == "__main__":
    asyncio.run(main())
