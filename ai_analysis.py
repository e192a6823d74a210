"""
AI analysis client for performance test results

Wraps the Gemini generateContent endpoint with an in-memory TTL cache,
a per-run call budget and deterministic fallbacks, so that a test run
always gets an advisory result and is never aborted by the remote service.

Per call the client is either COLD (no valid cache entry, budget left:
one live request) or served from cache/fallback (cache hit, budget
exhausted, or the live request failed). There is no retry.
"""

import copy
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar, Union

import httpx

from cache import AnalysisCache
from config import MIN_API_KEY_LENGTH, config
from decoding import (
    decode_analysis,
    decode_insights,
    decode_test_records,
    decode_threshold_recommendation,
)
from errors import AIServiceError, ConfigurationError, ParseError
from fallbacks import (
    calculated_threshold_recommendation,
    default_threshold_recommendation,
    fallback_analysis,
    fallback_insights,
    fallback_test_data,
)
from gemini_client import GeminiTransport
from prompts import (
    build_combined_analysis_prompt,
    build_insights_prompt,
    build_test_data_prompt,
    build_threshold_prompt,
)
from schemas import (
    AnalysisSource,
    PerformanceAnalysis,
    PerformanceInsights,
    PerformanceSample,
    TestResults,
    ThresholdRecommendation,
    UsageStats,
)
from utils import percentile

logger = logging.getLogger(__name__)

SampleLike = Union[PerformanceSample, Mapping[str, Any]]
ResultT = TypeVar("ResultT")


def coerce_samples(samples: Iterable[SampleLike]) -> List[PerformanceSample]:
    """Accept model instances or ``{response_time_ms, status_code}`` mappings"""
    coerced = [
        sample if isinstance(sample, PerformanceSample) else PerformanceSample.model_validate(sample)
        for sample in samples
    ]
    if not coerced:
        raise ValueError("at least one performance sample is required")
    return coerced


class AIAnalysisClient:
    """
    Best-effort performance analysis at bounded cost.

    One instance per test run. Counters and cache belong to the instance;
    the request budget is claimed before the network await, so concurrent
    tasks sharing an instance on one event loop cannot exceed it. Sharing
    an instance across threads needs external locking.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: Optional[str] = None,
        *,
        max_requests_per_run: Optional[int] = None,
        cache: Optional[AnalysisCache] = None,
        transport: Optional[GeminiTransport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        if not api_key or len(api_key) < MIN_API_KEY_LENGTH:
            raise ConfigurationError("Invalid Gemini API key provided")

        self.model = model or config.gemini.model
        self.max_requests_per_run = (
            max_requests_per_run if max_requests_per_run is not None
            else config.analysis.max_requests_per_run
        )
        if self.max_requests_per_run < 0:
            raise ConfigurationError("max_requests_per_run cannot be negative")

        self.cache = cache if cache is not None else AnalysisCache()
        self._transport = transport or GeminiTransport(
            api_key,
            self.model,
            base_url=base_url,
            timeout=timeout,
            http_client=http_client,
        )

        self.request_count = 0
        self.cache_hits = 0
        self.cache_misses = 0

        logger.info(
            f"AI analysis client ready: model={self.model}, "
            f"budget={self.max_requests_per_run} requests/run, ttl={self.cache.ttl_seconds}s"
        )

    @classmethod
    def from_config(cls, **kwargs) -> "AIAnalysisClient":
        """Build a client from the process configuration"""
        return cls(config.gemini.api_key, config.gemini.model, **kwargs)

    async def __aenter__(self) -> "AIAnalysisClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._transport.aclose()

    # Counters

    def get_usage_stats(self) -> UsageStats:
        return UsageStats.from_counters(
            self.request_count,
            self.cache_hits,
            self.cache_misses,
            self.max_requests_per_run,
        )

    def reset_counters(self) -> None:
        """Zero the counters between runs; cached entries are kept"""
        self.request_count = 0
        self.cache_hits = 0
        self.cache_misses = 0

    @property
    def quota_exhausted(self) -> bool:
        return self.request_count >= self.max_requests_per_run

    # Shared call path

    def _lookup(self, key: str) -> Optional[Any]:
        lookup = self.cache.get(key)
        if lookup.hit:
            self.cache_hits += 1
            logger.info(f"AI: cache hit ({key.split('_', 1)[0]}, age {lookup.age_seconds:.0f}s)")
            return lookup.value
        self.cache_misses += 1
        logger.debug(f"AI: cache miss ({key[:48]})")
        return None

    async def _run(
        self,
        prompt: str,
        max_tokens: int,
        decode: Callable[[str], ResultT],
        on_transport_failure: Callable[[], ResultT],
        on_parse_failure: Optional[Callable[[], ResultT]] = None,
    ) -> ResultT:
        """
        Cache, then budget, then one live request.

        Cache hits are returned as copies tagged ``AnalysisSource.CACHE``.
        Only successfully decoded replies are cached.
        """
        key = self.cache.key_for(prompt)
        cached = self._lookup(key)
        if cached is not None:
            return _tagged(cached, AnalysisSource.CACHE)

        if self.quota_exhausted:
            logger.info(
                f"AI: request limit reached ({self.request_count}/{self.max_requests_per_run}), using fallback"
            )
            return on_transport_failure()

        # Claim the slot before awaiting.
        self.request_count += 1
        logger.info(f"AI: live request {self.request_count}/{self.max_requests_per_run} to {self.model}")

        try:
            text = await self._transport.generate(prompt, max_tokens)
            result = decode(text)
        except ParseError as e:
            logger.warning(f"AI: could not decode reply, using fallback: {e}")
            return (on_parse_failure or on_transport_failure)()
        except AIServiceError as e:
            logger.error(f"AI: request failed, using fallback: {e}")
            return on_transport_failure()

        self.cache.set(key, _tagged(result, AnalysisSource.LIVE))
        return result

    # Operations

    async def analyze_with_recommendations(self, samples: Iterable[SampleLike]) -> PerformanceAnalysis:
        """Summary, up to three recommendations and threshold rules in one call"""
        results = TestResults.from_samples(coerce_samples(samples))
        prompt = build_combined_analysis_prompt(results)
        return await self._run(
            prompt,
            config.gemini.analysis_max_tokens,
            decode_analysis,
            lambda: fallback_analysis(results),
        )

    async def generate_threshold_recommendations(
        self, samples: Iterable[SampleLike]
    ) -> ThresholdRecommendation:
        """
        Threshold rules with reasoning.

        Falls back to rules scaled from the observed aggregates when the reply
        cannot be decoded, and to fixed defaults when no reply was obtained.
        """
        sample_list = coerce_samples(samples)
        results = TestResults.from_samples(sample_list)
        p95 = percentile([s.response_time_ms for s in sample_list], 0.95)
        prompt = build_threshold_prompt(results, p95)
        return await self._run(
            prompt,
            config.gemini.max_output_tokens,
            decode_threshold_recommendation,
            default_threshold_recommendation,
            lambda: calculated_threshold_recommendation(results),
        )

    async def analyze_performance_results(self, samples: Iterable[SampleLike]) -> PerformanceInsights:
        results = TestResults.from_samples(coerce_samples(samples))
        prompt = build_insights_prompt(results)
        return await self._run(
            prompt,
            config.gemini.max_output_tokens,
            decode_insights,
            fallback_insights,
        )

    async def generate_test_data(
        self,
        data_schema: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        prompt = build_test_data_prompt(data_schema, context or {})
        return await self._run(
            prompt,
            config.gemini.max_output_tokens,
            decode_test_records,
            fallback_test_data,
        )


def _tagged(value: Any, source: AnalysisSource) -> Any:
    if hasattr(value, "model_copy") and hasattr(value, "source"):
        return value.model_copy(update={"source": source}, deep=True)
    if isinstance(value, list):
        return copy.deepcopy(value)
    return value
