"""
Pydantic models for the AI-assisted performance toolkit

Defines timing samples, locally computed aggregates, the structured
analysis results handed back to test scripts, and the Gemini
generateContent request/response envelopes.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


ThresholdMap = Dict[str, List[str]]


class PerformanceSample(BaseModel):
    """One observed HTTP call"""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "response_time_ms": 182.4,
                "status_code": 200,
                "endpoint": "/posts/1",
            }
        }
    )

    response_time_ms: float = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("response_time_ms", "responseTimeMs", "responseTime"),
        description="Response time in milliseconds",
    )
    status_code: int = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("status_code", "statusCode", "status"),
        description="HTTP status code, 0 when no response was received",
    )
    endpoint: str = Field("", description="Request path or URL")
    observed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        validation_alias=AliasChoices("observed_at", "observedAt", "timestamp"),
    )

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400


class TestResults(BaseModel):
    """Aggregates computed locally from a batch of samples"""
    # Not a pytest test class.
    __test__ = False

    avg_response_time: float = Field(..., ge=0, description="Mean response time, ms")
    max_response_time: float = Field(..., ge=0)
    error_fraction: float = Field(..., ge=0, le=1, description="count(status>=400) / count(total)")
    throughput: int = Field(..., ge=1, description="Sample count used as throughput proxy")

    @property
    def error_rate(self) -> float:
        """Error rate in percent"""
        return self.error_fraction * 100

    @property
    def status(self) -> str:
        return "DEGRADED" if self.error_fraction > 0.05 else "HEALTHY"

    @classmethod
    def from_samples(cls, samples: Sequence[PerformanceSample]) -> "TestResults":
        if not samples:
            raise ValueError("at least one performance sample is required")
        times = [s.response_time_ms for s in samples]
        errors = sum(1 for s in samples if s.is_error)
        return cls(
            avg_response_time=sum(times) / len(times),
            max_response_time=max(times),
            error_fraction=errors / len(samples),
            throughput=len(samples),
        )


class AnalysisSource(str, Enum):
    """Where an analysis result came from"""
    LIVE = "live"
    CACHE = "cache"
    FALLBACK = "fallback"


class PerformanceAnalysis(BaseModel):
    """Combined summary, action items and k6-style threshold rules"""
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "summary": "Latency is stable; error rate is within budget.",
                "recommendations": ["Add caching for /users", "Watch p99 under load"],
                "thresholds": {"http_req_duration": ["p(95)<500", "p(99)<1000"]},
            }
        }
    )

    summary: str = Field(..., min_length=1)
    recommendations: List[str] = Field(..., min_length=1, max_length=3)
    thresholds: ThresholdMap
    source: AnalysisSource = AnalysisSource.LIVE


class ThresholdRecommendation(BaseModel):
    """Threshold rules with the reasoning behind them"""
    model_config = ConfigDict(extra="ignore")

    thresholds: ThresholdMap
    reasoning: str = Field(..., min_length=1)
    source: AnalysisSource = AnalysisSource.LIVE


class PerformanceInsights(BaseModel):
    """Free-text insights with extracted action items"""
    summary: str
    actionable: List[str] = Field(default_factory=list, max_length=3)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: AnalysisSource = AnalysisSource.LIVE


class CacheEntry(BaseModel):
    """Cached analysis value"""
    key: str
    value: Any
    created_at: float = Field(..., description="Clock reading when stored, seconds")
    ttl_seconds: float = Field(..., gt=0)

    def is_expired(self, now: float) -> bool:
        """An entry is valid only while (now - created_at) < ttl"""
        return (now - self.created_at) >= self.ttl_seconds


class UsageStats(BaseModel):
    """Per-run usage counters of the analysis client"""
    total_requests: int
    cache_hits: int
    cache_misses: int
    cache_hit_rate: float
    requests_remaining: int

    @classmethod
    def from_counters(cls, requests: int, hits: int, misses: int, budget: int) -> "UsageStats":
        lookups = hits + misses
        hit_rate = (hits / lookups * 100) if lookups else 0.0
        return cls(
            total_requests=requests,
            cache_hits=hits,
            cache_misses=misses,
            cache_hit_rate=hit_rate if math.isfinite(hit_rate) else 0.0,
            requests_remaining=max(0, budget - requests),
        )


# Gemini generateContent envelopes

class Part(BaseModel):
    model_config = ConfigDict(extra="ignore")
    text: str


class Content(BaseModel):
    model_config = ConfigDict(extra="ignore")
    parts: List[Part] = Field(..., min_length=1)
    role: Optional[str] = None


class GenerationConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    temperature: float
    top_k: int = Field(..., alias="topK")
    top_p: float = Field(..., alias="topP")
    max_output_tokens: int = Field(..., alias="maxOutputTokens")


class GenerateContentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    contents: List[Content]
    generation_config: GenerationConfig = Field(..., alias="generationConfig")

    @classmethod
    def for_prompt(cls, prompt: str, generation_config: GenerationConfig) -> "GenerateContentRequest":
        return cls(contents=[Content(parts=[Part(text=prompt)])], generation_config=generation_config)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Candidate(BaseModel):
    model_config = ConfigDict(extra="ignore")
    content: Content


class GenerateContentResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")
    candidates: List[Candidate] = Field(..., min_length=1)

    def first_text(self) -> str:
        return self.candidates[0].content.parts[0].text
