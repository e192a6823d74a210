"""
Pytest configuration and fixtures for the AI performance toolkit tests.

The Gemini endpoint is replaced by an httpx.MockTransport stub that records
every request, and the analysis cache runs on a manually advanced clock.
"""

from typing import List, Optional, Tuple, Union

import httpx
import pytest
import pytest_asyncio
from hypothesis import settings, Verbosity

from ai_analysis import AIAnalysisClient
from cache import AnalysisCache

TEST_API_KEY = "test-gemini-key-0123456789"
TEST_MODEL = "gemini-test"
TEST_BASE_URL = "https://gemini.test/v1beta"

VALID_ANALYSIS_REPLY = """Here is the analysis you asked for:
```json
{
  "summary": "Latency is stable and errors are rare.",
  "recommendations": ["Cache /users responses", "Add an index for comment lookups", "Watch p99 during spikes"],
  "thresholds": {
    "http_req_duration": ["p(95)<400", "p(99)<900"],
    "http_req_failed": ["rate<0.01"],
    "checks": ["rate>0.99"]
  }
}
```
Let me know if you need more detail."""

VALID_THRESHOLD_REPLY = (
    '{"thresholds": {"http_req_duration": ["p(95)<450", "p(99)<800"], '
    '"http_req_failed": ["rate<0.02"], "checks": ["rate>0.98"]}, '
    '"reasoning": "Observed latency leaves headroom."}'
)

Reply = Union[Tuple[int, str], Exception]


def gemini_envelope(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


class GeminiStub:
    """Scripted Gemini endpoint; replies are consumed in order, then ``default`` repeats"""

    def __init__(self, replies: Optional[List[Reply]] = None, default: Reply = (200, VALID_ANALYSIS_REPLY)):
        self.replies = list(replies or [])
        self.default = default
        self.calls: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        status, text = reply
        if status != 200:
            return httpx.Response(status, text=text)
        return httpx.Response(200, json=gemini_envelope(text))


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gemini_stub() -> GeminiStub:
    return GeminiStub()


@pytest_asyncio.fixture
async def make_client(fake_clock):
    """Factory for clients wired to a stub endpoint and the fake clock; closes their HTTP clients"""
    http_clients: List[httpx.AsyncClient] = []

    def _make(
        stub: GeminiStub,
        *,
        budget: int = 3,
        ttl_seconds: float = 1800,
        key_mode: str = "prefix",
    ) -> AIAnalysisClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(stub))
        http_clients.append(http_client)
        cache = AnalysisCache(ttl_seconds, key_mode=key_mode, clock=fake_clock)
        return AIAnalysisClient(
            TEST_API_KEY,
            TEST_MODEL,
            max_requests_per_run=budget,
            cache=cache,
            http_client=http_client,
            base_url=TEST_BASE_URL,
            timeout=1.0,
        )

    _make.http_clients = http_clients
    yield _make

    for http_client in http_clients:
        await http_client.aclose()


@pytest.fixture
def mixed_samples():
    """One fast success and one slow server error"""
    return [
        {"response_time_ms": 200, "status_code": 200},
        {"response_time_ms": 800, "status_code": 500},
    ]


@pytest.fixture
def healthy_samples():
    return [{"response_time_ms": 100 + i * 10, "status_code": 200, "endpoint": f"/posts/{i}"} for i in range(10)]


# Hypothesis settings for property-based tests
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.load_profile("default")
