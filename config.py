"""
Configuration module for the AI-assisted performance toolkit

Manages environment-based configuration for the Gemini analysis client,
AI feature toggles, response caching, quota and HTTP transport settings.
All values are read once at process start.
"""

import os
from dataclasses import dataclass, field
from typing import List, Dict, Any
import logging

logger = logging.getLogger(__name__)

MIN_API_KEY_LENGTH = 10


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: '{raw}', using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return float(default)
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid number for {name}: '{raw}', using {default}")
        return float(default)


@dataclass
class GeminiConfig:
    """Gemini generateContent endpoint settings"""
    api_key: str = field(default_factory=lambda: os.getenv("GEMINI_API_KEY", ""))
    model: str = field(default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-1.5-flash"))
    base_url: str = field(default_factory=lambda: os.getenv(
        "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
    ))

    # Request budget
    timeout: float = field(default_factory=lambda: _env_float("GEMINI_TIMEOUT", 15.0))
    max_output_tokens: int = field(default_factory=lambda: _env_int("GEMINI_MAX_OUTPUT_TOKENS", 512))
    analysis_max_tokens: int = field(default_factory=lambda: _env_int("GEMINI_ANALYSIS_MAX_TOKENS", 800))

    # Sampling (lowered for consistent, cheaper answers)
    temperature: float = field(default_factory=lambda: _env_float("GEMINI_TEMPERATURE", 0.3))
    top_k: int = field(default_factory=lambda: _env_int("GEMINI_TOP_K", 20))
    top_p: float = field(default_factory=lambda: _env_float("GEMINI_TOP_P", 0.8))

    def __post_init__(self):
        """Validate and normalize Gemini settings"""
        self.base_url = self.base_url.rstrip("/")
        if self.timeout <= 0:
            self.timeout = 15.0
        if self.max_output_tokens <= 0:
            self.max_output_tokens = 512
        if self.analysis_max_tokens <= 0:
            self.analysis_max_tokens = 800
        if not 0.0 <= self.temperature <= 2.0:
            self.temperature = 0.3
        if self.top_k <= 0:
            self.top_k = 20
        if not 0.0 < self.top_p <= 1.0:
            self.top_p = 0.8

    @property
    def configured(self) -> bool:
        return len(self.api_key) >= MIN_API_KEY_LENGTH


@dataclass
class AIFeaturesConfig:
    """AI feature toggles, all disabled unless explicitly switched on"""
    smart_test_generation: bool = field(default_factory=lambda: _env_flag("AI_TEST_GENERATION"))
    performance_insights: bool = field(default_factory=lambda: _env_flag("AI_INSIGHTS"))
    intelligent_test_data: bool = field(default_factory=lambda: _env_flag("AI_TEST_DATA"))
    real_time_insights: bool = field(default_factory=lambda: _env_flag("AI_REAL_TIME"))


@dataclass
class AnalysisConfig:
    """Response cache and per-run call quota"""
    cache_ttl_seconds: int = field(default_factory=lambda: _env_int("AI_CACHE_TTL", 1800))  # 30 minutes
    max_requests_per_run: int = field(default_factory=lambda: _env_int("AI_MAX_REQUESTS_PER_RUN", 3))
    cache_key_mode: str = field(default_factory=lambda: os.getenv("AI_CACHE_KEY_MODE", "prefix").lower())
    cache_key_words: int = field(default_factory=lambda: _env_int("AI_CACHE_KEY_WORDS", 10))
    min_samples_for_analysis: int = field(default_factory=lambda: _env_int("AI_MIN_SAMPLES_FOR_ANALYSIS", 8))
    regression_threshold: float = field(default_factory=lambda: _env_float("AI_REGRESSION_THRESHOLD", 0.2))

    def __post_init__(self):
        """Validate analysis configuration"""
        if self.cache_ttl_seconds <= 0:
            self.cache_ttl_seconds = 1800
        if self.max_requests_per_run < 0:
            self.max_requests_per_run = 3
        if self.cache_key_mode not in ("prefix", "digest"):
            logger.warning(f"Unknown AI_CACHE_KEY_MODE '{self.cache_key_mode}', using 'prefix'")
            self.cache_key_mode = "prefix"
        if self.cache_key_words <= 0:
            self.cache_key_words = 10
        if self.min_samples_for_analysis <= 0:
            self.min_samples_for_analysis = 8
        if self.regression_threshold <= 0:
            self.regression_threshold = 0.2


@dataclass
class ApiTransportConfig:
    """Unified HTTP transport policy for external requests."""
    trust_env: bool = field(default_factory=lambda: _env_flag("API_TRANSPORT_TRUST_ENV"))
    connect_timeout: float = field(default_factory=lambda: _env_float("API_TRANSPORT_CONNECT_TIMEOUT", 10.0))
    read_timeout: float = field(default_factory=lambda: _env_float("API_TRANSPORT_READ_TIMEOUT", 30.0))
    write_timeout: float = field(default_factory=lambda: _env_float("API_TRANSPORT_WRITE_TIMEOUT", 10.0))
    pool_timeout: float = field(default_factory=lambda: _env_float("API_TRANSPORT_POOL_TIMEOUT", 5.0))
    max_connections: int = field(default_factory=lambda: _env_int("API_TRANSPORT_MAX_CONNECTIONS", 20))
    max_keepalive_connections: int = field(default_factory=lambda: _env_int("API_TRANSPORT_MAX_KEEPALIVE", 5))

    def __post_init__(self):
        if self.connect_timeout <= 0:
            self.connect_timeout = 10.0
        if self.read_timeout <= 0:
            self.read_timeout = 30.0
        if self.write_timeout <= 0:
            self.write_timeout = 10.0
        if self.pool_timeout <= 0:
            self.pool_timeout = 5.0
        if self.max_connections <= 0:
            self.max_connections = 20
        if self.max_keepalive_connections < 0:
            self.max_keepalive_connections = 5


@dataclass
class LoadTestConfig:
    """Targets and defaults for load runs"""
    base_url: str = field(default_factory=lambda: os.getenv("BASE_URL", "https://jsonplaceholder.typicode.com"))
    endpoints: List[str] = field(default_factory=lambda: [
        path.strip()
        for path in os.getenv("LOAD_ENDPOINTS", "/posts/1,/posts/2,/posts/3,/users/1,/comments/1").split(",")
        if path.strip()
    ])
    user_agent: str = field(default_factory=lambda: os.getenv("LOAD_USER_AGENT", "ai-perf-toolkit/1.0.0"))
    request_timeout: float = field(default_factory=lambda: _env_float("LOAD_REQUEST_TIMEOUT", 30.0))
    slow_response_ms: float = field(default_factory=lambda: _env_float("LOAD_SLOW_RESPONSE_MS", 1000))
    thresholds: Dict[str, List[str]] = field(default_factory=lambda: {
        "http_req_duration": ["p(95)<500", "p(99)<1000"],
        "http_req_failed": ["rate<0.1"],
        "http_reqs": ["rate>10"],
        "checks": ["rate>0.9"],
    })

    def __post_init__(self):
        self.base_url = self.base_url.rstrip("/")
        if self.request_timeout <= 0:
            self.request_timeout = 30.0
        if self.slow_response_ms <= 0:
            self.slow_response_ms = 1000.0

    @property
    def default_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }


class ConfigManager:
    """Central configuration manager for the toolkit"""

    def __init__(self):
        self.gemini = GeminiConfig()
        self.features = AIFeaturesConfig()
        self.analysis = AnalysisConfig()
        self.api = ApiTransportConfig()
        self.load = LoadTestConfig()

    def validate_ai_config(self) -> Dict[str, Any]:
        """Report AI configuration problems without raising"""
        errors = []

        if self.gemini.api_key and len(self.gemini.api_key) < MIN_API_KEY_LENGTH:
            errors.append("Invalid Gemini API key")

        ai_requested = (
            self.features.performance_insights
            or self.features.smart_test_generation
            or self.features.intelligent_test_data
        )
        if ai_requested and not self.gemini.api_key:
            errors.append("AI features enabled but GEMINI_API_KEY is not set")

        return {"is_valid": not errors, "errors": errors}

    def log_configuration(self):
        """Log current configuration (without sensitive data)"""
        logger.info("Configuration loaded:")
        logger.info(f"  Gemini model: {self.gemini.model}")
        logger.info(f"  Gemini key configured: {self.gemini.configured}")
        logger.info(f"  Gemini timeout: {self.gemini.timeout}s")
        logger.info(f"  AI insights enabled: {self.features.performance_insights}")
        logger.info(f"  AI test generation enabled: {self.features.smart_test_generation}")
        logger.info(f"  AI test data enabled: {self.features.intelligent_test_data}")
        logger.info(f"  Analysis cache TTL: {self.analysis.cache_ttl_seconds}s")
        logger.info(f"  Analysis request budget per run: {self.analysis.max_requests_per_run}")
        logger.info(f"  Analysis cache key mode: {self.analysis.cache_key_mode}")
        logger.info(f"  Load target: {self.load.base_url}")


def configure_logging(level: str = "INFO") -> None:
    """Basic console logging for command-line tools"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


# Global configuration instance
config = ConfigManager()
