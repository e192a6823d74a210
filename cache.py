"""
In-memory analysis cache for the AI analysis client

Keys are derived from the outbound prompt plus a coarse category tag.
Entries expire purely by TTL; there is no capacity eviction. An expired
entry is dropped on read and reported as absent.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from config import config
from schemas import CacheEntry

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

CATEGORY_THRESHOLD = "threshold"
CATEGORY_ANALYSIS = "analysis"


def prompt_category(prompt: str) -> str:
    """Coarse category: threshold prompts and everything else"""
    return CATEGORY_THRESHOLD if "threshold" in prompt else CATEGORY_ANALYSIS


def derive_cache_key(prompt: str, *, mode: str = "prefix", words: int = 10) -> str:
    """
    Build a cache key for a prompt.

    ``prefix`` joins the first ``words`` space-separated tokens of the prompt
    under the category tag. Prompts built from one template with similar
    aggregates share a key in this mode. ``digest`` keys on a SHA-256 of the
    whole prompt instead.
    """
    category = prompt_category(prompt)
    if mode == "digest":
        digest = hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:16]
        return f"{category}_{digest}"
    head = "_".join(prompt.split(" ")[:words])
    return f"{category}_{head}"


@dataclass
class CacheLookup:
    """Result of a cache read"""
    hit: bool
    value: Any = None
    age_seconds: float = 0.0


class AnalysisCache:
    """
    TTL cache owned by a single analysis client.

    Not thread-safe; callers sharing one instance across threads must
    serialize access.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        *,
        key_mode: Optional[str] = None,
        key_words: Optional[int] = None,
        clock: Clock = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.analysis.cache_ttl_seconds
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.key_mode = key_mode or config.analysis.cache_key_mode
        self.key_words = key_words or config.analysis.cache_key_words
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def key_for(self, prompt: str) -> str:
        return derive_cache_key(prompt, mode=self.key_mode, words=self.key_words)

    def get(self, key: str) -> CacheLookup:
        entry = self._entries.get(key)
        if entry is None:
            return CacheLookup(hit=False)

        now = self._clock()
        if entry.is_expired(now):
            logger.debug(f"Cache entry expired: {key[:48]}")
            del self._entries[key]
            return CacheLookup(hit=False)

        return CacheLookup(hit=True, value=entry.value, age_seconds=now - entry.created_at)

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> CacheEntry:
        entry = CacheEntry(
            key=key,
            value=value,
            created_at=self._clock(),
            ttl_seconds=ttl_seconds if ttl_seconds is not None else self.ttl_seconds,
        )
        self._entries[key] = entry
        return entry

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def purge_expired(self) -> int:
        """Drop every expired entry, returning how many were removed"""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key).hit
