"""
Assessment Cache

In-memory TTL cache for assessments and debates, keyed by plain strings
built with CacheKeys. TTL defaults to six hours.

The cache is an optimization only. A miss, an eviction or a cache that
raises must never change a computed result, only how long it takes.
Callers log and ignore cache failures.

Usage:
    from driftwatch.cache import assessment_cache, CacheKeys
    key = CacheKeys.assessment("courts", "Drift", items)
    cached = await assessment_cache.get(key)
    if cached is None:
        result = await compute(...)
        await assessment_cache.set(key, result)
"""

from __future__ import annotations

import asyncio
import hashlib
import time
from typing import Any, Iterable, Optional, Sequence

from driftwatch.config import settings
from driftwatch.models import EvidenceItem


def _digest(parts: Iterable[str]) -> str:
    h = hashlib.sha256()
    for part in parts:
        h.update(part.encode())
        h.update(b"\x00")
    return h.hexdigest()[:16]


class CacheKeys:
    """Key builders. The engines never format cache keys by hand.

    Keys that stand for AI output include a digest of the input it was
    computed from, so two requests share an entry only if they would have
    sent the same prompt.
    """

    @staticmethod
    def items_digest(items: Iterable[EvidenceItem]) -> str:
        """Order-independent digest over item ids and content."""
        pairs = sorted((item.id, item.content) for item in items)
        return _digest(part for pair in pairs for part in pair)

    @staticmethod
    def assessment(
        category: str,
        status: Optional[str] = None,
        items: Optional[Iterable[EvidenceItem]] = None,
    ) -> str:
        key = f"assess:{category}"
        if status is not None:
            key += f":{status}"
        if items is not None:
            key += f":{CacheKeys.items_digest(items)}"
        return key

    @staticmethod
    def rag(category: str, query: str) -> str:
        digest = hashlib.sha256(query.encode()).hexdigest()[:16]
        return f"rag:{category}:{digest}"

    @staticmethod
    def debate(category: str, status: str, evidence: Sequence[str], window: int) -> str:
        return f"debate:{category}:{status}:{_digest(evidence)}:{window}"


class AssessmentCache:
    """Async-safe in-memory cache with TTL eviction."""

    def __init__(self, ttl_seconds: int = settings.CACHE_TTL_S, max_entries: int = 500):
        self._cache: dict[str, tuple[float, Any]] = {}
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value if present and not expired."""
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            ts, value = entry
            if time.monotonic() - ts > self._ttl:
                del self._cache[key]
                self._misses += 1
                return None

            self._hits += 1
            return value

    async def set(self, key: str, value: Any) -> None:
        """Store a value. Evicts the oldest entry when full."""
        async with self._lock:
            if key not in self._cache and len(self._cache) >= self._max_entries:
                oldest_key = min(self._cache, key=lambda k: self._cache[k][0])
                del self._cache[oldest_key]
            self._cache[key] = (time.monotonic(), value)

    async def invalidate(self, key: str) -> None:
        async with self._lock:
            self._cache.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    @property
    def stats(self) -> dict:
        """Cache hit/miss statistics."""
        total = self._hits + self._misses
        return {
            "entries": len(self._cache),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 3) if total > 0 else 0.0,
        }


# Singleton, shared across the process
assessment_cache = AssessmentCache()
