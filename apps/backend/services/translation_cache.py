"""
LinguaLens - Translation Cache
==============================
In-memory, time-expiring cache of translations keyed by source text and
target language.
"""

import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, Optional, Tuple

from config import get_settings


@dataclass
class _CacheEntry:
    translation: str
    stored_at: float


class TranslationCache:
    """
    Time-expiring translation cache.

    Entries older than ``ttl_seconds`` are treated as missing and removed
    when read. There is no size bound and nothing is persisted.
    """

    def __init__(self, ttl_seconds: float = 30 * 60, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, str], _CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, content: str, target_language: str) -> Optional[str]:
        key = (content, target_language)
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self._clock() - entry.stored_at > self.ttl_seconds:
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        return entry.translation

    def set(self, content: str, translation: str, target_language: str) -> None:
        self._entries[(content, target_language)] = _CacheEntry(translation, self._clock())

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": len(self._entries),
            "ttl_seconds": self.ttl_seconds,
        }


@lru_cache
def get_translation_cache() -> TranslationCache:
    """Process-wide cache instance."""
    return TranslationCache(ttl_seconds=get_settings().translation_cache_ttl_seconds)
