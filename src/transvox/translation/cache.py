"""
In-Process TTL Cache for Translation Results.

De-duplicates identical requests that arrive within the TTL window:
    - TTL expiration, checked and evicted on access
    - LRU eviction when capacity is reached
    - Thread-safe operations (one lock)
    - Statistics tracking (hits, misses, expirations)

This is the second tier of the lookup order used by the gateway:
    1. Public cross-user cache (external collaborator, plain requests only)
    2. Ephemeral cache (this module)

The cache is created once by the application factory and handed to the
gateway service; nothing in this module is global.

Example:
    >>> cache = EphemeralCache(ttl_seconds=3600)
    >>> key = make_key("tr", "Korean", "Hello world.", quality=3, pronunciation=True)
    >>> cache.set(key, {"translation": "안녕하세요, 세상."})
    >>> cache.get(key)
    {'translation': '안녕하세요, 세상.'}
"""
from __future__ import annotations

import hashlib
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from transvox.core.config import Defaults
from transvox.core.logging import get_logger, verbose
from transvox.utils.timeit import timeit

_LOG = get_logger("transvox.cache")

# Only this much of a contextual instruction takes part in the key
CONTEXT_KEY_CHARS = 100


def make_key(
    kind: str,
    target_language: str,
    text: str,
    quality: int,
    pronunciation: bool,
    context: Optional[str] = None,
) -> str:
    """
    Build a composite cache key.

    Distinct request shapes (operation kind, target, tier, pronunciation flag,
    instruction prefix) never collide; identical requests always do. The text
    is folded in as a sha256 digest to keep keys short.
    """
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
    prefix = (context or "")[:CONTEXT_KEY_CHARS]
    return f"{kind}:{target_language}:{quality}:{int(bool(pronunciation))}:{prefix}:{digest}"


@dataclass
class CacheEntry:
    """
    A cached value with its creation time.

    Attributes:
        value: Cached payload.
        created_at: Clock reading when the entry was stored.
    """
    value: Any
    created_at: float = field(default_factory=time.time)


class EphemeralCache:
    """
    Thread-safe TTL cache with LRU capacity bound.

    Attributes:
        ttl_seconds: Entry lifetime; entries older than this are misses.
        max_items: Maximum number of entries kept.
    """

    def __init__(
        self,
        ttl_seconds: int = Defaults.CACHE_TTL_SECONDS,
        max_items: int = Defaults.CACHE_MAX_ITEMS,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = int(ttl_seconds)
        self.max_items = int(max_items)
        self._clock = clock

        self._d: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

        self._hits = 0
        self._misses = 0
        self._expirations = 0

    def get(self, key: str) -> Optional[Any]:
        """
        Return the cached value, or None when absent or expired.

        An expired entry is removed as part of the lookup.
        """
        with timeit("cache_get") as t:
            with self._lock:
                entry = self._d.get(key)
                if entry is None:
                    self._misses += 1
                    value = None
                elif self._clock() - entry.created_at > self.ttl_seconds:
                    del self._d[key]
                    self._expirations += 1
                    self._misses += 1
                    value = None
                    verbose(_LOG, "expired", key=key[-8:])
                else:
                    self._d.move_to_end(key)
                    self._hits += 1
                    value = entry.value

        if value is not None:
            verbose(_LOG, "hit", key=key[-8:], seconds=round(t.seconds, 5))
        return value

    def set(self, key: str, value: Any) -> None:
        """Store a value, evicting least recently used entries over capacity."""
        with self._lock:
            self._d[key] = CacheEntry(value=value, created_at=self._clock())
            self._d.move_to_end(key)
            while len(self._d) > self.max_items:
                self._d.popitem(last=False)
        verbose(_LOG, "set", key=key[-8:])

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._d.pop(key, None) is not None

    def clear(self) -> int:
        """Clear all entries and return how many were removed."""
        with self._lock:
            count = len(self._d)
            self._d.clear()
            return count

    def cleanup_expired(self) -> int:
        """Remove every expired entry; returns the number removed."""
        cutoff = self._clock() - self.ttl_seconds
        with self._lock:
            expired = [k for k, e in self._d.items() if e.created_at < cutoff]
            for key in expired:
                del self._d[key]
            self._expirations += len(expired)

        if expired:
            verbose(_LOG, "cleanup", removed=len(expired))
        return len(expired)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._d),
                "max_items": self.max_items,
                "ttl_seconds": self.ttl_seconds,
                "expirations": self._expirations,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._d)

    def __contains__(self, key: str) -> bool:
        """Membership test; does NOT check TTL expiration."""
        with self._lock:
            return key in self._d
