"""
In-Memory Response Cache.

Memoizes generation results keyed by model and resolved prompts. Scoped
to a single process; instances are not shared across workers.
"""

from typing import Callable, Dict, List, Optional
from dataclasses import dataclass
import hashlib
import json
import logging
import threading
import time


logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached generation result."""
    key: str
    value: str
    created_at: float


def make_cache_key(model: str, system_prompt: str, user_prompt: str) -> str:
    """
    Deterministic key for a generation request.
    
    Only the model and the resolved prompts participate; the API key must
    never be part of it.
    """
    raw = json.dumps(
        {"model": model, "system": system_prompt, "prompt": user_prompt},
        sort_keys=True,
        ensure_ascii=False,
    )
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class ResponseCache:
    """
    Thread-safe TTL cache for generated text.
    
    Expired entries are removed lazily on read. When the entry count
    exceeds ``max_entries`` the oldest half (by insertion order) is
    dropped in one go; this is coarser than LRU but cheap.
    
    Operations are synchronous and never suspend, so they are safe to
    call from concurrent request handlers.
    """
    
    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
    
    def get(self, key: str) -> Optional[str]:
        """Return the cached value, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.created_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return entry.value
    
    def set(self, key: str, value: str) -> None:
        """Store a value, evicting the oldest half first if over capacity."""
        with self._lock:
            if len(self._entries) > self.max_entries:
                self._evict_oldest_half()
            # Re-inserting moves the key to the newest position
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(key=key, value=value, created_at=self._clock())
    
    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None
    
    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
    
    def keys(self) -> List[str]:
        """Keys of entries that have not expired yet."""
        with self._lock:
            now = self._clock()
            return [
                key for key, entry in self._entries.items()
                if now - entry.created_at < self.ttl_seconds
            ]
    
    def _evict_oldest_half(self) -> None:
        drop = len(self._entries) // 2
        for key in list(self._entries)[:drop]:
            del self._entries[key]
        logger.info(f"Response cache over capacity, evicted {drop} entries")
    
    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
    
    def __len__(self) -> int:
        return len(self._entries)
