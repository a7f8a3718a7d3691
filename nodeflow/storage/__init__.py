"""
Storage package - In-memory response cache.
"""

from nodeflow.storage.cache import (
    CacheEntry,
    ResponseCache,
    make_cache_key,
)

__all__ = [
    "CacheEntry",
    "ResponseCache",
    "make_cache_key",
]
