"""
Per-client request rate limiting.

Each limiter keeps a rolling window of request timestamps per client
address. Requests over the ceiling are rejected immediately with 429;
nothing is queued.
"""

from collections import deque
from typing import Callable, Deque, Dict, Iterable, List, Optional, Tuple
import logging
import math
import threading
import time

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response


logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    """Allow at most ``max_requests`` per ``window_seconds`` for each key."""
    
    def __init__(
        self,
        window_seconds: float,
        max_requests: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()
    
    def hit(self, key: str) -> Tuple[bool, float]:
        """
        Record a request for ``key``.
        
        Returns:
            (allowed, retry_after_seconds); a rejected request is not recorded
        """
        with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            hits = self._hits.setdefault(key, deque())
            while hits and now - hits[0] >= self.window_seconds:
                hits.popleft()
            
            if len(hits) >= self.max_requests:
                return False, self.window_seconds - (now - hits[0])
            
            hits.append(now)
            return True, 0.0
    
    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._last_sweep = self._clock()
    
    def _sweep(self, now: float) -> None:
        """Forget clients whose newest request has left the window. Caller holds the lock."""
        stale = [
            key for key, hits in self._hits.items()
            if not hits or now - hits[-1] >= self.window_seconds
        ]
        for key in stale:
            del self._hits[key]
        self._last_sweep = now
    
    def __len__(self) -> int:
        """Number of clients currently tracked."""
        return len(self._hits)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Apply a general limiter to every request and stricter limiters to
    selected paths.
    
    Args:
        general: Limiter applied to all non-exempt paths
        path_limiters: (path, limiter) pairs checked in addition to ``general``
        exempt_paths: Paths never limited (e.g. health probes)
    """
    
    def __init__(
        self,
        app,
        general: SlidingWindowLimiter,
        path_limiters: Optional[Iterable[Tuple[str, SlidingWindowLimiter]]] = None,
        exempt_paths: Iterable[str] = ("/health",),
    ):
        super().__init__(app)
        self.general = general
        self.path_limiters: List[Tuple[str, SlidingWindowLimiter]] = list(path_limiters or [])
        self.exempt_paths = set(exempt_paths)
    
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if path in self.exempt_paths or request.method == "OPTIONS":
            return await call_next(request)
        
        client = request.client.host if request.client else "unknown"
        limiters = [limiter for prefix, limiter in self.path_limiters if path == prefix]
        limiters.append(self.general)
        
        for limiter in limiters:
            allowed, retry_after = limiter.hit(client)
            if not allowed:
                logger.warning(f"Rate limit exceeded for {client} on {path}")
                return JSONResponse(
                    status_code=429,
                    content={
                        "success": False,
                        "error": "Too many requests, please try again later.",
                    },
                    headers={"Retry-After": str(max(1, math.ceil(retry_after)))},
                )
        
        return await call_next(request)
