"""
Middleware package - request rate limiting.
"""

from nodeflow.middleware.rate_limit import RateLimitMiddleware, SlidingWindowLimiter

__all__ = ["RateLimitMiddleware", "SlidingWindowLimiter"]
