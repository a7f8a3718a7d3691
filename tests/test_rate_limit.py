"""
Tests for the sliding-window rate limiter.
"""

from nodeflow.middleware.rate_limit import SlidingWindowLimiter


class TestSlidingWindowLimiter:
    
    def test_allows_up_to_ceiling(self, clock):
        limiter = SlidingWindowLimiter(window_seconds=60, max_requests=3, clock=clock)
        assert [limiter.hit("a")[0] for _ in range(4)] == [True, True, True, False]
    
    def test_clients_are_independent(self, clock):
        limiter = SlidingWindowLimiter(window_seconds=60, max_requests=1, clock=clock)
        assert limiter.hit("a")[0] is True
        assert limiter.hit("b")[0] is True
        assert limiter.hit("a")[0] is False
    
    def test_window_rolls(self, clock):
        limiter = SlidingWindowLimiter(window_seconds=60, max_requests=2, clock=clock)
        limiter.hit("a")
        clock.advance(30)
        limiter.hit("a")
        
        allowed, retry_after = limiter.hit("a")
        assert allowed is False
        assert retry_after == 30
        
        clock.advance(30)
        assert limiter.hit("a")[0] is True
    
    def test_reset(self, clock):
        limiter = SlidingWindowLimiter(window_seconds=60, max_requests=1, clock=clock)
        limiter.hit("a")
        limiter.reset()
        assert limiter.hit("a")[0] is True
    
    def test_idle_clients_are_forgotten(self, clock):
        limiter = SlidingWindowLimiter(window_seconds=1, max_requests=5, clock=clock)
        for i in range(1000):
            limiter.hit(f"10.0.{i // 256}.{i % 256}")
        assert len(limiter) == 1000
        
        clock.advance(100)
        assert limiter.hit("fresh")[0] is True
        
        assert len(limiter) == 1
    
    def test_active_clients_survive_sweep(self, clock):
        limiter = SlidingWindowLimiter(window_seconds=10, max_requests=2, clock=clock)
        limiter.hit("idle")
        clock.advance(5)
        limiter.hit("busy")
        limiter.hit("busy")
        clock.advance(6)
        
        # Triggers a sweep: "idle" is stale, "busy" still has hits in the window
        assert limiter.hit("other")[0] is True
        assert len(limiter) == 2
        assert limiter.hit("busy")[0] is False
