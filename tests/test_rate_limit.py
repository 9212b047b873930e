"""Tests for the sliding-window rate limiter."""
from issuetrack_core.rate_limit import RateLimiterRegistry, RateLimitRule, SlidingWindowRateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestSlidingWindowRateLimiter:
    """Test SlidingWindowRateLimiter."""

    def test_rejects_request_over_limit(self):
        """Test that the (N+1)th request inside the window is rejected."""
        limiter = SlidingWindowRateLimiter("test", RateLimitRule(3, 60), FakeClock())

        assert [limiter.hit("user:a") for _ in range(3)] == [True, True, True]
        assert limiter.hit("user:a") is False
        assert limiter.remaining("user:a") == 0

    def test_identifiers_are_independent(self):
        """Test that one caller's usage does not affect another's."""
        limiter = SlidingWindowRateLimiter("test", RateLimitRule(1, 60), FakeClock())

        assert limiter.hit("user:a")
        assert not limiter.hit("user:a")
        assert limiter.hit("user:b")

    def test_window_slides(self):
        """Test that requests older than the window stop counting."""
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter("test", RateLimitRule(2, 60), clock)

        assert limiter.hit("user:a")
        clock.now += 30
        assert limiter.hit("user:a")
        assert not limiter.hit("user:a")

        # The first request leaves the window
        clock.now += 31
        assert limiter.remaining("user:a") == 1
        assert limiter.hit("user:a")
        assert not limiter.hit("user:a")

    def test_rejected_requests_do_not_count(self):
        """Test that rejected requests do not extend the lockout."""
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter("test", RateLimitRule(1, 60), clock)

        assert limiter.hit("user:a")
        for _ in range(5):
            clock.now += 10
            assert not limiter.hit("user:a")

        clock.now += 11
        assert limiter.hit("user:a")

    def test_cleanup_and_reset(self):
        """Test that idle identifiers are dropped and reset clears state."""
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter("test", RateLimitRule(1, 60), clock)

        limiter.hit("user:a")
        clock.now += 30
        limiter.hit("user:b")
        clock.now += 31

        assert limiter.cleanup() == 1
        assert not limiter.hit("user:b")

        limiter.reset("user:b")
        assert limiter.hit("user:b")

        limiter.reset()
        assert limiter.remaining("user:b") == 1


class TestRateLimiterRegistry:
    """Test the per-application set of limiters."""

    def test_registries_do_not_share_state(self):
        """Test that two registries count independently."""
        rule = RateLimitRule(1, 60)
        first = RateLimiterRegistry(rule, rule, FakeClock())
        second = RateLimiterRegistry(rule, rule, FakeClock())

        assert first.issue_submission.hit("user:a")
        assert not first.issue_submission.hit("user:a")
        assert second.issue_submission.hit("user:a")

    def test_reset_clears_all_limiters(self):
        rule = RateLimitRule(1, 60)
        registry = RateLimiterRegistry(rule, rule, FakeClock())
        registry.api.hit("ip:1")
        registry.issue_submission.hit("user:a")

        registry.reset()

        assert registry.api.hit("ip:1")
        assert registry.issue_submission.hit("user:a")
