"""Sliding-window rate limiting.

Limiters are plain objects owned by the application (``app.state``) rather
than module globals, so each app instance and each test gets its own state.
"""
import logging
import threading
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger("issuetrack-core.rate_limit")


@dataclass(frozen=True)
class RateLimitRule:
    """At most ``max_requests`` per ``window_seconds`` for one identifier."""

    max_requests: int
    window_seconds: float = 60.0


class SlidingWindowRateLimiter:
    """Keeps recent request timestamps per identifier and rejects overflow."""

    def __init__(
        self,
        name: str,
        rule: RateLimitRule,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.rule = rule
        self._clock = clock
        self._hits: dict[str, list[float]] = defaultdict(list)
        self._lock = threading.Lock()

    def hit(self, identifier: str) -> bool:
        """Record a request. Returns False if the identifier is over the limit."""
        now = self._clock()
        window_start = now - self.rule.window_seconds

        with self._lock:
            recent = [ts for ts in self._hits[identifier] if ts > window_start]
            if len(recent) >= self.rule.max_requests:
                self._hits[identifier] = recent
                logger.warning(f"Rate limit '{self.name}' exceeded for {identifier}")
                return False

            recent.append(now)
            self._hits[identifier] = recent
            return True

    def remaining(self, identifier: str) -> int:
        window_start = self._clock() - self.rule.window_seconds
        with self._lock:
            recent = [ts for ts in self._hits.get(identifier, []) if ts > window_start]
        return max(0, self.rule.max_requests - len(recent))

    def cleanup(self) -> int:
        """Drop identifiers with no requests in the current window. Returns how many were dropped."""
        window_start = self._clock() - self.rule.window_seconds
        dropped = 0
        with self._lock:
            for identifier in list(self._hits):
                recent = [ts for ts in self._hits[identifier] if ts > window_start]
                if recent:
                    self._hits[identifier] = recent
                else:
                    del self._hits[identifier]
                    dropped += 1
        return dropped

    def reset(self, identifier: Optional[str] = None) -> None:
        """Reset rate limit for an identifier or all."""
        with self._lock:
            if identifier:
                self._hits.pop(identifier, None)
            else:
                self._hits.clear()


class RateLimiterRegistry:
    """The set of named limiters an application uses."""

    def __init__(
        self,
        api_rule: RateLimitRule,
        issue_submission_rule: RateLimitRule,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api = SlidingWindowRateLimiter("api", api_rule, clock)
        self.issue_submission = SlidingWindowRateLimiter("issue_submission", issue_submission_rule, clock)

    def reset(self) -> None:
        self.api.reset()
        self.issue_submission.reset()
