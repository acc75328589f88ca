import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float
    limit: int

    def retry_after(self, now: float) -> int:
        """Whole seconds until the window resets (at least 1)."""
        return max(1, math.ceil(self.reset_at - now))


@dataclass(frozen=True)
class RateLimitStatus:
    count: int
    remaining: int
    reset_at: float


class RateLimiter:
    """
    Fixed-window request counter keyed by client identity (IP).

    Process-local: counters do not converge across instances when the app is
    scaled horizontally. Use an external TTL cache for multi-instance deployments.
    """

    def __init__(
        self,
        window_seconds: int = 60,
        max_requests: int = 10,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.clock = clock or time.time
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def init_app(self, app) -> None:
        self.window_seconds = app.config.get("RATE_LIMIT_WINDOW_SECONDS", self.window_seconds)
        self.max_requests = app.config.get("RATE_LIMIT_MAX_REQUESTS", self.max_requests)
        app.extensions["rate_limiter"] = self

    def _evict_expired(self, now: float) -> None:
        # O(n) sweep; fine for a single poll's traffic
        expired = [key for key, entry in self._entries.items() if now >= entry.reset_at]
        for key in expired:
            del self._entries[key]

    def check(self, identity: str) -> RateLimitResult:
        """Count one request for `identity` and report whether it is admitted."""
        with self._lock:
            now = self.clock()
            self._evict_expired(now)

            entry = self._entries.get(identity)
            if entry is None:
                entry = RateLimitEntry(count=1, reset_at=now + self.window_seconds)
                self._entries[identity] = entry
            else:
                entry.count += 1

            return RateLimitResult(
                allowed=entry.count <= self.max_requests,
                remaining=max(0, self.max_requests - entry.count),
                reset_at=entry.reset_at,
                limit=self.max_requests,
            )

    def status(self, identity: str) -> RateLimitStatus:
        """Read-only view of an identity's window; does not consume quota."""
        with self._lock:
            now = self.clock()
            entry = self._entries.get(identity)
            if entry is None or now >= entry.reset_at:
                return RateLimitStatus(
                    count=0,
                    remaining=self.max_requests,
                    reset_at=now + self.window_seconds,
                )
            return RateLimitStatus(
                count=entry.count,
                remaining=max(0, self.max_requests - entry.count),
                reset_at=entry.reset_at,
            )

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()
