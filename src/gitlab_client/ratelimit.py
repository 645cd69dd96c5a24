"""Token bucket limiter that tunes itself from RateLimit-Limit headers."""

import math
import threading
import time

from gitlab_client.errors import DeadlineExceeded

INF = math.inf

# Share of the server's advertised rate we actually use.
RATE_FACTOR = 0.66
BURST_FACTOR = 0.33


class Limiter:
    """Token bucket with ``limit`` tokens per second and ``burst`` capacity.

    A limiter with ``limit=INF`` never blocks. The bucket starts full.
    """

    def __init__(self, limit=INF, burst=0, clock=time.monotonic):
        self.limit = limit
        self.burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last = clock()
        self._lock = threading.Lock()

    @classmethod
    def from_requests_per_minute(cls, rpm):
        per_second = rpm / 60
        burst = int(per_second * BURST_FACTOR)
        return cls(per_second * RATE_FACTOR, burst or 1)

    def _advance(self, now):
        elapsed = max(0.0, now - self._last)
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.limit)
        self._last = now

    def allow(self):
        """Take a token if one is available right now."""
        if self.limit == INF:
            return True
        with self._lock:
            self._advance(self._clock())
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False

    def wait(self, ctx):
        """Block until a token is available or *ctx* is done."""
        if self.limit == INF:
            return
        ctx.raise_if_done()
        with self._lock:
            self._advance(self._clock())
            self._tokens -= 1
            delay = 0.0 if self._tokens >= 0 else -self._tokens / self.limit
        if delay <= 0:
            return
        remaining = ctx.remaining()
        if remaining is not None and remaining < delay:
            self._give_back()
            raise DeadlineExceeded(
                f'rate limiter wait of {delay:.3f}s would exceed context deadline')
        try:
            ctx.sleep(delay)
        except Exception:
            self._give_back()
            raise

    def _give_back(self):
        with self._lock:
            self._tokens = min(float(self.burst), self._tokens + 1)
