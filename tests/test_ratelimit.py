"""Tests for gitlab_client.ratelimit."""

import pytest

from gitlab_client.context import Context
from gitlab_client.errors import Canceled, DeadlineExceeded
from gitlab_client.ratelimit import INF, Limiter


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class RecordingContext(Context):
    def __init__(self, timeout=None):
        super().__init__(timeout)
        self.slept = []

    def sleep(self, seconds):
        self.raise_if_done()
        self.slept.append(seconds)


class TestFromRequestsPerMinute:
    def test_rate_and_burst(self):
        limiter = Limiter.from_requests_per_minute(600)
        assert limiter.limit == pytest.approx(6.6)
        assert limiter.burst == 3

    def test_minimum_burst_is_one(self):
        limiter = Limiter.from_requests_per_minute(60)
        assert limiter.limit == pytest.approx(0.66)
        assert limiter.burst == 1


class TestAllow:
    def test_unlimited(self):
        limiter = Limiter()
        assert limiter.limit == INF
        assert all(limiter.allow() for _ in range(1000))

    def test_bucket_drains_and_refills(self):
        clock = FakeClock()
        limiter = Limiter(limit=1, burst=2, clock=clock)
        assert limiter.allow()
        assert limiter.allow()
        assert not limiter.allow()
        clock.now += 1
        assert limiter.allow()
        assert not limiter.allow()


class TestWait:
    def test_unlimited_never_sleeps(self):
        ctx = RecordingContext()
        Limiter().wait(ctx)
        assert ctx.slept == []

    def test_within_burst_does_not_sleep(self):
        ctx = RecordingContext()
        limiter = Limiter(limit=2, burst=2, clock=FakeClock())
        limiter.wait(ctx)
        limiter.wait(ctx)
        assert ctx.slept == []

    def test_sleeps_for_refill(self):
        ctx = RecordingContext()
        limiter = Limiter(limit=2, burst=1, clock=FakeClock())
        limiter.wait(ctx)
        limiter.wait(ctx)
        limiter.wait(ctx)
        assert ctx.slept == [pytest.approx(0.5), pytest.approx(1.0)]

    def test_done_context_raises(self):
        ctx = RecordingContext()
        ctx.cancel()
        limiter = Limiter(limit=1, burst=1, clock=FakeClock())
        with pytest.raises(Canceled):
            limiter.wait(ctx)
        # No token was taken.
        assert limiter.allow()

    def test_deadline_too_close_gives_token_back(self):
        clock = FakeClock()
        limiter = Limiter(limit=1, burst=1, clock=clock)
        limiter.wait(RecordingContext())
        with pytest.raises(DeadlineExceeded):
            limiter.wait(RecordingContext(timeout=0.1))
        clock.now += 1
        assert limiter.allow()
