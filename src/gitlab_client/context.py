"""Cancellation and deadline handling for outbound API calls.

Every request carries a Context. The retry loop checks it before each
attempt and the rate limiter and backoff waits sleep on it, so cancelling
from another thread (or hitting the deadline) interrupts a call promptly.
"""

import threading
import time

from gitlab_client.errors import Canceled, DeadlineExceeded


class Context:
    def __init__(self, timeout=None):
        self._cancelled = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def background(cls):
        """A context that is never cancelled and has no deadline."""
        return cls()

    @property
    def deadline(self):
        return self._deadline

    def cancel(self):
        self._cancelled.set()

    def remaining(self):
        """Seconds left until the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def err(self):
        if self._cancelled.is_set():
            return Canceled('context canceled')
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceeded('context deadline exceeded')
        return None

    def done(self):
        return self.err() is not None

    def raise_if_done(self):
        err = self.err()
        if err is not None:
            raise err

    def sleep(self, seconds):
        """Block for *seconds*, raising early if the context is done."""
        self.raise_if_done()
        if seconds <= 0:
            return
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._cancelled.wait(remaining)
            self.raise_if_done()
            # Deadline reached without a cancel signal.
            raise DeadlineExceeded('context deadline exceeded')
        if self._cancelled.wait(seconds):
            self.raise_if_done()
