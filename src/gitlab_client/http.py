"""Retrying HTTP transport shared by every API call.

Retries 429 and 5xx responses. Rate limited responses back off until the
server's RateLimit-Reset time (or exponentially without it); server errors
use a blind linear wait long enough to ride out a short outage.
"""

import logging
import random
import time

import requests

logger = logging.getLogger(__name__)

RETRY_MAX = 5
RETRY_WAIT_MIN = 0.1
RETRY_WAIT_MAX = 0.4

# Wider band used for 5xx responses.
OUTAGE_WAIT_MIN = 0.7
OUTAGE_WAIT_MAX = 0.9

HEADER_RATE_LIMIT = 'RateLimit-Limit'
HEADER_RATE_RESET = 'RateLimit-Reset'

_jitter = random.Random()


def rate_limit_backoff(wait_min, wait_max, attempt, response):
    """Backoff for a 429 response, in seconds."""
    jitter = _jitter.random() * (wait_max - wait_min)
    if response is not None:
        reset = response.headers.get(HEADER_RATE_RESET)
        if reset:
            try:
                reset_at = int(reset)
            except ValueError:
                reset_at = 0
            if reset_at > 0:
                wait = reset_at - time.time()
                if wait > wait_min:
                    wait_min = wait
        else:
            wait_min = wait_min * 2 ** attempt
    return wait_min + jitter


def linear_jitter_backoff(wait_min, wait_max, attempt, response):
    """Random wait in [wait_min, wait_max) scaled by the attempt number."""
    attempt += 1
    if wait_max <= wait_min:
        return wait_min * attempt
    return (wait_min + _jitter.random() * (wait_max - wait_min)) * attempt


class Transport:
    """Sends prepared requests through a session, retrying per ``check_retry``.

    ``check_retry(ctx, response, error)`` decides whether an attempt should be
    repeated; it may raise to abort. ``backoff(wait_min, wait_max, attempt,
    response)`` returns the delay before the next attempt.
    """

    def __init__(self, session, check_retry, backoff, retry_max=RETRY_MAX,
                 retry_wait_min=RETRY_WAIT_MIN, retry_wait_max=RETRY_WAIT_MAX):
        self.session = session
        self.check_retry = check_retry
        self.backoff = backoff
        self.retry_max = retry_max
        self.retry_wait_min = retry_wait_min
        self.retry_wait_max = retry_wait_max

    def clone(self, check_retry):
        """Same transport with a different retry predicate."""
        return Transport(
            self.session,
            check_retry,
            self.backoff,
            retry_max=self.retry_max,
            retry_wait_min=self.retry_wait_min,
            retry_wait_max=self.retry_wait_max,
        )

    def send(self, prepared, ctx, timeout=None):
        """Send *prepared*, retrying per policy.

        *timeout* is the per-attempt socket timeout; each attempt is further
        capped by the time left on *ctx*.
        """
        settings = self.session.merge_environment_settings(prepared.url, {}, True, None, None)
        for attempt in range(self.retry_max + 1):
            ctx.raise_if_done()

            attempt_timeout = timeout
            remaining = ctx.remaining()
            if remaining is not None:
                attempt_timeout = remaining if timeout is None else min(timeout, remaining)

            response, error = None, None
            try:
                response = self.session.send(prepared, timeout=attempt_timeout, **settings)
            except requests.RequestException as e:
                error = e

            if not self.check_retry(ctx, response, error):
                if error is not None:
                    raise error
                return response

            if attempt == self.retry_max:
                break

            delay = self.backoff(self.retry_wait_min, self.retry_wait_max, attempt, response)
            status = response.status_code if response is not None else None
            logger.debug('%s %s: status %s, retrying in %.2fs (attempt %d/%d)',
                         prepared.method, prepared.url, status, delay,
                         attempt + 1, self.retry_max)
            if response is not None:
                response.close()
            ctx.sleep(delay)

        # Out of retries: hand the last outcome back unchanged.
        if error is not None:
            raise error
        return response
