"""Shared test fixtures."""

import pytest
import responses
from requests import Session

from gitlab_client.client import new_client
from gitlab_client.context import Context

BASE = "https://gitlab.example.com"
API = f"{BASE}/api/v4"


@pytest.fixture
def mock_session():
    """Plain requests.Session for testing."""
    return Session()


@pytest.fixture
def base_url():
    return BASE


@pytest.fixture
def client(mock_session, base_url):
    """Client with a private token pointing at the mocked instance."""
    return new_client("glpat-test", base_url=base_url, session=mock_session)


@pytest.fixture
def waits(monkeypatch):
    """Record backoff and limiter waits instead of sleeping."""
    recorded = []

    def sleep(self, seconds):
        self.raise_if_done()
        recorded.append(seconds)

    monkeypatch.setattr(Context, "sleep", sleep)
    return recorded


@pytest.fixture
def mocked_responses():
    """Activate responses mock for the duration of a test."""
    with responses.RequestsMock() as rsps:
        yield rsps
