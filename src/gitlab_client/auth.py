"""Authentication sources.

An auth source turns credentials into the header attached to each request.
``init`` runs exactly once per client, before the first request is sent;
``header`` runs for every request and must return a non-empty key and value
or raise.
"""

import enum
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qsl

import requests

from gitlab_client.errors import AuthError

ACCESS_TOKEN_HEADER = 'PRIVATE-TOKEN'
JOB_TOKEN_HEADER = 'JOB-TOKEN'
AUTHORIZATION_HEADER = 'Authorization'

# Treat tokens as expired slightly early so they never lapse mid-request.
EXPIRY_DELTA = timedelta(seconds=10)


class AuthType(enum.Enum):
    BASIC_AUTH = 'basic_auth'
    JOB_TOKEN = 'job_token'
    OAUTH_TOKEN = 'oauth_token'
    PRIVATE_TOKEN = 'private_token'


class AuthSource(ABC):
    def init(self, ctx, client):
        """One-time setup with access to the owning client."""

    @abstractmethod
    def header(self, ctx):
        """Return the (name, value) pair to send."""


def _require(key, value):
    if not key or not value:
        raise AuthError('auth source produced an empty header')
    return key, value


class AccessTokenAuthSource(AuthSource):
    def __init__(self, token):
        self.token = token

    def header(self, ctx):
        return _require(ACCESS_TOKEN_HEADER, self.token)


class JobTokenAuthSource(AuthSource):
    def __init__(self, token):
        self.token = token

    def header(self, ctx):
        return _require(JOB_TOKEN_HEADER, self.token)


# ---------------------------------------------------------------------------
# OAuth tokens
# ---------------------------------------------------------------------------

@dataclass
class Token:
    access_token: str
    token_type: str = 'Bearer'
    refresh_token: str = ''
    expiry: datetime | None = None

    @property
    def valid(self):
        if not self.access_token:
            return False
        if self.expiry is None:
            return True
        return datetime.now(timezone.utc) + EXPIRY_DELTA < self.expiry

    @classmethod
    def from_response(cls, data):
        """Build a token from a decoded token endpoint response."""
        access_token = data.get('access_token')
        if not access_token:
            raise AuthError('server response missing access_token')
        expiry = None
        expires_in = data.get('expires_in')
        if expires_in not in (None, ''):
            expiry = datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
        return cls(
            access_token=access_token,
            token_type=data.get('token_type') or 'Bearer',
            refresh_token=data.get('refresh_token') or '',
            expiry=expiry,
        )


class StaticTokenSource:
    def __init__(self, token):
        self._token = token

    def token(self):
        return self._token


def request_token(session, token_url, form, timeout=None):
    """POST an OAuth grant and decode the token from JSON or form encoding."""
    resp = session.post(token_url, data=form, headers={'Accept': 'application/json'},
                        timeout=timeout)
    if not resp.ok:
        raise AuthError(f'oauth2: cannot fetch token: {resp.status_code} {resp.text[:200]}')
    content_type = resp.headers.get('Content-Type', '')
    if 'application/x-www-form-urlencoded' in content_type or 'text/plain' in content_type:
        data = dict(parse_qsl(resp.text))
    else:
        try:
            data = resp.json()
        except ValueError as e:
            raise AuthError(f'oauth2: cannot parse token response: {e}') from e
    return Token.from_response(data)


class RefreshTokenSource:
    """Hands out a cached token, refreshing it once it has expired."""

    def __init__(self, session, token_url, token):
        self._session = session
        self._token_url = token_url
        self._token = token
        self._lock = threading.Lock()

    def token(self):
        with self._lock:
            if self._token.valid:
                return self._token
            if not self._token.refresh_token:
                raise AuthError('oauth2: token expired and refresh token is not set')
            refreshed = request_token(self._session, self._token_url, {
                'grant_type': 'refresh_token',
                'refresh_token': self._token.refresh_token,
            })
            if not refreshed.refresh_token:
                refreshed.refresh_token = self._token.refresh_token
            self._token = refreshed
            return refreshed


class OAuthTokenSource(AuthSource):
    def __init__(self, token_source):
        self.token_source = token_source

    def header(self, ctx):
        token = self.token_source.token()
        return _require(AUTHORIZATION_HEADER, token.access_token and f'Bearer {token.access_token}')


class PasswordCredentialsAuthSource(AuthSource):
    """Exchanges a username and password for an OAuth token at init time."""

    def __init__(self, username, password):
        self.username = username
        self.password = password
        self._delegate = None

    def init(self, ctx, client):
        token_url = client.oauth_endpoint()['token_url']
        try:
            token = request_token(client.session, token_url, {
                'grant_type': 'password',
                'username': self.username,
                'password': self.password,
            }, timeout=ctx.remaining())
        except (AuthError, requests.RequestException) as e:
            raise AuthError(f'PasswordCredentialsToken({self.username!r}, ******): {e}') from e
        self._delegate = OAuthTokenSource(RefreshTokenSource(client.session, token_url, token))

    def header(self, ctx):
        if self._delegate is None:
            raise AuthError('password credentials auth source used before init')
        return self._delegate.header(ctx)
