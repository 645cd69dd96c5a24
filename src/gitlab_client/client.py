"""GitLab API client: request construction and dispatch.

Typical use::

    client = new_client('glpat-...', base_url='https://gitlab.example.com')
    req = client.new_request('GET', 'projects/' + project_path('group/app'))
    project, resp = client.do(req, dict)
"""

import dataclasses
import enum
import json
import logging
import threading
from collections.abc import Mapping
from datetime import date, datetime
from urllib.parse import urlencode, urlsplit, urlunsplit

import requests
from requests.structures import CaseInsensitiveDict

from gitlab_client.auth import (
    AccessTokenAuthSource,
    JobTokenAuthSource,
    OAuthTokenSource,
    PasswordCredentialsAuthSource,
    StaticTokenSource,
    Token,
)
from gitlab_client.context import Context
from gitlab_client.errors import AuthInitError, URLNotAllowedError
from gitlab_client.http import (
    HEADER_RATE_LIMIT,
    OUTAGE_WAIT_MAX,
    OUTAGE_WAIT_MIN,
    RETRY_MAX,
    RETRY_WAIT_MAX,
    RETRY_WAIT_MIN,
    Transport,
    linear_jitter_backoff,
    rate_limit_backoff,
)
from gitlab_client.ratelimit import Limiter
from gitlab_client.response import Response, check_response

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://gitlab.com/'
API_VERSION_PATH = 'api/v4/'
USER_AGENT = 'gitlab-client-python'

BODY_METHODS = frozenset({'PATCH', 'POST', 'PUT'})


class _Once:
    """Runs a function at most once; every caller sees the first outcome."""

    def __init__(self):
        self._lock = threading.Lock()
        self._done = False
        self._error = None

    def do(self, fn):
        if not self._done:
            with self._lock:
                if not self._done:
                    try:
                        fn()
                    except Exception as e:
                        self._error = e
                    finally:
                        self._done = True
        if self._error is not None:
            raise self._error


# ---------------------------------------------------------------------------
# Option encoding
# ---------------------------------------------------------------------------

def _options_dict(opt):
    """Turn an options object into a dict, dropping unset (None) fields."""
    if dataclasses.is_dataclass(opt) and not isinstance(opt, type):
        items = ((f.name, getattr(opt, f.name)) for f in dataclasses.fields(opt))
    elif isinstance(opt, Mapping):
        items = opt.items()
    else:
        raise TypeError(f'options must be a dataclass instance or a mapping, got {type(opt).__name__}')
    return {k: _plain(v) for k, v in items if v is not None}


def _plain(value):
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _options_dict(value)
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    raise TypeError(f'{type(value).__name__} is not JSON serializable')


def _query_scalar(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return str(value.value)
    return str(value)


def _query_pairs(values, prefix=''):
    pairs = []
    for key, value in values.items():
        name = f'{prefix}[{key}]' if prefix else str(key)
        if isinstance(value, dict):
            pairs.extend(_query_pairs(value, name))
        elif isinstance(value, list):
            pairs.extend((f'{name}[]', _query_scalar(v)) for v in value)
        else:
            pairs.append((name, _query_scalar(value)))
    return pairs


def encode_query(opt):
    """Encode options as a query string, sorted by key."""
    pairs = _query_pairs(_options_dict(opt))
    pairs.sort(key=lambda p: p[0])
    return urlencode(pairs)


def encode_form_fields(opt):
    """Options as (name, value) pairs for multipart form fields."""
    return _query_pairs(_options_dict(opt))


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class Request:
    """An outbound request under construction.

    Request hooks receive this object and may change any attribute; raising
    from a hook aborts the request before anything is sent.
    """

    def __init__(self, method, url, headers=None, body=None, files=None, data=None):
        self.method = method.upper()
        self.url = url
        self.headers = CaseInsensitiveDict(headers or {})
        self.body = body
        self.files = files
        self.data = data
        self.ctx = Context.background()
        self.check_retry = None
        self.timeout = None

    @property
    def path(self):
        return urlsplit(self.url).path

    @path.setter
    def path(self, value):
        scheme, netloc, _, query, fragment = urlsplit(self.url)
        self.url = urlunsplit((scheme, netloc, value, query, fragment))

    @property
    def query(self):
        return urlsplit(self.url).query

    @query.setter
    def query(self, value):
        scheme, netloc, path, _, fragment = urlsplit(self.url)
        self.url = urlunsplit((scheme, netloc, path, value, fragment))

    def prepare(self, session=None):
        req = requests.Request(
            self.method,
            self.url,
            headers=dict(self.headers),
            data=self.data if self.files else self.body,
            files=self.files,
        )
        prepared = session.prepare_request(req) if session is not None else req.prepare()
        # requests would requote the URL and turn %2E back into '.'.
        prepared.url = self.url
        return prepared

    def __repr__(self):
        return f'<Request [{self.method} {self.url}]>'


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

def _normalize_base_url(url):
    if not url.endswith('/'):
        url += '/'
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f'invalid base URL {url!r}')
    path = parts.path
    if not path.endswith(API_VERSION_PATH):
        path += API_VERSION_PATH
    return urlunsplit((parts.scheme, parts.netloc, path, '', ''))


def _origin(url):
    parts = urlsplit(url)
    return parts.scheme, parts.hostname, parts.port


class Client:
    """Long-lived handle holding configuration, auth and rate limit state.

    The rate limiter starts unlimited and is configured once from the first
    response carrying a RateLimit-Limit header. The auth source is initialised
    once, on the first ``do``.
    """

    def __init__(self, auth_source, *, base_url=DEFAULT_BASE_URL, user_agent=USER_AGENT,
                 session=None, retry_max=RETRY_MAX, retry_wait_min=RETRY_WAIT_MIN,
                 retry_wait_max=RETRY_WAIT_MAX, disable_retries=False, backoff=None,
                 limiter=None, request_options=(), timeout=None):
        self.auth_source = auth_source
        self.base_url = _normalize_base_url(base_url)
        self.user_agent = user_agent
        self.session = session or requests.Session()
        self.disable_retries = disable_retries
        self.default_request_options = list(request_options)
        self.timeout = timeout
        self.transport = Transport(
            self.session,
            self.retry_http_check,
            backoff or self.retry_http_backoff,
            retry_max=retry_max,
            retry_wait_min=retry_wait_min,
            retry_wait_max=retry_wait_max,
        )
        self._limiter = limiter or Limiter()
        self._limiter_configurable = limiter is None
        self._configure_limiter_once = _Once()
        self._auth_init_once = _Once()

    @property
    def limiter(self):
        return self._limiter

    # -- retry policy --------------------------------------------------------

    def retry_http_check(self, ctx, response, error):
        ctx.raise_if_done()
        if error is not None:
            return False
        if self.disable_retries:
            return False
        return response.status_code == 429 or response.status_code >= 500

    def retry_http_backoff(self, wait_min, wait_max, attempt, response):
        if response is not None and response.status_code == 429:
            return rate_limit_backoff(wait_min, wait_max, attempt, response)
        return linear_jitter_backoff(OUTAGE_WAIT_MIN, OUTAGE_WAIT_MAX, attempt, response)

    def _configure_limiter(self, headers):
        value = headers.get(HEADER_RATE_LIMIT)
        if not value or not self._limiter_configurable:
            return
        try:
            rpm = float(value)
        except ValueError:
            return
        if rpm <= 0:
            return
        limiter = Limiter.from_requests_per_minute(rpm)
        # Charge the request that revealed the limit.
        limiter.allow()
        self._limiter = limiter
        logger.debug('rate limiter configured: %.3f req/s, burst %d', limiter.limit, limiter.burst)

    # -- URLs ----------------------------------------------------------------

    def oauth_endpoint(self):
        root = self.base_url[:-len(API_VERSION_PATH)]
        return {
            'auth_url': root + 'oauth/authorize',
            'token_url': root + 'oauth/token',
            'device_auth_url': root + 'oauth/authorize_device',
        }

    # -- request construction ------------------------------------------------

    def _base_headers(self):
        headers = CaseInsensitiveDict({'Accept': 'application/json'})
        if self.user_agent:
            headers['User-Agent'] = self.user_agent
        return headers

    def _apply_options(self, req, options):
        for fn in [*self.default_request_options, *options]:
            if fn is None:
                continue
            fn(req)
        return req

    def new_request(self, method, path, opt=None, options=()):
        """Build a request for *path*, relative to the API base URL.

        Path segments holding identifiers must already be escaped with
        ``path_escape``.
        """
        return self.new_request_to_url(method, self.base_url + path, opt, options)

    def new_request_to_url(self, method, url, opt=None, options=()):
        if _origin(url) != _origin(self.base_url):
            raise URLNotAllowedError(url, self.base_url)

        method = method.upper()
        headers = self._base_headers()
        body = None
        if method in BODY_METHODS:
            headers['Content-Type'] = 'application/json'
            if opt is not None:
                body = json.dumps(_plain_options(opt), default=_json_default).encode('utf-8')
        elif opt is not None:
            scheme, netloc, path, _, fragment = urlsplit(url)
            url = urlunsplit((scheme, netloc, path, encode_query(opt), fragment))

        req = Request(method, url, headers=headers, body=body)
        return self._apply_options(req, options)

    def upload_request(self, method, path, content, filename, upload_type='file',
                       opt=None, options=()):
        """Build a multipart/form-data request with one file field.

        *content* is a bytes object or a readable stream; it is read fully so
        the body has a known length.
        """
        data = content.read() if hasattr(content, 'read') else content
        fields = encode_form_fields(opt) if opt is not None else []
        req = Request(method, self.base_url + path, headers=self._base_headers(),
                      files={upload_type: (filename, data)}, data=fields)
        return self._apply_options(req, options)

    # -- dispatch ------------------------------------------------------------

    def _init_auth(self, ctx):
        try:
            self._auth_init_once.do(lambda: self.auth_source.init(ctx, self))
        except Exception as e:
            raise AuthInitError(e) from e

    def do(self, req, into=None):
        """Send *req* and return ``(result, response)``.

        *into* selects what happens with the body of a successful response:
        ``None`` discards it, an object with a ``write`` method receives the
        raw bytes (and is returned as the result), anything else is called
        with the decoded JSON.

        Raises ``NotFoundError`` for 404 and ``ErrorResponse`` for other
        unsuccessful statuses; both carry the wrapped response.
        """
        ctx = req.ctx
        self._limiter.wait(ctx)
        self._init_auth(ctx)

        key, value = self.auth_source.header(ctx)
        if key not in req.headers:
            req.headers[key] = value

        transport = self.transport
        if req.check_retry is not None:
            transport = transport.clone(req.check_retry)

        timeout = req.timeout if req.timeout is not None else self.timeout

        raw = transport.send(req.prepare(self.session), ctx, timeout=timeout)
        try:
            if self._limiter_configurable and raw.headers.get(HEADER_RATE_LIMIT):
                self._configure_limiter_once.do(lambda: self._configure_limiter(raw.headers))
            response = Response(raw)

            check_response(raw)

            if into is None:
                return None, response
            if hasattr(into, 'write'):
                for chunk in raw.iter_content(chunk_size=65536):
                    into.write(chunk)
                return into, response
            content = raw.content
            if not content:
                return None, response
            return into(json.loads(content)), response
        finally:
            raw.close()


def _plain_options(opt):
    if isinstance(opt, (list, tuple)):
        return [_plain(v) for v in opt]
    return _options_dict(opt)


# ---------------------------------------------------------------------------
# Constructors
# ---------------------------------------------------------------------------

def new_auth_source_client(auth_source, **kwargs):
    return Client(auth_source, **kwargs)


def new_client(token, **kwargs):
    """Client authenticating with a personal, project or group access token."""
    return Client(AccessTokenAuthSource(token), **kwargs)


def new_job_client(token, **kwargs):
    """Client authenticating with a CI job token."""
    return Client(JobTokenAuthSource(token), **kwargs)


def new_oauth_client(token, **kwargs):
    """Client sending a fixed OAuth bearer token."""
    return Client(OAuthTokenSource(StaticTokenSource(Token(access_token=token))), **kwargs)


def new_basic_auth_client(username, password, **kwargs):
    """Client that exchanges username and password for an OAuth token."""
    return Client(PasswordCredentialsAuthSource(username, password), **kwargs)


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------

def do_request(client, method, path, body=None, model=dict, options=()):
    """Request returning a single object, decoded with *model*."""
    req = client.new_request(method, path, body, options)
    return client.do(req, model)


def do_request_list(client, method, path, body=None, model=dict, options=()):
    """Request returning a JSON array, each element decoded with *model*."""
    req = client.new_request(method, path, body, options)
    items, resp = client.do(req, list)
    return [model(item) for item in items or []], resp


def do_request_void(client, method, path, body=None, options=()):
    req = client.new_request(method, path, body, options)
    _, resp = client.do(req)
    return resp
