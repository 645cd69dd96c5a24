"""Per-call request hooks.

Each ``with_*`` function returns a hook taking the ``Request`` being built.
Pass hooks through the ``options`` argument of any request, or to the client
as ``request_options`` to apply them to every call.
"""

from urllib.parse import parse_qsl, urlencode, urlsplit

from gitlab_client.auth import (
    ACCESS_TOKEN_HEADER,
    AUTHORIZATION_HEADER,
    JOB_TOKEN_HEADER,
    AuthType,
)
from gitlab_client.ids import parse_id


def with_context(ctx):
    def hook(req):
        req.ctx = ctx
    return hook


def with_timeout(seconds):
    """Per-attempt socket timeout for this call."""
    def hook(req):
        req.timeout = seconds
    return hook


def with_header(name, value):
    def hook(req):
        req.headers[name] = value
    return hook


def with_headers(headers):
    def hook(req):
        for name, value in headers.items():
            req.headers[name] = value
    return hook


def with_sudo(uid):
    """Perform the call as another user (admin tokens only)."""
    user = parse_id(uid)

    def hook(req):
        req.headers['Sudo'] = user
    return hook


def with_token(auth_type, token):
    """Send a different credential than the client's for this call."""
    def hook(req):
        if auth_type is AuthType.OAUTH_TOKEN:
            req.headers[AUTHORIZATION_HEADER] = f'Bearer {token}'
        elif auth_type is AuthType.JOB_TOKEN:
            req.headers[JOB_TOKEN_HEADER] = token
        elif auth_type is AuthType.PRIVATE_TOKEN:
            req.headers[ACCESS_TOKEN_HEADER] = token
        else:
            raise ValueError(f'unsupported auth type for per-request token: {auth_type}')
    return hook


def with_request_retry(check_retry):
    """Replace the client's retry predicate for this call only."""
    def hook(req):
        req.check_retry = check_retry
    return hook


def _set_query_values(req, values):
    """Replace every key in *values* (a list of pairs) on the request query."""
    keys = {k for k, _ in values}
    pairs = [(k, v) for k, v in parse_qsl(req.query, keep_blank_values=True) if k not in keys]
    pairs.extend(values)
    req.query = urlencode(pairs)


def with_offset_pagination_parameters(page):
    def hook(req):
        _set_query_values(req, [('page', str(page))])
    return hook


def with_keyset_pagination_parameters(next_link):
    """Carry the query parameters of a keyset ``next`` link onto the request."""
    values = parse_qsl(urlsplit(next_link).query, keep_blank_values=True)

    def hook(req):
        _set_query_values(req, values)
    return hook
