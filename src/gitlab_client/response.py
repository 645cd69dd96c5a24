"""Response wrapper with pagination metadata, and API error classification."""

import json

from gitlab_client.errors import ErrorResponse, NotFoundError

SUCCESS_STATUSES = frozenset({200, 201, 202, 204, 304})

X_TOTAL = 'X-Total'
X_TOTAL_PAGES = 'X-Total-Pages'
X_PER_PAGE = 'X-Per-Page'
X_PAGE = 'X-Page'
X_NEXT_PAGE = 'X-Next-Page'
X_PREV_PAGE = 'X-Prev-Page'

LINK_PREV = 'prev'
LINK_NEXT = 'next'
LINK_FIRST = 'first'
LINK_LAST = 'last'


def _int_header(headers, name):
    value = headers.get(name)
    if not value:
        return 0
    try:
        return int(value)
    except ValueError:
        return 0


def parse_link_header(value):
    """Map rel names to URLs from an RFC 5988 style Link header."""
    links = {}
    for link in value.split(','):
        parts = link.split(';')
        if len(parts) < 2:
            continue
        _, _, rel = parts[1].partition('=')
        links[rel.strip().strip('"')] = parts[0].strip('< >')
    return links


class Response:
    """A ``requests.Response`` plus offset and keyset pagination fields.

    Attribute access falls through to the wrapped response, so
    ``resp.status_code`` and ``resp.headers`` work as usual. Missing or
    malformed pagination headers leave the fields at 0 / ''.
    """

    def __init__(self, response):
        self.response = response

        headers = response.headers if response.headers is not None else {}
        self.total_items = _int_header(headers, X_TOTAL)
        self.total_pages = _int_header(headers, X_TOTAL_PAGES)
        self.items_per_page = _int_header(headers, X_PER_PAGE)
        self.current_page = _int_header(headers, X_PAGE)
        self.next_page = _int_header(headers, X_NEXT_PAGE)
        self.previous_page = _int_header(headers, X_PREV_PAGE)

        links = parse_link_header(headers.get('Link') or '')
        self.previous_link = links.get(LINK_PREV, '')
        self.next_link = links.get(LINK_NEXT, '')
        self.first_link = links.get(LINK_FIRST, '')
        self.last_link = links.get(LINK_LAST, '')

    def __getattr__(self, name):
        return getattr(self.response, name)

    def __repr__(self):
        return f'<Response [{self.response.status_code}]>'


def parse_error(raw):
    """Render a decoded JSON error value as a stable, human readable string."""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, list):
        return '[' + ', '.join(parse_error(v) for v in raw) + ']'
    if isinstance(raw, dict):
        errs = [f'{{{k}: {parse_error(v)}}}' for k, v in raw.items()]
        errs.sort()
        return ', '.join(errs)
    return f'failed to parse unexpected error type: {type(raw).__name__}'


def check_response(response, body=None):
    """Raise for anything that is not a success status.

    *response* is the raw ``requests.Response``; *body* may be supplied when
    the content was already read. The raised error carries the wrapped
    response so callers can still look at pagination and headers.
    """
    status = response.status_code
    if status in SUCCESS_STATUSES:
        return
    if status == 404:
        raise NotFoundError(Response(response))

    if body is None:
        body = response.content or b''
    err = ErrorResponse(Response(response))
    if body.strip():
        err.body = body
        try:
            raw = json.loads(body)
        except ValueError:
            err.message = f'failed to parse unknown error format: {body.decode("utf-8", "replace")}'
        else:
            err.message = parse_error(raw)
    raise err
