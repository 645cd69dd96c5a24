"""Exception hierarchy for gitlab_client."""


class GitLabError(Exception):
    """Base class for every error raised by this package."""


class Canceled(GitLabError):
    """The call's context was cancelled."""


class DeadlineExceeded(GitLabError):
    """The call's context deadline passed."""


class ConfigError(GitLabError):
    pass


class InvalidIDTypeError(GitLabError, TypeError):
    def __init__(self, value):
        self.value = value
        super().__init__(f'invalid ID type {value!r}, the ID must be an int or a string')


class URLNotAllowedError(GitLabError, ValueError):
    def __init__(self, url, base_url):
        self.url = url
        self.base_url = base_url
        super().__init__(
            'client only allows requests to URLs matching the clients configured base URL. '
            f'Got {url!r}, base URL is {base_url!r}'
        )


class AuthError(GitLabError):
    """An auth source could not produce a header."""


class AuthInitError(AuthError):
    def __init__(self, cause):
        self.cause = cause
        super().__init__(f'initializing token source failed: {cause}')


class NotFoundError(GitLabError):
    """Any 404 response, whatever its body says."""

    def __init__(self, response=None):
        self.response = response
        super().__init__('404 Not Found')

    def __str__(self):
        return '404 Not Found'


class ErrorResponse(GitLabError):
    """A non-2xx, non-404 API response.

    ``message`` is derived from the JSON ``message``/``error`` fields of the
    body (see ``gitlab_client.response.parse_error``); ``body`` keeps the raw
    bytes for callers that want to inspect it themselves.
    """

    def __init__(self, response=None, body=b'', message=''):
        self.response = response
        self.body = body
        self.message = message
        super().__init__(message)

    @property
    def status_code(self):
        return self.response.status_code if self.response is not None else None

    def has_status_code(self, status_code):
        return self.response is not None and self.response.status_code == status_code

    def __str__(self):
        if self.response is None:
            return self.message
        request = self.response.request
        # The prepared URL keeps its escaping, so error text shows %2F and %2E.
        url = request.url.split('?', 1)[0] if request is not None else ''
        method = request.method if request is not None else ''
        if not self.message:
            return f'{method} {url}: {self.response.status_code}'
        return f'{method} {url}: {self.response.status_code} {self.message}'


class GraphQLResponseError(GitLabError):
    def __init__(self, error, errors):
        self.error = error
        self.errors = errors
        self.response = getattr(error, 'response', None)
        super().__init__(str(self))

    def __str__(self):
        messages = [e.get('message', '') for e in self.errors if isinstance(e, dict)]
        if not messages:
            return f'{self.error} (no additional error messages)'
        return f'{self.error} (GraphQL errors: {", ".join(messages)})'


def has_status_code(err, status_code):
    """True if *err* is an ErrorResponse for a response with *status_code*."""
    if not isinstance(err, ErrorResponse):
        return False
    return err.has_status_code(status_code)
