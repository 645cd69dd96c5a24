"""Identifier normalisation and path segment escaping."""

from urllib.parse import quote

from gitlab_client.errors import InvalidIDTypeError

# Characters a URL path segment may carry unescaped besides the unreserved set.
_SEGMENT_SAFE = "$&+=:@"


def parse_id(value):
    """Normalise a numeric or path-like identifier to its string form."""
    # bool is an int subclass but never a valid identifier.
    if isinstance(value, bool):
        raise InvalidIDTypeError(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value
    raise InvalidIDTypeError(value)


def path_escape(segment):
    """Escape a single path segment, including any '.' characters.

    Some routing layers treat dot segments specially, so 'file.txt' must go
    out as 'file%2Etxt'.
    """
    return quote(segment, safe=_SEGMENT_SAFE).replace('.', '%2E')


def project_path(pid):
    return path_escape(parse_id(pid))
