"""GraphQL endpoint and decoders for GraphQL identifier encodings."""

import json
import re
from dataclasses import dataclass

from gitlab_client.errors import ErrorResponse, GitLabError, GraphQLResponseError

GRAPHQL_API_ENDPOINT = '/api/graphql'

# Global IDs are emitted as 64 bit integers.
_INT64_MAX = 2 ** 63 - 1

_GID_RE = re.compile(r'^gid://gitlab/([^/]+)/(\d+)$', re.ASCII)
_IID_RE = re.compile(r'^[+-]?\d+$', re.ASCII)


class GraphQL:
    """Sends queries to the instance's GraphQL endpoint.

    Example::

        data, resp = GraphQL(client).do(
            'query { project(fullPath: "gitlab-org/gitlab") { id } }')
        gid = parse_gid(data['data']['project']['id'])
    """

    def __init__(self, client):
        self.client = client

    def do(self, query, variables=None, into=dict, options=()):
        body = {'query': query}
        if variables:
            body['variables'] = variables
        try:
            req = self.client.new_request('POST', '', body, options)
        except (GitLabError, TypeError, ValueError) as e:
            raise GitLabError(f'failed to create GraphQL request: {e}') from e
        # The request builder always targets api/v4/.
        req.path = GRAPHQL_API_ENDPOINT
        try:
            return self.client.do(req, into)
        except ErrorResponse as e:
            errors = _graphql_errors(e.body)
            if errors is None:
                raise
            raise GraphQLResponseError(e, errors) from e


def _graphql_errors(body):
    if not body:
        return None
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    errors = data.get('errors') or []
    return errors if isinstance(errors, list) else []


@dataclass(frozen=True)
class GlobalID:
    type: str
    id: int

    def __str__(self):
        return f'gid://gitlab/{self.type}/{self.id}'


def parse_gid(value):
    """Decode ``gid://gitlab/<Type>/<id>`` into a GlobalID."""
    if not isinstance(value, str):
        raise ValueError(f'invalid global ID format: {value!r}')
    m = _GID_RE.fullmatch(value)
    if m is None:
        raise ValueError(f'invalid global ID format: {value!r}')
    number = int(m.group(2))
    if number > _INT64_MAX:
        raise ValueError(f'failed parsing {value!r} as numeric ID: value out of range')
    return GlobalID(m.group(1), number)


def parse_iid(value):
    """Decode an integer that GraphQL sends as a JSON string."""
    if not isinstance(value, str):
        raise ValueError(f'invalid IID {value!r}: expected a string')
    if _IID_RE.fullmatch(value) is None:
        raise ValueError(f'failed parsing {value!r} as numeric ID')
    number = int(value)
    if not -_INT64_MAX - 1 <= number <= _INT64_MAX:
        raise ValueError(f'failed parsing {value!r} as numeric ID: value out of range')
    return number
