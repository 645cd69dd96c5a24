"""Python client core for the GitLab REST API."""

__version__ = '0.1.0'

from gitlab_client.auth import (
    AccessTokenAuthSource,
    AuthSource,
    AuthType,
    JobTokenAuthSource,
    OAuthTokenSource,
    PasswordCredentialsAuthSource,
)
from gitlab_client.client import (
    Client,
    Request,
    do_request,
    do_request_list,
    do_request_void,
    new_auth_source_client,
    new_basic_auth_client,
    new_client,
    new_job_client,
    new_oauth_client,
)
from gitlab_client.context import Context
from gitlab_client.errors import (
    AuthError,
    AuthInitError,
    Canceled,
    ConfigError,
    DeadlineExceeded,
    ErrorResponse,
    GitLabError,
    GraphQLResponseError,
    InvalidIDTypeError,
    NotFoundError,
    URLNotAllowedError,
    has_status_code,
)
from gitlab_client.graphql import GlobalID, GraphQL, parse_gid, parse_iid
from gitlab_client.ids import parse_id, path_escape
from gitlab_client.response import Response
