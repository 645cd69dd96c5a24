"""Client configuration from .env files, environment variables and GitLab CI."""

import os

import requests

from gitlab_client.client import (
    DEFAULT_BASE_URL,
    new_basic_auth_client,
    new_client,
    new_job_client,
    new_oauth_client,
)
from gitlab_client.errors import ConfigError


def load_env(path=None):
    """Parse a .env file into a dict, skipping comments and blank lines."""
    if path is None:
        paths = [os.path.join(os.getcwd(), '.env')]
    else:
        paths = [path]

    for env_path in paths:
        if os.path.exists(env_path):
            with open(env_path, 'r') as file:
                return dict(line.strip().split('=', 1) for line in file
                            if not line.lstrip().startswith('#') and '=' in line)
    return {}


def _ci_config(environ):
    """Job token config when running inside a GitLab CI job, else None."""
    if environ.get('CI') != 'true':
        return None
    url = environ.get('CI_API_V4_URL')
    token = environ.get('CI_JOB_TOKEN')
    if not url or not token:
        return None
    config = {'url': url, 'auth': 'job_token', 'token': token}
    if environ.get('CI_SERVER_TLS_CA_FILE'):
        config['ca_file'] = environ['CI_SERVER_TLS_CA_FILE']
    cert, key = environ.get('CI_SERVER_TLS_CERT_FILE'), environ.get('CI_SERVER_TLS_KEY_FILE')
    if cert and key:
        config['client_cert'] = (cert, key)
    return config


def get_config(prefix='GITLAB', env_path=None):
    """Resolve the instance URL and credentials.

    Values from a .env file win over the process environment. Explicit
    ``<PREFIX>_*`` credentials win over CI job detection. Raises ConfigError
    when no credentials are found.
    """
    env = load_env(env_path)

    def get(name):
        return env.get(f'{prefix}_{name}', os.environ.get(f'{prefix}_{name}'))

    url = get('URL')
    for auth, name in (('token', 'TOKEN'), ('oauth_token', 'OAUTH_TOKEN'), ('job_token', 'JOB_TOKEN')):
        token = get(name)
        if token:
            return {'url': url or DEFAULT_BASE_URL, 'auth': auth, 'token': token}

    username, password = get('USERNAME'), get('PASSWORD')
    if username and password:
        return {'url': url or DEFAULT_BASE_URL, 'auth': 'password',
                'username': username, 'password': password}

    config = _ci_config({**os.environ, **env})
    if config is not None:
        if url:
            config['url'] = url
        return config

    raise ConfigError(f'Missing {prefix}_TOKEN (or {prefix}_JOB_TOKEN, {prefix}_OAUTH_TOKEN, '
                      f'{prefix}_USERNAME and {prefix}_PASSWORD). '
                      'Set them in .env or as environment variables.')


def get_session(config):
    """requests.Session carrying the TLS settings from *config*."""
    session = requests.Session()
    if config.get('ca_file'):
        session.verify = config['ca_file']
    if config.get('client_cert'):
        session.cert = config['client_cert']
    return session


def setup(**kwargs):
    """Build a Client from the resolved configuration.

    Keyword arguments are passed on to the Client constructor.
    """
    config = get_config()
    kwargs.setdefault('base_url', config['url'])
    kwargs.setdefault('session', get_session(config))
    auth = config['auth']
    if auth == 'token':
        return new_client(config['token'], **kwargs)
    if auth == 'oauth_token':
        return new_oauth_client(config['token'], **kwargs)
    if auth == 'job_token':
        return new_job_client(config['token'], **kwargs)
    return new_basic_auth_client(config['username'], config['password'], **kwargs)
