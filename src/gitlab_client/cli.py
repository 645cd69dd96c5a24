#!/usr/bin/env python3
"""glapi: GitLab REST API from the command line.

Commands:
    get         GET any API path (relative to /api/v4/), optionally all pages
    user        Show the authenticated user
    project     Show a project by ID or full path
"""

import argparse
import sys

import requests

from gitlab_client.client import do_request_list
from gitlab_client.config import setup
from gitlab_client.errors import GitLabError
from gitlab_client.output import emit, emit_error, emit_json, emit_pagination, set_json_mode
from gitlab_client.pagination import scan_and_collect
from gitlab_client.projects import ProjectsService
from gitlab_client.users import UsersService


def _identity(value):
    return value


def _params(pairs):
    params = {}
    for pair in pairs or []:
        key, sep, value = pair.partition('=')
        if not sep:
            raise ValueError(f'expected key=value, got {pair!r}')
        params[key] = value
    return params


def cmd_get(args):
    client = setup()
    path = args.path.lstrip('/')
    params = _params(args.param) or None

    if args.all:
        def fetch(page_option):
            options = [page_option] if page_option else []
            return do_request_list(client, 'GET', path, params, model=_identity, options=options)
        emit_json(scan_and_collect(fetch))
        return

    data, resp = client.do(client.new_request('GET', path, params), _identity)
    emit_json(data)
    emit_pagination(resp)


def cmd_user(args):
    client = setup()
    user, _ = UsersService(client).current_user()
    emit('OK', f'{user.username} ({user.name}) id={user.id}',
         data={'id': user.id, 'username': user.username})


def cmd_project(args):
    client = setup()
    project, _ = ProjectsService(client).get_project(args.id)
    emit('OK', f'{project.path_with_namespace} [{project.visibility}] {project.web_url}',
         data={'id': project.id, 'path_with_namespace': project.path_with_namespace})


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='glapi',
        description='GitLab REST API client',
    )
    parser.add_argument('--json', action='store_true', dest='json_output',
                        help='Output as JSON for programmatic parsing')

    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('get', help='GET an API path')
    p.add_argument('path', help='Path relative to /api/v4/ (e.g. projects/group%%2Fapp)')
    p.add_argument('-p', '--param', action='append', metavar='KEY=VALUE',
                   help='Query parameter (repeatable)')
    p.add_argument('--all', action='store_true', help='Follow pagination and collect every page')
    p.set_defaults(func=cmd_get)

    p = sub.add_parser('user', help='Show the authenticated user')
    p.set_defaults(func=cmd_user)

    p = sub.add_parser('project', help='Show a project')
    p.add_argument('id', help='Project ID or full path (e.g. group/app)')
    p.set_defaults(func=cmd_project)

    args = parser.parse_args(argv)
    if args.json_output:
        set_json_mode(True)
    try:
        args.func(args)
    except (GitLabError, requests.RequestException, ValueError) as e:
        emit_error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == '__main__':
    main()
