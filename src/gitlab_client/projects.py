"""Projects, repository files and project uploads."""

import io
from dataclasses import dataclass, field
from datetime import datetime

from gitlab_client.client import do_request, do_request_list
from gitlab_client.ids import path_escape, project_path
from gitlab_client.users import User


def _timestamp(value):
    if not value:
        return None
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


@dataclass
class ListOptions:
    page: int | None = None
    per_page: int | None = None
    # Keyset pagination
    order_by: str | None = None
    pagination: str | None = None
    sort: str | None = None


@dataclass
class ListProjectsOptions(ListOptions):
    archived: bool | None = None
    membership: bool | None = None
    owned: bool | None = None
    search: str | None = None
    simple: bool | None = None
    starred: bool | None = None
    statistics: bool | None = None
    topic: str | None = None
    visibility: str | None = None
    last_activity_after: datetime | None = None
    id_after: int | None = None


@dataclass
class GetProjectOptions:
    license: bool | None = None
    statistics: bool | None = None
    with_custom_attributes: bool | None = None


@dataclass
class GetRawFileOptions:
    ref: str | None = None
    lfs: bool | None = None


@dataclass
class Project:
    id: int
    name: str = ''
    path: str = ''
    path_with_namespace: str = ''
    description: str = ''
    default_branch: str = ''
    visibility: str = ''
    web_url: str = ''
    archived: bool = False
    topics: list = field(default_factory=list)
    owner: User | None = None
    created_at: datetime | None = None
    last_activity_at: datetime | None = None

    @classmethod
    def from_dict(cls, data):
        owner = data.get('owner')
        return cls(
            id=data['id'],
            name=data.get('name') or '',
            path=data.get('path') or '',
            path_with_namespace=data.get('path_with_namespace') or '',
            description=data.get('description') or '',
            default_branch=data.get('default_branch') or '',
            visibility=data.get('visibility') or '',
            web_url=data.get('web_url') or '',
            archived=bool(data.get('archived')),
            topics=list(data.get('topics') or []),
            owner=User.from_dict(owner) if owner else None,
            created_at=_timestamp(data.get('created_at')),
            last_activity_at=_timestamp(data.get('last_activity_at')),
        )


@dataclass
class ProjectUpload:
    alt: str = ''
    url: str = ''
    full_path: str = ''
    markdown: str = ''

    @classmethod
    def from_dict(cls, data):
        return cls(
            alt=data.get('alt') or '',
            url=data.get('url') or '',
            full_path=data.get('full_path') or '',
            markdown=data.get('markdown') or '',
        )


class ProjectsService:
    def __init__(self, client):
        self.client = client

    def list_projects(self, opt=None, options=()):
        return do_request_list(self.client, 'GET', 'projects', opt, Project.from_dict, options)

    def get_project(self, pid, opt=None, options=()):
        u = f'projects/{project_path(pid)}'
        return do_request(self.client, 'GET', u, opt, Project.from_dict, options)

    def get_raw_file(self, pid, file_path, opt=None, options=()):
        """Return the raw bytes of *file_path* at the given ref."""
        u = f'projects/{project_path(pid)}/repository/files/{path_escape(file_path)}/raw'
        req = self.client.new_request('GET', u, opt, options)
        buf, resp = self.client.do(req, io.BytesIO())
        return buf.getvalue(), resp

    def upload_file(self, pid, content, filename, options=()):
        """Upload a file for use in markdown (issues, merge requests, comments)."""
        u = f'projects/{project_path(pid)}/uploads'
        req = self.client.upload_request('POST', u, content, filename, 'file', options=options)
        return self.client.do(req, ProjectUpload.from_dict)
