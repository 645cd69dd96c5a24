"""Users service."""

from dataclasses import dataclass

from gitlab_client.client import do_request
from gitlab_client.ids import project_path


@dataclass
class User:
    id: int
    username: str = ''
    name: str = ''
    state: str = ''
    email: str = ''
    web_url: str = ''
    is_admin: bool = False
    bot: bool = False

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            username=data.get('username') or '',
            name=data.get('name') or '',
            state=data.get('state') or '',
            email=data.get('email') or '',
            web_url=data.get('web_url') or '',
            is_admin=bool(data.get('is_admin')),
            bot=bool(data.get('bot')),
        )


class UsersService:
    def __init__(self, client):
        self.client = client

    def current_user(self, options=()):
        """The user the client authenticates as."""
        return do_request(self.client, 'GET', 'user', model=User.from_dict, options=options)

    def get_user(self, uid, options=()):
        return do_request(self.client, 'GET', f'users/{project_path(uid)}',
                          model=User.from_dict, options=options)
