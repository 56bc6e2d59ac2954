"""Friend operations."""

from typing import Any, Dict, Optional

from .domain import result_code


class FriendApi(object):
    """Friend operations for a :class:`.UCenterClient`."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def add(self, uid: int, friendid: int, comment: str = '') -> bool:
        """Make ``friendid`` a friend of ``uid``."""
        response = self.client.request('friend/add', {
            'uid': uid,
            'friendid': friendid,
            'comment': comment,
        })
        return result_code(response) == 1

    def delete(self, uid: int, friendid: int) -> bool:
        response = self.client.request('friend/delete', {
            'uid': uid,
            'friendid': friendid,
        })
        return result_code(response) == 1

    def call(self, action: str,
             params: Optional[Dict[str, Any]] = None) -> Any:
        """Call any other ``friend/<action>`` operation."""
        return self.client.request(f'friend/{action}', params or {})
