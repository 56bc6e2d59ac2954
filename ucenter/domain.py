"""Defines identity concepts used by the UCenter gateway."""

from typing import Any, Dict, NamedTuple, Optional
from enum import Enum
import time


class LoginType(object):
    """Third-party identifier schemes accepted for identifier login."""

    PHONE = 'phone'
    WECHAT = 'wechat_unionid'
    WEIBO = 'weibo_openid'
    QQ = 'qq_unionid'

    ALL = (PHONE, WECHAT, WEIBO, QQ)

    PREFIXES = {
        PHONE: 'phone_',
        WECHAT: 'wechat_',
        WEIBO: 'weibo_',
        QQ: 'qq_',
    }
    """Username prefix for each scheme."""

    FIELDS = {
        PHONE: 'phone',
        WECHAT: 'wechat_unionid',
        WEIBO: 'weibo_openid',
        QQ: 'qq_union_id',
    }
    """Extended account field (and binding key) for each scheme."""


EXTENDED_FIELDS = ['phone', 'wechat_openid', 'wechat_unionid', 'qq_union_id',
                   'weibo_openid', 'nickname', 'avatar', 'douyin_openid',
                   'is_member']
"""Extended profile attributes that may be written by ``user/edit``."""


class LoginStatus(object):
    """Status codes returned by ``user/login``."""

    NOT_FOUND = -1
    WRONG_PASSWORD = -2
    WRONG_ANSWER = -3


class LoginOutcome(Enum):
    """What happened when somebody tried to log in."""

    SUCCESS = 'success'
    NOT_FOUND = 'not_found'
    WRONG_PASSWORD = 'wrong_password'
    WRONG_ANSWER = 'wrong_answer'
    CONFLICT = 'conflict'


class Credentials(NamedTuple):
    """Synthetic credentials derived from a third-party identifier."""

    username: str
    email: str
    password: str


class BearerToken(NamedTuple):
    """Bearer token attached to signed remote calls."""

    token: str
    """Opaque token value issued by the identity service."""

    expires_at: int
    """Epoch time at which the token stops being accepted."""

    def is_fresh(self, margin: int = 60, now: Optional[float] = None) -> bool:
        """Whether the token is usable for at least ``margin`` more seconds."""
        if now is None:
            now = time.time()
        return bool(self.token) and now < self.expires_at - margin


class LoginResult(NamedTuple):
    """
    Result of a login attempt.

    A positive :attr:`status` is the uid of the authenticated account; a
    negative :attr:`status` is the code reported by the identity service.
    Neither case is an error from the gateway's point of view; use
    :attr:`outcome` to branch on it.
    """

    status: int
    """The uid (> 0), or a negative status code."""

    username: str = ''
    email: str = ''

    data: Optional[Dict[str, Any]] = None
    """The payload as reported by the identity service."""

    access_token: Optional[str] = None
    """Signed session token, if an issuer is configured."""

    expires_in: Optional[int] = None
    """Lifetime of :attr:`access_token` in seconds."""

    @property
    def uid(self) -> int:
        """The authenticated account id, or 0."""
        return self.status if self.status > 0 else 0

    @property
    def ok(self) -> bool:
        return self.status > 0

    @property
    def outcome(self) -> LoginOutcome:
        """Map :attr:`status` onto a :class:`LoginOutcome`."""
        if self.status > 0:
            return LoginOutcome.SUCCESS
        return {
            LoginStatus.NOT_FOUND: LoginOutcome.NOT_FOUND,
            LoginStatus.WRONG_PASSWORD: LoginOutcome.WRONG_PASSWORD,
            LoginStatus.WRONG_ANSWER: LoginOutcome.WRONG_ANSWER,
        }.get(self.status, LoginOutcome.CONFLICT)

    def as_payload(self) -> Dict[str, Any]:
        """
        The service payload, plus the session token if one was issued.

        This is the shape to hand back to an API caller.
        """
        payload = dict(self.data or {})
        payload['status'] = self.status
        if self.access_token is not None:
            payload['access_token'] = self.access_token
            payload['expires_in'] = self.expires_in
        return payload

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> 'LoginResult':
        """
        Build a result from a ``user/login`` response.

        The service may wrap the payload in ``data``, and may report only
        ``uid`` rather than ``status``.
        """
        data = response.get('data', response) \
            if isinstance(response, dict) else {}
        if not isinstance(data, dict):
            data = {}
        data = dict(data)
        if 'uid' in data and 'status' not in data:
            data['status'] = data['uid']
        try:
            status = int(data.get('status', 0) or 0)
        except (TypeError, ValueError):
            status = 0
        data['status'] = status
        return cls(status=status,
                   username=str(data.get('username') or ''),
                   email=str(data.get('email') or ''),
                   data=data)


def result_code(response: Any, default: int = 0) -> int:
    """Get the ``ret`` code out of a response, or ``default``."""
    if not isinstance(response, dict):
        return default
    try:
        return int(response.get('ret', default))
    except (TypeError, ValueError):
        return default
