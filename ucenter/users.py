"""
User operations, including login and automatic provisioning.

There are two ways in. :meth:`UserApi.login` takes a username (or uid) and a
password and reports what the identity service said. Nothing more.
:meth:`UserApi.login_by_identifier` takes a third-party identifier (a phone
number, a WeChat union id, ...) and always ends in one of three places: the
account that already owns the identifier, a freshly registered account for
it, or a non-success status explaining why neither was possible.

The order of the identifier flow matters. If a binding store is configured
and already knows the identifier, that account is used as-is; we never go on
to try the derived credentials. Otherwise an identifier bound through one
route and an identifier derived through the other could end up as two
different accounts for the same person.
"""

from typing import Any, Dict, List, Optional, Union

from . import logging
from .credentials import derive_credentials
from .domain import Credentials, EXTENDED_FIELDS, LoginResult, LoginStatus, \
    LoginType, result_code
from .exceptions import RegistrationFailed, UnsupportedOperation

logger = logging.getLogger(__name__)


class UserApi(object):
    """
    User operations for a :class:`.UCenterClient`.

    Get one from :meth:`.UCenterClient.user`.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    def register(self, username: str, password: str, email: str,
                 questionid: int = 0, answer: str = '',
                 regip: str = '') -> int:
        """
        Register a new account.

        On success the new account is also made friends with the system
        account (see :attr:`.UCenterClient.system_uid`). That step is best
        effort: if it fails, the registration still stands.

        Parameters
        ----------
        username : str
        password : str
        email : str
        questionid : int
            Security question, if any.
        answer : str
            Answer to the security question.
        regip : str
            IP address of the person registering.

        Returns
        -------
        int
            The new uid, or a negative code: -1 invalid username, -2
            disallowed word, -3 username taken, -4 invalid e-mail, -5 e-mail
            not allowed, -6 e-mail taken.

        """
        uid = self._create(username, password, email, questionid=questionid,
                           answer=answer, regip=regip)
        if uid > 0:
            self._link_system_friend(uid)
        return uid

    def login(self, username: str, password: str, isuid: int = 0,
              checkques: bool = False, questionid: int = 0,
              answer: str = '') -> LoginResult:
        """
        Log in with a username (or uid, or e-mail) and password.

        Parameters
        ----------
        username : str
        password : str
        isuid : int
            0 if ``username`` is a username, 1 if it is a uid, 2 if it is an
            e-mail address.
        checkques : bool
            Whether to check the security question.
        questionid : int
        answer : str

        Returns
        -------
        :class:`.LoginResult`
            ``status`` is the uid on success; -1 if there is no such user,
            -2 if the password is wrong, -3 if the security answer is wrong.
            A session token is attached on success if the client has an
            issuer.

        """
        result = self._authenticate(username, password, isuid=isuid,
                                    checkques=checkques,
                                    questionid=questionid, answer=answer)
        return self._with_token(result)

    def login_by_identifier(self, login_type: str, identifier: str,
                            email_domain: Optional[str] = None,
                            regip: str = '') -> LoginResult:
        """
        Log in with a third-party identifier, registering if necessary.

        Parameters
        ----------
        login_type : str
            One of :attr:`.LoginType.ALL`.
        identifier : str
        email_domain : str
            Domain for the e-mail address of a new account. Defaults to the
            client's :attr:`.UCenterClient.email_domain`.
        regip : str
            IP address to record if an account is registered.

        Returns
        -------
        :class:`.LoginResult`
            A success, or the status that stopped us. A status other than
            success or "not found" usually means that an account exists
            under the derived username but was not created by this flow, so
            the derived password does not match it.

        Raises
        ------
        :class:`.RegistrationFailed`
            The identifier was new, but the service refused to register it.
        ValueError
            ``login_type`` is not recognized.

        """
        if login_type not in LoginType.ALL:
            raise ValueError(f'Unknown login type: {login_type}')

        store = self.client.binding_store
        if store is not None:
            uid = store.find_uid(login_type, identifier)
            if uid:
                account = self.get_user(str(uid), isuid=True)
                if _uid_of(account) > 0:
                    logger.debug('%s login matched binding for uid %i',
                                 login_type, uid)
                    result = LoginResult(
                        status=_uid_of(account),
                        username=str(account.get('username') or ''),
                        email=str(account.get('email') or ''),
                        data=dict(account, status=_uid_of(account))
                    )
                    return self._with_token(result)
                logger.info('Binding points at missing uid %i', uid)

        credentials = derive_credentials(
            login_type, identifier, email_domain or self.client.email_domain
        )
        result = self._authenticate(credentials.username,
                                    credentials.password)
        if result.ok:
            self._bind(result.uid, login_type, identifier)
            return self._with_token(result)
        if result.status != LoginStatus.NOT_FOUND:
            logger.info('%s login for %s stopped with status %i', login_type,
                        logging.redact(identifier), result.status)
            return result

        uid = self._create(credentials.username, credentials.password,
                           credentials.email, regip=regip)
        if uid <= 0:
            logger.error('Automatic registration failed with %i', uid)
            raise RegistrationFailed(
                f'Automatic registration failed: {uid}', code=uid,
                response={'ret': uid}
            )
        logger.info('Registered uid %i for %s login', uid, login_type)
        self._backfill(uid, login_type, identifier, credentials)
        self._bind(uid, login_type, identifier)
        result = self._authenticate(credentials.username,
                                    credentials.password)
        return self._with_token(result)

    def get_user(self, username: str, isuid: bool = False) -> Dict[str, Any]:
        """
        Get account data, including extended profile fields.

        Returns
        -------
        dict
            ``uid`` is 0 if there is no such account.

        """
        response = self.client.request('user/get_user', {
            'username': username,
            'isuid': 1 if isuid else 0
        })
        if isinstance(response, dict):
            data = response.get('data', response)
            if isinstance(data, dict):
                return data
        return {'uid': 0, 'username': '', 'email': ''}

    def edit(self, username: str, oldpw: str = '', newpw: str = '',
             email: str = '', ignoreoldpw: bool = False, questionid: int = 0,
             answer: str = '', isuid: bool = False, **extended: Any) -> int:
        """
        Update an account.

        Parameters
        ----------
        username : str
            Username, or uid if ``isuid`` is set.
        oldpw : str
            Current password. Not needed if ``ignoreoldpw`` is set.
        newpw : str
            New password, or empty to leave unchanged.
        email : str
            New e-mail address, or empty to leave unchanged.
        ignoreoldpw : bool
        questionid : int
        answer : str
        isuid : bool
        extended
            Any of :data:`.EXTENDED_FIELDS`. ``None`` values are left alone.

        Returns
        -------
        int
            1 updated, 0 nothing to change, negative on failure.

        """
        unknown = set(extended) - set(EXTENDED_FIELDS)
        if unknown:
            fields = ', '.join(sorted(unknown))
            raise ValueError(f'Not profile fields: {fields}')
        params: Dict[str, Any] = {
            'username': username,
            'isuid': 1 if isuid else 0,
            'oldpw': oldpw,
            'newpw': newpw,
            'email': email,
            'ignoreoldpw': 1 if ignoreoldpw else 0,
            'questionid': questionid,
            'answer': answer,
        }
        params.update({key: value for key, value in extended.items()
                       if value is not None})
        return result_code(self.client.request('user/edit', params))

    def update_profile(self, username: str, fields: Dict[str, Any],
                       isuid: bool = False) -> int:
        """
        Update extended profile fields only.

        No password is needed; keys that are not in :data:`.EXTENDED_FIELDS`
        are ignored.
        """
        allowed = {key: value for key, value in fields.items()
                   if key in EXTENDED_FIELDS}
        return self.edit(username, ignoreoldpw=True, isuid=isuid, **allowed)

    def set_phone(self, username: str, phone: str,
                  isuid: bool = False) -> int:
        return self.update_profile(username, {'phone': phone}, isuid)

    def set_avatar(self, username: str, avatar_url: str,
                   isuid: bool = False) -> int:
        """Record the URL of an avatar that was uploaded elsewhere."""
        return self.update_profile(username, {'avatar': avatar_url}, isuid)

    def set_wechat_openid(self, username: str, openid: str,
                          isuid: bool = False) -> int:
        return self.update_profile(username, {'wechat_openid': openid}, isuid)

    def set_wechat_unionid(self, username: str, unionid: str,
                           isuid: bool = False) -> int:
        return self.update_profile(username, {'wechat_unionid': unionid},
                                   isuid)

    def set_nickname(self, username: str, nickname: str,
                     isuid: bool = False) -> int:
        return self.update_profile(username, {'nickname': nickname}, isuid)

    def delete(self, uid: Union[int, List[int]]) -> int:
        """Delete one or more accounts. Returns 1 on success."""
        return result_code(self.client.request('user/delete', {'uid': uid}))

    def delete_avatar(self, uid: int) -> int:
        response = self.client.request('user/deleteavatar', {'uid': uid})
        return result_code(response)

    def check_email(self, email: str) -> int:
        """1 if usable; -4 invalid, -5 not allowed, -6 taken."""
        response = self.client.request('user/check_email', {'email': email})
        return result_code(response)

    def check_username(self, username: str) -> int:
        """1 if usable; -1 invalid, -2 disallowed word, -3 taken."""
        response = self.client.request('user/check_username',
                                       {'username': username})
        return result_code(response)

    def authorize(self, callback: str) -> Dict[str, Any]:
        """
        Start an authorization login.

        Returns
        -------
        dict
            ``url`` is where to send the browser. After logging in there,
            it comes back to ``callback`` with a ``code`` for
            :meth:`check_code`.

        """
        response = self.client.request('user/authorize',
                                       {'callback': callback})
        return response if isinstance(response, dict) else {}

    def check_code(self, code: str) -> Dict[str, Any]:
        """
        Exchange an authorization code for the account it was issued to.

        Returns
        -------
        dict
            ``ret`` is 0 on success, with ``uid`` and ``username``; -1 if
            the code is not valid, -2 if the account no longer exists.

        """
        response = self.client.request('user/check_code', {'code': code})
        return response if isinstance(response, dict) else {'ret': -1}

    def add_protected(self, username: Union[str, List[str]],
                      admin: str) -> int:
        """Protect one or more usernames from changes by applications."""
        response = self.client.request('user/addprotected', {
            'username': _as_list(username),
            'admin': admin,
        })
        return result_code(response, default=-1)

    def delete_protected(self, username: Union[str, List[str]]) -> int:
        response = self.client.request('user/deleteprotected',
                                       {'username': _as_list(username)})
        return result_code(response, default=-1)

    def get_protected(self) -> Any:
        """Get the protected usernames, as reported by the service."""
        response = self.client.request('user/getprotected', {})
        return response if isinstance(response, (dict, list)) else []

    def merge(self, oldusername: str, newusername: str, uid: int,
              password: str, email: str) -> int:
        """
        Move an application account whose name clashes into the service.

        Parameters
        ----------
        oldusername : str
            Name of the account in the application.
        newusername : str
            Name it gets in the service.
        uid : int
        password : str
        email : str

        Returns
        -------
        int
            The uid, or a negative code as for :meth:`register`.

        """
        response = self.client.request('user/merge', {
            'oldusername': oldusername,
            'newusername': newusername,
            'uid': uid,
            'password': password,
            'email': email,
        })
        return result_code(response)

    def merge_remove(self, username: str) -> None:
        """Forget the clash record for ``username``."""
        self.client.request('user/merge_remove', {'username': username})

    def syn_login(self, uid: int) -> str:
        """Get the HTML that logs the browser in to every application."""
        return self.client.request_raw('user/synlogin', {'uid': uid})

    def syn_logout(self) -> str:
        """Get the HTML that logs the browser out of every application."""
        return self.client.request_raw('user/synlogout', {})

    def get_bindings(self, uid: int) -> Dict[str, str]:
        """Get the third-party identifiers bound to ``uid``."""
        return self._store().get_by_uid(uid)

    def bind(self, uid: int, login_type: str, identifier: str) -> None:
        """Bind an identifier to ``uid``, taking it from any other account."""
        self._store().add(uid, login_type, identifier)

    def unbind(self, uid: int, login_type: str) -> None:
        self._store().remove(uid, login_type)

    def _store(self) -> Any:
        if self.client.binding_store is None:
            raise UnsupportedOperation('No binding store is configured')
        return self.client.binding_store

    def _authenticate(self, username: str, password: str, isuid: int = 0,
                      checkques: bool = False, questionid: int = 0,
                      answer: str = '') -> LoginResult:
        response = self.client.request('user/login', {
            'username': username,
            'password': password,
            'isuid': isuid,
            'checkques': 1 if checkques else 0,
            'questionid': questionid,
            'answer': answer,
        })
        return LoginResult.from_response(response)

    def _create(self, username: str, password: str, email: str,
                questionid: int = 0, answer: str = '',
                regip: str = '') -> int:
        response = self.client.request('user/register', {
            'username': username,
            'password': password,
            'email': email,
            'questionid': questionid,
            'answer': answer,
            'regip': regip,
        })
        return result_code(response)

    def _backfill(self, uid: int, login_type: str, identifier: str,
                  credentials: Credentials) -> None:
        """Record the identifier on a new account, and its e-mail if unset."""
        account = self.get_user(str(uid), isuid=True)
        fields = {LoginType.FIELDS[login_type]: identifier}
        email = '' if account.get('email') else credentials.email
        ret = self.edit(str(uid), email=email, ignoreoldpw=True, isuid=True,
                        **fields)
        if ret < 0:
            logger.warning('Could not update profile of uid %i: %i', uid, ret)

    def _bind(self, uid: int, login_type: str, identifier: str) -> None:
        if self.client.binding_store is not None:
            self.client.binding_store.add(uid, login_type, identifier)

    def _link_system_friend(self, uid: int) -> None:
        system_uid = self.client.system_uid
        if not system_uid or uid == system_uid:
            return
        friends = self.client.friend()
        try:
            friends.add(uid, system_uid)
            friends.add(system_uid, uid)
        except Exception as e:
            # The account exists either way; a missing friend link is not
            # worth failing the registration over.
            logger.warning('Could not link uid %i to system account: %s',
                           uid, e)

    def _with_token(self, result: LoginResult) -> LoginResult:
        issuer = self.client.issuer
        if issuer is None or not result.ok:
            return result
        token = issuer.issue({'sub': str(result.uid),
                              'username': result.username})
        return result._replace(access_token=token,
                               expires_in=issuer.default_ttl)


def _uid_of(account: Dict[str, Any]) -> int:
    try:
        return int(account.get('uid') or 0)
    except (TypeError, ValueError):
        return 0


def _as_list(value: Union[str, List[str]]) -> List[str]:
    return list(value) if isinstance(value, (list, tuple)) else [value]
