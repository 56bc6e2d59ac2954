"""Run identity operations directly against a local database."""

from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from . import Backend
from .. import logging, util
from ..credentials import generated_password
from ..domain import EXTENDED_FIELDS, LoginStatus, LoginType
from ..exceptions import UnsupportedOperation
from ..models import DBUser

logger = logging.getLogger(__name__)

MAX_USERNAME_LENGTH = 50


class RegisterStatus(object):
    """Result codes for ``user/register``."""

    INVALID_USERNAME = -1
    USERNAME_EXISTS = -3
    INVALID_EMAIL = -4
    EMAIL_EXISTS = -6


class EditStatus(object):
    """Result codes for ``user/edit``."""

    UPDATED = 1
    UNCHANGED = 0
    NO_SUCH_USER = -1
    WRONG_PASSWORD = -2


def parse_identifier_username(username: str) \
        -> Optional[Tuple[str, str, str]]:
    """
    Recognize usernames of the form ``<prefix><identifier>``.

    Returns
    -------
    tuple or None
        ``(login type, account field, identifier)``, or ``None`` if the
        username has no known prefix.

    """
    for login_type, prefix in LoginType.PREFIXES.items():
        if username.startswith(prefix):
            return (login_type, LoginType.FIELDS[login_type],
                    username[len(prefix):])
    return None


def _flag(value: Any) -> bool:
    return str(value or '0').strip() not in ('', '0', 'false', 'False')


class DatabaseBackend(Backend):
    """
    Identity operations against the ``uc_users`` table.

    Only ``user/register``, ``user/login``, ``user/get_user`` and
    ``user/edit`` are available; asking for anything else is an error.
    Nothing is signed and nothing goes over the network.
    """

    def __init__(self, database: Union[str, Engine, util.Database]) -> None:
        self.database = util.get_database(database)
        self._operations: Dict[str, Callable[[Dict[str, Any]],
                                             Dict[str, Any]]] = {
            'user/register': self._register,
            'user/login': self._login,
            'user/get_user': self._get_user,
            'user/edit': self._edit,
        }

    @property
    def operations(self) -> List[str]:
        """Names of the supported operations."""
        return list(self._operations)

    def execute(self, operation: str,
                params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Run one of the supported operations.

        Raises
        ------
        :class:`.UnsupportedOperation`
            ``operation`` is not one of :attr:`operations`.

        """
        try:
            handler = self._operations[operation]
        except KeyError as e:
            raise UnsupportedOperation(
                f'Local mode only supports {", ".join(self._operations)};'
                f' not {operation}'
            ) from e
        return handler(dict(params or {}))

    def close(self) -> None:
        self.database.engine.dispose()

    def _register(self, p: Dict[str, Any]) -> Dict[str, Any]:
        username = str(p.get('username') or '').strip()
        email = str(p.get('email') or '').strip()
        if not username or len(username) > MAX_USERNAME_LENGTH:
            return {'ret': RegisterStatus.INVALID_USERNAME}
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            return {'ret': RegisterStatus.INVALID_EMAIL}

        with self.database.transaction() as session:
            taken = self._registration_conflict(session, username, email)
            if taken:
                return {'ret': taken}
            db_user = DBUser(
                username=username,
                password=util.hash_password(str(p.get('password') or '')),
                email=email,
                regip=p.get('regip') or None,
                regdate=util.now(),
                is_member=0
            )
            session.add(db_user)
            try:
                session.flush()
            except IntegrityError:
                # Somebody else got there between our check and the insert.
                session.rollback()
                taken = self._registration_conflict(session, username, email)
                return {'ret': taken or RegisterStatus.USERNAME_EXISTS}
            uid = int(db_user.uid)
        logger.debug('Registered uid %i', uid)
        return {'ret': uid}

    def _registration_conflict(self, session: Any, username: str,
                               email: str) -> int:
        if session.query(DBUser.uid).filter(DBUser.username == username) \
                .first():
            return RegisterStatus.USERNAME_EXISTS
        if session.query(DBUser.uid).filter(DBUser.email == email).first():
            return RegisterStatus.EMAIL_EXISTS
        return 0

    def _login(self, p: Dict[str, Any]) -> Dict[str, Any]:
        username = str(p.get('username') or '')
        password = str(p.get('password') or '')
        try:
            isuid = int(p.get('isuid') or 0)
        except (TypeError, ValueError):
            isuid = 0

        with self.database.transaction() as session:
            db_user = None
            parsed = parse_identifier_username(username)
            if parsed is not None:
                login_type, field, identifier = parsed
                candidate = session.query(DBUser) \
                    .filter(getattr(DBUser, field) == identifier) \
                    .first()
                if candidate is not None and (
                        util.check_password(password, candidate.password)
                        or password == generated_password(login_type,
                                                          identifier)):
                    db_user = candidate

            if db_user is None:
                candidate = self._lookup(session, username, isuid)
                if candidate is not None \
                        and util.check_password(password, candidate.password):
                    db_user = candidate
                elif candidate is not None:
                    return {'status': LoginStatus.WRONG_PASSWORD,
                            'username': '', 'email': ''}

            if db_user is None:
                return {'status': LoginStatus.NOT_FOUND,
                        'username': '', 'email': ''}
            return {
                'status': int(db_user.uid),
                'uid': int(db_user.uid),
                'username': db_user.username,
                'email': db_user.email,
            }

    def _lookup(self, session: Any, username: str,
                isuid: int) -> Optional[DBUser]:
        if isuid == 1:
            if not username.isdigit():
                return None
            column, value = DBUser.uid, int(username)
        elif isuid == 2:
            column, value = DBUser.email, username
        else:
            column, value = DBUser.username, username
        db_user: Optional[DBUser] = session.query(DBUser) \
            .filter(column == value) \
            .first()
        return db_user

    def _get_user(self, p: Dict[str, Any]) -> Dict[str, Any]:
        with self.database.transaction() as session:
            db_user = self._find(session, p)
            if db_user is None:
                return {'data': {'uid': 0, 'username': '', 'email': ''}}
            return {'data': db_user.to_dict()}

    def _find(self, session: Any, p: Dict[str, Any]) -> Optional[DBUser]:
        isuid = 1 if _flag(p.get('isuid')) else 0
        return self._lookup(session, str(p.get('username') or ''), isuid)

    def _edit(self, p: Dict[str, Any]) -> Dict[str, Any]:
        with self.database.transaction() as session:
            db_user = self._find(session, p)
            if db_user is None:
                return {'ret': EditStatus.NO_SUCH_USER}

            if not _flag(p.get('ignoreoldpw')) and not util.check_password(
                    str(p.get('oldpw') or ''), db_user.password):
                return {'ret': EditStatus.WRONG_PASSWORD}

            changed = False
            if p.get('newpw'):
                db_user.password = util.hash_password(str(p['newpw']))
                changed = True
            if p.get('email'):
                db_user.email = str(p['email'])
                changed = True
            for field in EXTENDED_FIELDS:
                if field in p:
                    value = p[field]
                    if field == 'is_member':
                        value = 1 if _flag(value) else 0
                    elif value == '':
                        value = None
                    setattr(db_user, field, value)
                    changed = True
            if not changed:
                return {'ret': EditStatus.UNCHANGED}
            session.add(db_user)
        return {'ret': EditStatus.UPDATED}
