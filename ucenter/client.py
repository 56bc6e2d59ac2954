"""The gateway client, which ties a backend to the user and friend APIs."""

from typing import Any, Dict, Optional, Union

from sqlalchemy.engine import Engine

from . import config, logging, util
from .auth.tokens import SessionIssuer
from .backend import Backend, DatabaseBackend, RemoteBackend
from .binding import BindingStore, DatabaseBindingStore
from .credentials import DEFAULT_EMAIL_DOMAIN
from .exceptions import UnsupportedOperation
from .friends import FriendApi
from .users import UserApi

logger = logging.getLogger(__name__)

DatabaseLike = Union[str, Engine, util.Database]


class UCenterClient(object):
    """
    Entry point for identity operations.

    By default operations are sent to the remote UCenter service. Pass a
    ``backend`` (or use :meth:`from_database`) to run them against a local
    database instead, and a ``binding_store`` to keep track of third-party
    identifiers on the gateway side.
    """

    def __init__(self, base_url: str = '', app_id: str = '',
                 secret: str = '', timeout: float = 10,
                 backend: Optional[Backend] = None,
                 binding_store: Optional[BindingStore] = None,
                 issuer: Optional[SessionIssuer] = None,
                 email_domain: Optional[str] = None,
                 system_uid: int = 1) -> None:
        """
        Parameters
        ----------
        base_url : str
            Root URL of the UCenter service. Ignored if ``backend`` is given.
        app_id : str
        secret : str
            Shared secret for signing remote calls.
        timeout : float
            Seconds to wait for the remote service.
        backend : :class:`.Backend`
            Use this instead of a :class:`.RemoteBackend`.
        binding_store : :class:`.BindingStore`
        issuer : :class:`.SessionIssuer`
            If given, successful logins carry a session token.
        email_domain : str
            Domain for e-mail addresses of auto-provisioned accounts.
        system_uid : int
            Account that new users are linked to as a friend. 0 disables
            the link.

        """
        if backend is None:
            backend = RemoteBackend(base_url, app_id, secret, timeout=timeout)
        self.backend = backend
        self.binding_store = binding_store
        self.issuer = issuer
        self.email_domain = email_domain or DEFAULT_EMAIL_DOMAIN
        self.system_uid = system_uid

    @classmethod
    def from_database(cls, database: DatabaseLike,
                      **kwargs: Any) -> 'UCenterClient':
        """Create a client that keeps accounts in a local database."""
        return cls(backend=DatabaseBackend(database), **kwargs)

    @classmethod
    def with_binding_store(cls, base_url: str, app_id: str, secret: str,
                           binding_database: DatabaseLike,
                           **kwargs: Any) -> 'UCenterClient':
        """
        Create a client for mixed mode.

        Accounts live in the remote service; identifier bindings are kept in
        ``binding_database``.
        """
        store = DatabaseBindingStore(binding_database)
        return cls(base_url, app_id, secret, binding_store=store, **kwargs)

    @classmethod
    def from_config(cls) -> 'UCenterClient':
        """Create a client from :mod:`ucenter.config`."""
        issuer: Optional[SessionIssuer] = None
        if config.JWT_SECRET:
            issuer = SessionIssuer(config.JWT_SECRET,
                                   default_ttl=int(config.JWT_TTL),
                                   issuer=config.JWT_ISSUER,
                                   audience=config.JWT_AUDIENCE)
        store: Optional[BindingStore] = None
        if config.UCENTER_BINDING_DATABASE_URI:
            store = DatabaseBindingStore(config.UCENTER_BINDING_DATABASE_URI)
        backend: Optional[Backend] = None
        if config.UCENTER_DATABASE_URI:
            logger.info('Using local identity database')
            backend = DatabaseBackend(config.UCENTER_DATABASE_URI)
        return cls(config.UCENTER_BASE_URL, config.UCENTER_APP_ID,
                   config.UCENTER_SECRET,
                   timeout=float(config.UCENTER_TIMEOUT),
                   backend=backend, binding_store=store, issuer=issuer,
                   email_domain=config.UCENTER_EMAIL_DOMAIN or None,
                   system_uid=int(config.UCENTER_SYSTEM_UID))

    @property
    def is_remote(self) -> bool:
        return isinstance(self.backend, RemoteBackend)

    def request(self, operation: str,
                params: Optional[Dict[str, Any]] = None) -> Any:
        """Run an operation and return the decoded result."""
        return self.backend.execute(operation, params)

    def request_raw(self, operation: str,
                    params: Optional[Dict[str, Any]] = None) -> str:
        """Run an operation and return the undecoded body (remote only)."""
        return self.backend.execute_raw(operation, params)

    def build_sign(self, nonce: str, timestamp: int) -> str:
        return self._remote().build_sign(nonce, timestamp)

    def get_token(self, force_refresh: bool = False) -> str:
        return self._remote().get_token(force_refresh)

    def user(self) -> UserApi:
        return UserApi(self)

    def friend(self) -> FriendApi:
        return FriendApi(self)

    def close(self) -> None:
        """Release the backend; the bearer token is forgotten."""
        self.backend.close()

    def __enter__(self) -> 'UCenterClient':
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _remote(self) -> RemoteBackend:
        if not isinstance(self.backend, RemoteBackend):
            raise UnsupportedOperation('Not connected to a remote service')
        return self.backend
