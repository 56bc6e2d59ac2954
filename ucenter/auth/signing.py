"""Request signatures and the bearer token used for signed remote calls."""

from typing import Any, Callable, Dict, Optional
from base64 import b64encode
import hashlib
import secrets
import time

from .. import domain, logging
from ..exceptions import TokenFetchFailed

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = 7200
"""Lifetime assumed for a bearer token if the service does not report one."""

REFRESH_MARGIN = 60
"""Refresh the bearer token when it has less than this many seconds left."""

Fetch = Callable[[Dict[str, Any]], Dict[str, Any]]


def generate_nonce(length: int = 16) -> str:
    """Generate a single-use nonce (``length`` random bytes, hex-encoded)."""
    return secrets.token_hex(length)


def build_sign(nonce: str, timestamp: int, secret: str) -> str:
    """
    Compute the signature for a remote call.

    The signature is the base64 encoding of the *hex digest* of
    SHA-256(nonce + timestamp + secret), as the identity service expects.

    Parameters
    ----------
    nonce : str
    timestamp : int
        UNIX time, seconds.
    secret : str
        Secret shared with the identity service.

    Returns
    -------
    str

    """
    raw = f'{nonce}{int(timestamp)}{secret}'.encode('utf-8')
    hex_digest = hashlib.sha256(raw).hexdigest()
    return b64encode(hex_digest.encode('ascii')).decode('ascii')


class TokenManager(object):
    """
    Holds the bearer token for one client.

    The token is fetched lazily on the first signed call, refreshed when it
    is within :const:`REFRESH_MARGIN` seconds of expiry, and dropped by
    :meth:`reset` when the client is closed. Two callers refreshing at the
    same time is harmless: both get a valid token, and the last one wins.
    """

    def __init__(self, fetch: Fetch,
                 clock: Callable[[], float] = time.time) -> None:
        """
        Parameters
        ----------
        fetch : callable
            Calls the ``token`` operation with the given parameters, and
            returns the decoded response.
        clock : callable
            Returns the current UNIX time.

        """
        self._fetch = fetch
        self._clock = clock
        self._current: Optional[domain.BearerToken] = None

    @property
    def current(self) -> Optional[domain.BearerToken]:
        """The cached token, if there is one."""
        return self._current

    def get_token(self, force_refresh: bool = False) -> str:
        """
        Get a bearer token, fetching a new one if necessary.

        Parameters
        ----------
        force_refresh : bool
            Fetch a new token even if the cached one is still fresh.

        Returns
        -------
        str

        Raises
        ------
        :class:`.TokenFetchFailed`
            The service did not return a token.

        """
        now = self._clock()
        current = self._current
        if not force_refresh and current is not None \
                and current.is_fresh(REFRESH_MARGIN, now):
            return current.token

        params: Dict[str, Any] = {}
        if current is not None:     # Ask the service to renew.
            params['token'] = current.token
        response = self._fetch(params)
        token = response.get('token') if isinstance(response, dict) else None
        if not token:
            logger.error('Identity service did not issue a bearer token')
            raise TokenFetchFailed('Failed to obtain a bearer token',
                                   response=response)
        try:
            expires_in = response.get('expires_in')
            ttl = DEFAULT_TOKEN_TTL if expires_in is None else int(expires_in)
        except (TypeError, ValueError):
            ttl = DEFAULT_TOKEN_TTL
        self._current = domain.BearerToken(token=str(token),
                                           expires_at=int(now) + ttl)
        logger.debug('Got bearer token, expires in %i seconds', ttl)
        return self._current.token

    def reset(self) -> None:
        """Forget the cached token."""
        self._current = None
