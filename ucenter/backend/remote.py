"""Signed calls to the remote UCenter service."""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode
import json
import re
import time

import requests

from . import Backend
from .. import logging
from ..auth.signing import TokenManager, build_sign, generate_nonce
from ..exceptions import ProtocolFormatError, RequestFailed, TransportError

logger = logging.getLogger(__name__)

TOKEN_OPERATION = 'token'
"""The one operation that is called without a bearer token."""

INTEGER = re.compile(r'^-?\d+$')
TRUNCATE = 200


def encode_params(params: Optional[Dict[str, Any]]) -> str:
    """
    URL-form-encode parameters the way the identity service parses them.

    Lists become ``key[0]=..&key[1]=..``, dicts ``key[sub]=..``, booleans
    ``1``/``0``; ``None`` values are dropped. Encoding follows RFC 3986.
    """
    pairs: List[Tuple[str, str]] = []

    def _add(key: str, value: Any) -> None:
        if value is None:
            return
        if isinstance(value, dict):
            for sub, item in value.items():
                _add(f'{key}[{sub}]', item)
        elif isinstance(value, (list, tuple)):
            for i, item in enumerate(value):
                _add(f'{key}[{i}]', item)
        elif isinstance(value, bool):
            pairs.append((key, '1' if value else '0'))
        else:
            pairs.append((key, str(value)))

    for key, value in (params or {}).items():
        _add(key, value)
    return urlencode(pairs, quote_via=quote)


def decode_body(body: str) -> Any:
    """
    Decode a response body.

    In order: a JSON object or array is returned as-is; an empty body is a
    success with nothing to report (``{'ret': 0}``); a bare integer becomes
    ``{'ret': <int>}``. Anything else is a protocol error.

    Raises
    ------
    :class:`.ProtocolFormatError`

    """
    raw = (body or '').strip()
    try:
        decoded = json.loads(raw)
    except ValueError:
        decoded = None
    if isinstance(decoded, (dict, list)):
        return decoded
    if raw == '':
        return {'ret': 0}
    if INTEGER.match(raw):
        return {'ret': int(raw)}
    raise ProtocolFormatError(
        f'Response is not JSON: {(body or "")[:TRUNCATE]}',
        response=(body or '')[:TRUNCATE]
    )


class RemoteBackend(Backend):
    """
    Sends signed calls to the UCenter HTTP API.

    Every call carries the app id, a nonce, a timestamp and a signature over
    the three; all calls except ``token`` also carry a bearer token, which is
    fetched on first use and kept by a :class:`.TokenManager` for the life of
    this backend.
    """

    def __init__(self, base_url: str, app_id: str, secret: str,
                 timeout: float = 10) -> None:
        """Create a new HTTP session."""
        self.base_url = base_url.rstrip('/')
        self.app_id = app_id
        self._secret = secret
        self.timeout = timeout
        self._session = requests.Session()
        # Retrying is up to the caller.
        self._adapter = requests.adapters.HTTPAdapter(max_retries=0)
        self._session.mount('http://', self._adapter)
        self._session.mount('https://', self._adapter)
        self.tokens = TokenManager(self._fetch_token)
        logger.debug('New RemoteBackend for %s', self.base_url)

    def build_sign(self, nonce: str, timestamp: int) -> str:
        """Sign a nonce and timestamp with the shared secret."""
        return build_sign(nonce, timestamp, self._secret)

    def get_token(self, force_refresh: bool = False) -> str:
        """Get the bearer token; see :meth:`.TokenManager.get_token`."""
        return self.tokens.get_token(force_refresh)

    def url_for(self, operation: str) -> str:
        return f'{self.base_url}/api/?/{operation}'

    def execute(self, operation: str,
                params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Call an operation and decode the response.

        Parameters
        ----------
        operation : str
            E.g. ``user/login``.
        params : dict

        Returns
        -------
        dict or list

        Raises
        ------
        :class:`.TransportError`
            The call could not be completed.
        :class:`.RequestFailed`
            The service responded with status 400 or above.
        :class:`.ProtocolFormatError`
            The body is not JSON, an integer or empty.
        :class:`.TokenFetchFailed`
            No bearer token could be obtained.

        """
        response = self._send(operation, params)
        if response.status_code >= 400:
            logger.debug('%s responded with status %i', operation,
                         response.status_code)
            try:
                payload = response.json()
            except ValueError:
                payload = None
            message = 'Request failed'
            if isinstance(payload, dict) and payload.get('message'):
                message = str(payload['message'])
            raise RequestFailed(message, code=response.status_code,
                                response=payload)
        return decode_body(response.text)

    def execute_raw(self, operation: str,
                    params: Optional[Dict[str, Any]] = None) -> str:
        """
        Call an operation and return the body as-is.

        Used for ``user/synlogin`` and ``user/synlogout``, which respond with
        HTML for the browser.
        """
        return str(self._send(operation, params).text)

    def close(self) -> None:
        """Forget the bearer token and close the HTTP session."""
        self.tokens.reset()
        self._session.close()

    def _fetch_token(self, params: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = self.execute(TOKEN_OPERATION, params)
        return result

    def _headers(self, operation: str) -> Dict[str, str]:
        nonce = generate_nonce()
        timestamp = int(time.time())
        headers = {
            'Content-Type': 'application/x-www-form-urlencoded',
            'appid': self.app_id,
            'nonce': nonce,
            't': str(timestamp),
            'sign': self.build_sign(nonce, timestamp),
        }
        if operation != TOKEN_OPERATION:
            headers['token'] = self.get_token()
        return headers

    def _send(self, operation: str,
              params: Optional[Dict[str, Any]]) -> requests.Response:
        headers = self._headers(operation)
        logger.debug('Calling %s', operation)
        try:
            return self._session.post(self.url_for(operation),
                                      data=encode_params(params),
                                      headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error('Call to %s failed: %s', operation, e)
            raise TransportError(f'Request failed: {e}') from e
