"""Session tokens (HS256 JWTs) for authenticated users."""

from typing import Any, Dict, Mapping, Optional
import binascii
import hashlib
import hmac
import json
import re
import time

import jwt
import jwt.utils

from .. import logging
from ..exceptions import ExpiredToken, InvalidSignature, InvalidToken, \
    MalformedToken, MissingToken, TokenNotYetValid

logger = logging.getLogger(__name__)

ALGORITHM = 'HS256'
DEFAULT_TTL = 7200

BEARER = re.compile(r'^\s*Bearer\s+(\S+)\s*$', re.IGNORECASE)


class SessionIssuer(object):
    """
    Issues and verifies self-contained session tokens.

    Tokens carry their own claims and expiry, and are not recorded anywhere:
    there is no way to revoke one before it expires.
    """

    def __init__(self, secret: str, default_ttl: int = DEFAULT_TTL,
                 issuer: str = '', audience: str = '') -> None:
        """
        Parameters
        ----------
        secret : str
            Signing key. Should be a long random string.
        default_ttl : int
            Lifetime of issued tokens in seconds, unless overridden.
        issuer : str
            Value for the ``iss`` claim, if any.
        audience : str
            Value for the ``aud`` claim, if any.

        """
        if not secret:
            raise ValueError('A signing secret is required')
        self._secret = secret
        self.default_ttl = default_ttl
        self.issuer = issuer
        self.audience = audience

    def issue(self, claims: Mapping[str, Any],
              ttl: Optional[int] = None) -> str:
        """
        Issue a token for a set of claims.

        Parameters
        ----------
        claims : dict
            Should include at least ``sub`` (the uid, as a string) and
            ``username``.
        ttl : int
            Lifetime in seconds. Defaults to :attr:`default_ttl`.

        Returns
        -------
        str
            ``header.payload.signature``

        """
        if ttl is None:
            ttl = self.default_ttl
        issued_at = int(time.time())
        payload = dict(claims)
        payload.update({
            'iat': issued_at,
            'nbf': issued_at,
            'exp': issued_at + int(ttl),
        })
        if self.issuer:
            payload['iss'] = self.issuer
        if self.audience:
            payload['aud'] = self.audience
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM,
                           headers={'typ': 'JWT'})
        if isinstance(token, bytes):     # PyJWT < 2
            token = token.decode('ascii')
        return token

    def verify(self, token: Optional[str]) -> Dict[str, Any]:
        """
        Verify a token and return its claims.

        Parameters
        ----------
        token : str

        Returns
        -------
        dict

        Raises
        ------
        :class:`.MissingToken`
        :class:`.MalformedToken`
        :class:`.InvalidSignature`
        :class:`.TokenNotYetValid`
        :class:`.ExpiredToken`
        :class:`.InvalidToken`
            Any other claim failed to validate (e.g. audience).

        """
        token = (token or '').strip()
        if not token:
            raise MissingToken('Token is empty')
        if len(token.split('.')) != 3:
            raise MalformedToken('Token must have three segments')

        options = {'require': ['exp', 'iat', 'nbf']}
        try:
            claims: Dict[str, Any] = jwt.decode(
                token, self._secret, algorithms=[ALGORITHM],
                audience=self.audience or None,
                issuer=self.issuer or None,
                options=options
            )
        except jwt.exceptions.InvalidSignatureError as e:
            raise InvalidSignature('Token signature is not valid') from e
        except jwt.exceptions.ExpiredSignatureError as e:
            raise ExpiredToken('Token has expired') from e
        except jwt.exceptions.ImmatureSignatureError as e:
            raise TokenNotYetValid('Token is not valid yet') from e
        except jwt.exceptions.DecodeError as e:
            # A payload that no longer decodes was still tampered with.
            if self._tampered(token):
                raise InvalidSignature('Token signature is not valid') from e
            raise MalformedToken('Token could not be decoded') from e
        except jwt.exceptions.InvalidTokenError as e:
            logger.debug('Token rejected: %s', e)
            raise InvalidToken(f'Token is not valid: {e}') from e
        return claims

    def _tampered(self, token: str) -> bool:
        """Whether a token with a readable header fails the HMAC check."""
        header, payload, signature = token.split('.')
        try:
            json.loads(jwt.utils.base64url_decode(header))
            actual = jwt.utils.base64url_decode(signature)
        except (binascii.Error, ValueError):
            return False
        expected = hmac.new(self._secret.encode('utf-8'),
                            f'{header}.{payload}'.encode('utf-8'),
                            hashlib.sha256).digest()
        return not hmac.compare_digest(expected, actual)

    def verify_from_request(self, headers: Optional[Mapping[str, str]] = None,
                            query: Optional[Mapping[str, Any]] = None,
                            body: Optional[Mapping[str, Any]] = None) \
            -> Dict[str, Any]:
        """
        Find a token in a request and verify it.

        The ``Authorization: Bearer`` header wins; otherwise ``token`` or
        ``access_token`` is taken from the query string, then the body.

        Parameters
        ----------
        headers : mapping
            Request headers. Header names are matched case-insensitively;
            CGI-style ``HTTP_AUTHORIZATION`` keys are accepted too.
        query : mapping
        body : mapping

        Returns
        -------
        dict

        """
        return self.verify(extract_token(headers, query, body))


def extract_token(headers: Optional[Mapping[str, str]] = None,
                  query: Optional[Mapping[str, Any]] = None,
                  body: Optional[Mapping[str, Any]] = None) -> str:
    """Pull a session token out of request headers or parameters."""
    for key, value in (headers or {}).items():
        name = key.lower().replace('_', '-')
        if name in ('authorization', 'http-authorization',
                    'redirect-http-authorization'):
            match = BEARER.match(value or '')
            if match:
                return match.group(1)
    for params in (query or {}, body or {}):
        for key in ('token', 'access_token'):
            if params.get(key):
                return str(params[key])
    return ''
