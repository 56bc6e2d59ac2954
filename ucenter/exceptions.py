"""Exceptions raised by the UCenter gateway."""

from typing import Any, Optional


class UCenterError(RuntimeError):
    """
    Base class for gateway errors.

    Carries the status/result code (where there is one) and the decoded
    response payload (where one was received), so that callers can see what
    the identity service actually said.
    """

    def __init__(self, message: str = '', code: int = 0,
                 response: Optional[Any] = None) -> None:
        super(UCenterError, self).__init__(message)
        self.code = code
        self.response = response


class TransportError(UCenterError):
    """The remote call could not be completed."""


class RequestFailed(UCenterError):
    """The remote service responded with an HTTP error status."""


class ProtocolFormatError(UCenterError):
    """The response body is not in any recognized shape."""


class TokenFetchFailed(UCenterError):
    """Could not obtain a bearer token for signed calls."""


class UnsupportedOperation(UCenterError):
    """The backend does not implement the requested operation."""


class RegistrationFailed(UCenterError):
    """Automatic registration of a third-party identity was rejected."""


class BindingConflict(UCenterError):
    """The identifier was claimed by a different account concurrently."""


class InvalidToken(UCenterError):
    """Session token is missing, malformed, forged or out of date."""


class MissingToken(InvalidToken):
    """No session token was provided."""


class MalformedToken(InvalidToken):
    """Session token is not a three-segment signed token."""


class InvalidSignature(InvalidToken):
    """Session token signature does not match its contents."""


class TokenNotYetValid(InvalidToken):
    """Session token is not valid yet (``nbf`` is in the future)."""


class ExpiredToken(InvalidToken):
    """Session token has expired."""
