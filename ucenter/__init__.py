"""
Client-side gateway to a UCenter identity service.

This package signs and sends calls to a remote UCenter service (or runs a
subset of them against a local database), logs people in with a username
and password or with a third-party identifier such as a phone number or
WeChat union id, and issues signed session tokens for the applications
behind the gateway.

Quick start
-----------

.. code-block:: python

   from ucenter import UCenterClient, SessionIssuer, LoginType

   client = UCenterClient('https://uc.example.com', 'my-app', 'secret',
                          issuer=SessionIssuer('another-secret'))
   result = client.user().login_by_identifier(LoginType.PHONE,
                                              '13800000000')
   if result.ok:
       print(result.uid, result.access_token)

There are three modes:

1. Remote (the default): every operation is a signed call to the service.
2. Local: pass ``backend=DatabaseBackend(uri)``, or use
   :meth:`UCenterClient.from_database`. Only registration, login, account
   lookup and account edits are available.
3. Mixed: remote accounts, with identifier bindings kept by the gateway.
   Use :meth:`UCenterClient.with_binding_store`.

:meth:`UCenterClient.from_config` picks the mode from the environment; see
:mod:`ucenter.config`.
"""

from .auth.tokens import SessionIssuer
from .client import UCenterClient
from .credentials import derive_credentials
from .domain import LoginOutcome, LoginResult, LoginType
from .exceptions import UCenterError, TransportError, RequestFailed, \
    ProtocolFormatError, TokenFetchFailed, UnsupportedOperation, \
    RegistrationFailed, BindingConflict, InvalidToken
