"""Configuration for the UCenter gateway, read from the environment."""

import os

UCENTER_BASE_URL = os.environ.get('UCENTER_BASE_URL', 'https://uc.example.com')
"""Root URL of the remote UCenter service."""

UCENTER_APP_ID = os.environ.get('UCENTER_APP_ID', '')
UCENTER_SECRET = os.environ.get('UCENTER_SECRET', '')
"""Shared secret used to sign every remote call."""

UCENTER_TIMEOUT = os.environ.get('UCENTER_TIMEOUT', '10')
"""Seconds to wait for the remote service before giving up."""

UCENTER_DATABASE_URI = os.environ.get('UCENTER_DATABASE_URI')
"""
If set, identity operations run directly against this database instead of
the remote service.
"""

UCENTER_BINDING_DATABASE_URI = os.environ.get('UCENTER_BINDING_DATABASE_URI')
"""If set, third-party identifier bindings are kept in this database."""

UCENTER_EMAIL_DOMAIN = os.environ.get('UCENTER_EMAIL_DOMAIN', '')
"""
Domain for e-mail addresses of auto-provisioned accounts. If empty,
:data:`ucenter.credentials.DEFAULT_EMAIL_DOMAIN` is used.
"""

UCENTER_SYSTEM_UID = os.environ.get('UCENTER_SYSTEM_UID', '1')
"""Account that every newly registered user is linked to as a friend."""

JWT_SECRET = os.environ.get('JWT_SECRET')
"""Signing key for session tokens. Session tokens are disabled if unset."""

JWT_TTL = os.environ.get('JWT_TTL', '7200')
JWT_ISSUER = os.environ.get('JWT_ISSUER', '')
JWT_AUDIENCE = os.environ.get('JWT_AUDIENCE', '')

LOGLEVEL = os.environ.get('LOGLEVEL', '40')
