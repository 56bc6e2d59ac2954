"""
Synthetic credentials for third-party identities.

Somebody who signs in with, say, a WeChat union id never chooses a username
or password. Instead we derive both (and an e-mail address) from the
identifier itself. The derivation is a pure function, so the same identifier
always maps to the same account, and it can be recomputed at any time
without storing anything.
"""

import hashlib
import re
from typing import Optional

from .domain import Credentials, LoginType

DEFAULT_EMAIL_DOMAIN = 'jiuzhoufeiyi.com'
MAX_SEED_LENGTH = 50

UNSAFE = re.compile(r'[^A-Za-z0-9_]')


def generated_password(login_type: str, identifier: str) -> str:
    """First 16 hex characters of SHA-256 over ``"<type>|<identifier>"``."""
    digest = hashlib.sha256(f'{login_type}|{identifier}'.encode('utf-8'))
    return digest.hexdigest()[:16]


def derive_credentials(login_type: str, identifier: str,
                       email_domain: Optional[str] = None) -> Credentials:
    """
    Derive the username, e-mail and password for a third-party identity.

    Parameters
    ----------
    login_type : str
        One of :attr:`.LoginType.ALL`.
    identifier : str
        Phone number, union id, open id, etc.
    email_domain : str
        Domain for the e-mail address; :data:`DEFAULT_EMAIL_DOMAIN` if
        empty.

    Returns
    -------
    :class:`.Credentials`
        ``username`` is 32 lowercase hex characters, ``password`` 16.

    Raises
    ------
    ValueError
        If ``login_type`` is not recognized.

    """
    try:
        prefix = LoginType.PREFIXES[login_type]
    except KeyError as e:
        raise ValueError(f'Unknown login type: {login_type}') from e
    seed = (prefix + UNSAFE.sub('_', identifier))[:MAX_SEED_LENGTH]
    username = hashlib.md5(seed.encode('utf-8')).hexdigest()
    email = f'{username[8:24]}@{email_domain or DEFAULT_EMAIL_DOMAIN}'
    return Credentials(username=username, email=email,
                       password=generated_password(login_type, identifier))
