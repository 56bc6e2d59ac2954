"""
Signing of outbound calls and session tokens for authenticated callers.

:mod:`.signing` authenticates the gateway to the identity service (request
signatures and the bearer token). :mod:`.tokens` authenticates end users to
the applications behind the gateway (signed, stateless session tokens).
"""

from .signing import build_sign, generate_nonce, TokenManager
from .tokens import SessionIssuer
